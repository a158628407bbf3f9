"""
Tests for Measurement construction, tags and the propagation context.

Tests cover:
- Independent construction and validation
- Tag identity and allocator uniqueness (including concurrent use)
- Context injection and the process default
- Operator protocol details (reflected ops, numpy scalars, ordering)
"""

import dataclasses
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from measurement_system import (
    DERIVED,
    Measurement,
    NegativeUncertaintyError,
    PropagationContext,
    Tag,
    TagAllocator,
    exact,
    get_default_context,
    measurement,
    measurement_from_samples,
    set_default_context,
    uncertainty,
    value,
)

pytestmark = pytest.mark.engine


class TestConstruction:
    """Tests for independent measurements."""

    def test_independent_measurement(self, m):
        a = m(2.0, 0.1)
        assert a.val == 2.0
        assert a.err == 0.1
        assert a.is_independent
        assert a.tag.stddev == 0.1
        assert dict(a.der) == {a.tag: 1.0}

    def test_negative_uncertainty_rejected(self, m):
        with pytest.raises(NegativeUncertaintyError):
            m(1.0, -0.1)

    def test_nan_uncertainty_rejected(self, m):
        with pytest.raises(ValueError):
            m(1.0, float('nan'))

    def test_exact(self, context):
        e = exact(3.0, context=context)
        assert e.err == 0.0
        assert e.is_independent

    def test_measurement_is_immutable(self, m):
        a = m(2.0, 0.1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            a.val = 3.0
        with pytest.raises(TypeError):
            a.der[a.tag] = 2.0

    def test_identical_values_are_distinct_variables(self, m):
        a, b = m(2.0, 0.1), m(2.0, 0.1)
        assert a.tag != b.tag
        assert (a - b).err == pytest.approx(0.1 * math.sqrt(2))

    def test_from_samples(self, context):
        data = [9.79, 9.81, 9.80, 9.82, 9.78]
        g = measurement_from_samples(data, context=context)
        assert g.val == pytest.approx(np.mean(data))
        assert g.err == pytest.approx(np.std(data, ddof=1) / np.sqrt(5))

    def test_from_samples_needs_two_points(self, context):
        with pytest.raises(ValueError):
            measurement_from_samples([1.0], context=context)

    def test_value_and_uncertainty_helpers(self, m):
        a = m(2.0, 0.1)
        assert value(a) == 2.0
        assert uncertainty(a) == 0.1
        assert value(3.5) == 3.5
        assert uncertainty(3.5) == 0.0

    def test_relative_uncertainty(self, m):
        assert m(2.0, 0.1).relative_uncertainty == pytest.approx(0.05)
        assert m(0.0, 0.1).relative_uncertainty == float('inf')

    def test_repr_and_str(self, m):
        a = m(2.0, 0.1)
        assert repr(a) == "Measurement(2.0 ± 0.1)"
        assert str(a) == "2 ± 0.1"


class TestTags:
    """Tests for tag identity and allocation."""

    def test_equality_ignores_stddev(self):
        assert Tag(1, 0.1, 7) == Tag(1, 0.5, 7)
        assert hash(Tag(1, 0.1, 7)) == hash(Tag(1, 0.5, 7))

    def test_ordinals_are_monotonic(self):
        allocator = TagAllocator()
        ids = [allocator.allocate(0.1).id for _ in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5
        assert allocator.issued == 5

    def test_allocators_do_not_collide(self):
        first, second = TagAllocator(), TagAllocator()
        t1, t2 = first.allocate(0.1), second.allocate(0.1)
        assert t1.id == t2.id
        assert t1 != t2

    def test_concurrent_creation_never_reuses_ordinals(self, context):
        def create(_):
            return [measurement(1.0, 0.1, context=context) for _ in range(500)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            batches = list(pool.map(create, range(8)))

        tags = [a.tag for batch in batches for a in batch]
        assert len(tags) == 4000
        assert len(set(tags)) == 4000
        assert len({t.id for t in tags}) == 4000
        assert context.allocator.issued == 4000


class TestContext:
    """Tests for the propagation context."""

    def test_default_context_is_reused(self):
        assert get_default_context() is get_default_context()

    def test_set_default_context(self):
        get_default_context()
        replacement = PropagationContext()
        previous = set_default_context(replacement)
        try:
            a = measurement(1.0, 0.1)
            assert a.tag.namespace == replacement.allocator.namespace
        finally:
            set_default_context(previous)

    def test_set_default_context_type_check(self):
        with pytest.raises(TypeError):
            set_default_context("not a context")


class TestOperators:
    """Operator protocol details."""

    def test_reflected_arithmetic(self, m):
        a = m(2.0, 0.1)
        assert (1.0 + a).val == 3.0
        assert (1.0 - a).val == -1.0
        assert (1.0 - a).err == pytest.approx(0.1)
        assert (4.0 / a).val == 2.0
        assert (4.0 / a).err == pytest.approx(0.1)
        assert (2.0 ** a).val == 4.0
        assert (2.0 ** a).err == pytest.approx(4.0 * math.log(2.0) * 0.1)

    def test_division_by_plain_number_matches_float_division(self, m):
        q = m(3.0, 0.1) / 10
        assert q.val == 3.0 / 10
        assert q.err == pytest.approx(0.1 / 10)

        r = 3.0 / m(10.0, 0.1)
        assert r.val == 3.0 / 10.0
        assert r.err == pytest.approx(3.0 / 100.0 * 0.1)

    def test_numpy_scalar_on_left(self, m):
        a = m(2.0, 0.1)
        out = np.float64(3.0) * a
        assert isinstance(out, Measurement)
        assert out.err == pytest.approx(0.3)

    def test_unary_operators(self, m):
        a = m(-2.0, 0.1)
        assert (-a).val == 2.0
        assert (-a).err == 0.1
        assert (+a) is a
        assert abs(a).val == 2.0
        assert abs(a).err == pytest.approx(0.1)

    def test_unsupported_operand(self, m):
        a = m(2.0, 0.1)
        with pytest.raises(TypeError):
            a + "1"

    def test_ordering_uses_nominal_values(self, m):
        a, b = m(2.0, 0.1), m(3.0, 5.0)
        assert a < b
        assert b >= a
        assert a > 1.5
        assert a <= 2.0

    def test_builtin_rounding(self, m):
        a = m(2.7, 0.1)
        assert math.floor(a) == 2
        assert math.ceil(a) == 3
        assert math.trunc(a) == 2
        assert round(a) == 3

    def test_floordiv_and_mod(self, m):
        a = m(7.0, 0.1)
        q = a // 2.0
        assert q.val == 3.0
        assert q.err == 0.0
        r = a % 2.0
        assert r.val == pytest.approx(1.0)
        assert r.err == pytest.approx(0.1)

    def test_derived_tag(self, m):
        a = m(2.0, 0.1)
        assert (a * 2).tag is DERIVED
