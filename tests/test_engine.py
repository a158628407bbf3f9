"""
Tests for the propagation engine.

Tests cover:
- Correlation cancellation (a - a)
- Uncorrelated combination in quadrature
- Zero-uncertainty absorption of NaN / infinite derivatives
- Chain-rule consistency
- Multiplication by exact constants
- Argument-count checking
- Complex-valued results
"""

import math

import pytest

from measurement_system import (
    DERIVED,
    ArityMismatchError,
    ComplexMeasurement,
    combine,
    propagate,
    propagate_complex,
    propagate_many,
)
from measurement_system import functions as fn

pytestmark = pytest.mark.engine


class TestCorrelation:
    """Shared independent variables must combine before squaring."""

    def test_self_difference_is_exactly_zero(self, m):
        a = m(2.0, 0.1)
        diff = a - a
        assert diff.val == 0.0
        assert diff.err == 0.0

    def test_self_difference_for_large_uncertainty(self, m):
        a = m(1e6, 3.7e5)
        assert (a - a).err == 0.0

    def test_derived_self_difference(self, m):
        a, b = m(2.0, 0.1), m(3.0, 0.2)
        y = fn.sin(a) * b
        assert (y - y).err == 0.0

    def test_uncorrelated_sum(self, m):
        b, c = m(3.0, 0.2), m(5.0, 0.1)
        total = b + c
        assert total.val == 8.0
        assert total.err == math.sqrt(0.2 ** 2 + 0.1 ** 2)
        assert total.err == pytest.approx(0.2236, abs=1e-4)

    def test_self_sum_is_fully_correlated(self, m):
        a = m(2.0, 0.1)
        assert (a + a).err == pytest.approx(0.2)

    def test_partially_shared_variables(self, m):
        a, b, c = m(2.0, 0.1), m(3.0, 0.2), m(5.0, 0.3)
        y = a * b
        z = a + c
        g = y * z
        # g = a·b·(a + c)
        dg_da = b.val * (2 * a.val + c.val)
        dg_db = a.val * (a.val + c.val)
        dg_dc = a.val * b.val
        expected = math.sqrt((0.1 * dg_da) ** 2 + (0.2 * dg_db) ** 2 + (0.3 * dg_dc) ** 2)
        assert g.val == pytest.approx(2.0 * 3.0 * 7.0)
        assert g.err == pytest.approx(expected)
        assert g.derivative(a.tag) == pytest.approx(dg_da)

    def test_ratio_of_correlated_quantities(self, m):
        a = m(4.0, 0.3)
        assert (a / a).val == 1.0
        assert (a / a).err == pytest.approx(0.0, abs=1e-15)


class TestSingleOperand:
    """Behaviour of the single-operand path."""

    def test_scale_by_constant_is_exact(self, m):
        a = m(2.0, 0.1)
        for k in (3.0, -2.5, 1e-3, 7):
            scaled = k * a
            assert scaled.val == k * a.val
            assert scaled.err == abs(k) * a.err

    def test_zero_uncertainty_absorbs_nan_derivative(self, m):
        a = m(1.0, 0.0)
        out = propagate(2.0, float('nan'), a)
        assert out.val == 2.0
        assert out.err == 0.0

    def test_zero_uncertainty_absorbs_infinite_derivative(self, m):
        a = m(0.0, 0.0)
        assert propagate(0.0, float('inf'), a).err == 0.0
        assert fn.sqrt(a).err == 0.0
        assert (1.0 / a).err == 0.0

    def test_nan_derivative_is_not_masked(self, m):
        a = m(1.0, 0.1)
        assert math.isnan(propagate(1.0, float('nan'), a).err)

    def test_chain_rule_consistency(self, m):
        a = m(0.8, 0.05)
        stepwise = fn.exp(fn.sin(a))
        direct = propagate(math.exp(math.sin(0.8)),
                           math.cos(0.8) * math.exp(math.sin(0.8)), a)
        assert stepwise.val == pytest.approx(direct.val)
        assert stepwise.err == pytest.approx(direct.err)

    def test_result_is_derived(self, m):
        a = m(2.0, 0.1)
        out = propagate(4.0, 4.0, a)
        assert out.tag is DERIVED
        assert not out.is_independent
        assert dict(out.der) == {a.tag: 4.0}

    def test_zero_stddev_variables_are_pruned(self, m):
        a, k = m(2.0, 0.1), m(5.0, 0.0)
        y = a * k
        assert set(y.der) == {a.tag}
        assert y.err == pytest.approx(0.5)


class TestMultiOperand:
    """Behaviour of the correlated multi-operand path."""

    def test_arity_mismatch(self, m):
        a, b = m(1.0, 0.1), m(2.0, 0.1)
        with pytest.raises(ArityMismatchError):
            propagate_many(3.0, (1.0,), (a, b))

    def test_arity_mismatch_is_value_error(self, m):
        a = m(1.0, 0.1)
        with pytest.raises(ValueError):
            propagate_many(3.0, (1.0, 1.0, 1.0), (a,))

    def test_infinite_sensitivity_ignored_for_independent_operand(self, m):
        a, b = m(2.0, 0.1), m(3.0, 0.2)
        flat = a - a
        out = propagate_many(1.0, (float('inf'), 1.0), (flat, b))
        assert out.err == pytest.approx(0.2)

    def test_output_map_covers_union_of_variables(self, m):
        a, b, c = m(1.0, 0.1), m(2.0, 0.2), m(3.0, 0.3)
        out = propagate_many(0.0, (1.0, 2.0), (a + b, b + c))
        assert set(out.der) == {a.tag, b.tag, c.tag}
        assert out.derivative(b.tag) == pytest.approx(3.0)

    def test_many_operand_sum(self, m):
        items = [m(1.0, 0.1) for _ in range(1000)]
        total = fn.fsum(items)
        assert total.val == pytest.approx(1000.0)
        assert total.err == pytest.approx(0.1 * math.sqrt(1000))

    def test_repeated_operand_in_sum(self, m):
        a = m(2.0, 0.1)
        assert fn.fsum([a, a, a]).err == pytest.approx(0.3)


class TestConcreteScenario:
    """Worked example with a = 2.0 ± 0.1."""

    def test_square(self, m):
        a = m(2.0, 0.1)
        sq = a ** 2
        assert sq.val == 4.0
        assert sq.err == pytest.approx(0.4)

    def test_square_root(self, m):
        a = m(2.0, 0.1)
        root = fn.sqrt(a)
        assert root.val == pytest.approx(1.41421, abs=1e-5)
        assert root.err == pytest.approx(0.03536, abs=1e-5)


class TestComplexAndMixed:
    """Complex results and plain-number operands."""

    def test_complex_propagation(self, m):
        a = m(1.0, 0.1)
        out = propagate_complex(complex(1.0, 2.0), complex(3.0, -4.0), a)
        assert isinstance(out, ComplexMeasurement)
        assert out.val == complex(1.0, 2.0)
        assert out.real.err == pytest.approx(0.3)
        assert out.imag.err == pytest.approx(0.4)
        assert out.err == pytest.approx(complex(0.3, 0.4))

    def test_combine_without_measurements_returns_plain(self):
        out = combine(3.0, (1.0, 1.0), (1.0, 2.0))
        assert out == 3.0
        assert isinstance(out, float)

    def test_combine_drops_plain_operands(self, m):
        a = m(2.0, 0.1)
        out = combine(5.0, (1.0, 100.0), (a, 3.0))
        assert out.err == pytest.approx(0.1)

    def test_combine_rejects_foreign_types(self, m):
        a = m(2.0, 0.1)
        with pytest.raises(TypeError):
            combine(1.0, (1.0, 1.0), (a, "x"))
