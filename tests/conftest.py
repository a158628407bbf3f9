"""
Shared fixtures.

Every test gets its own PropagationContext so tag ordinals and the
differentiator never leak between tests.
"""

import functools

import pytest

from measurement_system import PropagationContext, measurement


@pytest.fixture
def context() -> PropagationContext:
    """A fresh, isolated propagation context."""
    return PropagationContext()


@pytest.fixture
def m(context):
    """Factory for independent measurements bound to the test's context."""
    return functools.partial(measurement, context=context)
