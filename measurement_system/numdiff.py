"""
Numeric differentiation back-ends.

The propagation adapter only needs two things from a differentiator: the
derivative of a scalar function at a point, and the gradient of a function
of n scalars at a point.  Anything implementing the ``Differentiator``
protocol can be injected; ``FiniteDifference`` is the default.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

import numpy as np

logger = logging.getLogger(__name__)

ENV_FD_METHOD = "MEASUREMENT_SYSTEM_FD_METHOD"

_EPS = np.finfo(float).eps


class Differentiator(Protocol):
    """Black-box derivative / gradient provider."""

    def derivative(self, f: Callable, x: float) -> float:
        ...

    def gradient(self, f: Callable, point: Sequence[float]) -> np.ndarray:
        ...


@dataclass(frozen=True)
class FiniteDifference:
    """
    Finite-difference differentiator.

    Parameters
    ----------
    method : str
        "central" → (f(x+h) - f(x-h)) / 2h, error O(h²)
        "forward" → (f(x+h) - f(x)) / h,    error O(h)
    step : float, optional
        Absolute step.  When omitted the step is scaled to the point,
        h = ε^(1/3)·max(|x|, 1) for central and ε^(1/2)·max(|x|, 1) for
        forward differences, which balances truncation against round-off.
        If that step leaves the domain of f (an exception or a non-finite
        quotient) for a point with |x| < 1, the difference is retried with
        the step scaled to |x| alone.
    """
    method: str = "central"
    step: Optional[float] = None

    def __post_init__(self):
        if self.method not in ("central", "forward"):
            raise ValueError(
                f"Unknown finite-difference method '{self.method}'. "
                f"Choose from: ['central', 'forward']"
            )
        if self.step is not None and not self.step > 0:
            raise ValueError(f"Finite-difference step must be positive, got {self.step!r}")

    @classmethod
    def from_env(cls) -> "FiniteDifference":
        """Build the default differentiator, honouring ``MEASUREMENT_SYSTEM_FD_METHOD``."""
        method = os.environ.get(ENV_FD_METHOD, "central").strip().lower() or "central"
        logger.debug("Default finite-difference method: %s", method)
        return cls(method=method)

    def _base(self) -> float:
        return _EPS ** (1.0 / 3.0) if self.method == "central" else np.sqrt(_EPS)

    def _step(self, x: float) -> float:
        if self.step is not None:
            return self.step
        return self._base() * max(abs(x), 1.0)

    def _quotient(self, g: Callable[[float], float], x: float, h: float) -> float:
        upper = x + h
        if self.method == "central":
            lower = x - h
            return (float(g(upper)) - float(g(lower))) / (upper - lower)
        return (float(g(upper)) - float(g(x))) / (upper - x)

    def _difference(self, g: Callable[[float], float], x: float) -> float:
        h = self._step(x)
        # a step relative to |x| keeps 0 < |x| < 1 points inside the domain
        near = h if self.step is not None else self._base() * abs(x)
        try:
            slope = self._quotient(g, x, h)
        except (ValueError, ArithmeticError):
            if not 0 < near < h:
                raise
            slope = float("nan")

        if not np.isfinite(slope) and 0 < near < h:
            logger.debug("Step %g left the domain of f near x=%g; retrying with %g", h, x, near)
            slope = self._quotient(g, x, near)
        return slope

    def derivative(self, f: Callable, x: float) -> float:
        """Derivative of the scalar function ``f`` at ``x``."""
        with np.errstate(all="ignore"):
            return self._difference(f, float(x))

    def gradient(self, f: Callable, point: Sequence[float]) -> np.ndarray:
        """Gradient of ``f(x_1, ..., x_n)`` at ``point``."""
        point = np.asarray(point, dtype=float)
        grad = np.empty_like(point)
        args = list(point)

        for i, x_i in enumerate(point):
            def partial(t, i=i):
                shifted = list(args)
                shifted[i] = t
                return f(*shifted)

            with np.errstate(all="ignore"):
                grad[i] = self._difference(partial, float(x_i))
        return grad
