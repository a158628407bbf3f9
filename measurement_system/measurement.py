"""
╔══════════════════════════════════════════════════════════════════════╗
║  Measurement — value ± standard uncertainty with correlation memory  ║
║                                                                      ║
║  A Measurement carries:                                              ║
║    • its nominal value and standard uncertainty                      ║
║    • its own Tag if it is an independent observation                 ║
║    • a derivative map {Tag: ∂self/∂x} over every independent         ║
║      variable it transitively depends on                             ║
║                                                                      ║
║  Derived measurements are built only by the propagation engine.      ║
╚══════════════════════════════════════════════════════════════════════╝
"""

import enum
import logging
import math
import numbers
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Union

import numpy as np

from .config import PropagationContext, resolve_context
from .exceptions import NegativeUncertaintyError
from .tags import Tag

logger = logging.getLogger(__name__)


class Derived(enum.Enum):
    """Identity marker of every measurement produced by an operation."""
    DERIVED = "derived"

    def __repr__(self):
        return "DERIVED"


DERIVED = Derived.DERIVED


# ═══════════════════════════════════════════════════════════════════════
# §1  DATA STRUCTURE
# ═══════════════════════════════════════════════════════════════════════

def _functions():
    # Imported lazily: the function library itself builds Measurements.
    from . import functions
    return functions


def _is_operand(x) -> bool:
    return isinstance(x, (Measurement, numbers.Real))


@dataclass(frozen=True, eq=False)
class Measurement:
    """An immutable value ± uncertainty.

    Use ``measurement()`` to create independent observations; derived
    measurements come out of arithmetic and the function library.
    """
    val: float
    err: float
    tag: Union[Tag, Derived]
    der: Mapping[Tag, float]

    # numpy scalars must defer to our reflected operators
    __array_ufunc__ = None

    @property
    def is_independent(self) -> bool:
        return self.tag is not DERIVED

    @property
    def relative_uncertainty(self) -> float:
        if self.val == 0:
            return float('inf')
        return self.err / abs(self.val)

    def derivative(self, tag: Tag) -> float:
        """∂self/∂tag; zero when ``self`` does not depend on ``tag``."""
        return self.der.get(tag, 0.0)

    def __repr__(self):
        return f"Measurement({self.val!r} ± {self.err!r})"

    def __str__(self):
        return f"{self.val:.6g} ± {self.err:.2g}"

    # ── arithmetic ──
    def __add__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().add(self, other)

    def __radd__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().add(other, self)

    def __sub__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().sub(self, other)

    def __rsub__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().sub(other, self)

    def __mul__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().mul(self, other)

    def __rmul__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().mul(other, self)

    def __truediv__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().truediv(self, other)

    def __rtruediv__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().truediv(other, self)

    def __floordiv__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().floordiv(self, other)

    def __rfloordiv__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().floordiv(other, self)

    def __mod__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().mod(self, other)

    def __rmod__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().mod(other, self)

    def __pow__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().pow(self, other)

    def __rpow__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return _functions().pow(other, self)

    def __neg__(self):
        return _functions().neg(self)

    def __pos__(self):
        return self

    def __abs__(self):
        return _functions().fabs(self)

    # ── rounding drops the uncertainty ──
    def __floor__(self):
        return math.floor(self.val)

    def __ceil__(self):
        return math.ceil(self.val)

    def __trunc__(self):
        return math.trunc(self.val)

    def __round__(self, ndigits=None):
        return round(self.val, ndigits)

    # ── ordering compares nominal values ──
    def __lt__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return self.val < value(other)

    def __le__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return self.val <= value(other)

    def __gt__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return self.val > value(other)

    def __ge__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return self.val >= value(other)


# ═══════════════════════════════════════════════════════════════════════
# §2  CONSTRUCTION OF INDEPENDENT MEASUREMENTS
# ═══════════════════════════════════════════════════════════════════════

def measurement(val, err=0.0, *, context: Optional[PropagationContext] = None) -> Measurement:
    """
    Create an independent measurement ``val ± err`` with a fresh tag.

    Parameters
    ----------
    val : real
        Nominal value.
    err : real
        Standard uncertainty u(x); must be ≥ 0.
    context : PropagationContext, optional
        Supplies the tag allocator.  Defaults to the process context.
    """
    val = float(val)
    err = float(err)
    if math.isnan(err) or err < 0:
        raise NegativeUncertaintyError(
            f"Standard uncertainty must be non-negative, got {err!r}"
        )
    tag = resolve_context(context).allocator.allocate(err)
    return Measurement(val, err, tag, MappingProxyType({tag: 1.0}))


def exact(val, *, context: Optional[PropagationContext] = None) -> Measurement:
    """An independent measurement with zero uncertainty."""
    return measurement(val, 0.0, context=context)


def measurement_from_samples(samples, *, context: Optional[PropagationContext] = None) -> Measurement:
    """
    Type A evaluation from repeated observations.
    Uses the standard error of the mean: u = s / √n
    """
    data = np.asarray(samples, dtype=float).ravel()
    n = len(data)
    if n < 2:
        raise ValueError("Type A evaluation requires at least 2 measurements.")

    mean = np.mean(data)
    std = np.std(data, ddof=1)          # sample standard deviation
    sem = std / np.sqrt(n)              # standard error of the mean
    logger.debug("Type A evaluation of %d samples: mean=%g, sem=%g", n, mean, sem)
    return measurement(mean, sem, context=context)


def value(x) -> float:
    """Nominal value of a Measurement, or the number itself."""
    return x.val if isinstance(x, Measurement) else x


def uncertainty(x) -> float:
    """Standard uncertainty of a Measurement; 0 for plain numbers."""
    return x.err if isinstance(x, Measurement) else 0.0
