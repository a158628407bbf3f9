"""
╔══════════════════════════════════════════════════════════════════════╗
║  Propagation engine — linear (GUM first-order) error propagation     ║
║                                                                      ║
║  Every operation G(a_1, ..., a_n) hands the engine its nominal       ║
║  value and the local derivatives ∂G/∂a_i.  The engine:               ║
║    • chains them onto the operands' derivative maps                  ║
║    • merges contributions of shared independent variables            ║
║    • returns a new, derived Measurement                              ║
╚══════════════════════════════════════════════════════════════════════╝

For independent variables x_k with standard uncertainties σ_k:

    ∂G/∂x_k = Σ_i ∂G/∂a_i · ∂a_i/∂x_k
    u_c(G)² = Σ_k (σ_k · ∂G/∂x_k)²

Summing over shared x_k *before* squaring is what makes ``a - a`` exactly
zero instead of √2·σ_a.
"""

import math
import numbers
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Sequence

from .exceptions import ArityMismatchError
from .measurement import DERIVED, Measurement
from .tags import Tag


def _derived(val, err, der: Dict[Tag, float]) -> Measurement:
    return Measurement(float(val), float(err), DERIVED, MappingProxyType(der))


# ═══════════════════════════════════════════════════════════════════════
# §1  SINGLE OPERAND
# ═══════════════════════════════════════════════════════════════════════

def propagate(val, der, a: Measurement) -> Measurement:
    """
    Build G(a) from its nominal value ``val`` and derivative ``der`` = ∂G/∂a.

    With a single operand there is no correlation to resolve, so
        u(G) = |∂G/∂a · u(a)|
    If u(a) is exactly zero the result has zero uncertainty too, even when
    ``der`` is NaN or infinite.
    """
    newder = {}
    for tag, d in a.der.items():
        # zero-uncertainty variables never contribute variance
        if tag.stddev != 0 and d != 0:
            newder[tag] = der * d

    err = 0.0 if a.err == 0 else abs(der * a.err)
    return _derived(val, err, newder)


# ═══════════════════════════════════════════════════════════════════════
# §2  CORRELATED OPERANDS
# ═══════════════════════════════════════════════════════════════════════

def propagate_many(val, ders: Sequence, operands: Sequence[Measurement]) -> Measurement:
    """
    Build G(a_1, ..., a_n) from ``val`` and ``ders`` = (∂G/∂a_1, ..., ∂G/∂a_n).

    The operands may depend on common independent variables.  Each
    variable's combined sensitivity is accumulated over every operand in a
    single pass over the operand maps, so the cost is linear in the total
    size of those maps.
    """
    ders = tuple(ders)
    operands = tuple(operands)
    if len(ders) != len(operands):
        raise ArityMismatchError(len(ders), len(operands))

    partials: Dict[Tag, float] = {}
    for dG_da, a in zip(ders, operands):
        for tag, da_dx in a.der.items():
            if tag.stddev == 0:
                continue
            total = partials.get(tag, 0.0)
            # an operand that does not move with x contributes nothing,
            # whatever its own ∂G/∂a_i is
            if da_dx != 0:
                total = total + dG_da * da_dx
            partials[tag] = total

    variance = 0.0
    for tag, dG_dx in partials.items():
        variance += (tag.stddev * dG_dx) ** 2

    return _derived(val, math.sqrt(variance), partials)


# ═══════════════════════════════════════════════════════════════════════
# §3  COMPLEX-VALUED RESULTS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ComplexMeasurement:
    """A complex quantity whose real and imaginary parts are Measurements."""
    real: Measurement
    imag: Measurement

    @property
    def val(self) -> complex:
        return complex(self.real.val, self.imag.val)

    @property
    def err(self) -> complex:
        return complex(self.real.err, self.imag.err)

    def __repr__(self):
        return f"ComplexMeasurement({self.real!r}, {self.imag!r})"


def propagate_complex(val, der, a: Measurement) -> ComplexMeasurement:
    """Propagate a complex-valued G(a): real and imaginary parts separately."""
    val = complex(val)
    der = complex(der)
    return ComplexMeasurement(
        propagate(val.real, der.real, a),
        propagate(val.imag, der.imag, a),
    )


# ═══════════════════════════════════════════════════════════════════════
# §4  MIXED OPERANDS (plain numbers and Measurements)
# ═══════════════════════════════════════════════════════════════════════

def combine(val, ders: Sequence, operands: Sequence):
    """
    Route an operation over mixed operands to the right propagation path.

    Plain-number operands carry no uncertainty, so they and their
    derivatives are dropped.  One remaining Measurement goes through the
    single-operand path, several through the correlated one, and none
    yields the plain value.
    """
    ders = tuple(ders)
    operands = tuple(operands)
    if len(ders) != len(operands):
        raise ArityMismatchError(len(ders), len(operands))

    kept = [(d, a) for d, a in zip(ders, operands) if isinstance(a, Measurement)]
    for a in operands:
        if not isinstance(a, (Measurement, numbers.Number)):
            raise TypeError(f"Unsupported operand type: {type(a).__name__}")

    if not kept:
        return val if isinstance(val, complex) else float(val)
    if len(kept) == 1:
        d, a = kept[0]
        return propagate(val, d, a)
    kept_ders, kept_operands = zip(*kept)
    return propagate_many(val, kept_ders, kept_operands)
