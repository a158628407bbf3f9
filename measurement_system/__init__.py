"""
measurement_system — linear propagation of measurement uncertainty with
exact correlation tracking between quantities that share independent inputs.
"""

from .budget import (
    BudgetEntry,
    correlation,
    covariance,
    expanded_uncertainty,
    uncertainty_budget,
    uncertainty_components,
)
from .config import PropagationContext, get_default_context, set_default_context
from .differentiation import uncertain, uncertain_function
from .engine import ComplexMeasurement, combine, propagate, propagate_complex, propagate_many
from .exceptions import (
    ArityMismatchError,
    FormulaError,
    MeasurementError,
    NegativeUncertaintyError,
)
from .formula import Formula
from .measurement import (
    DERIVED,
    Measurement,
    exact,
    measurement,
    measurement_from_samples,
    uncertainty,
    value,
)
from .numdiff import Differentiator, FiniteDifference
from .tags import Tag, TagAllocator

__version__ = "0.1.0"

__all__ = [
    "ArityMismatchError",
    "BudgetEntry",
    "ComplexMeasurement",
    "DERIVED",
    "Differentiator",
    "FiniteDifference",
    "Formula",
    "FormulaError",
    "Measurement",
    "MeasurementError",
    "NegativeUncertaintyError",
    "PropagationContext",
    "Tag",
    "TagAllocator",
    "combine",
    "correlation",
    "covariance",
    "exact",
    "expanded_uncertainty",
    "get_default_context",
    "measurement",
    "measurement_from_samples",
    "propagate",
    "propagate_complex",
    "propagate_many",
    "set_default_context",
    "uncertain",
    "uncertain_function",
    "uncertainty",
    "uncertainty_budget",
    "uncertainty_components",
    "value",
]
