"""
Uncertainty budget analysis of derived measurements.

Because every Measurement remembers ∂self/∂x for each independent variable
x it depends on, the budget (which inputs dominate the combined
uncertainty), covariances and correlations can be read off directly.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .measurement import Measurement
from .tags import Tag


@dataclass
class BudgetEntry:
    """One independent variable's share of a combined uncertainty."""
    tag: Tag
    variable: str
    sensitivity_coeff: float      # ∂f/∂xᵢ
    u_input: float                # u(xᵢ)
    contribution: float           # |cᵢ·u(xᵢ)|
    variance_contribution: float  # (cᵢ·u(xᵢ))²
    pct_contribution: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variable": self.variable,
            "sensitivity_coeff": self.sensitivity_coeff,
            "u_input": self.u_input,
            "|c·u|": self.contribution,
            "variance_contribution": self.variance_contribution,
            "pct_contribution": self.pct_contribution,
        }


def uncertainty_components(m: Measurement) -> Dict[Tag, float]:
    """|σₓ·∂m/∂x| for every independent variable x with non-zero uncertainty."""
    return {
        tag: abs(tag.stddev * d)
        for tag, d in m.der.items()
        if tag.stddev != 0
    }


def uncertainty_budget(m: Measurement,
                       variables: Optional[Mapping[str, Measurement]] = None) -> List[BudgetEntry]:
    """
    Per-input contributions to the uncertainty of ``m``, largest first.

    Parameters
    ----------
    m : Measurement
        The (usually derived) quantity to analyse.
    variables : mapping of str → Measurement, optional
        Names for the independent inputs, e.g. {"L": length, "T": period}.
        Unnamed inputs are labelled by their tag ordinal.
    """
    labels = {}
    for name, qty in (variables or {}).items():
        if not qty.is_independent:
            raise ValueError(f"Budget label '{name}' must name an independent measurement")
        labels[qty.tag] = name

    u_c_sq = m.err ** 2
    budget = []
    for tag, d in m.der.items():
        if tag.stddev == 0:
            continue
        contribution = (d * tag.stddev) ** 2
        pct = (contribution / u_c_sq * 100) if u_c_sq > 0 else 0.0
        budget.append(BudgetEntry(
            tag=tag,
            variable=labels.get(tag, f"x{tag.id}"),
            sensitivity_coeff=d,
            u_input=tag.stddev,
            contribution=abs(d * tag.stddev),
            variance_contribution=contribution,
            pct_contribution=pct,
        ))
    budget.sort(key=lambda entry: entry.variance_contribution, reverse=True)
    return budget


def covariance(a, b) -> float:
    """cov(a, b) = Σₓ σₓ²·∂a/∂x·∂b/∂x over the variables they share."""
    if not (isinstance(a, Measurement) and isinstance(b, Measurement)):
        return 0.0
    total = 0.0
    for tag, da in a.der.items():
        db = b.der.get(tag, 0.0)
        if tag.stddev != 0 and da != 0 and db != 0:
            total += tag.stddev ** 2 * da * db
    return total


def correlation(a, b) -> float:
    """Pearson correlation of ``a`` and ``b``; NaN when either is exact."""
    err_a = a.err if isinstance(a, Measurement) else 0.0
    err_b = b.err if isinstance(b, Measurement) else 0.0
    if err_a == 0 or err_b == 0:
        return float('nan')
    return covariance(a, b) / (err_a * err_b)


def expanded_uncertainty(m: Measurement, coverage_p: float = 0.95,
                         dof: float = float('inf')) -> Tuple[float, float]:
    """
    Compute expanded uncertainty U = k · u_c for the given coverage probability.
    Uses the t-distribution when ``dof`` is finite, the normal otherwise.

    Returns
    -------
    (U, k)
    """
    from scipy.stats import norm, t as t_dist

    if not 0 < coverage_p < 1:
        raise ValueError(f"Coverage probability must lie in (0, 1), got {coverage_p}")

    if np.isinf(dof) or dof > 1000:
        k = norm.ppf((1 + coverage_p) / 2)
    else:
        dof_int = max(1, int(round(dof)))
        k = t_dist.ppf((1 + coverage_p) / 2, df=dof_int)

    return float(k * m.err), float(k)
