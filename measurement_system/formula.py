"""
Formula front-end.

Evaluates a model equation written as a sympy-parseable string on
Measurements, e.g.

    >>> g = Formula("4 * pi**2 * L / T**2", ["L", "T"])
    >>> g(L=length, T=period)

sympy is used only to parse and compile the expression; the sensitivity
coefficients come from the numeric differentiation adapter.
"""

import ast
import logging
from collections import OrderedDict
from typing import Optional, Sequence

import sympy as sp

from .config import PropagationContext
from .differentiation import uncertain
from .exceptions import FormulaError
from .measurement import Measurement, exact

logger = logging.getLogger(__name__)


class Formula:
    """A compiled model equation G(x_1, ..., x_n)."""

    def __init__(self, formula_str: str, variables: Sequence[str]):
        """
        Parameters
        ----------
        formula_str : str
            Sympy-parseable formula string, e.g. "4 * pi**2 * L / T**2"
        variables : sequence of str
            Names of the input quantities, in positional-argument order.
        """
        self.formula_str = formula_str
        self.variables = tuple(variables)
        if not self.variables:
            raise FormulaError("A formula needs at least one input variable.")
        if len(set(self.variables)) != len(self.variables):
            raise FormulaError(f"Duplicate variable names in {self.variables}")

        self.sym_vars = OrderedDict((name, sp.Symbol(name)) for name in self.variables)
        try:
            # sympify silently repairs some typos, e.g. "4 * * L" becomes 4**L
            ast.parse(formula_str, mode="eval")
            self.expr = sp.sympify(formula_str, locals=dict(self.sym_vars))
        except (sp.SympifyError, SyntaxError, TypeError) as exc:
            raise FormulaError(f"Cannot parse formula '{formula_str}': {exc}") from exc

        unknown = self.expr.free_symbols - set(self.sym_vars.values())
        if unknown:
            names = sorted(str(s) for s in unknown)
            raise FormulaError(
                f"Formula '{formula_str}' uses undeclared variable(s): {names}"
            )

        self._func = sp.lambdify(list(self.sym_vars.values()), self.expr, modules="numpy")
        logger.debug("Compiled formula %s(%s)", formula_str, ", ".join(self.variables))

    def _bind(self, args, kwargs) -> list:
        if len(args) > len(self.variables):
            raise FormulaError(
                f"Formula takes {len(self.variables)} argument(s), got {len(args)}"
            )
        bound = dict(zip(self.variables, args))
        for name, val in kwargs.items():
            if name not in self.sym_vars:
                raise FormulaError(f"Unknown variable '{name}' for formula '{self.formula_str}'")
            if name in bound:
                raise FormulaError(f"Variable '{name}' given twice")
            bound[name] = val

        missing = [name for name in self.variables if name not in bound]
        if missing:
            raise FormulaError(f"Missing value(s) for variable(s): {missing}")
        return [bound[name] for name in self.variables]

    def __call__(self, *args, context: Optional[PropagationContext] = None, **kwargs) -> Measurement:
        values = self._bind(args, kwargs)
        operands = [
            v if isinstance(v, Measurement) else exact(v, context=context)
            for v in values
        ]
        return uncertain(self._func, *operands, context=context)

    def __repr__(self):
        return f"Formula({self.formula_str!r}, {list(self.variables)!r})"
