"""
Generic differentiation adapter.

Lets any plain-number function take part in uncertainty propagation
without a hand-written derivative:

    >>> x = measurement(2.0, 0.1)
    >>> uncertain(math.lgamma, x)

The derivative (or gradient) comes from an injected ``Differentiator``.
"""

import functools
import logging
from typing import Callable, Optional

import numpy as np

from .config import PropagationContext, resolve_context
from .engine import propagate, propagate_many
from .measurement import Measurement
from .numdiff import Differentiator

logger = logging.getLogger(__name__)


def uncertain(f: Callable, *args: Measurement,
              differentiator: Optional[Differentiator] = None,
              context: Optional[PropagationContext] = None) -> Measurement:
    """
    Evaluate ``f`` on the nominal values of ``args`` and propagate uncertainty.

    Parameters
    ----------
    f : callable
        Function of one or more real scalars returning a real scalar.
    *args : Measurement
        Arguments of ``f``.  Plain numbers are not accepted here; wrap them
        with ``exact()`` first.
    differentiator : Differentiator, optional
        Overrides the context's differentiator.
    context : PropagationContext, optional
        Defaults to the process context.
    """
    if not args:
        raise TypeError("uncertain() needs at least one Measurement argument")
    for i, a in enumerate(args):
        if not isinstance(a, Measurement):
            raise TypeError(
                f"Argument {i} of uncertain() must be a Measurement, "
                f"got {type(a).__name__}; wrap plain numbers with exact()"
            )

    if differentiator is None:
        differentiator = resolve_context(context).differentiator

    with np.errstate(all="ignore"):
        if len(args) == 1:
            a = args[0]
            return propagate(f(a.val), differentiator.derivative(f, a.val), a)

        point = [a.val for a in args]
        grad = differentiator.gradient(f, point)
        logger.debug("Numeric gradient of %s at %s: %s",
                     getattr(f, "__name__", f), point, grad)
        return propagate_many(f(*point), tuple(grad), args)


def uncertain_function(f: Optional[Callable] = None, *,
                       differentiator: Optional[Differentiator] = None):
    """
    Decorator form of ``uncertain``.

        @uncertain_function
        def model(x, y):
            return x * math.exp(-y)

        model(measurement(1.0, 0.1), measurement(2.0, 0.2))
    """
    def decorate(func):
        @functools.wraps(func)
        def wrapper(*args, context: Optional[PropagationContext] = None):
            return uncertain(func, *args, differentiator=differentiator, context=context)
        return wrapper

    if f is not None:
        return decorate(f)
    return decorate
