"""
Propagation context: the explicit home of the tag allocator and the
numeric differentiator.

Constructors and adapters accept ``context=``; when it is omitted they fall
back to a process-scoped default that can be swapped with
``set_default_context``.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from .numdiff import Differentiator, FiniteDifference
from .tags import TagAllocator

logger = logging.getLogger(__name__)


@dataclass
class PropagationContext:
    """Services shared by the measurements created under one context."""
    allocator: TagAllocator = field(default_factory=TagAllocator)
    differentiator: Differentiator = field(default_factory=FiniteDifference.from_env)


_default_context: Optional[PropagationContext] = None
_default_lock = threading.Lock()


def get_default_context() -> PropagationContext:
    """Return the process-scoped context, creating it on first use."""
    global _default_context
    with _default_lock:
        if _default_context is None:
            _default_context = PropagationContext()
            logger.debug("Initialised default propagation context")
        return _default_context


def set_default_context(context: PropagationContext) -> Optional[PropagationContext]:
    """Install ``context`` as the process default and return the previous one."""
    global _default_context
    if not isinstance(context, PropagationContext):
        raise TypeError(f"Expected PropagationContext, got {type(context).__name__}")
    with _default_lock:
        previous, _default_context = _default_context, context
    logger.debug("Replaced default propagation context")
    return previous


def resolve_context(context: Optional[PropagationContext]) -> PropagationContext:
    return context if context is not None else get_default_context()
