"""
Identity tags for independent variables.

A Tag names one independent measurement.  Derivative maps are keyed by
tags, so two quantities are correlated exactly when their maps share a
tag.  Tags are minted by a TagAllocator; the allocator is the only
mutable, shared object in the package.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tag:
    """Identity of an independent variable.

    Equality and hashing use ``(namespace, id)`` only; ``stddev`` rides
    along so the engine can weight a partial derivative without looking
    the variable up again.
    """
    id: int
    stddev: float = field(compare=False)
    namespace: int = 0

    def __repr__(self):
        return f"Tag({self.namespace}:{self.id}, σ={self.stddev:.4g})"


class TagAllocator:
    """
    Thread-safe source of unique tag ordinals.

    Every allocator gets its own namespace, so tags minted by two
    different allocators never compare equal even when their ordinals
    coincide.
    """

    _namespaces = itertools.count(1)
    _namespace_lock = threading.Lock()

    def __init__(self, start: int = 1):
        with TagAllocator._namespace_lock:
            self.namespace = next(TagAllocator._namespaces)
        self._counter = itertools.count(start)
        self._lock = threading.Lock()
        self._issued = 0
        logger.debug("Created tag allocator with namespace %d", self.namespace)

    def allocate(self, stddev: float) -> Tag:
        """Mint a fresh tag for an independent variable with uncertainty ``stddev``."""
        with self._lock:
            ordinal = next(self._counter)
            self._issued += 1
        return Tag(ordinal, float(stddev), self.namespace)

    @property
    def issued(self) -> int:
        """Number of tags handed out so far."""
        return self._issued

    def __repr__(self):
        return f"TagAllocator(namespace={self.namespace}, issued={self._issued})"
