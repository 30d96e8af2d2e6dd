"""
Operation Dispatch

Specialized algorithms register themselves under an operation name and a
tuple of storage kinds, one per participant (``self``, ``other``,
``result``, in that order, omitting absent participants). A ``None`` in the
tuple matches any kind.

When the facade runs an operation it looks up the most specific
registration matching the participants' kinds. If nothing matches, or
specialization is switched off in the configuration, it runs the generic
fallback registered for the operation. The fallback only uses the indexed
contract of the storages and defines the expected result of every
specialization.

Example:
    >>> @specialize("add", StorageKind.CSR, StorageKind.CSR, StorageKind.CSR)
    ... def add_csr(a, b, result, alias):
    ...     ...
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .._config import config
from .._errors import PolymatError, POLYMAT_ERROR_INTERNAL
from ..storage import StorageKind

logger = logging.getLogger("polymat.dispatch")

__all__ = [
    'ResultAlias',
    'alias_of',
    'specialize',
    'fallback',
    'lookup',
    'run',
    'registered',
]


class ResultAlias(Enum):
    """How the result storage relates to the operands.

    Attributes:
        DISTINCT: The result is a separate storage.
        THIS: The result is the left operand (``self``).
        OTHER: The result is the right operand (``other``).
    """
    DISTINCT = 'distinct'
    THIS = 'this'
    OTHER = 'other'


def alias_of(this, other, result) -> ResultAlias:
    """Classify ``result`` against the operands (checked in the order this, other)."""
    if result is this:
        return ResultAlias.THIS
    if other is not None and result is other:
        return ResultAlias.OTHER
    return ResultAlias.DISTINCT


KindPattern = Tuple[Optional[StorageKind], ...]

_specialized: Dict[str, List[Tuple[KindPattern, Callable]]] = {}
_fallbacks: Dict[str, Callable] = {}


def specialize(operation: str, *kinds: Optional[StorageKind]):
    """Register a specialized algorithm for ``operation`` on ``kinds``."""
    def decorator(fn):
        _specialized.setdefault(operation, []).append((tuple(kinds), fn))
        return fn
    return decorator


def fallback(operation: str):
    """Register the generic algorithm for ``operation``."""
    def decorator(fn):
        if operation in _fallbacks:
            raise PolymatError(f"Duplicate fallback for {operation!r}", code=POLYMAT_ERROR_INTERNAL)
        _fallbacks[operation] = fn
        return fn
    return decorator


def _matches(pattern: KindPattern, kinds: Tuple[StorageKind, ...]) -> bool:
    if len(pattern) != len(kinds):
        return False
    return all(p is None or p is k for p, k in zip(pattern, kinds))


def lookup(operation: str, kinds: Tuple[StorageKind, ...]) -> Optional[Callable]:
    """Most specific specialization for ``kinds`` (fewest wildcards), or None."""
    best = None
    best_score = -1
    for pattern, fn in _specialized.get(operation, ()):
        if _matches(pattern, kinds):
            score = sum(p is not None for p in pattern)
            if score > best_score:
                best, best_score = fn, score
    return best


def registered(operation: str) -> List[KindPattern]:
    """Kind patterns registered for ``operation`` (for introspection and tests)."""
    return [pattern for pattern, _ in _specialized.get(operation, ())]


def run(operation: str, participants, alias: ResultAlias, *args):
    """Dispatch ``operation`` over ``participants`` (storages).

    Args:
        operation: Registered operation name.
        participants: Storages whose kinds select the algorithm, in the
            order (self, other, result); vectors are not participants.
        alias: Result aliasing, computed once by the facade.
        *args: Extra operation arguments (scalars, vectors).

    Returns:
        Whatever the selected algorithm returns.
    """
    kinds = tuple(p.kind for p in participants)
    impl = lookup(operation, kinds) if config.dispatch.specialize else None
    if impl is None:
        impl = _fallbacks.get(operation)
        if impl is None:
            raise PolymatError(f"No algorithm registered for {operation!r}", code=POLYMAT_ERROR_INTERNAL)
    if config.dispatch.log_decisions and logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s%s alias=%s -> %s.%s", operation, tuple(k.value for k in kinds),
                     alias.value, impl.__module__, impl.__name__)
    return impl(*participants, alias, *args)
