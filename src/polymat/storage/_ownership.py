"""Buffer Ownership Tracking.

Storages either own their buffers or alias a caller-supplied NumPy array
through a named ``wrap`` constructor. ``OwnershipTracker`` records which,
and for borrowed buffers holds a strong reference to the source so the
aliased memory outlives the storage.

Safety Model:
    1. OWNED data: No external dependencies, always safe
    2. BORROWED data: Source kept alive for the storage lifetime
"""

from typing import Optional

import numpy as np

from ._backend import Ownership

__all__ = [
    'OwnershipTracker',
]


class OwnershipTracker:
    """Tracks ownership of a storage's backing buffer.

    Attributes:
        _source: Strong reference to the borrowed array (None when owned).
        _length: Length the borrowed array had when wrapped.

    Example:
        >>> buf = np.zeros(4)
        >>> tracker = OwnershipTracker.borrowed(buf)
        >>> tracker.ownership
        <Ownership.BORROWED: 'borrowed'>
    """

    __slots__ = ('_source', '_length')

    def __init__(self, source: Optional[np.ndarray] = None):
        self._source = source
        self._length = None if source is None else source.shape[0]

    @classmethod
    def owned(cls) -> 'OwnershipTracker':
        """Create tracker for owned data."""
        return cls(None)

    @classmethod
    def borrowed(cls, source: np.ndarray) -> 'OwnershipTracker':
        """Create tracker for a borrowed caller buffer."""
        return cls(source)

    @property
    def ownership(self) -> Ownership:
        return Ownership.OWNED if self._source is None else Ownership.BORROWED

    def __repr__(self) -> str:
        if self._source is None:
            return "OwnershipTracker(owned)"
        return f"OwnershipTracker(borrowed {type(self._source).__name__}[{self._length}])"
