"""Dense vector collaborator.

Matrices interact with vectors only through a small contract: indexed
get/set, ``count``, ``clear()``, ``copy_to(target)`` and ``create_like()``.
Specialized algorithms may additionally read ``values`` directly when the
vector is a ``DenseVector``.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Union

import numpy as np

from ._errors import check_index, dimensions_dont_match

__all__ = ['DenseVector']


class DenseVector:
    """A float64 vector backed by a contiguous NumPy array.

    Attributes:
        values: The backing 1-D float64 array (owned).

    Example:
        >>> v = DenseVector.from_array([1.0, 2.0, 3.0])
        >>> v[1]
        2.0
        >>> v.count
        3
    """

    __slots__ = ('values',)

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self.values = np.zeros(size, dtype=np.float64)

    @classmethod
    def from_array(cls, data: Union[Iterable[float], np.ndarray]) -> 'DenseVector':
        """Create a vector holding a copy of ``data``."""
        arr = np.array(data, dtype=np.float64).ravel()
        vec = cls(0)
        vec.values = arr
        return vec

    @classmethod
    def create(cls, size: int, fill: float = 0.0) -> 'DenseVector':
        """Create a vector of ``size`` elements all equal to ``fill``."""
        vec = cls(size)
        if fill != 0.0:
            vec.values.fill(fill)
        return vec

    # -------------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------------

    @property
    def count(self) -> int:
        """Number of elements."""
        return self.values.shape[0]

    def __len__(self) -> int:
        return self.values.shape[0]

    def __getitem__(self, index: int) -> float:
        check_index(index, self.count, "vector")
        return float(self.values[index])

    def __setitem__(self, index: int, value: float) -> None:
        check_index(index, self.count, "vector")
        self.values[index] = value

    def __iter__(self) -> Iterator[float]:
        return (float(v) for v in self.values)

    def clear(self) -> None:
        """Set every element to zero."""
        self.values.fill(0.0)

    def copy_to(self, target: 'DenseVector') -> None:
        """Copy this vector's elements into ``target`` (same length)."""
        if target.count != self.count:
            raise dimensions_dont_match((self.count, 1), (target.count, 1), operation="copy_to")
        if target is not self:
            target.values[:] = self.values

    def create_like(self, size: int = None) -> 'DenseVector':
        """Create a zero vector of the same kind (default: same length)."""
        return DenseVector(self.count if size is None else size)

    def copy(self) -> 'DenseVector':
        return DenseVector.from_array(self.values)

    def to_array(self) -> np.ndarray:
        """Return a copy of the elements as a NumPy array."""
        return self.values.copy()

    # -------------------------------------------------------------------------
    # Equality
    # -------------------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, DenseVector):
            return NotImplemented
        return self.count == other.count and bool(np.array_equal(self.values, other.values))

    __hash__ = None

    def __repr__(self) -> str:
        return f"DenseVector({self.values.tolist()!r})"
