"""
Matrix Storage Base Class

This module defines the abstract storage every matrix owns. A storage knows
its shape and its kind, and offers unchecked indexed access (``at`` and
``set_at``). Everything else on the base class (clearing, copying,
transposing, enumeration, materialization, value equality) is written
purely in terms of that indexed access, so it is correct for every
storage; subclasses override it only to go faster.

Type Hierarchy:

    MatrixStorage (ABC)
    ├── DenseStorage     - column-major flat buffer
    ├── DiagonalStorage  - main diagonal only
    ├── CsrStorage       - compressed sparse row
    └── KnuthStorage     - row/column threaded circular lists

Design Philosophy:

1. Indexed Contract: ``at(r, c)`` and ``set_at(r, c, v)`` never check
   bounds. The matrix facade validates indices before calling them.

2. Exclusive Ownership: A storage owns its buffers unless it was created
   through a named ``wrap`` constructor.

3. No Cross References: Storages never reference each other. Conversions
   allocate a new storage and copy through ``copy_to``.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .._errors import dimensions_dont_match
from ._backend import Ownership, StorageInfo, StorageKind
from ._ownership import OwnershipTracker

__all__ = [
    'MatrixStorage',
    'Triple',
]

# (row, column, value)
Triple = Tuple[int, int, float]


class MatrixStorage(ABC):
    """
    Abstract base class for all matrix storages.

    Required Members (subclasses must implement):
        kind: Class attribute naming the ``StorageKind``
        at(row, col): Read a cell
        set_at(row, col, value): Write a cell
        create_like(rows, cols): New empty storage of the same kind
        copy(): Deep copy

    Attributes:
        rows: Number of rows (immutable).
        cols: Number of columns (immutable).
    """

    kind: StorageKind = None

    def __init__(self, rows: int, cols: int):
        if rows < 0 or cols < 0:
            raise ValueError(f"Matrix dimensions must be non-negative, got {rows}x{cols}")
        self.rows = int(rows)
        self.cols = int(cols)
        self._tracker = OwnershipTracker.owned()

    # =========================================================================
    # Abstract Indexed Contract
    # =========================================================================

    @abstractmethod
    def at(self, row: int, col: int) -> float:
        """Read cell (row, col) without bounds checking."""
        ...

    @abstractmethod
    def set_at(self, row: int, col: int, value: float) -> None:
        """Write cell (row, col) without bounds checking."""
        ...

    @abstractmethod
    def create_like(self, rows: int, cols: int) -> 'MatrixStorage':
        """Create an empty (all zero) storage of the same kind."""
        ...

    @abstractmethod
    def copy(self) -> 'MatrixStorage':
        """Create an owned deep copy."""
        ...

    # =========================================================================
    # Derived Properties
    # =========================================================================

    @property
    def shape(self) -> Tuple[int, int]:
        """Matrix dimensions (rows, cols)."""
        return (self.rows, self.cols)

    @property
    def is_square(self) -> bool:
        return self.rows == self.cols

    @property
    def ownership(self) -> Ownership:
        return self._tracker.ownership

    @property
    def is_fully_mutable(self) -> bool:
        """Whether every cell accepts any value."""
        return True

    def is_mutable_at(self, row: int, col: int) -> bool:
        """Whether cell (row, col) accepts nonzero values."""
        return True

    @property
    def nonzero_count(self) -> int:
        """Number of cells holding a nonzero value."""
        return sum(1 for _ in self.enumerate_nonzero_indexed())

    @property
    def stored_count(self) -> int:
        """Number of stored value slots in use."""
        return self.rows * self.cols

    @property
    def capacity(self) -> int:
        """Number of allocated value slots."""
        return self.stored_count

    @property
    def info(self) -> StorageInfo:
        return StorageInfo(
            kind=self.kind,
            ownership=self.ownership,
            shape=self.shape,
            nnz=self.stored_count,
            capacity=self.capacity,
        )

    # =========================================================================
    # Clearing
    # =========================================================================

    def clear(self) -> None:
        """Set every cell to zero."""
        for row, col, _ in list(self.enumerate_nonzero_indexed()):
            self.set_at(row, col, 0.0)

    def clear_rows(self, row_indices: Sequence[int]) -> None:
        """Set every cell of the given rows to zero."""
        for row in row_indices:
            for col in range(self.cols):
                self.set_at(row, col, 0.0)

    def clear_columns(self, column_indices: Sequence[int]) -> None:
        """Set every cell of the given columns to zero."""
        for col in column_indices:
            for row in range(self.rows):
                self.set_at(row, col, 0.0)

    def clear_sub_matrix(self, row_index: int, row_count: int,
                         column_index: int, column_count: int) -> None:
        """Set every cell of a rectangular block to zero."""
        for row in range(row_index, row_index + row_count):
            for col in range(column_index, column_index + column_count):
                self.set_at(row, col, 0.0)

    # =========================================================================
    # Copy / Transpose
    # =========================================================================

    def copy_to(self, target: 'MatrixStorage') -> None:
        """Copy every cell into ``target`` (same shape).

        Raises:
            DimensionMismatchError: If shapes differ.
        """
        if target.shape != self.shape:
            raise dimensions_dont_match(self.shape, target.shape, operation="copy_to")
        if target is self:
            return
        triples = list(self.enumerate_nonzero_indexed())
        target.clear()
        for row, col, value in triples:
            target.set_at(row, col, value)

    def transpose_to(self, target: 'MatrixStorage') -> None:
        """Write the transpose of this storage into ``target``.

        ``target`` may be ``self`` for square storages.

        Raises:
            DimensionMismatchError: If target is not cols x rows.
        """
        if target.shape != (self.cols, self.rows):
            raise dimensions_dont_match((self.cols, self.rows), target.shape, operation="transpose_to")
        # Materialize first so target may alias self
        triples = list(self.enumerate_nonzero_indexed())
        target.clear()
        for row, col, value in triples:
            target.set_at(col, row, value)

    def copy_sub_matrix_to(self, target: 'MatrixStorage',
                           source_row: int, target_row: int, row_count: int,
                           source_column: int, target_column: int, column_count: int) -> None:
        """Copy a rectangular block into ``target`` at the given offset."""
        if target is self:
            block = [
                [self.at(source_row + i, source_column + j) for j in range(column_count)]
                for i in range(row_count)
            ]
            for i in range(row_count):
                for j in range(column_count):
                    target.set_at(target_row + i, target_column + j, block[i][j])
            return
        for i in range(row_count):
            for j in range(column_count):
                target.set_at(target_row + i, target_column + j,
                              self.at(source_row + i, source_column + j))

    # =========================================================================
    # Row / Column Access
    # =========================================================================

    def row_values(self, row: int) -> np.ndarray:
        """Return row ``row`` as a dense float64 array."""
        return np.array([self.at(row, c) for c in range(self.cols)], dtype=np.float64)

    def column_values(self, col: int) -> np.ndarray:
        """Return column ``col`` as a dense float64 array."""
        return np.array([self.at(r, col) for r in range(self.rows)], dtype=np.float64)

    # =========================================================================
    # Enumeration
    # =========================================================================

    def enumerate_indexed(self) -> Iterator[Triple]:
        """Yield (row, col, value) for every cell, row by row."""
        for row in range(self.rows):
            for col in range(self.cols):
                yield row, col, self.at(row, col)

    def enumerate_nonzero_indexed(self) -> Iterator[Triple]:
        """Yield (row, col, value) for every nonzero cell, row by row."""
        for row, col, value in self.enumerate_indexed():
            if value != 0.0:
                yield row, col, value

    def to_array(self) -> np.ndarray:
        """Materialize as a 2-D float64 NumPy array."""
        out = np.zeros((self.rows, self.cols), dtype=np.float64)
        for row, col, value in self.enumerate_nonzero_indexed():
            out[row, col] = value
        return out

    def assign_array(self, array) -> None:
        """Replace every cell with the matching cell of a rows x cols array.

        Raises:
            DimensionMismatchError: If the array shape differs.
        """
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != self.shape:
            raise dimensions_dont_match(self.shape, arr.shape, operation="assign_array")
        self.clear()
        for row, col in zip(*(idx.tolist() for idx in np.nonzero(arr))):
            self.set_at(row, col, float(arr[row, col]))

    def fill_from(self, triples: Iterable[Triple]) -> 'MatrixStorage':
        """Write every (row, col, value) triple; returns self."""
        for row, col, value in triples:
            self.set_at(row, col, value)
        return self

    # =========================================================================
    # Equality
    # =========================================================================

    def equals(self, other: Optional['MatrixStorage']) -> bool:
        """Value equality: same shape and identical cells."""
        if other is None or other.shape != self.shape:
            return False
        if other is self:
            return True
        return bool(np.array_equal(self.to_array(), other.to_array()))

    def value_hash(self) -> int:
        """Hash over the shape and the first nonzero cells.

        Storages of different kinds holding equal values hash equally.
        """
        head = []
        for triple in self.enumerate_nonzero_indexed():
            head.append(triple)
            if len(head) == 25:
                break
        return hash((self.rows, self.cols, tuple(head)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rows}x{self.cols}, ownership={self.ownership.value})"
