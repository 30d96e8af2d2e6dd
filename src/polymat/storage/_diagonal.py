"""Diagonal storage: only the main diagonal is stored."""

import math
from typing import Iterator, Sequence

import numpy as np

from .._errors import InvalidDiagonalWriteError, dimensions_dont_match
from ._backend import StorageKind
from ._base import MatrixStorage, Triple
from ._ownership import OwnershipTracker

__all__ = ['DiagonalStorage']


class DiagonalStorage(MatrixStorage):
    """Main diagonal of a (possibly rectangular) matrix.

    Invariant: cell (i, j) with i != j is always zero. Writing a nonzero,
    non-NaN value off the diagonal raises ``InvalidDiagonalWriteError``;
    writing zero or NaN there is a silent no-op.

    Attributes:
        data: 1-D float64 array of length min(rows, cols).
    """

    kind = StorageKind.DIAGONAL

    def __init__(self, rows: int, cols: int, data: np.ndarray = None):
        super().__init__(rows, cols)
        n = min(self.rows, self.cols)
        if data is None:
            data = np.zeros(n, dtype=np.float64)
        elif data.shape != (n,):
            raise dimensions_dont_match((n, 1), (data.size, 1), operation="DiagonalStorage")
        self.data = data

    @classmethod
    def wrap(cls, data: np.ndarray, rows: int, cols: int) -> 'DiagonalStorage':
        """Alias ``data`` as the diagonal without copying (BORROWED).

        Raises:
            TypeError: If ``data`` is not a contiguous 1-D float64 array.
        """
        if not isinstance(data, np.ndarray) or data.dtype != np.float64 or data.ndim != 1 \
                or not data.flags.c_contiguous:
            raise TypeError("wrap() requires a contiguous 1-D float64 numpy array")
        storage = cls(rows, cols, data)
        storage._tracker = OwnershipTracker.borrowed(data)
        return storage

    @classmethod
    def of_diagonal(cls, rows: int, cols: int, values) -> 'DiagonalStorage':
        """Copy ``values`` onto the diagonal."""
        return cls(rows, cols, np.array(values, dtype=np.float64).ravel())

    @classmethod
    def of_value(cls, rows: int, cols: int, value: float) -> 'DiagonalStorage':
        return cls(rows, cols, np.full(min(rows, cols), value, dtype=np.float64))

    @classmethod
    def of_array(cls, array) -> 'DiagonalStorage':
        """Copy a 2-D array whose off-diagonal cells must all be zero.

        Raises:
            InvalidDiagonalWriteError: If an off-diagonal cell is nonzero.
        """
        arr = np.asarray(array, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got {arr.ndim}-D")
        diag = np.diagonal(arr).copy()
        off = arr.copy()
        np.fill_diagonal(off, 0.0)
        off[np.isnan(off)] = 0.0
        if np.any(off != 0.0):
            raise InvalidDiagonalWriteError("Array has nonzero off-diagonal values")
        return cls(arr.shape[0], arr.shape[1], diag)

    def create_like(self, rows, cols):
        return DiagonalStorage(rows, cols)

    def copy(self):
        return DiagonalStorage(self.rows, self.cols, self.data.copy())

    # -------------------------------------------------------------------------
    # Indexed Contract
    # -------------------------------------------------------------------------

    @property
    def is_fully_mutable(self):
        return False

    def is_mutable_at(self, row, col):
        return row == col

    @property
    def stored_count(self):
        return self.data.shape[0]

    @property
    def nonzero_count(self):
        return int(np.count_nonzero(self.data))

    def at(self, row, col):
        return float(self.data[row]) if row == col else 0.0

    def set_at(self, row, col, value):
        if row == col:
            self.data[row] = value
        elif value == 0.0 or math.isnan(value):
            return
        else:
            raise InvalidDiagonalWriteError(
                f"Cannot set off-diagonal element ({row}, {col}) to {value}"
            )

    # -------------------------------------------------------------------------
    # Bulk Operations
    # -------------------------------------------------------------------------

    def clear(self):
        self.data.fill(0.0)

    def clear_rows(self, row_indices: Sequence[int]):
        n = self.data.shape[0]
        for row in row_indices:
            if row < n:
                self.data[row] = 0.0

    def clear_columns(self, column_indices: Sequence[int]):
        self.clear_rows(column_indices)

    def clear_sub_matrix(self, row_index, row_count, column_index, column_count):
        start = max(row_index, column_index)
        stop = min(row_index + row_count, column_index + column_count, self.data.shape[0])
        if start < stop:
            self.data[start:stop] = 0.0

    def copy_to(self, target):
        if target.shape != self.shape:
            raise dimensions_dont_match(self.shape, target.shape, operation="copy_to")
        if target is self:
            return
        if isinstance(target, DiagonalStorage):
            target.data[:] = self.data
            return
        target.clear()
        for i, value in enumerate(self.data.tolist()):
            if value != 0.0:
                target.set_at(i, i, value)

    def transpose_to(self, target):
        if isinstance(target, DiagonalStorage):
            if target.shape != (self.cols, self.rows):
                raise dimensions_dont_match((self.cols, self.rows), target.shape, operation="transpose_to")
            if target is not self:
                target.data[:] = self.data
            return
        super().transpose_to(target)

    def assign_array(self, array):
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != self.shape:
            raise dimensions_dont_match(self.shape, arr.shape, operation="assign_array")
        # Validate before touching data so a rejected array leaves no partial write
        self.data[:] = DiagonalStorage.of_array(arr).data

    def row_values(self, row):
        out = np.zeros(self.cols, dtype=np.float64)
        if row < self.data.shape[0]:
            out[row] = self.data[row]
        return out

    def column_values(self, col):
        out = np.zeros(self.rows, dtype=np.float64)
        if col < self.data.shape[0]:
            out[col] = self.data[col]
        return out

    def enumerate_nonzero_indexed(self) -> Iterator[Triple]:
        for i, value in enumerate(self.data.tolist()):
            if value != 0.0:
                yield i, i, value

    def to_array(self):
        out = np.zeros((self.rows, self.cols), dtype=np.float64)
        n = self.data.shape[0]
        out[np.arange(n), np.arange(n)] = self.data
        return out

    def equals(self, other):
        if isinstance(other, DiagonalStorage):
            return other.shape == self.shape and bool(np.array_equal(self.data, other.data))
        return super().equals(other)
