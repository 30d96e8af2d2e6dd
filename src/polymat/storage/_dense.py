"""Dense column-major storage."""

from typing import Iterator, Sequence

import numpy as np

from .._errors import dimensions_dont_match
from ._backend import StorageKind
from ._base import MatrixStorage, Triple
from ._ownership import OwnershipTracker

__all__ = ['DenseStorage']


class DenseStorage(MatrixStorage):
    """Every cell materialized in a flat column-major buffer.

    Invariant: ``data[col * rows + row] == value(row, col)``.

    Attributes:
        data: 1-D float64 array of length rows*cols.

    Example:
        >>> s = DenseStorage.of_array([[1, 2], [3, 4]])
        >>> s.data
        array([1., 3., 2., 4.])
    """

    kind = StorageKind.DENSE

    def __init__(self, rows: int, cols: int, data: np.ndarray = None):
        super().__init__(rows, cols)
        if data is None:
            data = np.zeros(self.rows * self.cols, dtype=np.float64)
        elif data.shape != (self.rows * self.cols,):
            raise dimensions_dont_match(
                (self.rows * self.cols, 1), (data.size, 1), operation="DenseStorage"
            )
        self.data = data

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def wrap(cls, data: np.ndarray, rows: int, cols: int) -> 'DenseStorage':
        """Alias ``data`` (column-major, float64, contiguous) without copying.

        The returned storage is BORROWED: writes through it are visible in
        ``data`` and vice versa.

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
    def of_value(cls, rows: int, cols: int, value: float) -> 'DenseStorage':
        """Create a storage with every cell equal to ``value``."""
        return cls(rows, cols, np.full(rows * cols, value, dtype=np.float64))

    @classmethod
    def of_array(cls, array) -> 'DenseStorage':
        """Copy a 2-D array-like (row, col indexed) into a new storage."""
        arr = np.asarray(array, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got {arr.ndim}-D")
        rows, cols = arr.shape
        return cls(rows, cols, arr.ravel(order='F').copy())

    @classmethod
    def of_column_major(cls, rows: int, cols: int, values) -> 'DenseStorage':
        """Copy a flat column-major sequence."""
        return cls(rows, cols, np.array(values, dtype=np.float64).ravel())

    @classmethod
    def of_row_major(cls, rows: int, cols: int, values) -> 'DenseStorage':
        """Copy a flat row-major sequence."""
        arr = np.array(values, dtype=np.float64).reshape((rows, cols))
        return cls(rows, cols, arr.ravel(order='F').copy())

    def create_like(self, rows, cols):
        return DenseStorage(rows, cols)

    def copy(self):
        return DenseStorage(self.rows, self.cols, self.data.copy())

    # -------------------------------------------------------------------------
    # Indexed Contract
    # -------------------------------------------------------------------------

    @property
    def matrix(self) -> np.ndarray:
        """2-D Fortran-ordered view of ``data`` (writes go through)."""
        return self.data.reshape((self.rows, self.cols), order='F')

    def at(self, row, col):
        return float(self.data[col * self.rows + row])

    def set_at(self, row, col, value):
        self.data[col * self.rows + row] = value

    @property
    def nonzero_count(self):
        return int(np.count_nonzero(self.data))

    # -------------------------------------------------------------------------
    # Bulk Operations
    # -------------------------------------------------------------------------

    def clear(self):
        self.data.fill(0.0)

    def clear_rows(self, row_indices: Sequence[int]):
        self.matrix[list(row_indices), :] = 0.0

    def clear_columns(self, column_indices: Sequence[int]):
        self.matrix[:, list(column_indices)] = 0.0

    def clear_sub_matrix(self, row_index, row_count, column_index, column_count):
        self.matrix[row_index:row_index + row_count, column_index:column_index + column_count] = 0.0

    def copy_to(self, target):
        if isinstance(target, DenseStorage):
            if target.shape != self.shape:
                raise dimensions_dont_match(self.shape, target.shape, operation="copy_to")
            if target is not self:
                target.data[:] = self.data
            return
        super().copy_to(target)

    def transpose_to(self, target):
        if isinstance(target, DenseStorage):
            if target.shape != (self.cols, self.rows):
                raise dimensions_dont_match((self.cols, self.rows), target.shape, operation="transpose_to")
            # .copy() keeps the in-place (target is self) case correct
            target.matrix[...] = self.matrix.T.copy()
            return
        super().transpose_to(target)

    def copy_sub_matrix_to(self, target, source_row, target_row, row_count,
                           source_column, target_column, column_count):
        if isinstance(target, DenseStorage):
            block = self.matrix[source_row:source_row + row_count,
                                source_column:source_column + column_count].copy()
            target.matrix[target_row:target_row + row_count,
                          target_column:target_column + column_count] = block
            return
        super().copy_sub_matrix_to(target, source_row, target_row, row_count,
                                   source_column, target_column, column_count)

    def assign_array(self, array):
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != self.shape:
            raise dimensions_dont_match(self.shape, arr.shape, operation="assign_array")
        self.data[:] = arr.ravel(order='F')

    def row_values(self, row):
        return self.matrix[row, :].copy()

    def column_values(self, col):
        start = col * self.rows
        return self.data[start:start + self.rows].copy()

    def enumerate_nonzero_indexed(self) -> Iterator[Triple]:
        m = self.matrix
        rows, cols = np.nonzero(m)
        for r, c in zip(rows.tolist(), cols.tolist()):
            yield r, c, float(m[r, c])

    def to_array(self):
        return np.array(self.matrix, order='C')

    def equals(self, other):
        if isinstance(other, DenseStorage):
            return other.shape == self.shape and bool(np.array_equal(self.data, other.data))
        return super().equals(other)
