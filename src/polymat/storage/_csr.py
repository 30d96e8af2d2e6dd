"""
Compressed Sparse Row Storage

Three co-indexed arrays hold the nonzero cells:

    row_pointers[0..rows]   row r occupies slots [row_pointers[r], row_pointers[r+1])
    column_indices[]        column of each slot, strictly increasing within a row
    values[]                payload of each slot

``values`` and ``column_indices`` may be longer than ``value_count``
(``row_pointers[rows]``); the tail is spare capacity for amortized
insertion.

Invariants:
    - ``row_pointers`` is non-decreasing and starts at 0
    - column indices are strictly increasing inside every row slice, so a
      (row, col) pair is never stored twice
    - writing zero to a stored cell removes its slot

Bulk constructors normalize their input (sort, sum duplicates, drop
zeros), so every storage built here satisfies the invariants.

Example:
    >>> s = CsrStorage.of_indexed(2, 3, [(0, 2, 1.0), (1, 0, 2.0)])
    >>> s.row_pointers
    array([0, 1, 2])
    >>> s.column_indices[:s.value_count]
    array([2, 0])
"""

import logging
from typing import Iterable, Iterator, Sequence

import numpy as np

from .._config import config
from .._errors import PolymatError, POLYMAT_ERROR_INTERNAL, dimensions_dont_match
from ._backend import StorageKind
from ._base import MatrixStorage, Triple

logger = logging.getLogger("polymat.storage")

__all__ = ['CsrStorage']

INDEX_DTYPE = np.int64


class CsrStorage(MatrixStorage):
    """Compressed sparse row storage.

    Attributes:
        row_pointers: int64 array of length rows + 1.
        column_indices: int64 array, capacity >= value_count.
        values: float64 array, same capacity as column_indices.
    """

    kind = StorageKind.CSR

    def __init__(self, rows: int, cols: int, capacity: int = None):
        super().__init__(rows, cols)
        if capacity is None:
            capacity = config.compute.csr_initial_capacity
        capacity = max(0, min(int(capacity), self.rows * self.cols))
        self.row_pointers = np.zeros(self.rows + 1, dtype=INDEX_DTYPE)
        self.column_indices = np.zeros(capacity, dtype=INDEX_DTYPE)
        self.values = np.zeros(capacity, dtype=np.float64)

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def of_compressed_row(cls, rows: int, cols: int, row_pointers, column_indices, values,
                          validate: bool = True) -> 'CsrStorage':
        """Copy raw CSR arrays.

        Args:
            rows: Number of rows.
            cols: Number of columns.
            row_pointers: Length rows + 1.
            column_indices: Column of each stored value.
            values: Stored values.
            validate: Normalize unsorted or duplicated input first.

        Raises:
            DimensionMismatchError: If the arrays are inconsistent with the shape.
        """
        rp = np.array(row_pointers, dtype=INDEX_DTYPE).ravel()
        ci = np.array(column_indices, dtype=INDEX_DTYPE).ravel()
        vals = np.array(values, dtype=np.float64).ravel()
        if rp.shape[0] != rows + 1:
            raise dimensions_dont_match((rows + 1, 1), (rp.shape[0], 1), operation="row_pointers")
        nnz = int(rp[-1]) if rp.shape[0] else 0
        if ci.shape[0] < nnz or vals.shape[0] < nnz:
            raise dimensions_dont_match((nnz, 1), (min(ci.shape[0], vals.shape[0]), 1),
                                        operation="column_indices/values")
        if not validate:
            storage = cls(rows, cols, capacity=0)
            storage.row_pointers = rp
            storage.column_indices = ci[:nnz].copy()
            storage.values = vals[:nnz].copy()
            return storage
        row_of_slot = np.repeat(np.arange(rows, dtype=INDEX_DTYPE), np.diff(rp))
        return cls.of_coordinate(rows, cols, row_of_slot, ci[:nnz], vals[:nnz])

    @classmethod
    def of_coordinate(cls, rows: int, cols: int, row_indices, column_indices, values) -> 'CsrStorage':
        """Build from coordinate (COO) arrays; duplicates are summed, zeros dropped."""
        r = np.asarray(row_indices, dtype=INDEX_DTYPE).ravel()
        c = np.asarray(column_indices, dtype=INDEX_DTYPE).ravel()
        v = np.asarray(values, dtype=np.float64).ravel()
        if not (r.shape == c.shape == v.shape):
            raise dimensions_dont_match((r.size, 1), (c.size, 1), (v.size, 1), operation="of_coordinate")
        if r.size and (r.min() < 0 or r.max() >= rows or c.min() < 0 or c.max() >= cols):
            raise dimensions_dont_match((rows, cols), (int(r.max()) + 1, int(c.max()) + 1),
                                        operation="of_coordinate")
        storage = cls(rows, cols, capacity=0)
        storage._load_coordinate(r, c, v)
        return storage

    @classmethod
    def of_indexed(cls, rows: int, cols: int, triples: Iterable[Triple]) -> 'CsrStorage':
        """Build from an iterable of (row, col, value) triples."""
        triples = list(triples)
        if not triples:
            return cls(rows, cols)
        r, c, v = zip(*triples)
        return cls.of_coordinate(rows, cols, r, c, v)

    @classmethod
    def of_array(cls, array) -> 'CsrStorage':
        """Copy the nonzero cells of a 2-D array-like."""
        arr = np.asarray(array, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got {arr.ndim}-D")
        r, c = np.nonzero(arr)
        return cls.of_coordinate(arr.shape[0], arr.shape[1], r, c, arr[r, c])

    @classmethod
    def of_row_major(cls, rows: int, cols: int, values) -> 'CsrStorage':
        """Copy a flat row-major sequence of rows*cols values."""
        return cls.of_array(np.array(values, dtype=np.float64).reshape((rows, cols)))

    @classmethod
    def of_column_major(cls, rows: int, cols: int, values) -> 'CsrStorage':
        """Copy a flat column-major sequence of rows*cols values."""
        return cls.of_array(np.array(values, dtype=np.float64).reshape((rows, cols), order='F'))

    @classmethod
    def of_rows(cls, rows: Sequence[Sequence[float]]) -> 'CsrStorage':
        """Copy a sequence of equal-length rows."""
        return cls.of_array(np.array(rows, dtype=np.float64, ndmin=2))

    @classmethod
    def of_columns(cls, columns: Sequence[Sequence[float]]) -> 'CsrStorage':
        """Copy a sequence of equal-length columns."""
        return cls.of_array(np.array(columns, dtype=np.float64, ndmin=2).T)

    @classmethod
    def of_diagonal(cls, rows: int, cols: int, diagonal) -> 'CsrStorage':
        """Place ``diagonal`` on the main diagonal."""
        d = np.asarray(diagonal, dtype=np.float64).ravel()
        n = min(rows, cols)
        if d.shape[0] != n:
            raise dimensions_dont_match((n, 1), (d.shape[0], 1), operation="of_diagonal")
        idx = np.arange(n, dtype=INDEX_DTYPE)
        return cls.of_coordinate(rows, cols, idx, idx, d)

    def _load_coordinate(self, r: np.ndarray, c: np.ndarray, v: np.ndarray) -> None:
        """Replace contents with sorted, deduplicated, zero-free COO data."""
        if r.size:
            order = np.lexsort((c, r))
            r, c, v = r[order], c[order], v[order]
            # Sum runs of equal (row, col)
            new_run = np.empty(r.shape[0], dtype=bool)
            new_run[0] = True
            new_run[1:] = (r[1:] != r[:-1]) | (c[1:] != c[:-1])
            starts = np.flatnonzero(new_run)
            v = np.add.reduceat(v, starts)
            r, c = r[starts], c[starts]
            keep = v != 0.0
            r, c, v = r[keep], c[keep], v[keep]
        counts = np.bincount(r, minlength=self.rows) if r.size else np.zeros(self.rows, dtype=INDEX_DTYPE)
        self.row_pointers = np.zeros(self.rows + 1, dtype=INDEX_DTYPE)
        np.cumsum(counts, out=self.row_pointers[1:])
        self.column_indices = c.astype(INDEX_DTYPE, copy=True)
        self.values = v.astype(np.float64, copy=True)

    def create_like(self, rows, cols):
        return CsrStorage(rows, cols)

    def copy(self):
        nnz = self.value_count
        out = CsrStorage(self.rows, self.cols, capacity=0)
        out.row_pointers = self.row_pointers.copy()
        out.column_indices = self.column_indices[:nnz].copy()
        out.values = self.values[:nnz].copy()
        return out

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def value_count(self) -> int:
        """Number of stored slots in use."""
        return int(self.row_pointers[self.rows])

    @property
    def stored_count(self):
        return self.value_count

    @property
    def capacity(self):
        return self.values.shape[0]

    @property
    def nonzero_count(self):
        return int(np.count_nonzero(self.values[:self.value_count]))

    def row_slice(self, row: int) -> slice:
        """Slot range of ``row``."""
        return slice(int(self.row_pointers[row]), int(self.row_pointers[row + 1]))

    def row_length(self, row: int) -> int:
        return int(self.row_pointers[row + 1] - self.row_pointers[row])

    def row_of_slots(self) -> np.ndarray:
        """Row index of every used slot."""
        return np.repeat(np.arange(self.rows, dtype=INDEX_DTYPE), np.diff(self.row_pointers))

    def coordinates(self):
        """Copies of the used slots as (rows, cols, values) coordinate arrays, row-major."""
        nnz = self.value_count
        return self.row_of_slots(), self.column_indices[:nnz].copy(), self.values[:nnz].copy()

    # =========================================================================
    # Indexed Contract
    # =========================================================================

    def find_item(self, row: int, col: int) -> int:
        """Binary search for (row, col).

        Returns:
            The slot index when stored, otherwise ``~insertion_point``
            (always negative).
        """
        start = int(self.row_pointers[row])
        end = int(self.row_pointers[row + 1])
        if start == end:
            return ~start
        pos = start + int(np.searchsorted(self.column_indices[start:end], col))
        if pos < end and self.column_indices[pos] == col:
            return pos
        return ~pos

    def at(self, row, col):
        index = self.find_item(row, col)
        return float(self.values[index]) if index >= 0 else 0.0

    def set_at(self, row, col, value):
        index = self.find_item(row, col)
        if index >= 0:
            if value == 0.0:
                self._remove_at_index(index, row)
            else:
                self.values[index] = value
            return
        if value != 0.0:
            self._insert_at_index(~index, row, col, value)

    def _growth_size(self) -> int:
        n = self.values.shape[0]
        if n > 1024:
            return n // 4
        if n > 256:
            return 512
        return 128 if n > 64 else 32

    def _insert_at_index(self, index: int, row: int, col: int, value: float) -> None:
        nnz = self.value_count
        if nnz == self.values.shape[0]:
            size = max(nnz + 1, min(nnz + self._growth_size(), self.rows * self.cols))
            logger.debug("Growing CSR storage %dx%d capacity %d -> %d",
                         self.rows, self.cols, nnz, size)
            self.values = np.resize(self.values, size)
            self.column_indices = np.resize(self.column_indices, size)
        # numpy handles the overlapping shift
        self.values[index + 1:nnz + 1] = self.values[index:nnz]
        self.column_indices[index + 1:nnz + 1] = self.column_indices[index:nnz]
        self.values[index] = value
        self.column_indices[index] = col
        self.row_pointers[row + 1:] += 1

    def _remove_at_index(self, index: int, row: int) -> None:
        nnz = self.value_count
        self.values[index:nnz - 1] = self.values[index + 1:nnz]
        self.column_indices[index:nnz - 1] = self.column_indices[index + 1:nnz]
        self.row_pointers[row + 1:] -= 1

    # =========================================================================
    # Structural Maintenance
    # =========================================================================

    def normalize(self) -> None:
        """Sort each row, sum duplicate columns and drop stored zeros."""
        nnz = self.value_count
        rows = self.row_of_slots()
        self._load_coordinate(rows, self.column_indices[:nnz].copy(), self.values[:nnz].copy())

    def trim(self) -> None:
        """Release spare capacity."""
        nnz = self.value_count
        self.values = self.values[:nnz].copy()
        self.column_indices = self.column_indices[:nnz].copy()

    def validate(self) -> None:
        """Check the structural invariants.

        Raises:
            PolymatError: If row pointers decrease, a column index is out of
                range, or a row slice is not strictly increasing.
        """
        rp = self.row_pointers
        nnz = self.value_count
        if rp.shape[0] != self.rows + 1 or rp[0] != 0 or np.any(np.diff(rp) < 0):
            raise PolymatError("CSR row pointers are not monotonic", code=POLYMAT_ERROR_INTERNAL)
        if self.values.shape[0] < nnz or self.column_indices.shape[0] < nnz:
            raise PolymatError("CSR arrays are shorter than value_count", code=POLYMAT_ERROR_INTERNAL)
        ci = self.column_indices[:nnz]
        if nnz and (ci.min() < 0 or ci.max() >= self.cols):
            raise PolymatError("CSR column index out of range", code=POLYMAT_ERROR_INTERNAL)
        for row in range(self.rows):
            s = ci[rp[row]:rp[row + 1]]
            if s.shape[0] > 1 and np.any(np.diff(s) <= 0):
                raise PolymatError(f"CSR row {row} is not strictly increasing",
                                   code=POLYMAT_ERROR_INTERNAL)

    # =========================================================================
    # Bulk Operations
    # =========================================================================

    def clear(self):
        self.row_pointers.fill(0)

    def clear_rows(self, row_indices):
        self._drop(lambda rows, cols: np.isin(rows, np.asarray(list(row_indices), dtype=INDEX_DTYPE)))

    def clear_columns(self, column_indices):
        self._drop(lambda rows, cols: np.isin(cols, np.asarray(list(column_indices), dtype=INDEX_DTYPE)))

    def clear_sub_matrix(self, row_index, row_count, column_index, column_count):
        self._drop(lambda rows, cols: (rows >= row_index) & (rows < row_index + row_count)
                   & (cols >= column_index) & (cols < column_index + column_count))

    def _drop(self, predicate) -> None:
        nnz = self.value_count
        rows = self.row_of_slots()
        cols = self.column_indices[:nnz]
        keep = ~predicate(rows, cols)
        counts = np.bincount(rows[keep], minlength=self.rows)
        self.column_indices = cols[keep].copy()
        self.values = self.values[:nnz][keep].copy()
        self.row_pointers[0] = 0
        np.cumsum(counts, out=self.row_pointers[1:])

    def copy_to(self, target):
        if target.shape != self.shape:
            raise dimensions_dont_match(self.shape, target.shape, operation="copy_to")
        if target is self:
            return
        if isinstance(target, CsrStorage):
            nnz = self.value_count
            target.row_pointers = self.row_pointers.copy()
            target.column_indices = self.column_indices[:nnz].copy()
            target.values = self.values[:nnz].copy()
            return
        target.clear()
        for row, col, value in self.enumerate_nonzero_indexed():
            target.set_at(row, col, value)

    def transpose_to(self, target):
        if isinstance(target, CsrStorage):
            if target.shape != (self.cols, self.rows):
                raise dimensions_dont_match((self.cols, self.rows), target.shape, operation="transpose_to")
            rp, ci, vals = self.transposed_arrays()
            target.row_pointers = rp
            target.column_indices = ci
            target.values = vals
            return
        super().transpose_to(target)

    def copy_sub_matrix_to(self, target, source_row, target_row, row_count,
                           source_column, target_column, column_count):
        if target is self:
            super().copy_sub_matrix_to(target, source_row, target_row, row_count,
                                       source_column, target_column, column_count)
            return
        target.clear_sub_matrix(target_row, row_count, target_column, column_count)
        ci = self.column_indices
        for i in range(row_count):
            s = self.row_slice(source_row + i)
            cols = ci[s]
            lo = s.start + int(np.searchsorted(cols, source_column))
            hi = s.start + int(np.searchsorted(cols, source_column + column_count))
            for slot in range(lo, hi):
                target.set_at(target_row + i, target_column + int(ci[slot]) - source_column,
                              float(self.values[slot]))

    def transposed_arrays(self):
        """Counting sort on column indices.

        Returns:
            (row_pointers, column_indices, values) of the transpose. Because
            rows are visited in order, each transposed row comes out sorted.
        """
        nnz = self.value_count
        ci = self.column_indices[:nnz]
        counts = np.bincount(ci, minlength=self.cols) if nnz else np.zeros(self.cols, dtype=INDEX_DTYPE)
        rp = np.zeros(self.cols + 1, dtype=INDEX_DTYPE)
        np.cumsum(counts, out=rp[1:])
        out_ci = np.empty(nnz, dtype=INDEX_DTYPE)
        out_v = np.empty(nnz, dtype=np.float64)
        cursor = rp[:-1].copy()
        for row in range(self.rows):
            for slot in range(int(self.row_pointers[row]), int(self.row_pointers[row + 1])):
                col = int(ci[slot])
                dest = cursor[col]
                out_ci[dest] = row
                out_v[dest] = self.values[slot]
                cursor[col] += 1
        return rp, out_ci, out_v

    def assign_array(self, array):
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != self.shape:
            raise dimensions_dont_match(self.shape, arr.shape, operation="assign_array")
        r, c = np.nonzero(arr)
        self._load_coordinate(r.astype(INDEX_DTYPE), c.astype(INDEX_DTYPE), arr[r, c])

    def row_values(self, row):
        out = np.zeros(self.cols, dtype=np.float64)
        s = self.row_slice(row)
        out[self.column_indices[s]] = self.values[s]
        return out

    def column_values(self, col):
        out = np.zeros(self.rows, dtype=np.float64)
        for row in range(self.rows):
            index = self.find_item(row, col)
            if index >= 0:
                out[row] = self.values[index]
        return out

    def enumerate_nonzero_indexed(self) -> Iterator[Triple]:
        rp = self.row_pointers
        for row in range(self.rows):
            for slot in range(int(rp[row]), int(rp[row + 1])):
                value = float(self.values[slot])
                if value != 0.0:
                    yield row, int(self.column_indices[slot]), value

    def to_array(self):
        out = np.zeros((self.rows, self.cols), dtype=np.float64)
        nnz = self.value_count
        rows = self.row_of_slots()
        out[rows, self.column_indices[:nnz]] = self.values[:nnz]
        return out

    def equals(self, other):
        if isinstance(other, CsrStorage) and other.shape == self.shape:
            a, b = self.copy(), other.copy()
            a.normalize()
            b.normalize()
            return (np.array_equal(a.row_pointers, b.row_pointers)
                    and np.array_equal(a.column_indices, b.column_indices)
                    and np.array_equal(a.values, b.values))
        return super().equals(other)
