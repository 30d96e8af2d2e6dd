"""
Sparse (CSR) Matrix

``SparseMatrix`` and the CSR specializations. Algorithms here visit only
stored slots; results are rebuilt through ``CsrStorage._load_coordinate``,
which sorts, merges duplicates and drops zeros, so the CSR invariants hold
after every operation.

Absent cells are structural zeros: a product with an absent cell is zero
even when the other factor is NaN or infinite.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from ..storage import CsrStorage, DenseStorage, StorageKind, Triple
from ..storage._csr import INDEX_DTYPE
from ._base import Matrix, register_matrix_type
from ._dispatch import ResultAlias, specialize

__all__ = ['SparseMatrix']

C = StorageKind.CSR


def _nonzero_arrays(storage):
    """Coordinate arrays of the nonzero cells of any storage."""
    if isinstance(storage, CsrStorage):
        return storage.coordinates()
    triples = list(storage.enumerate_nonzero_indexed())
    if not triples:
        empty = np.zeros(0, dtype=INDEX_DTYPE)
        return empty, empty.copy(), np.zeros(0, dtype=np.float64)
    r, c, v = zip(*triples)
    return (np.array(r, dtype=INDEX_DTYPE), np.array(c, dtype=INDEX_DTYPE),
            np.array(v, dtype=np.float64))


def _write_coordinates(result, r, c, v):
    """Replace the contents of ``result`` with the given cells."""
    if isinstance(result, CsrStorage):
        result._load_coordinate(r, c, v)
        return
    result.clear()
    for row, col, value in zip(r.tolist(), c.tolist(), v.tolist()):
        result.set_at(row, col, result.at(row, col) + value)


# =============================================================================
# Add / Subtract
# =============================================================================

def _accumulate(target, source, sign):
    """target += sign * source through the target's indexer."""
    for row, col, value in list(source.enumerate_nonzero_indexed()):
        target.set_at(row, col, target.at(row, col) + sign * value)


def _add(a, b, result, alias, sign):
    if a is b:
        if sign > 0:
            scale(a, result, ResultAlias.THIS if result is a else ResultAlias.DISTINCT, 2.0)
        else:
            # inf - inf and NaN - NaN stay NaN
            r, c, v = a.coordinates()
            result._load_coordinate(r, c, v - v)
        return
    if alias is ResultAlias.THIS:
        _accumulate(a, b, sign)
    elif alias is ResultAlias.OTHER:
        if sign < 0:
            b.values[:b.value_count] *= -1.0
        _accumulate(b, a, 1.0)
    else:
        ra, ca, va = a.coordinates()
        rb, cb, vb = b.coordinates()
        result._load_coordinate(np.concatenate([ra, rb]), np.concatenate([ca, cb]),
                                np.concatenate([va, sign * vb]))


@specialize("add", C, C, C)
def add(a, b, result, alias):
    _add(a, b, result, alias, 1.0)


@specialize("subtract", C, C, C)
def subtract(a, b, result, alias):
    _add(a, b, result, alias, -1.0)


@specialize("pointwise_multiply", C, C, C)
def pointwise_multiply(a, b, result, alias):
    ra, ca, va = a.coordinates()
    rb, cb, vb = b.coordinates()
    # Row-major keys are sorted, so the intersection is a merge of row slices
    _, ia, ib = np.intersect1d(ra * a.cols + ca, rb * b.cols + cb,
                               assume_unique=True, return_indices=True)
    result._load_coordinate(ra[ia], ca[ia], va[ia] * vb[ib])


# =============================================================================
# Unary
# =============================================================================

@specialize("scale", C, C)
def scale(a, result, alias, alpha):
    if alpha == 0.0:
        result.clear()
        return
    if alias is not ResultAlias.THIS:
        a.copy_to(result)
    if alpha != 1.0:
        values = result.values[:result.value_count]
        values *= alpha
        if not values.all():
            result.normalize()


@specialize("scale", C, None)
def scale_into(a, result, alias, alpha):
    r, c, v = a.coordinates()
    result.clear()
    if alpha == 0.0:
        return
    for row, col, value in zip(r.tolist(), c.tolist(), (alpha * v).tolist()):
        result.set_at(row, col, value)


@specialize("negate", C, C)
def negate(a, result, alias):
    scale(a, result, alias, -1.0)


@specialize("add_scalar", C, C)
def add_scalar(a, result, alias, scalar):
    result.assign_array(a.to_array() + scalar)


@specialize("transpose", C, C)
def transpose(a, result, alias):
    a.transpose_to(result)


def _triangle(a, result, keep):
    r, c, v = a.coordinates()
    mask = keep(r, c)
    result._load_coordinate(r[mask], c[mask], v[mask])


@specialize("lower_triangle", C, C)
def lower_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c <= r)


@specialize("upper_triangle", C, C)
def upper_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c >= r)


@specialize("strictly_lower_triangle", C, C)
def strictly_lower_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c < r)


@specialize("strictly_upper_triangle", C, C)
def strictly_upper_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c > r)


# =============================================================================
# Products
# =============================================================================

def _gustavson(a, b):
    """Row-merge product of two CSR storages.

    A dense accumulator of length ``b.cols`` collects each result row; a
    marker array records which accumulator slots the current row touched.

    Returns:
        (rows, cols, values) coordinate arrays of the product.
    """
    accumulator = np.zeros(b.cols, dtype=np.float64)
    marker = np.full(b.cols, -1, dtype=INDEX_DTYPE)
    out_r, out_c, out_v = [], [], []
    a_ci, a_v = a.column_indices, a.values
    b_rp, b_ci, b_v = b.row_pointers, b.column_indices, b.values
    for i in range(a.rows):
        touched = []
        for slot in range(int(a.row_pointers[i]), int(a.row_pointers[i + 1])):
            k = int(a_ci[slot])
            av = a_v[slot]
            start, end = int(b_rp[k]), int(b_rp[k + 1])
            if start == end:
                continue
            cols = b_ci[start:end]
            fresh = cols[marker[cols] != i]
            marker[fresh] = i
            touched.append(fresh)
            accumulator[cols] += av * b_v[start:end]
        if not touched:
            continue
        cols = np.sort(np.concatenate(touched))
        out_r.append(np.full(cols.shape[0], i, dtype=INDEX_DTYPE))
        out_c.append(cols)
        out_v.append(accumulator[cols].copy())
        accumulator[cols] = 0.0
    if not out_r:
        empty = np.zeros(0, dtype=INDEX_DTYPE)
        return empty, empty.copy(), np.zeros(0, dtype=np.float64)
    return np.concatenate(out_r), np.concatenate(out_c), np.concatenate(out_v)


def _transposed(storage: CsrStorage) -> CsrStorage:
    out = CsrStorage(storage.cols, storage.rows, capacity=0)
    storage.transpose_to(out)
    return out


@specialize("multiply", C, C, C)
def multiply(a, b, result, alias):
    # Reads finish before the result is replaced, so any aliasing is safe
    result._load_coordinate(*_gustavson(a, b))


@specialize("transpose_and_multiply", C, C, C)
def transpose_and_multiply(a, b, result, alias):
    result._load_coordinate(*_gustavson(a, _transposed(b)))


@specialize("transpose_this_and_multiply", C, C, C)
def transpose_this_and_multiply(a, b, result, alias):
    result._load_coordinate(*_gustavson(_transposed(a), b))


@specialize("multiply", C, None, None)
def multiply_rows(a, b, result, alias):
    """Dot each nonempty left row with the right operand materialized densely."""
    right = b.matrix if isinstance(b, DenseStorage) else b.to_array()
    out = np.zeros((a.rows, b.cols), dtype=np.float64)
    for i in range(a.rows):
        s = a.row_slice(i)
        if s.start == s.stop:
            continue
        out[i] = a.values[s] @ right[a.column_indices[s]]
    result.assign_array(out)


@specialize("multiply_vector", C)
def multiply_vector(a, alias, x, y):
    r, c, v = a.coordinates()
    y.values[:] = np.bincount(r, weights=v * x.values[c], minlength=a.rows)


@specialize("left_multiply_vector", C)
def left_multiply_vector(a, alias, x, y):
    r, c, v = a.coordinates()
    y.values[:] = np.bincount(c, weights=v * x.values[r], minlength=a.cols)


@specialize("kronecker_product", C, None, None)
@specialize("kronecker_product", None, None, C)
def kronecker_product(a, b, result, alias):
    """Each nonzero of ``a`` scales a copy of ``b`` into its block."""
    ra, ca, va = _nonzero_arrays(a)
    rb, cb, vb = _nonzero_arrays(b)
    rows = (ra[:, np.newaxis] * b.rows + rb[np.newaxis, :]).ravel()
    cols = (ca[:, np.newaxis] * b.cols + cb[np.newaxis, :]).ravel()
    vals = (va[:, np.newaxis] * vb[np.newaxis, :]).ravel()
    _write_coordinates(result, rows, cols, vals)


# =============================================================================
# Norms and Queries
# =============================================================================

@specialize("l1_norm", C)
def l1_norm(a, alias):
    r, c, v = a.coordinates()
    if c.shape[0] == 0:
        return 0.0
    return float(np.bincount(c, weights=np.abs(v), minlength=a.cols).max())


@specialize("infinity_norm", C)
def infinity_norm(a, alias):
    r, c, v = a.coordinates()
    if r.shape[0] == 0:
        return 0.0
    return float(np.bincount(r, weights=np.abs(v), minlength=a.rows).max())


@specialize("frobenius_norm", C)
def frobenius_norm(a, alias):
    r, c, v = a.coordinates()
    if r.shape[0] == 0:
        return 0.0
    # Per-row sums of squares are the diagonal of A * A^T
    return float(np.sqrt(np.bincount(r, weights=v * v, minlength=a.rows).sum()))


@specialize("trace", C)
def trace(a, alias):
    r, c, v = a.coordinates()
    return float(v[r == c].sum())


@specialize("is_symmetric", C)
def is_symmetric(a, alias):
    if a.rows != a.cols:
        return False
    for row, col, value in a.enumerate_nonzero_indexed():
        if row == col:
            continue
        index = a.find_item(col, row)
        if index < 0 or a.values[index] != value:
            return False
    return True


# =============================================================================
# SparseMatrix
# =============================================================================

@register_matrix_type
class SparseMatrix(Matrix):
    """
    Compressed sparse row matrix.

    Example:
        >>> m = SparseMatrix.of_indexed(3, 3, [(0, 0, 1.0), (2, 1, 5.0)])
        >>> m.nonzero_count
        2
        >>> m[2, 1] = 0.0      # removes the slot
        >>> m.nonzero_count
        1
    """

    kind = StorageKind.CSR

    def __init__(self, rows: int, cols: Optional[int] = None):
        super().__init__(CsrStorage(rows, rows if cols is None else cols))

    @classmethod
    def of_array(cls, array) -> 'SparseMatrix':
        """Copy the nonzero cells of a 2-D array-like."""
        return Matrix.of_storage(CsrStorage.of_array(array))

    @classmethod
    def of_indexed(cls, rows: int, cols: int, triples: Iterable[Triple]) -> 'SparseMatrix':
        """Build from (row, col, value) triples; duplicates are summed."""
        return Matrix.of_storage(CsrStorage.of_indexed(rows, cols, triples))

    @classmethod
    def of_coordinate(cls, rows: int, cols: int, row_indices, column_indices,
                      values) -> 'SparseMatrix':
        return Matrix.of_storage(CsrStorage.of_coordinate(rows, cols, row_indices,
                                                          column_indices, values))

    @classmethod
    def of_compressed_row(cls, rows: int, cols: int, row_pointers, column_indices,
                          values) -> 'SparseMatrix':
        """Copy raw CSR arrays (normalized on the way in)."""
        return Matrix.of_storage(CsrStorage.of_compressed_row(rows, cols, row_pointers,
                                                              column_indices, values))

    @classmethod
    def of_row_major(cls, rows: int, cols: int, values) -> 'SparseMatrix':
        return Matrix.of_storage(CsrStorage.of_row_major(rows, cols, values))

    @classmethod
    def of_column_major(cls, rows: int, cols: int, values) -> 'SparseMatrix':
        return Matrix.of_storage(CsrStorage.of_column_major(rows, cols, values))

    @classmethod
    def of_rows(cls, rows: Sequence[Sequence[float]]) -> 'SparseMatrix':
        return Matrix.of_storage(CsrStorage.of_rows(rows))

    @classmethod
    def of_columns(cls, columns: Sequence[Sequence[float]]) -> 'SparseMatrix':
        return Matrix.of_storage(CsrStorage.of_columns(columns))

    @classmethod
    def of_diagonal(cls, rows: int, cols: int, values) -> 'SparseMatrix':
        return Matrix.of_storage(CsrStorage.of_diagonal(rows, cols, values))

    @classmethod
    def of_matrix(cls, matrix: Matrix) -> 'SparseMatrix':
        return matrix.convert(StorageKind.CSR)

    @classmethod
    def identity(cls, order: int) -> 'SparseMatrix':
        return cls.of_diagonal(order, order, np.ones(order))

    def normalize(self) -> None:
        """Sort, merge duplicates and drop stored zeros."""
        self.storage.normalize()

    def trim(self) -> None:
        """Release spare slot capacity."""
        self.storage.trim()

    def validate(self) -> None:
        """Check the CSR invariants (raises ``PolymatError`` on violation)."""
        self.storage.validate()

    def compressed_row(self):
        """Copies of (row_pointers, column_indices, values) without spare capacity."""
        s = self.storage
        nnz = s.value_count
        return s.row_pointers.copy(), s.column_indices[:nnz].copy(), s.values[:nnz].copy()
