"""
Knuth Sparse Matrix

``KnuthSparseMatrix`` keeps its nonzeros on circular row and column lists
(``KnuthStorage``). Specializations walk those lists and build their result
as a fresh structure through ``append``, then hand the arena over with
``adopt``; reads therefore complete before the result changes and every
aliasing case is safe.
"""

from typing import Iterable, Optional

import numpy as np

from ..storage import KnuthStorage, StorageKind, Triple
from ._base import Matrix, register_matrix_type
from ._dispatch import ResultAlias, specialize

__all__ = ['KnuthSparseMatrix']

K = StorageKind.KNUTH


def _row_entries(storage: KnuthStorage, row: int):
    col, val = storage.node_col, storage.node_value
    return [(col[node], val[node]) for node in storage.row_nodes(row)]


# =============================================================================
# Elementwise
# =============================================================================

def _merge(a, b, result, sign):
    """result = a + sign * b by merging each pair of row circles."""
    out = KnuthStorage(a.rows, a.cols)
    for row in range(a.rows):
        left = _row_entries(a, row)
        right = _row_entries(b, row)
        i = j = 0
        while i < len(left) or j < len(right):
            if j == len(right) or (i < len(left) and left[i][0] < right[j][0]):
                col, value = left[i]
                i += 1
            elif i == len(left) or right[j][0] < left[i][0]:
                col, value = right[j][0], sign * right[j][1]
                j += 1
            else:
                col, value = left[i][0], left[i][1] + sign * right[j][1]
                i += 1
                j += 1
            out.append(row, col, value)
    result.adopt(out)


@specialize("add", K, K, K)
def add(a, b, result, alias):
    _merge(a, b, result, 1.0)


@specialize("subtract", K, K, K)
def subtract(a, b, result, alias):
    # Adds the negated right operand
    _merge(a, b, result, -1.0)


@specialize("pointwise_multiply", K, K, K)
def pointwise_multiply(a, b, result, alias):
    out = KnuthStorage(a.rows, a.cols)
    for row in range(a.rows):
        right = dict(_row_entries(b, row))
        if not right:
            continue
        for col, value in _row_entries(a, row):
            if col in right:
                out.append(row, col, value * right[col])
    result.adopt(out)


@specialize("scale", K, K)
def scale(a, result, alias, alpha):
    if alias is not ResultAlias.THIS:
        result.adopt(a.copy())
    result.scale_values(alpha)


@specialize("negate", K, K)
def negate(a, result, alias):
    scale(a, result, alias, -1.0)


@specialize("transpose", K, K)
def transpose(a, result, alias):
    result.adopt(a.transposed())


def _triangle(a, result, keep):
    out = KnuthStorage(a.rows, a.cols)
    for row in range(a.rows):
        for col, value in _row_entries(a, row):
            if keep(row, col):
                out.append(row, col, value)
    result.adopt(out)


@specialize("lower_triangle", K, K)
def lower_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c <= r)


@specialize("upper_triangle", K, K)
def upper_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c >= r)


@specialize("strictly_lower_triangle", K, K)
def strictly_lower_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c < r)


@specialize("strictly_upper_triangle", K, K)
def strictly_upper_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c > r)


# =============================================================================
# Products
# =============================================================================

def _dot(row_entries, column_entries) -> float:
    """Merge walk of a row (col, value) list against a column (row, value) list."""
    s = 0.0
    i = j = 0
    while i < len(row_entries) and j < len(column_entries):
        k_row = row_entries[i][0]
        k_col = column_entries[j][0]
        if k_row < k_col:
            i += 1
        elif k_col < k_row:
            j += 1
        else:
            s += row_entries[i][1] * column_entries[j][1]
            i += 1
            j += 1
    return s


@specialize("multiply", K, K, K)
def multiply(a, b, result, alias):
    """Row i of ``a`` merge-walked against column j of ``b`` for every (i, j)."""
    row_of, val = b.node_row, b.node_value
    columns = [[(row_of[n], val[n]) for n in b.column_nodes(j)] for j in range(b.cols)]
    out = KnuthStorage(a.rows, b.cols)
    for i in range(a.rows):
        left = _row_entries(a, i)
        if not left:
            continue
        for j, right in enumerate(columns):
            if right:
                s = _dot(left, right)
                if s != 0.0:
                    out.append(i, j, s)
    result.adopt(out)


@specialize("multiply_vector", K)
def multiply_vector(a, alias, x, y):
    xs = x.values
    out = np.zeros(a.rows, dtype=np.float64)
    for row in range(a.rows):
        out[row] = sum(value * xs[col] for col, value in _row_entries(a, row))
    y.values[:] = out


@specialize("left_multiply_vector", K)
def left_multiply_vector(a, alias, x, y):
    xs = x.values
    out = np.zeros(a.cols, dtype=np.float64)
    for row in range(a.rows):
        xr = xs[row]
        for col, value in _row_entries(a, row):
            out[col] += xr * value
    y.values[:] = out


# =============================================================================
# Norms and Queries
# =============================================================================

@specialize("l1_norm", K)
def l1_norm(a, alias):
    val = a.node_value
    return max((sum(abs(val[n]) for n in a.column_nodes(c)) for c in range(a.cols)), default=0.0)


@specialize("infinity_norm", K)
def infinity_norm(a, alias):
    val = a.node_value
    return max((sum(abs(val[n]) for n in a.row_nodes(r)) for r in range(a.rows)), default=0.0)


@specialize("frobenius_norm", K)
def frobenius_norm(a, alias):
    total = 0.0
    for row in range(a.rows):
        for _, value in _row_entries(a, row):
            total += value * value
    return float(np.sqrt(total))


@specialize("trace", K)
def trace(a, alias):
    return sum(a.at(i, i) for i in range(min(a.rows, a.cols)))


# =============================================================================
# KnuthSparseMatrix
# =============================================================================

@register_matrix_type
class KnuthSparseMatrix(Matrix):
    """
    Sparse matrix threaded on circular row and column lists.

    Inserting or removing a single cell relinks four neighbours; row and
    column walks in either direction are O(length).

    Example:
        >>> a = KnuthSparseMatrix.of_indexed(2, 2, [(0, 1, 5.0)])
        >>> b = KnuthSparseMatrix.of_indexed(2, 2, [(1, 0, 7.0), (0, 1, 1.0)])
        >>> sorted((a + b).enumerate_nonzero())
        [(0, 1, 6.0), (1, 0, 7.0)]
    """

    kind = StorageKind.KNUTH

    def __init__(self, rows: int, cols: Optional[int] = None):
        super().__init__(KnuthStorage(rows, rows if cols is None else cols))

    @classmethod
    def of_array(cls, array) -> 'KnuthSparseMatrix':
        """Copy the nonzero cells of a 2-D array-like."""
        return Matrix.of_storage(KnuthStorage.of_array(array))

    @classmethod
    def of_indexed(cls, rows: int, cols: int, triples: Iterable[Triple]) -> 'KnuthSparseMatrix':
        """Build from (row, col, value) triples; later triples overwrite earlier ones."""
        return Matrix.of_storage(KnuthStorage.of_indexed(rows, cols, triples))

    @classmethod
    def of_matrix(cls, matrix: Matrix) -> 'KnuthSparseMatrix':
        return matrix.convert(StorageKind.KNUTH)

    @classmethod
    def identity(cls, order: int) -> 'KnuthSparseMatrix':
        return cls.of_indexed(order, order, ((i, i, 1.0) for i in range(order)))

    def validate(self) -> None:
        """Check link symmetry, ordering and counts (raises ``PolymatError``)."""
        self.storage.validate()
