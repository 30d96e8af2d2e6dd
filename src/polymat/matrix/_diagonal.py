"""
Diagonal Matrix

``DiagonalMatrix`` stores only its main diagonal. Algorithms specialized
here touch ``min(rows, cols)`` values; mixed-kind combinations other than
the row/column scaling products fall back to the generic algorithms.

Results that cannot stay diagonal (inserting or removing rows/columns,
stacking, off-diagonal sub-matrices) are returned as ``SparseMatrix``.
"""

from typing import Optional, Sequence

import numpy as np

from .._errors import NotSquareError, SingularMatrixError, UnsupportedOperationError
from .._kernel import get_provider
from ..storage import DiagonalStorage, StorageKind
from . import _fallback
from ._base import Matrix, register_matrix_type
from ._dispatch import specialize

__all__ = ['DiagonalMatrix']

G = StorageKind.DIAGONAL
D = StorageKind.DENSE


# =============================================================================
# Elementwise
# =============================================================================

@specialize("add", G, G, G)
def add(a, b, result, alias):
    get_provider().add_arrays(a.data, b.data, result.data)


@specialize("subtract", G, G, G)
def subtract(a, b, result, alias):
    get_provider().subtract_arrays(a.data, b.data, result.data)


@specialize("pointwise_multiply", G, G, G)
def pointwise_multiply(a, b, result, alias):
    get_provider().pointwise_multiply_arrays(a.data, b.data, result.data)


@specialize("pointwise_divide", G, G, G)
def pointwise_divide(a, b, result, alias):
    # Off-diagonal 0/0 is NaN, which a diagonal storage drops
    get_provider().pointwise_divide_arrays(a.data, b.data, result.data)


@specialize("pointwise_modulus", G, G, G)
def pointwise_modulus(a, b, result, alias):
    with np.errstate(divide='ignore', invalid='ignore'):
        np.mod(a.data, b.data, out=result.data)


@specialize("pointwise_remainder", G, G, G)
def pointwise_remainder(a, b, result, alias):
    with np.errstate(divide='ignore', invalid='ignore'):
        np.fmod(a.data, b.data, out=result.data)


@specialize("scale", G, G)
def scale(a, result, alias, alpha):
    get_provider().scale_array(alpha, a.data, result.data)


@specialize("negate", G, G)
def negate(a, result, alias):
    get_provider().scale_array(-1.0, a.data, result.data)


@specialize("modulus", G, G)
def modulus(a, result, alias, divisor):
    if divisor == 0.0:
        result.data.fill(np.nan)
        return
    np.mod(a.data, divisor, out=result.data)


@specialize("remainder", G, G)
def remainder(a, result, alias, divisor):
    if divisor == 0.0:
        result.data.fill(np.nan)
        return
    np.fmod(a.data, divisor, out=result.data)


@specialize("add_scalar", G, D)
def add_scalar(a, result, alias, scalar):
    result.data.fill(scalar)
    n = a.data.shape[0]
    idx = np.arange(n)
    result.matrix[idx, idx] += a.data


@specialize("transpose", G, G)
def transpose(a, result, alias):
    if result is not a:
        result.data[:] = a.data


@specialize("lower_triangle", G, G)
@specialize("upper_triangle", G, G)
def keep_diagonal(a, result, alias):
    if result is not a:
        result.data[:] = a.data


@specialize("strictly_lower_triangle", G, G)
@specialize("strictly_upper_triangle", G, G)
def drop_diagonal(a, result, alias):
    result.data.fill(0.0)


# =============================================================================
# Products
# =============================================================================

def _diagonal_product(a, b, result):
    n = min(a.data.shape[0], b.data.shape[0])
    out = np.zeros(result.data.shape[0], dtype=np.float64)
    out[:n] = a.data[:n] * b.data[:n]
    result.data[:] = out


@specialize("multiply", G, G, G)
def multiply(a, b, result, alias):
    _diagonal_product(a, b, result)


@specialize("transpose_and_multiply", G, G, G)
def transpose_and_multiply(a, b, result, alias):
    # The transpose of a diagonal storage holds the same diagonal
    _diagonal_product(a, b, result)


@specialize("transpose_this_and_multiply", G, G, G)
def transpose_this_and_multiply(a, b, result, alias):
    _diagonal_product(a, b, result)


@specialize("multiply", G, D, D)
def scale_rows(a, b, result, alias):
    n = min(a.data.shape[0], b.rows)
    out = np.zeros((result.rows, result.cols), dtype=np.float64)
    out[:n] = a.data[:n, np.newaxis] * b.matrix[:n]
    result.matrix[...] = out


@specialize("multiply", D, G, D)
def scale_columns(a, b, result, alias):
    n = min(b.data.shape[0], a.cols)
    out = np.zeros((result.rows, result.cols), dtype=np.float64)
    out[:, :n] = a.matrix[:, :n] * b.data[:n]
    result.matrix[...] = out


@specialize("multiply_vector", G)
def multiply_vector(a, alias, x, y):
    n = a.data.shape[0]
    out = np.zeros(a.rows, dtype=np.float64)
    out[:n] = a.data * x.values[:n]
    y.values[:] = out


@specialize("left_multiply_vector", G)
def left_multiply_vector(a, alias, x, y):
    n = a.data.shape[0]
    out = np.zeros(a.cols, dtype=np.float64)
    out[:n] = a.data * x.values[:n]
    y.values[:] = out


@specialize("kronecker_product", G, G, G)
def kronecker_product(a, b, result, alias):
    if b.rows != b.cols:
        # Products leave the diagonal; the generic algorithm rejects them cell by cell
        _fallback.kronecker_product(a, b, result, alias)
        return
    result.data[:] = np.kron(a.data, b.data)


# =============================================================================
# Norms and Queries
# =============================================================================

def _largest_absolute(a) -> float:
    return float(np.abs(a.data).max()) if a.data.shape[0] else 0.0


@specialize("l1_norm", G)
def l1_norm(a, alias):
    return _largest_absolute(a)


@specialize("infinity_norm", G)
def infinity_norm(a, alias):
    return _largest_absolute(a)


@specialize("frobenius_norm", G)
def frobenius_norm(a, alias):
    return float(np.sqrt(np.dot(a.data, a.data)))


@specialize("trace", G)
def trace(a, alias):
    return float(a.data.sum())


@specialize("is_symmetric", G)
def is_symmetric(a, alias):
    return a.rows == a.cols


# =============================================================================
# DiagonalMatrix
# =============================================================================

@register_matrix_type
class DiagonalMatrix(Matrix):
    """
    Matrix whose only nonzero cells lie on the main diagonal.

    Writing a nonzero value off the diagonal raises
    ``InvalidDiagonalWriteError``; writing zero there is a no-op.

    Example:
        >>> m = DiagonalMatrix.identity(4)
        >>> m.trace()
        4.0
        >>> m.inverse() == m
        True
    """

    kind = StorageKind.DIAGONAL

    def __init__(self, rows: int, cols: Optional[int] = None):
        super().__init__(DiagonalStorage(rows, rows if cols is None else cols))

    @classmethod
    def of_diagonal(cls, values, rows: Optional[int] = None,
                    cols: Optional[int] = None) -> 'DiagonalMatrix':
        """Square (or ``rows x cols``) matrix with ``values`` on the diagonal."""
        d = np.array(values, dtype=np.float64).ravel()
        rows = d.shape[0] if rows is None else rows
        cols = rows if cols is None else cols
        return Matrix.of_storage(DiagonalStorage.of_diagonal(rows, cols, d))

    @classmethod
    def of_array(cls, array) -> 'DiagonalMatrix':
        """Copy a 2-D array whose off-diagonal cells are zero."""
        return Matrix.of_storage(DiagonalStorage.of_array(array))

    @classmethod
    def wrap(cls, data: np.ndarray, rows: int, cols: int) -> 'DiagonalMatrix':
        """Borrow a float64 buffer of length min(rows, cols) as the diagonal."""
        return Matrix.of_storage(DiagonalStorage.wrap(data, rows, cols))

    @classmethod
    def create(cls, rows: int, cols: int, value: float) -> 'DiagonalMatrix':
        """Every diagonal cell equal to ``value``."""
        return Matrix.of_storage(DiagonalStorage.of_value(rows, cols, value))

    @classmethod
    def of_matrix(cls, matrix: Matrix) -> 'DiagonalMatrix':
        return matrix.convert(StorageKind.DIAGONAL)

    @classmethod
    def identity(cls, order: int) -> 'DiagonalMatrix':
        return cls.create(order, order, 1.0)

    @property
    def values(self) -> np.ndarray:
        """The diagonal buffer (writes go through)."""
        return self.storage.data

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def _sub_matrix_kind(self, row_index, column_index):
        return StorageKind.DIAGONAL if row_index == column_index else StorageKind.CSR

    def permute_rows(self, permutation: Sequence[int]) -> None:
        """Always raises: a permuted diagonal is not diagonal.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise UnsupportedOperationError("Permutation is not supported on diagonal storage")

    def permute_columns(self, permutation: Sequence[int]) -> None:
        raise UnsupportedOperationError("Permutation is not supported on diagonal storage")

    # -------------------------------------------------------------------------
    # Decomposition-free Algebra
    # -------------------------------------------------------------------------

    def _require_square(self, operation: str) -> None:
        if not self.is_square:
            raise NotSquareError(
                f"{operation} requires a square matrix, got {self.row_count}x{self.column_count}"
            )

    def determinant(self) -> float:
        """Product of the diagonal entries.

        Raises:
            NotSquareError: If the matrix is not square.
        """
        self._require_square("determinant")
        return float(np.prod(self.storage.data))

    def inverse(self) -> 'DiagonalMatrix':
        """Reciprocal of every diagonal entry.

        Raises:
            NotSquareError: If the matrix is not square.
            SingularMatrixError: If any diagonal entry is zero.
        """
        self._require_square("inverse")
        data = self.storage.data
        if np.any(data == 0.0):
            raise SingularMatrixError("Diagonal matrix has a zero entry and cannot be inverted")
        return Matrix.of_storage(DiagonalStorage(self.row_count, self.column_count, 1.0 / data))

    def l2_norm(self) -> float:
        """Largest absolute diagonal entry."""
        return _largest_absolute(self.storage)

    def condition_number(self) -> float:
        """Ratio of the largest to the smallest absolute diagonal entry.

        Returns ``inf`` when an entry is zero.
        """
        d = np.abs(self.storage.data)
        if d.shape[0] == 0:
            return 0.0
        smallest = d.min()
        if smallest == 0.0:
            return float('inf')
        return float(d.max() / smallest)
