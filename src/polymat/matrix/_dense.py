"""
Dense Matrix

``DenseMatrix`` and the dense specializations. Every specialization here
works on the flat column-major buffers of ``DenseStorage`` and delegates
the arithmetic to the active ``LinearAlgebraProvider``.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from .._kernel import Norm, get_provider
from ..storage import DenseStorage, StorageKind, Triple
from ._base import Matrix, register_matrix_type
from ._dispatch import ResultAlias, specialize

__all__ = ['DenseMatrix']

D = StorageKind.DENSE


# =============================================================================
# Elementwise
# =============================================================================

@specialize("add", D, D, D)
def add(a, b, result, alias):
    get_provider().add_arrays(a.data, b.data, result.data)


@specialize("subtract", D, D, D)
def subtract(a, b, result, alias):
    get_provider().subtract_arrays(a.data, b.data, result.data)


@specialize("pointwise_multiply", D, D, D)
def pointwise_multiply(a, b, result, alias):
    get_provider().pointwise_multiply_arrays(a.data, b.data, result.data)


@specialize("pointwise_divide", D, D, D)
def pointwise_divide(a, b, result, alias):
    get_provider().pointwise_divide_arrays(a.data, b.data, result.data)


@specialize("pointwise_modulus", D, D, D)
def pointwise_modulus(a, b, result, alias):
    with np.errstate(divide='ignore', invalid='ignore'):
        np.mod(a.data, b.data, out=result.data)


@specialize("pointwise_remainder", D, D, D)
def pointwise_remainder(a, b, result, alias):
    with np.errstate(divide='ignore', invalid='ignore'):
        np.fmod(a.data, b.data, out=result.data)


def _accumulate(target, source, sign):
    rows = target.rows
    for row, col, value in source.enumerate_nonzero_indexed():
        target.data[col * rows + row] += sign * value


# The non-dense operand can never be the (dense) result, so only the dense
# operand may alias it.

@specialize("add", D, None, D)
def add_dense_other(a, b, result, alias):
    if alias is not ResultAlias.THIS:
        result.data[:] = a.data
    _accumulate(result, b, 1.0)


@specialize("add", None, D, D)
def add_other_dense(a, b, result, alias):
    if alias is not ResultAlias.OTHER:
        result.data[:] = b.data
    _accumulate(result, a, 1.0)


@specialize("subtract", D, None, D)
def subtract_dense_other(a, b, result, alias):
    if alias is not ResultAlias.THIS:
        result.data[:] = a.data
    _accumulate(result, b, -1.0)


@specialize("subtract", None, D, D)
def subtract_other_dense(a, b, result, alias):
    get_provider().scale_array(-1.0, b.data, result.data)
    _accumulate(result, a, 1.0)


# =============================================================================
# Unary
# =============================================================================

@specialize("scale", D, D)
def scale(a, result, alias, alpha):
    get_provider().scale_array(alpha, a.data, result.data)


@specialize("negate", D, D)
def negate(a, result, alias):
    get_provider().scale_array(-1.0, a.data, result.data)


@specialize("add_scalar", D, D)
def add_scalar(a, result, alias, scalar):
    np.add(a.data, scalar, out=result.data)


@specialize("modulus", D, D)
def modulus(a, result, alias, divisor):
    if divisor == 0.0:
        result.data.fill(np.nan)
        return
    np.mod(a.data, divisor, out=result.data)


@specialize("remainder", D, D)
def remainder(a, result, alias, divisor):
    if divisor == 0.0:
        result.data.fill(np.nan)
        return
    np.fmod(a.data, divisor, out=result.data)


@specialize("transpose", D, D)
def transpose(a, result, alias):
    # flatten always copies, so result may be a
    result.data[:] = a.matrix.T.flatten(order='F')


@specialize("lower_triangle", D, D)
def lower_triangle(a, result, alias):
    result.data[:] = np.tril(a.matrix).ravel(order='F')


@specialize("upper_triangle", D, D)
def upper_triangle(a, result, alias):
    result.data[:] = np.triu(a.matrix).ravel(order='F')


@specialize("strictly_lower_triangle", D, D)
def strictly_lower_triangle(a, result, alias):
    result.data[:] = np.tril(a.matrix, -1).ravel(order='F')


@specialize("strictly_upper_triangle", D, D)
def strictly_upper_triangle(a, result, alias):
    result.data[:] = np.triu(a.matrix, 1).ravel(order='F')


# =============================================================================
# Products
# =============================================================================

def _gemm(transpose_a, transpose_b, a_data, rows_a, cols_a, b_data, rows_b, cols_b, result, alias):
    out = result.data if alias is ResultAlias.DISTINCT else np.empty_like(result.data)
    get_provider().matrix_multiply_with_update(
        transpose_a, transpose_b, 1.0,
        a_data, rows_a, cols_a, b_data, rows_b, cols_b,
        0.0, out,
    )
    if out is not result.data:
        result.data[:] = out


def _column_major(storage) -> np.ndarray:
    if isinstance(storage, DenseStorage):
        return storage.data
    return storage.to_array().ravel(order='F')


@specialize("multiply", D, D, D)
def multiply(a, b, result, alias):
    _gemm(False, False, a.data, a.rows, a.cols, b.data, b.rows, b.cols, result, alias)


@specialize("multiply", D, None, D)
def multiply_dense_other(a, b, result, alias):
    _gemm(False, False, a.data, a.rows, a.cols, _column_major(b), b.rows, b.cols,
          result, alias)


@specialize("multiply", None, D, D)
def multiply_other_dense(a, b, result, alias):
    _gemm(False, False, _column_major(a), a.rows, a.cols, b.data, b.rows, b.cols,
          result, alias)


@specialize("transpose_and_multiply", D, D, D)
def transpose_and_multiply(a, b, result, alias):
    _gemm(False, True, a.data, a.rows, a.cols, b.data, b.rows, b.cols, result, alias)


@specialize("transpose_this_and_multiply", D, D, D)
def transpose_this_and_multiply(a, b, result, alias):
    _gemm(True, False, a.data, a.rows, a.cols, b.data, b.rows, b.cols, result, alias)


@specialize("multiply_vector", D)
def multiply_vector(a, alias, x, y):
    out = np.empty(a.rows, dtype=np.float64)
    get_provider().matrix_multiply_with_update(
        False, False, 1.0, a.data, a.rows, a.cols, x.values, a.cols, 1, 0.0, out,
    )
    y.values[:] = out


@specialize("left_multiply_vector", D)
def left_multiply_vector(a, alias, x, y):
    out = np.empty(a.cols, dtype=np.float64)
    get_provider().matrix_multiply_with_update(
        True, False, 1.0, a.data, a.rows, a.cols, x.values, a.rows, 1, 0.0, out,
    )
    y.values[:] = out


@specialize("kronecker_product", D, D, D)
def kronecker_product(a, b, result, alias):
    result.assign_array(np.kron(a.matrix, b.matrix))


# =============================================================================
# Norms and Queries
# =============================================================================

@specialize("l1_norm", D)
def l1_norm(a, alias):
    return get_provider().matrix_norm(Norm.ONE, a.rows, a.cols, a.data)


@specialize("infinity_norm", D)
def infinity_norm(a, alias):
    return get_provider().matrix_norm(Norm.INFINITY, a.rows, a.cols, a.data)


@specialize("frobenius_norm", D)
def frobenius_norm(a, alias):
    return get_provider().matrix_norm(Norm.FROBENIUS, a.rows, a.cols, a.data)


@specialize("trace", D)
def trace(a, alias):
    return float(np.trace(a.matrix))


@specialize("is_symmetric", D)
def is_symmetric(a, alias):
    if a.rows != a.cols:
        return False
    m = a.matrix
    upper = np.triu_indices(a.rows, 1)
    return bool(np.array_equal(m[upper], m.T[upper]))


# =============================================================================
# DenseMatrix
# =============================================================================

@register_matrix_type
class DenseMatrix(Matrix):
    """
    Matrix with every cell materialized in a column-major buffer.

    Example:
        >>> m = DenseMatrix.of_array([[1, 2], [3, 4]])
        >>> m.storage.data
        array([1., 3., 2., 4.])
        >>> (m @ m)[1, 1]
        22.0
    """

    kind = StorageKind.DENSE

    def __init__(self, rows: int, cols: Optional[int] = None):
        super().__init__(DenseStorage(rows, rows if cols is None else cols))

    @classmethod
    def of_array(cls, array) -> 'DenseMatrix':
        """Copy a 2-D array-like."""
        return Matrix.of_storage(DenseStorage.of_array(array))

    @classmethod
    def wrap(cls, data: np.ndarray, rows: int, cols: int) -> 'DenseMatrix':
        """Borrow a flat column-major float64 buffer without copying."""
        return Matrix.of_storage(DenseStorage.wrap(data, rows, cols))

    @classmethod
    def create(cls, rows: int, cols: int, value: float = 0.0) -> 'DenseMatrix':
        """Matrix with every cell equal to ``value``."""
        return Matrix.of_storage(DenseStorage.of_value(rows, cols, value))

    @classmethod
    def of_column_major(cls, rows: int, cols: int, values) -> 'DenseMatrix':
        return Matrix.of_storage(DenseStorage.of_column_major(rows, cols, values))

    @classmethod
    def of_row_major(cls, rows: int, cols: int, values) -> 'DenseMatrix':
        return Matrix.of_storage(DenseStorage.of_row_major(rows, cols, values))

    @classmethod
    def of_rows(cls, rows: Sequence[Sequence[float]]) -> 'DenseMatrix':
        return cls.of_array(np.array(rows, dtype=np.float64, ndmin=2))

    @classmethod
    def of_columns(cls, columns: Sequence[Sequence[float]]) -> 'DenseMatrix':
        return cls.of_array(np.array(columns, dtype=np.float64, ndmin=2).T)

    @classmethod
    def of_indexed(cls, rows: int, cols: int, triples: Iterable[Triple]) -> 'DenseMatrix':
        """Build from (row, col, value) triples; later triples overwrite earlier ones."""
        storage = DenseStorage(rows, cols)
        m = storage.matrix
        for row, col, value in triples:
            m[row, col] = value
        return Matrix.of_storage(storage)

    @classmethod
    def of_diagonal(cls, rows: int, cols: int, values) -> 'DenseMatrix':
        storage = DenseStorage(rows, cols)
        d = np.asarray(values, dtype=np.float64).ravel()
        np.fill_diagonal(storage.matrix, d)
        return Matrix.of_storage(storage)

    @classmethod
    def of_matrix(cls, matrix: Matrix) -> 'DenseMatrix':
        """Dense copy of any matrix."""
        return matrix.convert(StorageKind.DENSE)

    @classmethod
    def identity(cls, order: int) -> 'DenseMatrix':
        return cls.of_diagonal(order, order, np.ones(order))

    @property
    def values(self) -> np.ndarray:
        """2-D view of the buffer (writes go through)."""
        return self.storage.matrix
