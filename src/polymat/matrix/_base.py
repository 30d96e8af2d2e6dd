"""
Matrix Facade

``Matrix`` is the single algebraic surface shared by every storage kind.
Each matrix owns exactly one storage; its shape is fixed at construction.

Every operation follows the same steps:

1. Validate arguments (None checks, shape agreement, index ranges).
2. Allocate a result when none is supplied, choosing its storage kind
   from the operands' kinds (see ``combine_kinds``).
3. Classify how the result aliases the operands (``ResultAlias``).
4. Dispatch on the operands' storage kinds to a specialized algorithm, or
   to the generic cell-by-cell algorithm when none is registered.

Type Hierarchy:

    Matrix
    ├── DenseMatrix        - StorageKind.DENSE
    ├── DiagonalMatrix     - StorageKind.DIAGONAL
    ├── SparseMatrix       - StorageKind.CSR
    └── KnuthSparseMatrix  - StorageKind.KNUTH

Example:
    >>> a = SparseMatrix.of_array([[1, 0], [0, 2]])
    >>> b = DenseMatrix.of_array([[1, 1], [1, 1]])
    >>> c = a + b          # DenseMatrix, since one operand is dense
    >>> c[0, 0]
    2.0
    >>> (a @ DiagonalMatrix.identity(2)) == a
    True
"""

from numbers import Number
from typing import Dict, Iterator, Optional, Sequence, Tuple, Type

import numpy as np

from .._config import config
from .._errors import (
    NotSquareError,
    UnsupportedOperationError,
    IndexOutOfRangeError,
    InvalidDiagonalWriteError,
    check_index,
    check_not_none,
    dimensions_dont_match,
)
from .._vector import DenseVector
from ..storage import MatrixStorage, StorageInfo, StorageKind, Triple, storage_type
from . import _dispatch
from ._dispatch import ResultAlias, alias_of

__all__ = [
    'Matrix',
    'combine_kinds',
    'matrix_type',
    'register_matrix_type',
]


# =============================================================================
# Matrix Type Registry
# =============================================================================

_MATRIX_TYPES: Dict[StorageKind, Type['Matrix']] = {}


def register_matrix_type(cls):
    """Class decorator binding a Matrix subclass to its storage kind."""
    _MATRIX_TYPES[cls.kind] = cls
    return cls


def matrix_type(kind: StorageKind) -> Type['Matrix']:
    """Matrix subclass for ``kind``."""
    return _MATRIX_TYPES[StorageKind(kind)]


def combine_kinds(*kinds: StorageKind) -> StorageKind:
    """Storage kind of a freshly allocated result.

    Rules:
        - every operand has the same kind: that kind
        - any operand is dense: dense
        - otherwise: CSR
    """
    first = kinds[0]
    if all(k is first for k in kinds):
        return first
    if StorageKind.DENSE in kinds:
        return StorageKind.DENSE
    return StorageKind.CSR


def _is_scalar(value) -> bool:
    return isinstance(value, (Number, np.number)) and not isinstance(value, bool)


def _as_vector(value, name: str) -> DenseVector:
    check_not_none(value, name)
    if isinstance(value, DenseVector):
        return value
    return DenseVector.from_array(value)


# =============================================================================
# Matrix
# =============================================================================

class Matrix:
    """
    Storage-polymorphic float64 matrix.

    Attributes:
        storage: The owned ``MatrixStorage``.

    Note:
        Equality and hashing are defined over cell values: a dense and a
        sparse matrix holding the same values compare equal.
    """

    kind: StorageKind = None

    # NumPy binary operators return NotImplemented so the reflected methods run
    __array_ufunc__ = None

    def __init__(self, storage: MatrixStorage):
        check_not_none(storage, "storage")
        self.storage = storage

    # =========================================================================
    # Construction
    # =========================================================================

    @staticmethod
    def of_storage(storage: MatrixStorage) -> 'Matrix':
        """Wrap ``storage`` in the matrix class matching its kind."""
        check_not_none(storage, "storage")
        cls = matrix_type(storage.kind)
        matrix = cls.__new__(cls)
        Matrix.__init__(matrix, storage)
        return matrix

    @staticmethod
    def build(kind: StorageKind, rows: int, cols: int) -> 'Matrix':
        """Create an all-zero matrix of the given kind and shape."""
        return Matrix.of_storage(storage_type(kind)(rows, cols))

    def create_like(self, rows: Optional[int] = None, cols: Optional[int] = None) -> 'Matrix':
        """Create an all-zero matrix of the same kind (default: same shape)."""
        return Matrix.build(self.kind,
                            self.row_count if rows is None else rows,
                            self.column_count if cols is None else cols)

    def copy(self) -> 'Matrix':
        """Deep copy with the same storage kind."""
        return Matrix.of_storage(self.storage.copy())

    clone = copy

    def copy_to(self, target: 'Matrix') -> None:
        """Copy every cell into ``target`` (same shape, any kind)."""
        check_not_none(target, "target")
        self.storage.copy_to(target.storage)

    def convert(self, kind: StorageKind) -> 'Matrix':
        """Copy into a new matrix backed by ``kind``."""
        kind = StorageKind(kind)
        if kind is self.kind:
            return self.copy()
        result = Matrix.build(kind, self.row_count, self.column_count)
        self.storage.copy_to(result.storage)
        return result

    def to_dense(self) -> 'Matrix':
        return self.convert(StorageKind.DENSE)

    def to_sparse(self) -> 'Matrix':
        return self.convert(StorageKind.CSR)

    def to_knuth(self) -> 'Matrix':
        return self.convert(StorageKind.KNUTH)

    # =========================================================================
    # Shape & Metadata
    # =========================================================================

    @property
    def row_count(self) -> int:
        return self.storage.rows

    @property
    def column_count(self) -> int:
        return self.storage.cols

    @property
    def shape(self) -> Tuple[int, int]:
        return self.storage.shape

    @property
    def is_square(self) -> bool:
        return self.storage.is_square

    @property
    def info(self) -> StorageInfo:
        return self.storage.info

    @property
    def nonzero_count(self) -> int:
        """Number of nonzero cells."""
        return self.storage.nonzero_count

    # =========================================================================
    # Indexing
    # =========================================================================

    def _check_cell(self, row: int, col: int) -> None:
        check_index(row, self.row_count, "row")
        check_index(col, self.column_count, "column")

    def __getitem__(self, key) -> float:
        row, col = key
        self._check_cell(row, col)
        return self.storage.at(row, col)

    def __setitem__(self, key, value: float) -> None:
        row, col = key
        self._check_cell(row, col)
        self.storage.set_at(row, col, float(value))

    def at(self, row: int, col: int, value: Optional[float] = None):
        """Unchecked access: read cell (row, col), or write it when ``value`` is given."""
        if value is None:
            return self.storage.at(row, col)
        self.storage.set_at(row, col, float(value))

    # =========================================================================
    # Validation Helpers
    # =========================================================================

    def _check_result(self, result: 'Matrix', rows: int, cols: int, operation: str) -> None:
        if not isinstance(result, Matrix):
            raise TypeError(f"{operation}: result must be a Matrix, got {type(result).__name__}")
        if result.shape != (rows, cols):
            raise dimensions_dont_match((rows, cols), result.shape, operation=operation)

    def _check_same_shape(self, other: 'Matrix', operation: str) -> None:
        check_not_none(other, "other")
        if not isinstance(other, Matrix):
            raise TypeError(f"{operation}: expected a Matrix, got {type(other).__name__}")
        if other.shape != self.shape:
            raise dimensions_dont_match(self.shape, other.shape, operation=operation)

    def _check_writable(self, cells: Iterator[Triple]) -> None:
        """Reject writes the storage cannot hold before any cell changes."""
        storage = self.storage
        if storage.is_fully_mutable:
            return
        for row, col, value in cells:
            if value != 0.0 and value == value and not storage.is_mutable_at(row, col):
                raise InvalidDiagonalWriteError(
                    f"Cannot set off-diagonal element ({row}, {col}) to {value}"
                )

    # =========================================================================
    # Dispatch Helpers
    # =========================================================================

    def _binary(self, operation: str, other: 'Matrix', result: Optional['Matrix'],
                rows: int, cols: int, kind: Optional[StorageKind] = None) -> 'Matrix':
        if result is None:
            result = Matrix.build(kind or combine_kinds(self.kind, other.kind), rows, cols)
        else:
            self._check_result(result, rows, cols, operation)
        alias = alias_of(self.storage, other.storage, result.storage)
        _dispatch.run(operation, (self.storage, other.storage, result.storage), alias)
        return result

    def _unary(self, operation: str, result: Optional['Matrix'], *args,
               shape: Optional[Tuple[int, int]] = None,
               kind: Optional[StorageKind] = None) -> 'Matrix':
        rows, cols = shape or self.shape
        if result is None:
            result = Matrix.build(kind or self.kind, rows, cols)
        else:
            self._check_result(result, rows, cols, operation)
        alias = alias_of(self.storage, None, result.storage)
        _dispatch.run(operation, (self.storage, result.storage), alias, *args)
        return result

    def _query(self, operation: str):
        return _dispatch.run(operation, (self.storage,), ResultAlias.DISTINCT)

    def _vector_product(self, operation: str, vector, result, in_size: int, out_size: int) -> DenseVector:
        x = _as_vector(vector, "vector")
        if x.count != in_size:
            raise dimensions_dont_match((in_size, 1), (x.count, 1), operation=operation)
        if result is None:
            result = DenseVector(out_size)
        elif not isinstance(result, DenseVector) or result.count != out_size:
            raise dimensions_dont_match((out_size, 1), (getattr(result, 'count', -1), 1),
                                        operation=operation)
        alias = ResultAlias.OTHER if result is x else ResultAlias.DISTINCT
        _dispatch.run(operation, (self.storage,), alias, x, result)
        return result

    # =========================================================================
    # Arithmetic
    # =========================================================================

    def add(self, other, result: Optional['Matrix'] = None) -> 'Matrix':
        """Add a matrix or a scalar.

        Args:
            other: Matrix of the same shape, or a scalar added to every cell.
            result: Optional destination (may be ``self`` or ``other``).

        Returns:
            The result matrix.

        Raises:
            DimensionMismatchError: If shapes differ.
        """
        if _is_scalar(other):
            return self._add_scalar(float(other), result)
        self._check_same_shape(other, "add")
        return self._binary("add", other, result, *self.shape)

    def subtract(self, other, result: Optional['Matrix'] = None) -> 'Matrix':
        """Subtract a matrix or a scalar (see ``add``)."""
        if _is_scalar(other):
            return self._add_scalar(-float(other), result)
        self._check_same_shape(other, "subtract")
        return self._binary("subtract", other, result, *self.shape)

    def _add_scalar(self, scalar: float, result: Optional['Matrix']) -> 'Matrix':
        kind = StorageKind.DENSE if self.kind is StorageKind.DIAGONAL else self.kind
        return self._unary("add_scalar", result, scalar, kind=kind)

    def negate(self, result: Optional['Matrix'] = None) -> 'Matrix':
        """Negate every cell."""
        return self._unary("negate", result)

    def multiply(self, other, result=None):
        """Multiply by a scalar, a matrix or a vector.

        Args:
            other: Scalar, ``Matrix`` with ``row_count == self.column_count``,
                or a vector (``DenseVector`` or 1-D array-like) of length
                ``self.column_count``.
            result: Optional destination matrix or ``DenseVector``.

        Returns:
            ``Matrix`` for scalar and matrix operands, ``DenseVector`` for
            vector operands.

        Raises:
            DimensionMismatchError: If the inner dimensions differ.
        """
        if _is_scalar(other):
            return self._unary("scale", result, float(other))
        if isinstance(other, Matrix):
            if self.column_count != other.row_count:
                raise dimensions_dont_match(self.shape, other.shape, operation="multiply")
            return self._binary("multiply", other, result, self.row_count, other.column_count)
        return self._vector_product("multiply_vector", other, result,
                                    self.column_count, self.row_count)

    def divide(self, scalar: float, result: Optional['Matrix'] = None) -> 'Matrix':
        """Divide every cell by ``scalar``.

        Raises:
            ZeroDivisionError: If ``scalar`` is zero.
        """
        return self._unary("scale", result, 1.0 / float(scalar))

    def left_multiply(self, vector, result: Optional[DenseVector] = None) -> DenseVector:
        """Compute ``vector^T * self``."""
        return self._vector_product("left_multiply_vector", vector, result,
                                    self.row_count, self.column_count)

    def transpose_and_multiply(self, other: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Compute ``self * other^T``."""
        check_not_none(other, "other")
        if self.column_count != other.column_count:
            raise dimensions_dont_match(self.shape, other.shape, operation="transpose_and_multiply")
        return self._binary("transpose_and_multiply", other, result, self.row_count, other.row_count)

    def transpose_this_and_multiply(self, other, result=None):
        """Compute ``self^T * other`` for a matrix or vector ``other``."""
        check_not_none(other, "other")
        if isinstance(other, Matrix):
            if self.row_count != other.row_count:
                raise dimensions_dont_match(self.shape, other.shape,
                                            operation="transpose_this_and_multiply")
            return self._binary("transpose_this_and_multiply", other, result,
                                self.column_count, other.column_count)
        return self.left_multiply(other, result)

    def transpose(self, result: Optional['Matrix'] = None) -> 'Matrix':
        """Transpose into a new matrix (or into ``result``)."""
        return self._unary("transpose", result, shape=(self.column_count, self.row_count))

    @property
    def T(self) -> 'Matrix':
        return self.transpose()

    def pointwise_multiply(self, other: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Elementwise product."""
        self._check_same_shape(other, "pointwise_multiply")
        return self._binary("pointwise_multiply", other, result, *self.shape)

    def pointwise_divide(self, other: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Elementwise quotient (IEEE semantics for zero divisors)."""
        self._check_same_shape(other, "pointwise_divide")
        return self._binary("pointwise_divide", other, result, *self.shape)

    def pointwise_modulus(self, other: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Elementwise canonical modulus (sign follows the divisor)."""
        self._check_same_shape(other, "pointwise_modulus")
        return self._binary("pointwise_modulus", other, result, *self.shape)

    def pointwise_remainder(self, other: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Elementwise remainder (sign follows the dividend)."""
        self._check_same_shape(other, "pointwise_remainder")
        return self._binary("pointwise_remainder", other, result, *self.shape)

    def _both_diagonal(self, other: 'Matrix') -> bool:
        return self.kind is StorageKind.DIAGONAL and other.kind is StorageKind.DIAGONAL

    def modulus(self, divisor: float, result: Optional['Matrix'] = None) -> 'Matrix':
        """Canonical modulus of every cell (sign follows the divisor)."""
        return self._unary("modulus", result, float(divisor))

    def remainder(self, divisor: float, result: Optional['Matrix'] = None) -> 'Matrix':
        """Remainder of every cell (sign follows the dividend)."""
        return self._unary("remainder", result, float(divisor))

    def kronecker_product(self, other: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Kronecker product ``self (x) other``."""
        check_not_none(other, "other")
        kind = combine_kinds(self.kind, other.kind)
        if kind is StorageKind.DIAGONAL and not other.is_square:
            kind = StorageKind.CSR
        return self._binary("kronecker_product", other, result,
                            self.row_count * other.row_count,
                            self.column_count * other.column_count, kind=kind)

    # =========================================================================
    # Norms & Queries
    # =========================================================================

    def l1_norm(self) -> float:
        """Maximum absolute column sum."""
        return float(self._query("l1_norm"))

    def infinity_norm(self) -> float:
        """Maximum absolute row sum."""
        return float(self._query("infinity_norm"))

    def frobenius_norm(self) -> float:
        """Square root of the sum of squared cells."""
        return float(self._query("frobenius_norm"))

    def l2_norm(self) -> float:
        """Largest singular value.

        Raises:
            UnsupportedOperationError: Requires a singular value decomposition.
        """
        raise UnsupportedOperationError(
            f"l2_norm requires a singular value decomposition ({self.kind.value} storage)"
        )

    def trace(self) -> float:
        """Sum of the diagonal.

        Raises:
            NotSquareError: If the matrix is not square.
        """
        if not self.is_square:
            raise NotSquareError(f"trace requires a square matrix, got {self.row_count}x{self.column_count}")
        return float(self._query("trace"))

    def is_symmetric(self) -> bool:
        return bool(self._query("is_symmetric"))

    def determinant(self) -> float:
        """Determinant.

        Raises:
            UnsupportedOperationError: Only diagonal storage computes a
                determinant without a decomposition.
        """
        raise UnsupportedOperationError(
            f"determinant requires a matrix decomposition ({self.kind.value} storage)"
        )

    def inverse(self) -> 'Matrix':
        """Inverse.

        Raises:
            UnsupportedOperationError: Only diagonal storage inverts without
                a decomposition.
        """
        raise UnsupportedOperationError(
            f"inverse requires a matrix decomposition ({self.kind.value} storage)"
        )

    def condition_number(self) -> float:
        raise UnsupportedOperationError(
            f"condition_number requires a singular value decomposition ({self.kind.value} storage)"
        )

    # =========================================================================
    # Triangles
    # =========================================================================

    def lower_triangle(self, result: Optional['Matrix'] = None) -> 'Matrix':
        """Cells on or below the diagonal; the rest zero."""
        return self._unary("lower_triangle", result)

    def upper_triangle(self, result: Optional['Matrix'] = None) -> 'Matrix':
        """Cells on or above the diagonal; the rest zero."""
        return self._unary("upper_triangle", result)

    def strictly_lower_triangle(self, result: Optional['Matrix'] = None) -> 'Matrix':
        """Cells strictly below the diagonal; the rest zero."""
        return self._unary("strictly_lower_triangle", result)

    def strictly_upper_triangle(self, result: Optional['Matrix'] = None) -> 'Matrix':
        """Cells strictly above the diagonal; the rest zero."""
        return self._unary("strictly_upper_triangle", result)

    # =========================================================================
    # Rows, Columns, Diagonal
    # =========================================================================

    def row(self, index: int) -> DenseVector:
        """Copy of row ``index``."""
        check_index(index, self.row_count, "row")
        return DenseVector.from_array(self.storage.row_values(index))

    def column(self, index: int) -> DenseVector:
        """Copy of column ``index``."""
        check_index(index, self.column_count, "column")
        return DenseVector.from_array(self.storage.column_values(index))

    def set_row(self, index: int, values) -> None:
        """Overwrite row ``index`` with ``values`` (length column_count)."""
        check_index(index, self.row_count, "row")
        x = _as_vector(values, "values")
        if x.count != self.column_count:
            raise dimensions_dont_match((self.column_count, 1), (x.count, 1), operation="set_row")
        cells = [(index, c, float(v)) for c, v in enumerate(x.values.tolist())]
        self._check_writable(iter(cells))
        for row, col, value in cells:
            self.storage.set_at(row, col, value)

    def set_column(self, index: int, values) -> None:
        """Overwrite column ``index`` with ``values`` (length row_count)."""
        check_index(index, self.column_count, "column")
        x = _as_vector(values, "values")
        if x.count != self.row_count:
            raise dimensions_dont_match((self.row_count, 1), (x.count, 1), operation="set_column")
        cells = [(r, index, float(v)) for r, v in enumerate(x.values.tolist())]
        self._check_writable(iter(cells))
        for row, col, value in cells:
            self.storage.set_at(row, col, value)

    def diagonal(self) -> DenseVector:
        """Copy of the main diagonal (length min(rows, cols))."""
        n = min(self.row_count, self.column_count)
        return DenseVector.from_array([self.storage.at(i, i) for i in range(n)])

    def set_diagonal(self, values) -> None:
        """Overwrite the main diagonal."""
        x = _as_vector(values, "values")
        n = min(self.row_count, self.column_count)
        if x.count != n:
            raise dimensions_dont_match((n, 1), (x.count, 1), operation="set_diagonal")
        for i, value in enumerate(x.values.tolist()):
            self.storage.set_at(i, i, value)

    # =========================================================================
    # Clearing
    # =========================================================================

    def clear(self) -> None:
        """Set every cell to zero."""
        self.storage.clear()

    def clear_row(self, index: int) -> None:
        self.clear_rows([index])

    def clear_column(self, index: int) -> None:
        self.clear_columns([index])

    def clear_rows(self, indices: Sequence[int]) -> None:
        for index in indices:
            check_index(index, self.row_count, "row")
        self.storage.clear_rows(list(indices))

    def clear_columns(self, indices: Sequence[int]) -> None:
        for index in indices:
            check_index(index, self.column_count, "column")
        self.storage.clear_columns(list(indices))

    def clear_sub_matrix(self, row_index: int, row_count: int,
                         column_index: int, column_count: int) -> None:
        self._check_range(row_index, row_count, self.row_count, "row")
        self._check_range(column_index, column_count, self.column_count, "column")
        self.storage.clear_sub_matrix(row_index, row_count, column_index, column_count)

    def coerce_zero(self, threshold: float) -> None:
        """Set every cell with ``abs(value) < threshold`` to zero."""
        for row, col, value in list(self.storage.enumerate_nonzero_indexed()):
            if abs(value) < threshold:
                self.storage.set_at(row, col, 0.0)

    # =========================================================================
    # Sub-matrices & Reshaping
    # =========================================================================

    @staticmethod
    def _check_range(start: int, count: int, bound: int, name: str) -> None:
        if count < 1:
            raise IndexOutOfRangeError(f"{name} count must be positive, got {count}")
        if start < 0 or start + count > bound:
            raise IndexOutOfRangeError(
                f"{name} range [{start}, {start + count}) exceeds [0, {bound})"
            )

    def _sub_matrix_kind(self, row_index: int, column_index: int) -> StorageKind:
        return self.kind

    def _shape_changing_kind(self, other: Optional['Matrix'] = None) -> StorageKind:
        """Result kind for insert/remove/stack/append (diagonal becomes CSR)."""
        def promote(kind):
            return StorageKind.CSR if kind is StorageKind.DIAGONAL else kind
        if other is None:
            return promote(self.kind)
        return combine_kinds(promote(self.kind), promote(other.kind))

    def sub_matrix(self, row_index: int, row_count: int,
                   column_index: int, column_count: int) -> 'Matrix':
        """Copy of the block starting at (row_index, column_index)."""
        self._check_range(row_index, row_count, self.row_count, "row")
        self._check_range(column_index, column_count, self.column_count, "column")
        result = Matrix.build(self._sub_matrix_kind(row_index, column_index), row_count, column_count)
        self.storage.copy_sub_matrix_to(result.storage, row_index, 0, row_count,
                                        column_index, 0, column_count)
        return result

    def set_sub_matrix(self, row_index: int, column_index: int, sub_matrix: 'Matrix') -> None:
        """Overwrite the block starting at (row_index, column_index) with ``sub_matrix``."""
        check_not_none(sub_matrix, "sub_matrix")
        self._check_range(row_index, sub_matrix.row_count, self.row_count, "row")
        self._check_range(column_index, sub_matrix.column_count, self.column_count, "column")
        self._check_writable(
            (row_index + r, column_index + c, v)
            for r, c, v in sub_matrix.storage.enumerate_nonzero_indexed()
        )
        sub_matrix.storage.copy_sub_matrix_to(self.storage, 0, row_index, sub_matrix.row_count,
                                              0, column_index, sub_matrix.column_count)

    def _copy_block(self, target: 'Matrix', source_row: int, target_row: int, row_count: int,
                    source_column: int, target_column: int, column_count: int) -> None:
        if row_count > 0 and column_count > 0:
            self.storage.copy_sub_matrix_to(target.storage, source_row, target_row, row_count,
                                            source_column, target_column, column_count)

    def insert_row(self, row_index: int, values) -> 'Matrix':
        """New matrix with ``values`` inserted before row ``row_index``."""
        if row_index < 0 or row_index > self.row_count:
            raise IndexOutOfRangeError(f"row index {row_index} out of range [0, {self.row_count}]")
        x = _as_vector(values, "values")
        if x.count != self.column_count:
            raise dimensions_dont_match((self.column_count, 1), (x.count, 1), operation="insert_row")
        result = Matrix.build(self._shape_changing_kind(), self.row_count + 1, self.column_count)
        cols = self.column_count
        self._copy_block(result, 0, 0, row_index, 0, 0, cols)
        self._copy_block(result, row_index, row_index + 1, self.row_count - row_index, 0, 0, cols)
        for col, value in enumerate(x.values.tolist()):
            result.storage.set_at(row_index, col, value)
        return result

    def insert_column(self, column_index: int, values) -> 'Matrix':
        """New matrix with ``values`` inserted before column ``column_index``."""
        if column_index < 0 or column_index > self.column_count:
            raise IndexOutOfRangeError(
                f"column index {column_index} out of range [0, {self.column_count}]"
            )
        x = _as_vector(values, "values")
        if x.count != self.row_count:
            raise dimensions_dont_match((self.row_count, 1), (x.count, 1), operation="insert_column")
        result = Matrix.build(self._shape_changing_kind(), self.row_count, self.column_count + 1)
        rows = self.row_count
        self._copy_block(result, 0, 0, rows, 0, 0, column_index)
        self._copy_block(result, 0, 0, rows, column_index, column_index + 1,
                         self.column_count - column_index)
        for row, value in enumerate(x.values.tolist()):
            result.storage.set_at(row, column_index, value)
        return result

    def remove_row(self, row_index: int) -> 'Matrix':
        """New matrix without row ``row_index``."""
        check_index(row_index, self.row_count, "row")
        result = Matrix.build(self._shape_changing_kind(), self.row_count - 1, self.column_count)
        cols = self.column_count
        self._copy_block(result, 0, 0, row_index, 0, 0, cols)
        self._copy_block(result, row_index + 1, row_index, self.row_count - row_index - 1, 0, 0, cols)
        return result

    def remove_column(self, column_index: int) -> 'Matrix':
        """New matrix without column ``column_index``."""
        check_index(column_index, self.column_count, "column")
        result = Matrix.build(self._shape_changing_kind(), self.row_count, self.column_count - 1)
        rows = self.row_count
        self._copy_block(result, 0, 0, rows, 0, 0, column_index)
        self._copy_block(result, 0, 0, rows, column_index + 1, column_index,
                         self.column_count - column_index - 1)
        return result

    def stack(self, lower: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Place ``lower`` below this matrix."""
        check_not_none(lower, "lower")
        if lower.column_count != self.column_count:
            raise dimensions_dont_match(self.shape, lower.shape, operation="stack")
        rows, cols = self.row_count + lower.row_count, self.column_count
        if result is None:
            result = Matrix.build(self._shape_changing_kind(lower), rows, cols)
        else:
            self._check_result(result, rows, cols, "stack")
            result.clear()
        self._copy_block(result, 0, 0, self.row_count, 0, 0, cols)
        lower._copy_block(result, 0, self.row_count, lower.row_count, 0, 0, cols)
        return result

    def append(self, right: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Place ``right`` to the right of this matrix."""
        check_not_none(right, "right")
        if right.row_count != self.row_count:
            raise dimensions_dont_match(self.shape, right.shape, operation="append")
        rows, cols = self.row_count, self.column_count + right.column_count
        if result is None:
            result = Matrix.build(self._shape_changing_kind(right), rows, cols)
        else:
            self._check_result(result, rows, cols, "append")
            result.clear()
        self._copy_block(result, 0, 0, rows, 0, 0, self.column_count)
        right._copy_block(result, 0, 0, rows, 0, self.column_count, right.column_count)
        return result

    def diagonal_stack(self, lower: 'Matrix', result: Optional['Matrix'] = None) -> 'Matrix':
        """Block diagonal matrix with this matrix top-left and ``lower`` bottom-right."""
        check_not_none(lower, "lower")
        rows = self.row_count + lower.row_count
        cols = self.column_count + lower.column_count
        if result is None:
            if self._both_diagonal(lower) and self.is_square:
                kind = StorageKind.DIAGONAL
            else:
                kind = self._shape_changing_kind(lower)
            result = Matrix.build(kind, rows, cols)
        else:
            self._check_result(result, rows, cols, "diagonal_stack")
            result.clear()
        self._copy_block(result, 0, 0, self.row_count, 0, 0, self.column_count)
        lower._copy_block(result, 0, self.row_count, lower.row_count,
                          0, self.column_count, lower.column_count)
        return result

    # =========================================================================
    # Permutation
    # =========================================================================

    @staticmethod
    def _check_permutation(permutation: Sequence[int], size: int) -> list:
        p = [int(i) for i in permutation]
        if sorted(p) != list(range(size)):
            raise ValueError(f"Not a permutation of range({size}): {p}")
        return p

    def permute_rows(self, permutation: Sequence[int]) -> None:
        """Move row ``i`` to row ``permutation[i]`` in place."""
        check_not_none(permutation, "permutation")
        p = self._check_permutation(permutation, self.row_count)
        triples = list(self.storage.enumerate_nonzero_indexed())
        self.storage.clear()
        for row, col, value in triples:
            self.storage.set_at(p[row], col, value)

    def permute_columns(self, permutation: Sequence[int]) -> None:
        """Move column ``j`` to column ``permutation[j]`` in place."""
        check_not_none(permutation, "permutation")
        p = self._check_permutation(permutation, self.column_count)
        triples = list(self.storage.enumerate_nonzero_indexed())
        self.storage.clear()
        for row, col, value in triples:
            self.storage.set_at(row, p[col], value)

    # =========================================================================
    # Enumeration & Conversion
    # =========================================================================

    def enumerate_indexed(self) -> Iterator[Triple]:
        """Yield (row, col, value) for every cell, row by row."""
        return self.storage.enumerate_indexed()

    def enumerate_nonzero(self) -> Iterator[Triple]:
        """Yield (row, col, value) for every nonzero cell, row by row."""
        return self.storage.enumerate_nonzero_indexed()

    def to_array(self) -> np.ndarray:
        """Materialize as a 2-D NumPy array."""
        return self.storage.to_array()

    def __array__(self, dtype=None, copy=None):
        arr = self.to_array()
        return arr if dtype is None else arr.astype(dtype)

    def to_row_major_array(self) -> np.ndarray:
        return self.to_array().ravel(order='C')

    def to_column_major_array(self) -> np.ndarray:
        return self.to_array().ravel(order='F')

    # =========================================================================
    # Equality
    # =========================================================================

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.storage.equals(other.storage)

    def __ne__(self, other) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return self.storage.value_hash()

    def almost_equal(self, other: 'Matrix', tolerance: Optional[float] = None) -> bool:
        """Cellwise comparison within ``tolerance`` (default from configuration)."""
        check_not_none(other, "other")
        if other.shape != self.shape:
            return False
        tol = config.compute.tolerance if tolerance is None else tolerance
        return bool(np.allclose(self.to_array(), other.to_array(), rtol=tol, atol=tol, equal_nan=True))

    # =========================================================================
    # Operators
    # =========================================================================

    def __add__(self, other):
        if isinstance(other, Matrix) or _is_scalar(other):
            return self.add(other)
        return NotImplemented

    def __radd__(self, other):
        if _is_scalar(other):
            return self.add(other)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Matrix) or _is_scalar(other):
            return self.subtract(other)
        return NotImplemented

    def __rsub__(self, other):
        if _is_scalar(other):
            return self.negate().add(other)
        return NotImplemented

    def __neg__(self):
        return self.negate()

    def __pos__(self):
        return self.copy()

    def __mul__(self, other):
        if _is_scalar(other):
            return self.multiply(other)
        if isinstance(other, Matrix):
            return self.pointwise_multiply(other)
        return NotImplemented

    def __rmul__(self, other):
        if _is_scalar(other):
            return self.multiply(other)
        return NotImplemented

    def __truediv__(self, other):
        if _is_scalar(other):
            return self.divide(other)
        if isinstance(other, Matrix):
            return self.pointwise_divide(other)
        return NotImplemented

    def __mod__(self, other):
        if _is_scalar(other):
            return self.modulus(other)
        if isinstance(other, Matrix):
            return self.pointwise_modulus(other)
        return NotImplemented

    def __matmul__(self, other):
        if isinstance(other, Matrix):
            return self.multiply(other)
        if isinstance(other, (DenseVector, np.ndarray, list, tuple)):
            return self.multiply(other)
        return NotImplemented

    def __rmatmul__(self, other):
        if isinstance(other, (DenseVector, np.ndarray, list, tuple)):
            return self.left_multiply(other)
        return NotImplemented

    # =========================================================================
    # Representation
    # =========================================================================

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self.row_count}x{self.column_count}, "
                f"kind={self.kind.value}, nnz={self.nonzero_count})")

    def __str__(self) -> str:
        return f"{self!r}\n{np.array2string(self.to_array(), precision=6, suppress_small=True)}"
