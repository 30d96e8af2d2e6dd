"""
Tests for the Matrix facade.

Tests:
- Construction and conversion between storage kinds
- Checked and unchecked indexing
- Structural operations (sub-matrices, insert/remove, stacking, permutation)
- Python operators, equality and hashing
- Diagonal-only algebra and the operations generic storages reject
"""

import numpy as np
import pytest

import polymat as pm
from polymat import (
    DenseMatrix,
    DenseVector,
    DiagonalMatrix,
    KnuthSparseMatrix,
    Matrix,
    Ownership,
    SparseMatrix,
    StorageKind,
)
from polymat.matrix import matrix_type

from conftest import GENERAL_KINDS, assert_matrix_equal, expected_for, make


def promoted(kind):
    return StorageKind.CSR if kind is StorageKind.DIAGONAL else kind


# =============================================================================
# Construction
# =============================================================================

class TestConstruction:
    """Test matrix constructors."""

    def test_square_default(self, kind):
        """Test the one-argument constructor builds a square matrix."""
        m = matrix_type(kind)(3)
        assert m.shape == (3, 3)
        assert m.is_square
        assert m.kind is kind
        assert m.nonzero_count == 0

    def test_build(self, kind):
        """Test Matrix.build returns the class bound to the kind."""
        m = Matrix.build(kind, 2, 5)
        assert isinstance(m, matrix_type(kind))
        assert (m.row_count, m.column_count) == (2, 5)

    def test_dense_layout_constructors(self):
        """Test the dense constructors agree."""
        expected = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.float64)
        for m in (DenseMatrix.of_rows([[1, 2, 3], [4, 5, 6]]),
                  DenseMatrix.of_columns([[1, 4], [2, 5], [3, 6]]),
                  DenseMatrix.of_row_major(2, 3, [1, 2, 3, 4, 5, 6]),
                  DenseMatrix.of_column_major(2, 3, [1, 4, 2, 5, 3, 6]),
                  DenseMatrix.of_indexed(2, 3, [(r, c, expected[r, c])
                                                for r in range(2) for c in range(3)])):
            assert_matrix_equal(m, expected)

    def test_sparse_constructors(self, rect_array):
        """Test the CSR constructors agree."""
        m = SparseMatrix.of_array(rect_array)
        rows, cols = np.nonzero(rect_array)
        assert m == SparseMatrix.of_coordinate(3, 4, rows, cols, rect_array[rows, cols])
        assert m == SparseMatrix.of_rows(rect_array.tolist())
        assert m == SparseMatrix.of_columns(rect_array.T.tolist())
        assert m == SparseMatrix.of_row_major(3, 4, rect_array.ravel())
        assert m == SparseMatrix.of_column_major(3, 4, rect_array.ravel(order='F'))
        rp, ci, vals = m.compressed_row()
        assert SparseMatrix.of_compressed_row(3, 4, rp, ci, vals) == m

    def test_of_diagonal(self):
        """Test diagonal constructors across kinds."""
        expected = np.array([[1, 0, 0], [0, 2, 0]], dtype=np.float64)
        assert_matrix_equal(DenseMatrix.of_diagonal(2, 3, [1, 2]), expected)
        assert_matrix_equal(SparseMatrix.of_diagonal(2, 3, [1, 2]), expected)
        assert_matrix_equal(DiagonalMatrix.of_diagonal([1, 2], 2, 3), expected)
        assert DiagonalMatrix.of_diagonal([1, 2, 3]).shape == (3, 3)

    def test_create(self):
        """Test constant-valued constructors."""
        assert np.all(DenseMatrix.create(2, 3, 1.5).to_array() == 1.5)
        assert_matrix_equal(DiagonalMatrix.create(2, 2, 4.0), [[4, 0], [0, 4]])

    def test_identity(self, kind):
        """Test identity constructors."""
        m = matrix_type(kind).identity(3)
        assert_matrix_equal(m, np.eye(3))
        assert m.kind is kind

    def test_knuth_of_indexed(self):
        """Test the Knuth triple constructor."""
        m = KnuthSparseMatrix.of_indexed(2, 3, [(1, 2, 4.0), (0, 0, 1.0)])
        assert_matrix_equal(m, [[1, 0, 0], [0, 0, 4]])
        m.validate()

    def test_wrap_borrows(self):
        """Test wrapped buffers are shared with the caller."""
        buf = np.zeros(4)
        m = DenseMatrix.wrap(buf, 2, 2)
        assert m.info.ownership is Ownership.BORROWED
        m[1, 0] = 2.0
        assert buf[1] == 2.0
        assert np.shares_memory(m.values, buf)
        assert m.copy().info.ownership is Ownership.OWNED

    def test_diagonal_wrap(self):
        """Test a wrapped diagonal buffer."""
        buf = np.array([1.0, 2.0])
        m = DiagonalMatrix.wrap(buf, 2, 3)
        buf[1] = 5.0
        assert m[1, 1] == 5.0

    def test_of_array_rejects_off_diagonal(self):
        """Test a diagonal matrix cannot be built from an off-diagonal array."""
        with pytest.raises(pm.InvalidDiagonalWriteError):
            DiagonalMatrix.of_array([[1, 1], [0, 1]])
        with pytest.raises(pm.InvalidDiagonalWriteError):
            DiagonalMatrix.of_matrix(DenseMatrix.of_array([[1, 1], [0, 1]]))


class TestConversion:
    """Test copies and conversions between kinds."""

    def test_convert(self, kind, rect_array):
        """Test converting into every general kind keeps the values."""
        m = make(rect_array, kind)
        for target in GENERAL_KINDS:
            c = m.convert(target)
            assert c.kind is target
            assert c == m
        assert m.to_dense().kind is StorageKind.DENSE
        assert m.to_sparse().kind is StorageKind.CSR
        assert m.to_knuth().kind is StorageKind.KNUTH

    def test_convert_by_name(self, rect_array):
        """Test kinds may be named by their value."""
        assert DenseMatrix.of_array(rect_array).convert("knuth").kind is StorageKind.KNUTH

    def test_copy_independent(self, kind, square_array):
        """Test copies share no storage."""
        m = make(square_array, kind)
        c = m.copy()
        c[0, 0] = 99.0
        assert m[0, 0] == square_array[0, 0]
        assert c.kind is kind

    def test_copy_to(self, kind, general_kind, rect_array):
        """Test copy_to into a matrix of another kind."""
        m = make(rect_array, kind)
        target = Matrix.build(general_kind, 3, 4)
        m.copy_to(target)
        assert target == m
        with pytest.raises(pm.DimensionMismatchError):
            m.copy_to(Matrix.build(general_kind, 4, 3))

    def test_create_like(self, kind):
        """Test create_like keeps the kind."""
        m = Matrix.build(kind, 2, 3)
        assert m.create_like().shape == (2, 3)
        assert m.create_like(4, 4).kind is kind


# =============================================================================
# Indexing
# =============================================================================

class TestIndexing:
    """Test cell access."""

    def test_get_and_set(self, general_kind):
        """Test checked reads and writes."""
        m = Matrix.build(general_kind, 2, 3)
        m[1, 2] = 7
        assert m[1, 2] == 7.0
        assert isinstance(m[1, 2], float)

    @pytest.mark.parametrize("row, col", [(2, 0), (0, 3), (-1, 0), (0, -1)])
    def test_out_of_range(self, kind, row, col):
        """Test checked access rejects indices outside the shape."""
        m = Matrix.build(kind, 2, 3)
        with pytest.raises(pm.IndexOutOfRangeError):
            m[row, col]
        with pytest.raises(IndexError):
            m[row, col] = 1.0

    def test_unchecked_at(self, general_kind):
        """Test at reads and writes without bounds checks."""
        m = Matrix.build(general_kind, 2, 2)
        m.at(0, 1, 3.0)
        assert m.at(0, 1) == 3.0

    def test_diagonal_writes(self):
        """Test off-diagonal writes on a diagonal matrix."""
        m = DiagonalMatrix(3)
        m[1, 1] = 2.0
        m[0, 1] = 0.0
        with pytest.raises(pm.InvalidDiagonalWriteError):
            m[0, 1] = 1.0
        assert_matrix_equal(m, np.diag([0.0, 2.0, 0.0]))
        m.values[2] = 4.0
        assert m[2, 2] == 4.0


class TestMetadata:
    """Test shape and storage reporting."""

    def test_info(self, kind, rect_array):
        """Test info reports kind, shape and the stored count."""
        m = make(rect_array, kind)
        info = m.info
        assert info.kind is kind
        assert info.shape == (3, 4)
        assert info.nnz >= m.nonzero_count

    def test_nonzero_count(self, kind, rect_array):
        """Test nonzero_count counts nonzero cells."""
        m = make(rect_array, kind)
        assert m.nonzero_count == np.count_nonzero(expected_for(rect_array, kind))

    def test_repr(self, kind):
        """Test repr names the class, shape and kind."""
        m = Matrix.build(kind, 2, 3)
        text = repr(m)
        assert type(m).__name__ in text
        assert "2x3" in text
        assert kind.value in text
        assert text in str(m)


# =============================================================================
# Rows, Columns, Diagonal
# =============================================================================

class TestRowsAndColumns:
    """Test row, column and diagonal access."""

    def test_row_and_column(self, kind, rect_array):
        """Test rows and columns are returned as vectors."""
        m = make(rect_array, kind)
        e = expected_for(rect_array, kind)
        row = m.row(1)
        assert isinstance(row, DenseVector)
        np.testing.assert_array_equal(row.to_array(), e[1])
        np.testing.assert_array_equal(m.column(3).to_array(), e[:, 3])
        with pytest.raises(pm.IndexOutOfRangeError):
            m.row(3)
        with pytest.raises(pm.IndexOutOfRangeError):
            m.column(4)

    def test_set_row_and_column(self, general_kind, rect_array):
        """Test overwriting a row and a column."""
        m = make(rect_array, general_kind)
        m.set_row(0, [9, 8, 7, 6])
        m.set_column(1, DenseVector.from_array([1, 0, 1]))
        expected = rect_array.copy()
        expected[0] = [9, 8, 7, 6]
        expected[:, 1] = [1, 0, 1]
        assert_matrix_equal(m, expected)
        with pytest.raises(pm.DimensionMismatchError):
            m.set_row(0, [1, 2])
        with pytest.raises(pm.NullArgumentError):
            m.set_column(0, None)

    def test_diagonal_set_row_is_atomic(self):
        """Test a rejected row write leaves a diagonal matrix unchanged."""
        m = DiagonalMatrix.of_diagonal([1, 2, 3])
        with pytest.raises(pm.InvalidDiagonalWriteError):
            m.set_row(1, [0, 5, 1])
        assert_matrix_equal(m, np.diag([1.0, 2.0, 3.0]))
        m.set_row(1, [0, 5, 0])
        assert m[1, 1] == 5.0

    def test_diagonal(self, kind, rect_array):
        """Test reading and writing the main diagonal."""
        m = make(rect_array, kind)
        np.testing.assert_array_equal(m.diagonal().to_array(), np.diag(rect_array))
        m.set_diagonal([7, 8, 9])
        np.testing.assert_array_equal(m.diagonal().to_array(), [7, 8, 9])
        with pytest.raises(pm.DimensionMismatchError):
            m.set_diagonal([1, 2, 3, 4])


class TestClearing:
    """Test the clear operations."""

    def test_clear_rows_and_columns(self, general_kind, rect_array):
        """Test clearing single and multiple rows and columns."""
        m = make(rect_array, general_kind)
        m.clear_row(0)
        m.clear_columns([2, 3])
        expected = rect_array.copy()
        expected[0] = 0
        expected[:, 2:] = 0
        assert_matrix_equal(m, expected)
        with pytest.raises(pm.IndexOutOfRangeError):
            m.clear_column(4)

    def test_clear_sub_matrix(self, kind, rect_array):
        """Test clearing a block."""
        m = make(rect_array, kind)
        expected = expected_for(rect_array, kind).copy()
        m.clear_sub_matrix(1, 2, 0, 2)
        expected[1:3, 0:2] = 0
        assert_matrix_equal(m, expected)
        with pytest.raises(pm.IndexOutOfRangeError):
            m.clear_sub_matrix(2, 2, 0, 1)

    def test_clear(self, kind, rect_array):
        """Test clearing every cell."""
        m = make(rect_array, kind)
        m.clear()
        assert m.nonzero_count == 0

    def test_coerce_zero(self, general_kind):
        """Test small values are zeroed."""
        m = make([[1e-12, 1.0], [-1e-9, -2.0]], general_kind)
        m.coerce_zero(1e-6)
        assert_matrix_equal(m, [[0, 1], [0, -2]])


# =============================================================================
# Sub-matrices & Reshaping
# =============================================================================

class TestSubMatrix:
    """Test block extraction and assignment."""

    def test_sub_matrix(self, general_kind, rect_array):
        """Test extracting a block keeps the kind."""
        m = make(rect_array, general_kind)
        s = m.sub_matrix(1, 2, 1, 3)
        assert s.kind is general_kind
        assert_matrix_equal(s, rect_array[1:3, 1:4])

    def test_diagonal_sub_matrix_kinds(self):
        """Test diagonal blocks stay diagonal only on the main diagonal."""
        m = DiagonalMatrix.of_diagonal([1, 2, 3, 4])
        on = m.sub_matrix(1, 2, 1, 2)
        off = m.sub_matrix(0, 2, 1, 2)
        assert on.kind is StorageKind.DIAGONAL
        assert_matrix_equal(on, [[2, 0], [0, 3]])
        assert off.kind is StorageKind.CSR
        assert_matrix_equal(off, [[0, 0], [2, 0]])

    @pytest.mark.parametrize("args", [(0, 0, 0, 1), (0, 1, 0, 0), (2, 2, 0, 1), (0, 1, 3, 2), (-1, 1, 0, 1)])
    def test_sub_matrix_range(self, kind, args):
        """Test empty or overflowing ranges are rejected."""
        with pytest.raises(pm.IndexOutOfRangeError):
            Matrix.build(kind, 3, 4).sub_matrix(*args)

    def test_set_sub_matrix(self, general_kind, kind, rect_array):
        """Test writing a block of any kind into a general matrix."""
        m = make(rect_array, general_kind)
        block = make([[7, 0], [0, 8]], kind)
        m.set_sub_matrix(1, 2, block)
        expected = rect_array.copy()
        expected[1:3, 2:4] = [[7, 0], [0, 8]]
        assert_matrix_equal(m, expected)
        with pytest.raises(pm.IndexOutOfRangeError):
            m.set_sub_matrix(2, 3, block)

    def test_set_sub_matrix_into_diagonal(self):
        """Test diagonal targets accept diagonal blocks and reject others atomically."""
        m = DiagonalMatrix(3)
        m.set_sub_matrix(1, 1, DiagonalMatrix.of_diagonal([5, 6]))
        assert_matrix_equal(m, np.diag([0.0, 5.0, 6.0]))
        with pytest.raises(pm.InvalidDiagonalWriteError):
            m.set_sub_matrix(0, 0, DenseMatrix.of_array([[1, 1], [0, 1]]))
        assert_matrix_equal(m, np.diag([0.0, 5.0, 6.0]))


class TestInsertRemove:
    """Test row and column insertion and removal."""

    @pytest.mark.parametrize("index", [0, 1, 3])
    def test_insert_row(self, kind, rect_array, index):
        """Test inserting a row before index (index == row_count appends)."""
        m = make(rect_array, kind)
        r = m.insert_row(index, [1, 2, 3, 4])
        assert r.kind is promoted(kind)
        assert_matrix_equal(r, np.insert(expected_for(rect_array, kind), index, [1, 2, 3, 4], axis=0))
        assert m.shape == (3, 4)

    @pytest.mark.parametrize("index", [0, 2, 4])
    def test_insert_column(self, kind, rect_array, index):
        """Test inserting a column before index."""
        m = make(rect_array, kind)
        r = m.insert_column(index, [1, 2, 3])
        assert r.kind is promoted(kind)
        assert_matrix_equal(r, np.insert(expected_for(rect_array, kind), index, [1, 2, 3], axis=1))

    def test_insert_out_of_range(self, kind):
        """Test insertion indices beyond the end are rejected."""
        m = Matrix.build(kind, 2, 2)
        with pytest.raises(pm.IndexOutOfRangeError):
            m.insert_row(3, [0, 0])
        with pytest.raises(pm.IndexOutOfRangeError):
            m.insert_column(-1, [0, 0])
        with pytest.raises(pm.DimensionMismatchError):
            m.insert_row(0, [0, 0, 0])

    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_remove_row(self, kind, rect_array, index):
        """Test removing a row."""
        m = make(rect_array, kind)
        r = m.remove_row(index)
        assert r.kind is promoted(kind)
        assert_matrix_equal(r, np.delete(expected_for(rect_array, kind), index, axis=0))

    @pytest.mark.parametrize("index", [0, 2, 3])
    def test_remove_column(self, kind, rect_array, index):
        """Test removing a column."""
        m = make(rect_array, kind)
        r = m.remove_column(index)
        assert_matrix_equal(r, np.delete(expected_for(rect_array, kind), index, axis=1))
        with pytest.raises(pm.IndexOutOfRangeError):
            m.remove_column(4)


class TestStacking:
    """Test stack, append and diagonal_stack."""

    def test_stack(self, kind, general_kind, rect_array, square_array):
        """Test placing one matrix below another."""
        upper = make(rect_array, kind)
        lower = make(square_array[:2].repeat(2, axis=1)[:, :4], general_kind)
        s = upper.stack(lower)
        assert s.shape == (5, 4)
        assert_matrix_equal(s, np.vstack([expected_for(rect_array, kind), lower.to_array()]))
        assert s.kind is pm.matrix.combine_kinds(promoted(kind), general_kind)

    def test_append(self, kind, general_kind, rect_array, square_array):
        """Test placing one matrix to the right of another."""
        left = make(rect_array, kind)
        right = make(square_array, general_kind)
        a = left.append(right)
        assert a.shape == (3, 7)
        assert_matrix_equal(a, np.hstack([expected_for(rect_array, kind), square_array]))

    def test_diagonal_stack(self, kind, general_kind, rect_array, square_array):
        """Test the block diagonal layout."""
        upper = make(rect_array, kind)
        lower = make(square_array, general_kind)
        d = upper.diagonal_stack(lower)
        expected = np.zeros((6, 7))
        expected[:3, :4] = expected_for(rect_array, kind)
        expected[3:, 4:] = square_array
        assert_matrix_equal(d, expected)

    def test_diagonal_stack_of_diagonals(self):
        """Test diagonal blocks stay diagonal when the upper block is square."""
        a = DiagonalMatrix.of_diagonal([1, 2])
        b = DiagonalMatrix.of_diagonal([3], 1, 2)
        d = a.diagonal_stack(b)
        assert d.kind is StorageKind.DIAGONAL
        assert_matrix_equal(d, [[1, 0, 0, 0], [0, 2, 0, 0], [0, 0, 3, 0]])
        rect = DiagonalMatrix.of_diagonal([1, 2], 2, 3).diagonal_stack(a)
        assert rect.kind is StorageKind.CSR

    def test_stack_of_diagonals_is_csr(self):
        """Test stacking diagonal matrices produces CSR."""
        a = DiagonalMatrix.identity(2)
        assert a.stack(a).kind is StorageKind.CSR
        assert a.append(a).kind is StorageKind.CSR

    def test_stack_into_result(self, general_kind):
        """Test a supplied result is cleared before the blocks are copied."""
        upper = DenseMatrix.of_array([[1, 0]])
        lower = SparseMatrix.of_array([[0, 2]])
        result = make(np.full((2, 2), 5.0), general_kind)
        assert upper.stack(lower, result) is result
        assert_matrix_equal(result, [[1, 0], [0, 2]])
        with pytest.raises(pm.DimensionMismatchError):
            upper.stack(lower, Matrix.build(general_kind, 3, 2))

    def test_mismatch(self, kind):
        """Test stack and append require matching edges."""
        a = Matrix.build(kind, 2, 3)
        b = Matrix.build(kind, 3, 2)
        with pytest.raises(pm.DimensionMismatchError):
            a.stack(b)
        with pytest.raises(pm.DimensionMismatchError):
            a.append(b)
        with pytest.raises(pm.NullArgumentError):
            a.diagonal_stack(None)


class TestPermutation:
    """Test in-place row and column permutation."""

    def test_permute_rows(self, general_kind, rect_array):
        """Test row i moves to row permutation[i]."""
        m = make(rect_array, general_kind)
        p = [2, 0, 1]
        m.permute_rows(p)
        expected = np.zeros_like(rect_array)
        expected[p] = rect_array
        assert_matrix_equal(m, expected)

    def test_permute_columns(self, general_kind, rect_array):
        """Test column j moves to column permutation[j]."""
        m = make(rect_array, general_kind)
        p = [3, 2, 0, 1]
        m.permute_columns(p)
        expected = np.zeros_like(rect_array)
        expected[:, p] = rect_array
        assert_matrix_equal(m, expected)

    def test_invalid_permutation(self, general_kind):
        """Test non-permutations are rejected."""
        m = Matrix.build(general_kind, 3, 3)
        with pytest.raises(ValueError):
            m.permute_rows([0, 0, 1])
        with pytest.raises(ValueError):
            m.permute_columns([0, 1])
        with pytest.raises(pm.NullArgumentError):
            m.permute_rows(None)

    def test_diagonal_rejects_permutation(self):
        """Test diagonal matrices cannot be permuted."""
        m = DiagonalMatrix.identity(3)
        with pytest.raises(pm.UnsupportedOperationError):
            m.permute_rows([1, 0, 2])
        with pytest.raises(pm.UnsupportedOperationError):
            m.permute_columns([1, 0, 2])

    @pytest.mark.parametrize("shape", [(2, 3), (3, 2)])
    def test_rectangular_diagonal_rejects_permutation(self, shape):
        """Test rectangular diagonal matrices cannot be permuted either."""
        rows, cols = shape
        m = DiagonalMatrix.of_diagonal([1.0, 2.0], rows, cols)
        with pytest.raises(pm.UnsupportedOperationError):
            m.permute_rows(list(range(rows))[::-1])
        with pytest.raises(pm.UnsupportedOperationError):
            m.permute_columns(list(range(cols))[::-1])


# =============================================================================
# Operators & Equality
# =============================================================================

class TestOperators:
    """Test the Python operator surface."""

    @pytest.fixture
    def pair(self, square_array):
        a = SparseMatrix.of_array(square_array)
        b = DenseMatrix.of_array(square_array.T + 1.0)
        return a, b

    def test_arithmetic(self, pair, square_array):
        """Test + - * / % and unary operators."""
        a, b = pair
        bt = square_array.T + 1.0
        assert_matrix_equal(a + b, square_array + bt)
        assert_matrix_equal(a - b, square_array - bt)
        assert_matrix_equal(-a, -square_array)
        assert_matrix_equal(+a, square_array)
        assert (+a) is not a
        assert_matrix_equal(a * b, square_array * bt)
        assert_matrix_equal(a / b, square_array / bt)
        assert_matrix_equal(a % b, np.mod(square_array, bt))

    def test_scalar_operands(self, pair, square_array):
        """Test scalars on either side."""
        a, _ = pair
        assert_matrix_equal(a * 2, 2 * square_array)
        assert_matrix_equal(3.0 * a, 3 * square_array)
        assert_matrix_equal(a + 1, square_array + 1)
        assert_matrix_equal(1 + a, square_array + 1)
        assert_matrix_equal(a - 1, square_array - 1)
        assert_matrix_equal(10 - a, 10 - square_array)
        assert_matrix_equal(a / 4, square_array / 4)
        assert_matrix_equal(a % 3, np.mod(square_array, 3))
        assert_matrix_equal(a * np.float64(0.5), 0.5 * square_array)

    def test_matmul(self, pair, square_array):
        """Test @ with matrices and vectors on either side."""
        a, b = pair
        bt = square_array.T + 1.0
        assert_matrix_equal(a @ b, square_array @ bt)
        x = np.array([1.0, -1.0, 2.0])
        y = a @ x
        assert isinstance(y, DenseVector)
        np.testing.assert_allclose(y.to_array(), square_array @ x)
        left = x @ a
        assert isinstance(left, DenseVector)
        np.testing.assert_allclose(left.to_array(), x @ square_array)
        np.testing.assert_allclose((DenseVector.from_array(x) @ a).to_array(), x @ square_array)
        np.testing.assert_allclose(([1.0, -1.0, 2.0] @ a).to_array(), x @ square_array)

    def test_transpose_property(self, pair, square_array):
        """Test .T transposes."""
        a, _ = pair
        assert_matrix_equal(a.T, square_array.T)

    def test_unsupported_operands(self, pair):
        """Test unsupported operand types raise TypeError."""
        a, _ = pair
        with pytest.raises(TypeError):
            a + "x"
        with pytest.raises(TypeError):
            a * "x"
        with pytest.raises(TypeError):
            a @ 2.0
        with pytest.raises(TypeError):
            True + a

    def test_scalar_divide_by_zero(self, kind):
        """Test / 0 raises ZeroDivisionError."""
        with pytest.raises(ZeroDivisionError):
            Matrix.build(kind, 2, 2) / 0

    def test_numpy_conversion(self, kind, rect_array):
        """Test np.asarray materializes the matrix."""
        m = make(rect_array, kind)
        arr = np.asarray(m)
        np.testing.assert_array_equal(arr, expected_for(rect_array, kind))
        assert np.asarray(m, dtype=np.float32).dtype == np.float32
        np.testing.assert_array_equal(m.to_row_major_array(), arr.ravel())
        np.testing.assert_array_equal(m.to_column_major_array(), arr.ravel(order='F'))


class TestEquality:
    """Test value equality and hashing across kinds."""

    def test_equal_across_kinds(self, kind, rect_array):
        """Test matrices holding the same values are equal whatever the kind."""
        e = expected_for(rect_array, kind)
        m = make(rect_array, kind)
        for other_kind in GENERAL_KINDS:
            other = make(e, other_kind)
            assert m == other
            assert not (m != other)
            assert hash(m) == hash(other)

    def test_not_equal(self, kind, rect_array):
        """Test shape or value differences break equality."""
        m = make(rect_array, kind)
        assert m != Matrix.build(kind, 4, 3)
        assert m != make(rect_array * 2, kind)
        assert m != None  # noqa: E711

    def test_usable_as_key(self, rect_array):
        """Test equal matrices collapse in a set."""
        keys = {DenseMatrix.of_array(rect_array), SparseMatrix.of_array(rect_array),
                KnuthSparseMatrix.of_array(rect_array)}
        assert len(keys) == 1

    def test_almost_equal(self, general_kind, rect_array):
        """Test tolerant comparison."""
        m = make(rect_array, general_kind)
        near = make(rect_array + 1e-13, general_kind)
        far = make(rect_array + 1e-3, general_kind)
        assert m.almost_equal(near)
        assert not m.almost_equal(far)
        assert m.almost_equal(far, tolerance=1e-2)
        assert not m.almost_equal(Matrix.build(general_kind, 4, 3))
        with pytest.raises(pm.NullArgumentError):
            m.almost_equal(None)

    def test_almost_equal_nan(self):
        """Test NaN cells compare equal to NaN."""
        a = DenseMatrix.of_array([[np.nan, 1.0]])
        assert a.almost_equal(a.copy())


# =============================================================================
# Diagonal Algebra
# =============================================================================

class TestDiagonalAlgebra:
    """Test operations only diagonal storage computes directly."""

    def test_identity_trace_and_inverse(self):
        """Test the identity is its own inverse."""
        m = DiagonalMatrix.identity(4)
        assert m.trace() == 4.0
        assert m.inverse() == m
        assert m.determinant() == 1.0

    def test_determinant_and_inverse(self):
        """Test determinant and inverse against NumPy."""
        m = DiagonalMatrix.of_diagonal([2.0, -4.0, 0.5])
        dense = np.diag([2.0, -4.0, 0.5])
        assert m.determinant() == pytest.approx(np.linalg.det(dense))
        inv = m.inverse()
        assert inv.kind is StorageKind.DIAGONAL
        assert_matrix_equal(inv, np.linalg.inv(dense))

    def test_singular(self):
        """Test a zero entry makes the inverse fail."""
        with pytest.raises(pm.SingularMatrixError):
            DiagonalMatrix.of_diagonal([1.0, 0.0]).inverse()
        assert DiagonalMatrix.of_diagonal([1.0, 0.0]).determinant() == 0.0

    def test_not_square(self):
        """Test square-only operations on a rectangular diagonal."""
        m = DiagonalMatrix.of_diagonal([1, 2], 2, 3)
        with pytest.raises(pm.NotSquareError):
            m.determinant()
        with pytest.raises(pm.NotSquareError):
            m.inverse()
        with pytest.raises(pm.NotSquareError):
            m.trace()

    def test_l2_norm_and_condition_number(self):
        """Test the singular-value based quantities."""
        m = DiagonalMatrix.of_diagonal([3.0, -0.5, 2.0])
        dense = np.diag([3.0, -0.5, 2.0])
        assert m.l2_norm() == pytest.approx(np.linalg.norm(dense, 2))
        assert m.condition_number() == pytest.approx(np.linalg.cond(dense))
        assert DiagonalMatrix.of_diagonal([1.0, 0.0]).condition_number() == float('inf')
        assert DiagonalMatrix(0).condition_number() == 0.0

    def test_kronecker_stays_diagonal(self):
        """Test the Kronecker product of square diagonals is diagonal."""
        a = DiagonalMatrix.of_diagonal([1, 2])
        b = DiagonalMatrix.of_diagonal([3, 4])
        k = a.kronecker_product(b)
        assert k.kind is StorageKind.DIAGONAL
        assert_matrix_equal(k, np.kron(np.diag([1.0, 2.0]), np.diag([3.0, 4.0])))

    def test_scalar_add_is_dense(self):
        """Test adding a scalar fills the off-diagonal cells."""
        m = DiagonalMatrix.identity(2) + 1
        assert m.kind is StorageKind.DENSE
        assert_matrix_equal(m, [[2, 1], [1, 2]])

    @pytest.mark.parametrize("kind", GENERAL_KINDS, ids=lambda k: k.value)
    def test_general_kinds_reject(self, kind):
        """Test decomposition-based operations are unsupported elsewhere."""
        m = matrix_type(kind).identity(2)
        for op in (m.determinant, m.inverse, m.l2_norm, m.condition_number):
            with pytest.raises(pm.UnsupportedOperationError):
                op()


# =============================================================================
# Scenarios
# =============================================================================

class TestScenarios:
    """End-to-end usage."""

    def test_knuth_add(self):
        """Test adding Knuth matrices merges their circles."""
        a = KnuthSparseMatrix.of_indexed(2, 2, [(0, 1, 5.0)])
        b = KnuthSparseMatrix.of_indexed(2, 2, [(1, 0, 7.0), (0, 1, 1.0)])
        c = a + b
        assert c.kind is StorageKind.KNUTH
        assert list(c.enumerate_nonzero()) == [(0, 1, 6.0), (1, 0, 7.0)]
        c.validate()

    def test_knuth_cancellation(self):
        """Test cells summing to zero are not stored."""
        a = KnuthSparseMatrix.of_indexed(2, 2, [(0, 1, 5.0)])
        b = KnuthSparseMatrix.of_indexed(2, 2, [(0, 1, 5.0)])
        assert (a - b).nonzero_count == 0

    def test_transpose_round_trip(self, kind, rect_array):
        """Test transposing twice restores the matrix."""
        m = make(rect_array, kind)
        assert m.T.T == m

    def test_mixed_pipeline(self, square_array):
        """Test a chain of mixed-kind operations."""
        a = SparseMatrix.of_array(square_array)
        d = DiagonalMatrix.of_diagonal([1.0, 2.0, 3.0])
        k = KnuthSparseMatrix.of_array(square_array.T)
        result = (a @ d + k).T - 2 * d
        expected = (square_array @ np.diag([1.0, 2.0, 3.0]) + square_array.T).T \
            - 2 * np.diag([1.0, 2.0, 3.0])
        assert result.kind is StorageKind.CSR
        assert_matrix_equal(result, expected)
