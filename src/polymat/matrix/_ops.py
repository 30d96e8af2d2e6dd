"""
Module-level Operations

Functional forms of the structural facade operations plus conversions
between polymat matrices, NumPy arrays and SciPy sparse matrices.

Example:
    >>> import polymat as pm
    >>> a = pm.from_numpy([[1, 0], [0, 2]], kind=pm.StorageKind.CSR)
    >>> pm.to_scipy(a).nnz
    2
    >>> pm.stack(a, pm.identity(2)).shape
    (4, 2)
"""

from typing import Any, Optional, Union

import numpy as np

from .._errors import check_not_none
from ..storage import CsrStorage, StorageKind, storage_type
from ._base import Matrix, matrix_type

__all__ = [
    'stack',
    'append',
    'diagonal_stack',
    'kronecker',
    'convert',
    'identity',
    'from_numpy',
    'to_numpy',
    'from_scipy',
    'to_scipy',
]

KindLike = Union[StorageKind, str]


# =============================================================================
# Structural
# =============================================================================

def stack(upper: Matrix, lower: Matrix, result: Optional[Matrix] = None) -> Matrix:
    """Place ``lower`` below ``upper`` (equal column counts)."""
    check_not_none(upper, "upper")
    return upper.stack(lower, result)


def append(left: Matrix, right: Matrix, result: Optional[Matrix] = None) -> Matrix:
    """Place ``right`` to the right of ``left`` (equal row counts)."""
    check_not_none(left, "left")
    return left.append(right, result)


def diagonal_stack(upper: Matrix, lower: Matrix, result: Optional[Matrix] = None) -> Matrix:
    """Block diagonal matrix [[upper, 0], [0, lower]]."""
    check_not_none(upper, "upper")
    return upper.diagonal_stack(lower, result)


def kronecker(a: Matrix, b: Matrix, result: Optional[Matrix] = None) -> Matrix:
    """Kronecker product ``a (x) b``."""
    check_not_none(a, "a")
    return a.kronecker_product(b, result)


def convert(matrix: Matrix, kind: KindLike) -> Matrix:
    """Copy ``matrix`` into a new matrix backed by ``kind``."""
    check_not_none(matrix, "matrix")
    return matrix.convert(StorageKind(kind))


def identity(order: int, kind: KindLike = StorageKind.DIAGONAL) -> Matrix:
    """Identity matrix of the given order and storage kind."""
    return matrix_type(StorageKind(kind)).identity(order)


# =============================================================================
# NumPy
# =============================================================================

def from_numpy(array: Any, kind: KindLike = StorageKind.DENSE) -> Matrix:
    """Copy a 2-D array-like into a matrix of the given kind.

    Raises:
        ValueError: If ``array`` is not 2-D.
        InvalidDiagonalWriteError: If ``kind`` is diagonal and an
            off-diagonal cell is nonzero.
    """
    check_not_none(array, "array")
    arr = np.asarray(array, dtype=np.float64)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D array, got {arr.ndim}-D")
    return Matrix.of_storage(storage_type(StorageKind(kind)).of_array(arr))


def to_numpy(matrix: Matrix) -> np.ndarray:
    """Materialize ``matrix`` as a 2-D float64 array."""
    check_not_none(matrix, "matrix")
    return matrix.to_array()


# =============================================================================
# SciPy
# =============================================================================

def from_scipy(mat: Any, kind: KindLike = StorageKind.CSR) -> Matrix:
    """Copy a SciPy sparse matrix (any format) into a matrix of the given kind.

    Duplicate entries are summed and explicit zeros dropped.
    """
    import scipy.sparse as sp

    check_not_none(mat, "mat")
    kind = StorageKind(kind)
    csr = sp.csr_matrix(mat, dtype=np.float64, copy=True)
    csr.sum_duplicates()
    rows, cols = csr.shape
    if kind is StorageKind.CSR:
        return Matrix.of_storage(
            CsrStorage.of_compressed_row(rows, cols, csr.indptr, csr.indices, csr.data)
        )
    coo = csr.tocoo()
    storage = storage_type(kind)(rows, cols)
    storage.fill_from(zip(coo.row.tolist(), coo.col.tolist(), coo.data.tolist()))
    return Matrix.of_storage(storage)


def to_scipy(matrix: Matrix):
    """Copy ``matrix`` into a ``scipy.sparse.csr_matrix``."""
    import scipy.sparse as sp

    check_not_none(matrix, "matrix")
    storage = matrix.storage
    if isinstance(storage, CsrStorage):
        nnz = storage.value_count
        return sp.csr_matrix(
            (storage.values[:nnz].copy(), storage.column_indices[:nnz].copy(),
             storage.row_pointers.copy()),
            shape=storage.shape,
        )
    triples = list(storage.enumerate_nonzero_indexed())
    if not triples:
        return sp.csr_matrix(storage.shape, dtype=np.float64)
    r, c, v = zip(*triples)
    return sp.csr_matrix((np.array(v, dtype=np.float64), (np.array(r), np.array(c))),
                         shape=storage.shape)
