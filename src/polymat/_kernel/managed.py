"""
Managed Provider

Pure NumPy implementation of the linear algebra provider. This is the
default provider and the reference the BLAS provider is tested against.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .._errors import dimensions_dont_match
from .provider import LinearAlgebraProvider, Norm

__all__ = ['ManagedProvider', 'gemm_shapes']


def gemm_shapes(
    transpose_a: bool, rows_a: int, cols_a: int,
    transpose_b: bool, rows_b: int, cols_b: int,
    c_size: int,
) -> Tuple[int, int, int]:
    """Validate a general multiply and return (m, n, k) of op(a) * op(b)."""
    m, k = (cols_a, rows_a) if transpose_a else (rows_a, cols_a)
    k_b, n = (cols_b, rows_b) if transpose_b else (rows_b, cols_b)
    if k != k_b:
        raise dimensions_dont_match((m, k), (k_b, n), operation="matrix_multiply_with_update")
    if c_size != m * n:
        raise dimensions_dont_match((m, n), (c_size, 1), operation="matrix_multiply_with_update")
    return m, n, k


def as_matrix(data: np.ndarray, rows: int, cols: int) -> np.ndarray:
    """View a flat column-major buffer as a 2-D Fortran-ordered array."""
    return data.reshape((rows, cols), order='F')


class ManagedProvider(LinearAlgebraProvider):
    """NumPy kernels.

    Example:
        >>> p = ManagedProvider()
        >>> out = np.empty(3)
        >>> p.add_arrays(np.ones(3), np.ones(3), out)
        array([2., 2., 2.])
    """

    name = "managed"

    def add_arrays(self, x, y, out):
        np.add(x, y, out=out)
        return out

    def subtract_arrays(self, x, y, out):
        np.subtract(x, y, out=out)
        return out

    def scale_array(self, alpha, x, out):
        np.multiply(x, alpha, out=out)
        return out

    def pointwise_multiply_arrays(self, x, y, out):
        np.multiply(x, y, out=out)
        return out

    def pointwise_divide_arrays(self, x, y, out):
        with np.errstate(divide='ignore', invalid='ignore'):
            np.divide(x, y, out=out)
        return out

    def matrix_norm(self, norm, rows, cols, data):
        if rows == 0 or cols == 0:
            return 0.0
        m = np.abs(as_matrix(data, rows, cols))
        norm = Norm(norm)
        if norm == Norm.ONE:
            return float(m.sum(axis=0).max())
        if norm == Norm.INFINITY:
            return float(m.sum(axis=1).max())
        if norm == Norm.FROBENIUS:
            return float(np.sqrt(np.sum(m * m)))
        return float(m.max())

    def matrix_multiply_with_update(
        self, transpose_a, transpose_b, alpha,
        a, rows_a, cols_a, b, rows_b, cols_b, beta, c,
    ):
        m, n, _ = gemm_shapes(transpose_a, rows_a, cols_a, transpose_b, rows_b, cols_b, c.size)
        op_a = as_matrix(a, rows_a, cols_a)
        op_b = as_matrix(b, rows_b, cols_b)
        if transpose_a:
            op_a = op_a.T
        if transpose_b:
            op_b = op_b.T
        product = op_a @ op_b
        target = as_matrix(c, m, n)
        if beta == 0.0:
            # beta == 0 must not propagate NaN already sitting in c
            target[...] = alpha * product
        else:
            target[...] = alpha * product + beta * target
        return c
