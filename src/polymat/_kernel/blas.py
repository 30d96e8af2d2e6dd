"""
BLAS Provider

Routes the level-1 and level-3 kernels through ``scipy.linalg.blas``
(``daxpy``, ``dscal``, ``dnrm2``, ``dgemm``). Elementwise products and the
remaining norms have no BLAS counterpart and are inherited from the managed
provider.
"""

from __future__ import annotations

import numpy as np
from scipy.linalg import blas

from .managed import ManagedProvider, as_matrix, gemm_shapes
from .provider import Norm

__all__ = ['BlasProvider']


class BlasProvider(ManagedProvider):
    """scipy.linalg.blas kernels for float64 buffers."""

    name = "blas"

    def add_arrays(self, x, y, out):
        if out.size == 0:
            return out
        out[:] = blas.daxpy(np.asarray(x, dtype=np.float64), np.array(y, dtype=np.float64), a=1.0)
        return out

    def subtract_arrays(self, x, y, out):
        if out.size == 0:
            return out
        out[:] = blas.daxpy(np.asarray(y, dtype=np.float64), np.array(x, dtype=np.float64), a=-1.0)
        return out

    def scale_array(self, alpha, x, out):
        if out.size == 0:
            return out
        out[:] = blas.dscal(alpha, np.array(x, dtype=np.float64))
        return out

    def matrix_norm(self, norm, rows, cols, data):
        if rows == 0 or cols == 0:
            return 0.0
        if Norm(norm) == Norm.FROBENIUS:
            return float(blas.dnrm2(np.ascontiguousarray(data, dtype=np.float64)))
        return super().matrix_norm(norm, rows, cols, data)

    def matrix_multiply_with_update(
        self, transpose_a, transpose_b, alpha,
        a, rows_a, cols_a, b, rows_b, cols_b, beta, c,
    ):
        m, n, k = gemm_shapes(transpose_a, rows_a, cols_a, transpose_b, rows_b, cols_b, c.size)
        if m == 0 or n == 0:
            return c
        target = as_matrix(c, m, n)
        if k == 0:
            # Empty inner dimension: the product is zero
            if beta == 0.0:
                target[...] = 0.0
            else:
                target *= beta
            return c
        result = blas.dgemm(
            alpha,
            np.asfortranarray(as_matrix(a, rows_a, cols_a)),
            np.asfortranarray(as_matrix(b, rows_b, cols_b)),
            beta=beta,
            c=np.array(target, order='F') if beta != 0.0 else None,
            trans_a=int(bool(transpose_a)),
            trans_b=int(bool(transpose_b)),
        )
        target[...] = result
        return c
