"""
Linear Algebra Provider Interface

Array-level kernels used by the dense fast paths. A provider never sees a
sparse structure: every buffer it receives is a contiguous 1-D float64
array, and matrices are passed as column-major buffers together with their
shape.

Providers are looked up by name through ``get_provider()``; the active name
comes from ``polymat.config.provider`` (default ``"managed"``, overridable
with the ``POLYMAT_PROVIDER`` environment variable).
"""

from __future__ import annotations

import abc
from enum import IntEnum

import numpy as np

__all__ = [
    'Norm',
    'LinearAlgebraProvider',
]


class Norm(IntEnum):
    """Matrix norm selector for ``matrix_norm``."""
    ONE = 0                # Maximum absolute column sum
    INFINITY = 1           # Maximum absolute row sum
    FROBENIUS = 2          # Square root of the sum of squares
    LARGEST_ABSOLUTE = 3   # Largest absolute element


class LinearAlgebraProvider(abc.ABC):
    """Vectorized kernels backing the dense algorithms.

    Every ``*_arrays`` kernel writes into ``out`` and returns it. ``out`` may
    be the same array as one of the inputs.
    """

    name = "abstract"

    # -------------------------------------------------------------------------
    # Elementwise kernels
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def add_arrays(self, x: np.ndarray, y: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = x + y"""

    @abc.abstractmethod
    def subtract_arrays(self, x: np.ndarray, y: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = x - y"""

    @abc.abstractmethod
    def scale_array(self, alpha: float, x: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = alpha * x"""

    @abc.abstractmethod
    def pointwise_multiply_arrays(self, x: np.ndarray, y: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = x * y (elementwise)"""

    @abc.abstractmethod
    def pointwise_divide_arrays(self, x: np.ndarray, y: np.ndarray, out: np.ndarray) -> np.ndarray:
        """out = x / y (elementwise, IEEE semantics for division by zero)"""

    # -------------------------------------------------------------------------
    # Matrix kernels
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def matrix_norm(self, norm: Norm, rows: int, cols: int, data: np.ndarray) -> float:
        """Compute a norm of the column-major ``rows x cols`` matrix in ``data``."""

    @abc.abstractmethod
    def matrix_multiply_with_update(
        self,
        transpose_a: bool,
        transpose_b: bool,
        alpha: float,
        a: np.ndarray,
        rows_a: int,
        cols_a: int,
        b: np.ndarray,
        rows_b: int,
        cols_b: int,
        beta: float,
        c: np.ndarray,
    ) -> np.ndarray:
        """General matrix multiply: c = alpha * op(a) * op(b) + beta * c.

        Args:
            transpose_a: Use the transpose of ``a``.
            transpose_b: Use the transpose of ``b``.
            alpha: Scale applied to the product.
            a: Column-major buffer of the ``rows_a x cols_a`` left matrix.
            rows_a: Rows of ``a`` as stored (before ``transpose_a``).
            cols_a: Columns of ``a`` as stored.
            b: Column-major buffer of the ``rows_b x cols_b`` right matrix.
            rows_b: Rows of ``b`` as stored.
            cols_b: Columns of ``b`` as stored.
            beta: Scale applied to the existing contents of ``c``.
            c: Column-major output buffer, updated in place.

        Returns:
            ``c``.

        Raises:
            DimensionMismatchError: If the inner dimensions of op(a) and
                op(b) differ, or ``c`` has the wrong length.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
