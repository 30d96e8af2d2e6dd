"""
Error handling for polymat.

Every failure raised by the engine is a ``PolymatError`` carrying a numeric
code. Each concrete error also derives from the builtin exception that
best describes it, so callers may catch either ``IndexOutOfRangeError`` or
plain ``IndexError``.

Errors are raised synchronously by the call that violates the contract;
no operation retries internally and no operation leaves a partial result.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple, Type


# =============================================================================
# Error Codes
# =============================================================================

POLYMAT_OK = 0

# General errors (1-9)
POLYMAT_ERROR_UNKNOWN = 1
POLYMAT_ERROR_INTERNAL = 2
POLYMAT_ERROR_NULL_ARGUMENT = 4

# Argument errors (10-19)
POLYMAT_ERROR_INVALID_ARGUMENT = 10
POLYMAT_ERROR_DIMENSION_MISMATCH = 11
POLYMAT_ERROR_INDEX_OUT_OF_RANGE = 14
POLYMAT_ERROR_NOT_SQUARE = 15
POLYMAT_ERROR_INVALID_DIAGONAL_WRITE = 16

# Feature errors (40-49)
POLYMAT_ERROR_UNSUPPORTED_OPERATION = 40

# Numerical errors (50-59)
POLYMAT_ERROR_NUMERICAL_ERROR = 50
POLYMAT_ERROR_SINGULAR_MATRIX = 51


_ERROR_MESSAGES = {
    POLYMAT_OK: "Success",
    POLYMAT_ERROR_UNKNOWN: "Unknown error",
    POLYMAT_ERROR_INTERNAL: "Internal error",
    POLYMAT_ERROR_NULL_ARGUMENT: "Argument must not be None",
    POLYMAT_ERROR_INVALID_ARGUMENT: "Invalid argument",
    POLYMAT_ERROR_DIMENSION_MISMATCH: "Matrix dimensions must agree",
    POLYMAT_ERROR_INDEX_OUT_OF_RANGE: "Index out of range",
    POLYMAT_ERROR_NOT_SQUARE: "Matrix must be square",
    POLYMAT_ERROR_INVALID_DIAGONAL_WRITE: "Cannot set an off-diagonal element of a diagonal matrix",
    POLYMAT_ERROR_UNSUPPORTED_OPERATION: "Operation not supported",
    POLYMAT_ERROR_NUMERICAL_ERROR: "Numerical error",
    POLYMAT_ERROR_SINGULAR_MATRIX: "Matrix is singular",
}


# =============================================================================
# Exception Classes
# =============================================================================

class PolymatError(Exception):
    """
    Base exception for all polymat errors.

    Attributes:
        code: Numeric error code (one of the ``POLYMAT_ERROR_*`` constants).
        message: Human readable description.
    """

    default_code = POLYMAT_ERROR_UNKNOWN

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if code is None:
            code = self.default_code
        self.code = code
        if message is None:
            message = _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")
        self.message = message
        super().__init__(message)

    @classmethod
    def from_code(cls, code: int, context: str = "") -> "PolymatError":
        """Create the matching exception subclass from an error code.

        Args:
            code: One of the ``POLYMAT_ERROR_*`` constants.
            context: Optional prefix describing where the error occurred.

        Returns:
            Instance of the subclass registered for ``code`` (or of
            ``PolymatError`` itself for unregistered codes).
        """
        base_msg = _ERROR_MESSAGES.get(code, "Unknown error")
        msg = f"{context}: {base_msg}" if context else base_msg
        error_cls = _ERROR_CLASSES.get(code, PolymatError)
        return error_cls(msg, code=code)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, message={self.message!r})"


class NullArgumentError(PolymatError, TypeError):
    """A required operand was None."""
    default_code = POLYMAT_ERROR_NULL_ARGUMENT


class DimensionMismatchError(PolymatError, ValueError):
    """Operand shapes (or the shape of a supplied result) are incompatible."""
    default_code = POLYMAT_ERROR_DIMENSION_MISMATCH


class IndexOutOfRangeError(PolymatError, IndexError):
    """A checked accessor was given a row or column outside the matrix."""
    default_code = POLYMAT_ERROR_INDEX_OUT_OF_RANGE


class NotSquareError(PolymatError, ValueError):
    """The operation requires a square matrix."""
    default_code = POLYMAT_ERROR_NOT_SQUARE


class InvalidDiagonalWriteError(PolymatError, ValueError):
    """A nonzero value was written off the diagonal of a diagonal matrix."""
    default_code = POLYMAT_ERROR_INVALID_DIAGONAL_WRITE


class UnsupportedOperationError(PolymatError, NotImplementedError):
    """The storage kind cannot perform this operation without breaking its invariant."""
    default_code = POLYMAT_ERROR_UNSUPPORTED_OPERATION


class SingularMatrixError(PolymatError, ArithmeticError):
    """The matrix has a zero pivot and cannot be inverted."""
    default_code = POLYMAT_ERROR_SINGULAR_MATRIX


_ERROR_CLASSES: Dict[int, Type[PolymatError]] = {
    POLYMAT_ERROR_NULL_ARGUMENT: NullArgumentError,
    POLYMAT_ERROR_DIMENSION_MISMATCH: DimensionMismatchError,
    POLYMAT_ERROR_INDEX_OUT_OF_RANGE: IndexOutOfRangeError,
    POLYMAT_ERROR_NOT_SQUARE: NotSquareError,
    POLYMAT_ERROR_INVALID_DIAGONAL_WRITE: InvalidDiagonalWriteError,
    POLYMAT_ERROR_UNSUPPORTED_OPERATION: UnsupportedOperationError,
    POLYMAT_ERROR_SINGULAR_MATRIX: SingularMatrixError,
}


# =============================================================================
# Message Builders
# =============================================================================

def dimensions_dont_match(*shapes: Tuple[int, int], operation: str = "") -> DimensionMismatchError:
    """Build a DimensionMismatchError listing the offending shapes.

    Example:
        >>> raise dimensions_dont_match((2, 3), (4, 5), operation="add")
    """
    listed = ", ".join(f"{r}x{c}" for r, c in shapes)
    prefix = f"{operation}: " if operation else ""
    return DimensionMismatchError(
        f"{prefix}{_ERROR_MESSAGES[POLYMAT_ERROR_DIMENSION_MISMATCH]} ({listed})"
    )


def check_not_none(value, name: str) -> None:
    """Raise NullArgumentError if ``value`` is None."""
    if value is None:
        raise NullArgumentError(f"'{name}' must not be None")


def check_index(index: int, bound: int, name: str) -> None:
    """Raise IndexOutOfRangeError unless ``0 <= index < bound``."""
    if index < 0 or index >= bound:
        raise IndexOutOfRangeError(
            f"{name} index {index} out of range [0, {bound})"
        )


__all__ = [
    "POLYMAT_OK",
    "POLYMAT_ERROR_UNKNOWN",
    "POLYMAT_ERROR_INTERNAL",
    "POLYMAT_ERROR_NULL_ARGUMENT",
    "POLYMAT_ERROR_INVALID_ARGUMENT",
    "POLYMAT_ERROR_DIMENSION_MISMATCH",
    "POLYMAT_ERROR_INDEX_OUT_OF_RANGE",
    "POLYMAT_ERROR_NOT_SQUARE",
    "POLYMAT_ERROR_INVALID_DIAGONAL_WRITE",
    "POLYMAT_ERROR_UNSUPPORTED_OPERATION",
    "POLYMAT_ERROR_NUMERICAL_ERROR",
    "POLYMAT_ERROR_SINGULAR_MATRIX",
    "PolymatError",
    "NullArgumentError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "NotSquareError",
    "InvalidDiagonalWriteError",
    "UnsupportedOperationError",
    "SingularMatrixError",
    "dimensions_dont_match",
    "check_not_none",
    "check_index",
]
