"""
Generic Algorithms

Storage-agnostic implementations of every dispatched operation, written
only against ``at``/``set_at`` (and the vector indexing contract). They run
in O(rows*cols) for elementwise operations and O(rows*cols*inner) for
products, work for any mix of storage kinds, and are the reference every
specialized algorithm is tested against.

Elementwise operations read cell (r, c) of every operand before writing
cell (r, c) of the result, so they are safe when the result aliases an
operand. Products read many cells per written cell and stage through a
dense scratch array when aliased.
"""

import math

import numpy as np

from ._dispatch import ResultAlias, fallback

__all__ = []


# =============================================================================
# Elementwise Binary Operations
# =============================================================================

def _elementwise(a, b, result, op):
    for row in range(result.rows):
        for col in range(result.cols):
            result.set_at(row, col, op(a.at(row, col), b.at(row, col)))


def _divide(x, y):
    if y == 0.0:
        if x == 0.0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


def _modulus(x, y):
    # Sign follows the divisor
    return math.nan if y == 0.0 else x % y


def _remainder(x, y):
    # Sign follows the dividend
    return math.nan if y == 0.0 else math.fmod(x, y)


@fallback("add")
def add(a, b, result, alias):
    _elementwise(a, b, result, lambda x, y: x + y)


@fallback("subtract")
def subtract(a, b, result, alias):
    _elementwise(a, b, result, lambda x, y: x - y)


@fallback("pointwise_multiply")
def pointwise_multiply(a, b, result, alias):
    _elementwise(a, b, result, lambda x, y: x * y)


@fallback("pointwise_divide")
def pointwise_divide(a, b, result, alias):
    _elementwise(a, b, result, _divide)


@fallback("pointwise_modulus")
def pointwise_modulus(a, b, result, alias):
    _elementwise(a, b, result, _modulus)


@fallback("pointwise_remainder")
def pointwise_remainder(a, b, result, alias):
    _elementwise(a, b, result, _remainder)


# =============================================================================
# Elementwise Unary Operations
# =============================================================================

def _unary(a, result, op):
    for row in range(result.rows):
        for col in range(result.cols):
            result.set_at(row, col, op(a.at(row, col)))


@fallback("negate")
def negate(a, result, alias):
    _unary(a, result, lambda x: -x)


@fallback("scale")
def scale(a, result, alias, alpha):
    _unary(a, result, lambda x: alpha * x)


@fallback("add_scalar")
def add_scalar(a, result, alias, scalar):
    _unary(a, result, lambda x: x + scalar)


@fallback("modulus")
def modulus(a, result, alias, divisor):
    _unary(a, result, lambda x: _modulus(x, divisor))


@fallback("remainder")
def remainder(a, result, alias, divisor):
    _unary(a, result, lambda x: _remainder(x, divisor))


@fallback("transpose")
def transpose(a, result, alias):
    cells = [[a.at(row, col) for col in range(a.cols)] for row in range(a.rows)]
    for row in range(a.rows):
        for col in range(a.cols):
            result.set_at(col, row, cells[row][col])


def _triangle(a, result, keep):
    for row in range(result.rows):
        for col in range(result.cols):
            result.set_at(row, col, a.at(row, col) if keep(row, col) else 0.0)


@fallback("lower_triangle")
def lower_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c <= r)


@fallback("upper_triangle")
def upper_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c >= r)


@fallback("strictly_lower_triangle")
def strictly_lower_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c < r)


@fallback("strictly_upper_triangle")
def strictly_upper_triangle(a, result, alias):
    _triangle(a, result, lambda r, c: c > r)


# =============================================================================
# Products
# =============================================================================

def _product(a_at, b_at, m, n, k, result, alias):
    """result = op(a) * op(b) where a_at(i, p) and b_at(p, j) read the operands."""
    if alias is ResultAlias.DISTINCT:
        for i in range(m):
            for j in range(n):
                s = 0.0
                for p in range(k):
                    s += a_at(i, p) * b_at(p, j)
                result.set_at(i, j, s)
        return
    scratch = np.zeros((m, n), dtype=np.float64)
    for i in range(m):
        for j in range(n):
            s = 0.0
            for p in range(k):
                s += a_at(i, p) * b_at(p, j)
            scratch[i, j] = s
    for i in range(m):
        for j in range(n):
            result.set_at(i, j, float(scratch[i, j]))


@fallback("multiply")
def multiply(a, b, result, alias):
    _product(a.at, b.at, a.rows, b.cols, a.cols, result, alias)


@fallback("transpose_and_multiply")
def transpose_and_multiply(a, b, result, alias):
    # a * b^T
    _product(a.at, lambda p, j: b.at(j, p), a.rows, b.rows, a.cols, result, alias)


@fallback("transpose_this_and_multiply")
def transpose_this_and_multiply(a, b, result, alias):
    # a^T * b
    _product(lambda i, p: a.at(p, i), b.at, a.cols, b.cols, a.rows, result, alias)


@fallback("kronecker_product")
def kronecker_product(a, b, result, alias):
    m, n, p, q = a.rows, a.cols, b.rows, b.cols
    scratch = np.zeros((m * p, n * q), dtype=np.float64)
    for i in range(m):
        for j in range(n):
            s = a.at(i, j)
            for k in range(p):
                for l in range(q):
                    scratch[i * p + k, j * q + l] = s * b.at(k, l)
    for row in range(m * p):
        for col in range(n * q):
            result.set_at(row, col, float(scratch[row, col]))


# =============================================================================
# Matrix-Vector Products
# =============================================================================

@fallback("multiply_vector")
def multiply_vector(a, alias, x, y):
    # y = a * x; staged so y may be x
    acc = [0.0] * a.rows
    for row in range(a.rows):
        s = 0.0
        for col in range(a.cols):
            s += a.at(row, col) * x[col]
        acc[row] = s
    for row, s in enumerate(acc):
        y[row] = s


@fallback("left_multiply_vector")
def left_multiply_vector(a, alias, x, y):
    # y = x^T * a (equivalently a^T * x)
    acc = [0.0] * a.cols
    for col in range(a.cols):
        s = 0.0
        for row in range(a.rows):
            s += x[row] * a.at(row, col)
        acc[col] = s
    for col, s in enumerate(acc):
        y[col] = s


# =============================================================================
# Norms and Queries
# =============================================================================

@fallback("l1_norm")
def l1_norm(a, alias):
    """Maximum absolute column sum."""
    best = 0.0
    for col in range(a.cols):
        best = max(best, sum(abs(a.at(row, col)) for row in range(a.rows)))
    return best


@fallback("infinity_norm")
def infinity_norm(a, alias):
    """Maximum absolute row sum."""
    best = 0.0
    for row in range(a.rows):
        best = max(best, sum(abs(a.at(row, col)) for col in range(a.cols)))
    return best


@fallback("frobenius_norm")
def frobenius_norm(a, alias):
    total = 0.0
    for row in range(a.rows):
        for col in range(a.cols):
            v = a.at(row, col)
            total += v * v
    return math.sqrt(total)


@fallback("trace")
def trace(a, alias):
    return sum(a.at(i, i) for i in range(min(a.rows, a.cols)))


@fallback("is_symmetric")
def is_symmetric(a, alias):
    if a.rows != a.cols:
        return False
    for row in range(a.rows):
        for col in range(row + 1, a.cols):
            if a.at(row, col) != a.at(col, row):
                return False
    return True
