"""
Pytest configuration and shared fixtures for polymat tests.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

import polymat as pm
from polymat import DispatchConfig, StorageKind


ALL_KINDS = list(StorageKind)

# Kinds able to hold an arbitrary sparsity pattern
GENERAL_KINDS = [StorageKind.DENSE, StorageKind.CSR, StorageKind.KNUTH]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from the default configuration."""
    pm.reset_config()
    yield pm.config
    pm.reset_config()


@pytest.fixture(params=ALL_KINDS, ids=lambda k: k.value)
def kind(request):
    """Every storage kind."""
    return request.param


@pytest.fixture(params=GENERAL_KINDS, ids=lambda k: k.value)
def general_kind(request):
    """Storage kinds without a fixed sparsity pattern."""
    return request.param


@pytest.fixture
def rect_array():
    """Small rectangular test matrix (3x4).

    Matrix:
    [[1, 0, 2, 0],
     [0, 3, 0, 4],
     [5, 0, 0, 6]]
    """
    return np.array([
        [1, 0, 2, 0],
        [0, 3, 0, 4],
        [5, 0, 0, 6],
    ], dtype=np.float64)


@pytest.fixture
def square_array():
    """Small square, non-symmetric test matrix (3x3)."""
    return np.array([
        [2, 0, 1],
        [0, 3, 0],
        [4, 0, 5],
    ], dtype=np.float64)


@pytest.fixture
def no_specialization():
    """Run the body with every operation forced onto the generic algorithms."""
    with pm.config.local(dispatch=DispatchConfig(specialize=False)):
        yield


# =============================================================================
# Helper Functions
# =============================================================================

def diagonal_part(array):
    """Zero everything off the main diagonal (keeps the shape)."""
    arr = np.asarray(array, dtype=np.float64)
    out = np.zeros_like(arr)
    n = min(arr.shape)
    out[np.arange(n), np.arange(n)] = arr[np.arange(n), np.arange(n)]
    return out


def make(array, kind):
    """Build a matrix of ``kind``; diagonal kinds keep only the diagonal."""
    arr = np.asarray(array, dtype=np.float64)
    if kind is StorageKind.DIAGONAL:
        arr = diagonal_part(arr)
    return pm.from_numpy(arr, kind=kind)


def expected_for(array, kind):
    """The array a matrix built by ``make(array, kind)`` holds."""
    arr = np.asarray(array, dtype=np.float64)
    return diagonal_part(arr) if kind is StorageKind.DIAGONAL else arr


def assert_matrix_equal(matrix, expected, rtol=1e-12, atol=1e-12):
    """Assert a matrix holds the values of ``expected``."""
    expected = np.asarray(expected, dtype=np.float64)
    assert matrix.shape == expected.shape
    np.testing.assert_allclose(matrix.to_array(), expected, rtol=rtol, atol=atol)
