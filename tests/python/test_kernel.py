"""
Tests for the linear algebra providers.

The BLAS provider is checked against the managed (NumPy) provider, which
is the reference implementation.
"""

import numpy as np
import pytest

import polymat as pm
from polymat import Norm
from polymat._kernel import BlasProvider, ManagedProvider, get_provider, set_provider


@pytest.fixture(params=["managed", "blas"])
def provider(request):
    """Every registered provider."""
    return get_provider(request.param)


def column_major(array):
    return np.asarray(array, dtype=np.float64).ravel(order='F').copy()


class TestRegistry:
    """Test provider lookup and selection."""

    def test_default_provider(self):
        """Test the managed provider is the default."""
        assert isinstance(get_provider(), ManagedProvider)
        assert get_provider().name == "managed"

    def test_cached_instances(self):
        """Test providers are created once per name."""
        assert get_provider("blas") is get_provider("blas")

    def test_unknown_provider(self):
        """Test unknown names are rejected."""
        with pytest.raises(ValueError):
            get_provider("cuda")

    def test_set_provider(self):
        """Test set_provider switches the global provider."""
        p = set_provider("blas")
        assert isinstance(p, BlasProvider)
        assert pm.config.provider == "blas"
        assert get_provider() is p

    def test_local_provider(self):
        """Test a local context selects the provider for the dense paths."""
        with pm.config.local(provider="blas"):
            assert get_provider().name == "blas"
        assert get_provider().name == "managed"


class TestElementwiseKernels:
    """Test elementwise kernels."""

    def test_add_subtract(self, provider):
        """Test add and subtract write into out."""
        x = np.array([1.0, 2.0, 3.0])
        y = np.array([0.5, -1.0, 4.0])
        out = np.empty(3)
        assert provider.add_arrays(x, y, out) is out
        np.testing.assert_allclose(out, x + y)
        provider.subtract_arrays(x, y, out)
        np.testing.assert_allclose(out, x - y)

    def test_in_place(self, provider):
        """Test out may be one of the inputs."""
        x = np.array([1.0, 2.0])
        provider.add_arrays(x, x, x)
        np.testing.assert_allclose(x, [2.0, 4.0])
        provider.scale_array(0.5, x, x)
        np.testing.assert_allclose(x, [1.0, 2.0])

    def test_empty(self, provider):
        """Test zero-length buffers are accepted."""
        out = np.empty(0)
        provider.add_arrays(np.empty(0), np.empty(0), out)
        provider.scale_array(2.0, np.empty(0), out)
        assert out.size == 0

    def test_pointwise_divide_ieee(self, provider):
        """Test division by zero follows IEEE rules."""
        out = np.empty(3)
        provider.pointwise_divide_arrays(np.array([1.0, -1.0, 0.0]), np.zeros(3), out)
        assert out[0] == np.inf
        assert out[1] == -np.inf
        assert np.isnan(out[2])


class TestMatrixKernels:
    """Test norms and general multiply."""

    @pytest.fixture
    def matrix(self):
        return np.array([[1.0, -2.0, 0.0], [3.0, 4.0, -5.0]])

    def test_norms(self, provider, matrix):
        """Test every norm against NumPy."""
        data = column_major(matrix)
        assert provider.matrix_norm(Norm.ONE, 2, 3, data) == pytest.approx(np.linalg.norm(matrix, 1))
        assert provider.matrix_norm(Norm.INFINITY, 2, 3, data) == pytest.approx(np.linalg.norm(matrix, np.inf))
        assert provider.matrix_norm(Norm.FROBENIUS, 2, 3, data) == pytest.approx(np.linalg.norm(matrix))
        assert provider.matrix_norm(Norm.LARGEST_ABSOLUTE, 2, 3, data) == 5.0

    def test_norm_of_empty(self, provider):
        """Test empty matrices have norm zero."""
        assert provider.matrix_norm(Norm.ONE, 0, 3, np.empty(0)) == 0.0

    @pytest.mark.parametrize("ta, tb", [(False, False), (True, False), (False, True), (True, True)])
    def test_gemm(self, provider, ta, tb):
        """Test c = op(a) op(b) for every transpose combination."""
        rng = np.random.default_rng(7)
        a = rng.standard_normal((3, 4))
        b = rng.standard_normal((4, 2))
        if ta:
            a = a.T.copy()
        if tb:
            b = b.T.copy()
        op_a = a.T if ta else a
        op_b = b.T if tb else b
        c = np.empty(3 * 2)
        provider.matrix_multiply_with_update(
            ta, tb, 1.0, column_major(a), a.shape[0], a.shape[1],
            column_major(b), b.shape[0], b.shape[1], 0.0, c,
        )
        np.testing.assert_allclose(c.reshape((3, 2), order='F'), op_a @ op_b, rtol=1e-12)

    def test_gemm_update(self, provider):
        """Test alpha and beta scale the product and the previous contents."""
        a = np.eye(2)
        b = np.array([[1.0, 2.0], [3.0, 4.0]])
        c = column_major(np.ones((2, 2)))
        provider.matrix_multiply_with_update(
            False, False, 2.0, column_major(a), 2, 2, column_major(b), 2, 2, 3.0, c,
        )
        np.testing.assert_allclose(c.reshape((2, 2), order='F'), 2.0 * b + 3.0)

    def test_gemm_beta_zero_ignores_nan(self, provider):
        """Test beta == 0 overwrites NaN already in c."""
        c = np.full(4, np.nan)
        provider.matrix_multiply_with_update(
            False, False, 1.0, column_major(np.eye(2)), 2, 2, column_major(np.eye(2)), 2, 2, 0.0, c,
        )
        np.testing.assert_allclose(c, [1.0, 0.0, 0.0, 1.0])

    def test_gemm_shape_mismatch(self, provider):
        """Test inner dimension mismatch raises."""
        with pytest.raises(pm.DimensionMismatchError):
            provider.matrix_multiply_with_update(
                False, False, 1.0, np.zeros(6), 2, 3, np.zeros(4), 2, 2, 0.0, np.zeros(4),
            )


class TestProviderEquivalence:
    """Test dense matrix operations agree across providers."""

    def test_dense_operations(self, square_array):
        """Test product, sum and norm agree between providers."""
        a = pm.DenseMatrix.of_array(square_array)
        b = pm.DenseMatrix.of_array(square_array.T)
        managed = (a @ b, a + b, a.frobenius_norm())
        with pm.config.local(provider="blas"):
            blas = (a @ b, a + b, a.frobenius_norm())
        assert managed[0].almost_equal(blas[0])
        assert managed[1] == blas[1]
        assert managed[2] == pytest.approx(blas[2])
