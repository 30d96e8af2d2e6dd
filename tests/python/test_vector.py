"""
Tests for DenseVector.
"""

import numpy as np
import pytest

import polymat as pm
from polymat import DenseVector


class TestDenseVector:
    """Test the vector contract."""

    def test_create(self):
        """Test zero and filled construction."""
        assert DenseVector(3).to_array().tolist() == [0.0, 0.0, 0.0]
        assert DenseVector.create(2, 1.5).to_array().tolist() == [1.5, 1.5]

    def test_negative_size(self):
        """Test negative sizes are rejected."""
        with pytest.raises(ValueError):
            DenseVector(-1)

    def test_from_array_copies(self):
        """Test from_array does not alias its input."""
        data = np.array([1.0, 2.0])
        v = DenseVector.from_array(data)
        data[0] = 9.0
        assert v[0] == 1.0

    def test_indexing(self):
        """Test checked get and set."""
        v = DenseVector(2)
        v[1] = 4.0
        assert v[1] == 4.0
        assert len(v) == v.count == 2
        with pytest.raises(pm.IndexOutOfRangeError):
            v[2]
        with pytest.raises(IndexError):
            v[-1] = 1.0

    def test_iteration(self):
        """Test iteration yields floats."""
        assert list(DenseVector.from_array([1, 2])) == [1.0, 2.0]

    def test_clear_and_copy_to(self):
        """Test clear and copy_to."""
        v = DenseVector.from_array([1.0, 2.0])
        w = v.create_like()
        v.copy_to(w)
        assert w == v
        v.clear()
        assert v.to_array().tolist() == [0.0, 0.0]
        assert w.to_array().tolist() == [1.0, 2.0]

    def test_copy_to_mismatch(self):
        """Test copy_to requires equal lengths."""
        with pytest.raises(pm.DimensionMismatchError):
            DenseVector(2).copy_to(DenseVector(3))

    def test_equality(self):
        """Test value equality and unhashability."""
        assert DenseVector.from_array([1, 2]) == DenseVector.from_array([1.0, 2.0])
        assert DenseVector.from_array([1, 2]) != DenseVector.from_array([1, 2, 3])
        with pytest.raises(TypeError):
            hash(DenseVector(1))
