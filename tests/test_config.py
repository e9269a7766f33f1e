"""Tests for the ukfmjax.config module."""

import jax
import jax.numpy as jnp
import pytest

from ukfmjax.config import get_dtype, get_manifold_epsilon, set_dtype
from ukfmjax.manifolds import SO3, Euclidean


@pytest.fixture(autouse=True)
def reset_dtype():
    """Reset dtype to the float64 default after each test."""
    set_dtype(jnp.float64)
    yield
    set_dtype(jnp.float64)


class TestGetSetDtype:
    def test_default_dtype(self):
        assert get_dtype() == jnp.float64

    def test_set_float32(self):
        set_dtype(jnp.float32)
        assert get_dtype() == jnp.float32

    def test_roundtrip(self):
        for dtype in (jnp.float32, jnp.float64):
            set_dtype(dtype)
            assert get_dtype() == dtype

    def test_invalid_dtype_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.int32)

    def test_float16_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.float16)

    def test_invalid_dtype_string_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype("float32")

    def test_float64_enables_x64(self):
        set_dtype(jnp.float64)
        assert jax.config.jax_enable_x64 is True


class TestManifoldEpsilon:
    def test_float64_epsilon(self):
        assert get_manifold_epsilon() == 1e-12

    def test_float32_epsilon(self):
        set_dtype(jnp.float32)
        assert get_manifold_epsilon() == 1e-6


class TestDtypePropagation:
    def test_euclidean_follows_dtype(self):
        """States are created in the configured dtype."""
        set_dtype(jnp.float32)
        assert Euclidean([1.0, 2.0]).value.dtype == jnp.float32
        set_dtype(jnp.float64)
        assert Euclidean([1.0, 2.0]).value.dtype == jnp.float64

    def test_so3_follows_dtype(self):
        set_dtype(jnp.float32)
        assert SO3.identity().matrix.dtype == jnp.float32
