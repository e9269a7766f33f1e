import jax.numpy as jnp
import pytest

from ukfmjax.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    test_config.py switches the dtype around; this fixture restores float64
    for every other test regardless of ordering or pytest-xdist workers.
    """
    set_dtype(jnp.float64)
