"""Module-wide floating-point precision configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
throughout ukfmjax.  The default is ``jnp.float64``: the default Merwe
sampling parameters (``alpha=1e-3``) produce sigma point weights of order
``1e6`` whose cancellation float32 cannot carry.  Importing this module
therefore enables JAX's 64-bit mode (``jax_enable_x64``).

Call ``set_dtype`` before building any filter.  The filters run eagerly,
so a change takes effect on the next ``predict`` or ``update`` call.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float32, jnp.float64)

jax.config.update("jax_enable_x64", True)
_dtype = jnp.float64


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for ukfmjax.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is (re-)enabled via
    ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float32`` or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float64``).
    """
    return _dtype


def get_manifold_epsilon() -> float:
    """Return the dtype-adaptive small-angle threshold for manifold maps.

    When the squared rotation angle falls below this value the rotation
    exponential and logarithm switch to their series expansions.

    - ``float64``: 1e-12
    - ``float32``: 1e-6

    Returns:
        float: Squared-angle threshold in radians squared.
    """
    if _dtype == jnp.float64:
        return 1e-12
    return 1e-6
