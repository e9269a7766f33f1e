"""Flat vector-space state.

Provides ``Euclidean``, the trivial manifold ``R^n`` on which retraction
is vector addition.  Filtering a ``Euclidean`` state reduces the UKF-M to
the classical unscented Kalman filter.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from ukfmjax.config import get_dtype


class Euclidean:
    """A point in ``R^n``.

    This class is registered as a JAX pytree with the coordinate vector
    as the sole leaf.

    Args:
        value (ArrayLike): Coordinates. Scalars are promoted to shape ``(1,)``.
    """

    __slots__ = ("_data",)

    def __init__(self, value: ArrayLike) -> None:
        self._data = jnp.atleast_1d(jnp.asarray(value, dtype=get_dtype()))
        if self._data.ndim != 1:
            raise ValueError(f"Euclidean value must be a vector, got shape {self._data.shape}")

    @classmethod
    def _from_internal(cls, data: jax.Array) -> Euclidean:
        obj = object.__new__(cls)
        obj._data = data
        return obj

    @classmethod
    def zeros(cls, n: int) -> Euclidean:
        """Return the origin of ``R^n``."""
        return cls._from_internal(jnp.zeros(n, dtype=get_dtype()))

    @property
    def value(self) -> jax.Array:
        """Coordinate vector of shape ``(n,)``."""
        return self._data

    def dimension(self) -> int:
        return int(self._data.shape[0])

    def retract(self, xi: ArrayLike) -> Euclidean:
        return Euclidean._from_internal(self._data + jnp.asarray(xi, dtype=self._data.dtype))

    def inverse_retract(self, reference: Euclidean) -> jax.Array:
        return self._data - reference._data

    def __repr__(self) -> str:
        return f"Euclidean({[float(v) for v in self._data]})"


jax.tree_util.register_pytree_node(
    Euclidean,
    lambda e: ((e._data,), None),
    lambda _, children: Euclidean._from_internal(children[0]),
)
