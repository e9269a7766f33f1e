"""Planar rotation group SO(2).

Provides ``SO2``, a heading angle kept in ``(-pi, pi]``.  The tangent
space is one-dimensional and the retraction is angle addition followed
by wrapping, so differences never jump by a full turn.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from ukfmjax.config import get_dtype
from ukfmjax.constants import PI, TWO_PI


def wrap_angle(angle: ArrayLike) -> jax.Array:
    """Wrap an angle to the interval ``(-pi, pi]``.

    Args:
        angle: Angle in radians.

    Returns:
        Wrapped angle in radians.
    """
    a = jnp.asarray(angle, dtype=get_dtype())
    wrapped = jnp.mod(a + PI, TWO_PI) - PI
    return jnp.where(wrapped <= -PI, wrapped + TWO_PI, wrapped)


class SO2:
    """Planar rotation stored as a wrapped angle.

    This class is registered as a JAX pytree with the angle as the sole
    leaf.

    Args:
        angle (float): Rotation angle in radians. Wrapped to ``(-pi, pi]``.
    """

    __slots__ = ("_angle",)

    def __init__(self, angle: float) -> None:
        self._angle = wrap_angle(jnp.asarray(angle, dtype=get_dtype()).reshape(()))

    @classmethod
    def _from_internal(cls, angle: jax.Array) -> SO2:
        obj = object.__new__(cls)
        obj._angle = angle
        return obj

    @classmethod
    def identity(cls) -> SO2:
        return cls._from_internal(jnp.asarray(0.0, dtype=get_dtype()))

    @property
    def angle(self) -> jax.Array:
        """Rotation angle in ``(-pi, pi]`` radians."""
        return self._angle

    @property
    def matrix(self) -> jax.Array:
        """2x2 rotation matrix."""
        c = jnp.cos(self._angle)
        s = jnp.sin(self._angle)
        return jnp.array([[c, -s], [s, c]])

    def rotate(self, v: ArrayLike) -> jax.Array:
        """Rotate a 2-vector by this rotation."""
        return self.matrix @ jnp.asarray(v, dtype=self._angle.dtype)

    def dimension(self) -> int:
        return 1

    def retract(self, xi: ArrayLike) -> SO2:
        xi = jnp.asarray(xi, dtype=self._angle.dtype).reshape(-1)
        return SO2._from_internal(wrap_angle(self._angle + xi[0]))

    def inverse_retract(self, reference: SO2) -> jax.Array:
        return wrap_angle(self._angle - reference._angle).reshape(1)

    def __repr__(self) -> str:
        return f"SO2(angle={float(self._angle)})"


jax.tree_util.register_pytree_node(
    SO2,
    lambda r: ((r._angle,), None),
    lambda _, children: SO2._from_internal(children[0]),
)
