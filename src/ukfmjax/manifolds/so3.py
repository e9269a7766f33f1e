"""Spatial rotation group SO(3).

Provides the exponential and logarithm maps between rotation vectors
(the Lie algebra so(3)) and rotation matrices, and the ``SO3`` state
class built on them.

``SO3`` uses the right-perturbation retraction

.. math::

    R \\oplus \\xi = R \\exp(\\xi^\\wedge), \\qquad
    R_1 \\ominus R_0 = \\log(R_0^T R_1)^\\vee

so tangent vectors are expressed in the body frame of the current
estimate.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from ukfmjax.config import get_dtype, get_manifold_epsilon
from ukfmjax.constants import PI


def so3_hat(v: ArrayLike) -> jax.Array:
    """Skew-symmetric (cross-product) matrix of a 3-vector.

    Args:
        v: Vector of shape ``(3,)``.

    Returns:
        Matrix ``[v]x`` of shape ``(3, 3)`` with ``[v]x @ w == cross(v, w)``.
    """
    v = jnp.asarray(v, dtype=get_dtype())
    zero = jnp.zeros((), dtype=v.dtype)
    return jnp.array(
        [
            [zero, -v[2], v[1]],
            [v[2], zero, -v[0]],
            [-v[1], v[0], zero],
        ]
    )


def so3_vee(m: ArrayLike) -> jax.Array:
    """Inverse of :func:`so3_hat` (uses the antisymmetric part of ``m``)."""
    m = jnp.asarray(m, dtype=get_dtype())
    return 0.5 * jnp.array([m[2, 1] - m[1, 2], m[0, 2] - m[2, 0], m[1, 0] - m[0, 1]])


def so3_exp(xi: ArrayLike) -> jax.Array:
    """Exponential map from a rotation vector to a rotation matrix.

    Uses Rodrigues' formula, switching to the second-order series when
    the squared angle falls below :func:`get_manifold_epsilon`.

    Args:
        xi: Rotation vector of shape ``(3,)`` in radians.

    Returns:
        Rotation matrix of shape ``(3, 3)``.
    """
    xi = jnp.asarray(xi, dtype=get_dtype()).reshape(3)
    theta_sq = jnp.dot(xi, xi)
    small = theta_sq < get_manifold_epsilon()
    theta = jnp.sqrt(jnp.where(small, 1.0, theta_sq))

    a = jnp.where(small, 1.0 - theta_sq / 6.0, jnp.sin(theta) / theta)
    b = jnp.where(small, 0.5 - theta_sq / 24.0, (1.0 - jnp.cos(theta)) / (theta * theta))

    K = so3_hat(xi)
    return jnp.eye(3, dtype=xi.dtype) + a * K + b * (K @ K)


def so3_log(R: ArrayLike) -> jax.Array:
    """Logarithm map from a rotation matrix to a rotation vector.

    The angle is recovered with ``atan2`` so it stays accurate for small
    rotations.  Rotations close to ``pi`` take the axis from the
    symmetric part of ``R``, where the antisymmetric part vanishes.

    Args:
        R: Rotation matrix of shape ``(3, 3)``.

    Returns:
        Rotation vector of shape ``(3,)`` with norm in ``[0, pi]``.
    """
    R = jnp.asarray(R, dtype=get_dtype())
    eps = get_manifold_epsilon()

    v = so3_vee(R)  # sin(theta) * axis
    s = jnp.linalg.norm(v)
    c = 0.5 * (jnp.trace(R) - 1.0)
    theta = jnp.arctan2(s, c)

    small = theta * theta < eps
    near_pi = (PI - theta) < jnp.sqrt(eps)

    # generic
    s_safe = jnp.where(s < eps, 1.0, s)
    generic = (theta / s_safe) * v

    # theta -> 0
    series = (1.0 + theta * theta / 6.0) * v

    # theta -> pi
    B = 0.5 * (0.5 * (R + R.T) + jnp.eye(3, dtype=R.dtype))
    k = jnp.argmax(jnp.diag(B))
    axis = B[:, k] / jnp.sqrt(jnp.maximum(B[k, k], eps))
    axis = axis / jnp.linalg.norm(axis)
    axis = jnp.where(jnp.dot(axis, v) < 0.0, -axis, axis)
    flipped = theta * axis

    return jnp.where(small, series, jnp.where(near_pi, flipped, generic))


def _is_so3(matrix: jax.Array, tol: float = 1e-6) -> bool:
    rtr = matrix.T @ matrix
    orth_err = jnp.max(jnp.abs(rtr - jnp.eye(3)))
    det = jnp.linalg.det(matrix)
    return bool(orth_err < tol and det > 0.0)


class SO3:
    """3D rotation stored as a rotation matrix.

    This class is registered as a JAX pytree with the matrix as the sole
    leaf.  Use :meth:`from_matrix`, :meth:`from_rotvec` or
    :meth:`identity` to construct.
    """

    __slots__ = ("_data",)

    def __init__(self, matrix: ArrayLike) -> None:
        data = jnp.asarray(matrix, dtype=get_dtype())
        if data.shape != (3, 3) or not _is_so3(data):
            raise ValueError("Matrix is not a proper rotation matrix.")
        self._data = data

    @classmethod
    def _from_internal(cls, data: jax.Array) -> SO3:
        obj = object.__new__(cls)
        obj._data = data
        return obj

    @classmethod
    def identity(cls) -> SO3:
        return cls._from_internal(jnp.eye(3, dtype=get_dtype()))

    @classmethod
    def from_matrix(cls, matrix: ArrayLike, validate: bool = True) -> SO3:
        """Create from a 3x3 rotation matrix.

        Args:
            matrix: Array of shape ``(3, 3)``.
            validate: Check orthogonality and ``det = +1``. Default: True.

        Raises:
            ValueError: If validation is requested and fails.
        """
        if validate:
            return cls(matrix)
        return cls._from_internal(jnp.asarray(matrix, dtype=get_dtype()))

    @classmethod
    def from_rotvec(cls, rotvec: ArrayLike) -> SO3:
        """Create from a rotation vector (axis times angle, radians)."""
        return cls._from_internal(so3_exp(rotvec))

    @property
    def matrix(self) -> jax.Array:
        """Rotation matrix of shape ``(3, 3)``."""
        return self._data

    def as_rotvec(self) -> jax.Array:
        return so3_log(self._data)

    def inverse(self) -> SO3:
        return SO3._from_internal(self._data.T)

    def rotate(self, v: ArrayLike) -> jax.Array:
        """Rotate a 3-vector: ``R @ v``."""
        return self._data @ jnp.asarray(v, dtype=self._data.dtype)

    def __mul__(self, other: SO3) -> SO3:
        """Composition ``self * other`` (matrix product)."""
        if not isinstance(other, SO3):
            return NotImplemented
        return SO3._from_internal(self._data @ other._data)

    def dimension(self) -> int:
        return 3

    def retract(self, xi: ArrayLike) -> SO3:
        return SO3._from_internal(self._data @ so3_exp(xi))

    def inverse_retract(self, reference: SO3) -> jax.Array:
        return so3_log(reference._data.T @ self._data)

    def __repr__(self) -> str:
        rv = self.as_rotvec()
        return f"SO3(rotvec=[{float(rv[0])}, {float(rv[1])}, {float(rv[2])}])"


jax.tree_util.register_pytree_node(
    SO3,
    lambda r: ((r._data,), None),
    lambda _, children: SO3._from_internal(children[0]),
)
