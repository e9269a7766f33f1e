"""Manifold state representations for UKF-M filtering.

Provides concrete states that satisfy the :class:`Manifold` protocol
(``dimension``, ``retract``, ``inverse_retract``):

- :class:`Euclidean` -- flat vector space ``R^n``
- :class:`SO2` -- planar rotation (heading)
- :class:`SO3` -- 3D rotation, right-perturbation retraction
- :class:`CompoundManifold` -- Cartesian product of other states

Also re-exports the so(3) maps :func:`so3_hat`, :func:`so3_vee`,
:func:`so3_exp`, :func:`so3_log` and the :func:`wrap_angle` helper.
"""

from ukfmjax.manifolds._types import Manifold
from ukfmjax.manifolds.compound import CompoundManifold
from ukfmjax.manifolds.euclidean import Euclidean
from ukfmjax.manifolds.so2 import SO2, wrap_angle
from ukfmjax.manifolds.so3 import SO3, so3_exp, so3_hat, so3_log, so3_vee

__all__ = [
    "Manifold",
    "Euclidean",
    "SO2",
    "SO3",
    "CompoundManifold",
    "wrap_angle",
    "so3_hat",
    "so3_vee",
    "so3_exp",
    "so3_log",
]
