"""Structural type shared by all manifold state representations.

The filter engine never inspects a state directly.  It only needs a
tangent-space dimension and a retraction pair:

- ``retract(xi)`` maps a tangent vector at the state to a new state and
  satisfies ``x.retract(0) == x``.
- ``y.inverse_retract(x)`` returns the tangent vector at ``x`` carrying
  ``x`` to ``y``, so that ``x.retract(v).inverse_retract(x) ≈ v`` for
  small ``v``.

Any object with these three methods can be filtered; the concrete
classes in :mod:`ukfmjax.manifolds` are provided for the common cases.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jax import Array
from jax.typing import ArrayLike


@runtime_checkable
class Manifold(Protocol):
    """Protocol for manifold-valued filter states."""

    def dimension(self) -> int: ...

    def retract(self, xi: ArrayLike) -> Manifold: ...

    def inverse_retract(self, reference: Manifold) -> Array: ...
