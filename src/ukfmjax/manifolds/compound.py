"""Product of manifolds.

Provides ``CompoundManifold``, the Cartesian product of any number of
manifold states (e.g. ``SO3 x R^3 x R^3`` for attitude, velocity and
position).  The tangent vector of the product is the concatenation of
the component tangent vectors, in component order.
"""

from __future__ import annotations

from collections.abc import Iterator

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from ukfmjax.manifolds._types import Manifold


class CompoundManifold:
    """Cartesian product of manifold states.

    This class is registered as a JAX pytree whose children are the
    component states.

    Args:
        *components: Component states, each satisfying
            :class:`~ukfmjax.manifolds.Manifold`.
    """

    __slots__ = ("_components",)

    def __init__(self, *components: Manifold) -> None:
        if not components:
            raise ValueError("CompoundManifold requires at least one component")
        self._components = tuple(components)

    @property
    def components(self) -> tuple[Manifold, ...]:
        return self._components

    def __len__(self) -> int:
        return len(self._components)

    def __getitem__(self, index: int) -> Manifold:
        return self._components[index]

    def __iter__(self) -> Iterator[Manifold]:
        return iter(self._components)

    def dimension(self) -> int:
        return sum(c.dimension() for c in self._components)

    def retract(self, xi: ArrayLike) -> CompoundManifold:
        xi = jnp.asarray(xi).reshape(-1)
        if xi.shape[0] != self.dimension():
            raise ValueError(
                f"Tangent vector has length {xi.shape[0]}, expected {self.dimension()}"
            )
        parts = []
        offset = 0
        for c in self._components:
            d = c.dimension()
            parts.append(c.retract(xi[offset : offset + d]))
            offset += d
        return CompoundManifold(*parts)

    def inverse_retract(self, reference: CompoundManifold) -> jax.Array:
        if len(reference) != len(self):
            raise ValueError("Compound manifolds have different numbers of components")
        return jnp.concatenate(
            [
                jnp.atleast_1d(c.inverse_retract(r))
                for c, r in zip(self._components, reference.components)
            ]
        )

    def __repr__(self) -> str:
        inner = ", ".join(repr(c) for c in self._components)
        return f"CompoundManifold({inner})"


jax.tree_util.register_pytree_node(
    CompoundManifold,
    lambda m: (m._components, None),
    lambda _, children: CompoundManifold(*children),
)
