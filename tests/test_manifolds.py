"""Tests for the ukfmjax.manifolds module.

Tests cover:
- Retraction contract: ``retract(0)`` is the identity and
  ``x.retract(v).inverse_retract(x) ≈ v`` for small ``v``
- so(3) exponential and logarithm maps, including small and near-pi angles
- SO(2) angle wrapping
- CompoundManifold tangent splitting and concatenation
- Pytree registration of every state class
"""

import math

import jax
import jax.numpy as jnp
import pytest

from ukfmjax.manifolds import (
    SO2,
    SO3,
    CompoundManifold,
    Euclidean,
    Manifold,
    so3_exp,
    so3_hat,
    so3_log,
    so3_vee,
    wrap_angle,
)

ATOL = 1e-10


def _states():
    return [
        (Euclidean([1.0, -2.0, 0.5]), jnp.array([1e-3, -2e-3, 5e-4])),
        (SO2(2.5), jnp.array([0.3])),
        (SO3.from_rotvec(jnp.array([0.4, -0.1, 1.2])), jnp.array([1e-2, 3e-3, -7e-3])),
        (
            CompoundManifold(SO3.from_rotvec(jnp.array([0.0, 0.2, 0.0])), Euclidean([1.0, 2.0])),
            jnp.array([1e-3, 0.0, -2e-3, 0.1, -0.2]),
        ),
    ]


# ──────────────────────────────────────────────
# Retraction contract
# ──────────────────────────────────────────────


class TestRetractionContract:
    @pytest.mark.parametrize("state,v", _states())
    def test_satisfies_protocol(self, state, v):
        """Every concrete state satisfies the Manifold protocol."""
        assert isinstance(state, Manifold)
        assert state.dimension() == v.shape[0]

    @pytest.mark.parametrize("state,v", _states())
    def test_zero_retraction_is_identity(self, state, v):
        """retract(0) leaves the state unchanged."""
        moved = state.retract(jnp.zeros(state.dimension()))
        assert jnp.allclose(moved.inverse_retract(state), 0.0, atol=ATOL)

    @pytest.mark.parametrize("state,v", _states())
    def test_inverse_retract_of_retract(self, state, v):
        """inverse_retract(retract(v)) recovers v."""
        moved = state.retract(v)
        assert jnp.allclose(moved.inverse_retract(state), v, atol=ATOL)

    @pytest.mark.parametrize("state,v", _states())
    def test_inverse_retract_self_is_zero(self, state, v):
        assert jnp.allclose(state.inverse_retract(state), 0.0, atol=ATOL)


# ──────────────────────────────────────────────
# Euclidean
# ──────────────────────────────────────────────


class TestEuclidean:
    def test_scalar_promoted(self):
        """A scalar becomes a 1-vector."""
        e = Euclidean(3.0)
        assert e.value.shape == (1,)
        assert e.dimension() == 1

    def test_retract_is_addition(self):
        e = Euclidean([1.0, 2.0]).retract(jnp.array([0.5, -1.0]))
        assert jnp.allclose(e.value, jnp.array([1.5, 1.0]))

    def test_inverse_retract_is_difference(self):
        d = Euclidean([1.0, 2.0]).inverse_retract(Euclidean([0.5, 0.5]))
        assert jnp.allclose(d, jnp.array([0.5, 1.5]))

    def test_zeros(self):
        assert jnp.allclose(Euclidean.zeros(4).value, jnp.zeros(4))

    def test_rejects_matrix(self):
        with pytest.raises(ValueError, match="must be a vector"):
            Euclidean(jnp.eye(2))


# ──────────────────────────────────────────────
# SO(2)
# ──────────────────────────────────────────────


class TestSO2:
    def test_wrap_angle_range(self):
        """Wrapped angles lie in (-pi, pi]."""
        angles = jnp.array([-7.0, -math.pi, -1.0, 0.0, 1.0, math.pi, 4.0, 10.0])
        wrapped = wrap_angle(angles)
        assert jnp.all(wrapped > -math.pi)
        assert jnp.all(wrapped <= math.pi)
        assert jnp.allclose(jnp.sin(wrapped), jnp.sin(angles), atol=ATOL)
        assert jnp.allclose(jnp.cos(wrapped), jnp.cos(angles), atol=ATOL)

    def test_minus_pi_maps_to_pi(self):
        assert float(wrap_angle(-math.pi)) == pytest.approx(math.pi)

    def test_difference_across_branch_cut(self):
        """Differences never jump by a full turn."""
        a = SO2(math.pi - 0.1)
        b = SO2(-math.pi + 0.1)
        assert float(b.inverse_retract(a)[0]) == pytest.approx(0.2, abs=ATOL)
        assert float(a.inverse_retract(b)[0]) == pytest.approx(-0.2, abs=ATOL)

    def test_retract_wraps(self):
        r = SO2(3.0).retract(jnp.array([0.5]))
        assert float(r.angle) == pytest.approx(3.5 - 2 * math.pi, abs=ATOL)

    def test_rotate(self):
        v = SO2(math.pi / 2).rotate(jnp.array([1.0, 0.0]))
        assert jnp.allclose(v, jnp.array([0.0, 1.0]), atol=ATOL)

    def test_matrix_orthogonal(self):
        M = SO2(0.7).matrix
        assert jnp.allclose(M.T @ M, jnp.eye(2), atol=ATOL)


# ──────────────────────────────────────────────
# SO(3)
# ──────────────────────────────────────────────


class TestSO3Maps:
    def test_hat_is_cross_product(self):
        v = jnp.array([1.0, -2.0, 3.0])
        w = jnp.array([0.5, 0.1, -0.4])
        assert jnp.allclose(so3_hat(v) @ w, jnp.cross(v, w), atol=ATOL)

    def test_vee_inverts_hat(self):
        v = jnp.array([1.0, -2.0, 3.0])
        assert jnp.allclose(so3_vee(so3_hat(v)), v, atol=ATOL)

    def test_exp_zero_is_identity(self):
        assert jnp.allclose(so3_exp(jnp.zeros(3)), jnp.eye(3), atol=ATOL)

    def test_exp_about_z(self):
        """Rotation of 90 degrees about z maps x to y."""
        R = so3_exp(jnp.array([0.0, 0.0, math.pi / 2]))
        assert jnp.allclose(R @ jnp.array([1.0, 0.0, 0.0]), jnp.array([0.0, 1.0, 0.0]), atol=ATOL)

    def test_exp_is_rotation(self):
        R = so3_exp(jnp.array([0.3, -1.1, 2.0]))
        assert jnp.allclose(R.T @ R, jnp.eye(3), atol=ATOL)
        assert float(jnp.linalg.det(R)) == pytest.approx(1.0, abs=ATOL)

    @pytest.mark.parametrize(
        "rotvec",
        [
            [0.3, -1.1, 2.0],
            [1e-9, 0.0, -2e-9],
            [1e-4, 2e-4, -3e-4],
            [0.0, 0.0, 3.0],
        ],
    )
    def test_log_inverts_exp(self, rotvec):
        v = jnp.array(rotvec)
        assert jnp.allclose(so3_log(so3_exp(v)), v, atol=1e-9)

    def test_log_near_pi(self):
        """Axis is recovered for rotations within 1e-8 of pi."""
        axis = jnp.array([1.0, 2.0, -2.0]) / 3.0
        v = (math.pi - 1e-8) * axis
        w = so3_log(so3_exp(v))
        assert jnp.allclose(w, v, atol=1e-6)

    def test_log_at_pi_has_norm_pi(self):
        R = so3_exp(jnp.array([0.0, math.pi, 0.0]))
        w = so3_log(R)
        assert float(jnp.linalg.norm(w)) == pytest.approx(math.pi, abs=1e-9)
        assert jnp.allclose(so3_exp(w), R, atol=1e-9)


class TestSO3:
    def test_rejects_non_rotation(self):
        with pytest.raises(ValueError, match="not a proper rotation"):
            SO3(2.0 * jnp.eye(3))

    def test_rejects_reflection(self):
        with pytest.raises(ValueError, match="not a proper rotation"):
            SO3(jnp.diag(jnp.array([1.0, 1.0, -1.0])))

    def test_from_matrix_without_validation(self):
        M = 2.0 * jnp.eye(3)
        assert jnp.allclose(SO3.from_matrix(M, validate=False).matrix, M)

    def test_rotvec_roundtrip(self):
        v = jnp.array([0.2, 0.4, -0.6])
        assert jnp.allclose(SO3.from_rotvec(v).as_rotvec(), v, atol=ATOL)

    def test_inverse(self):
        r = SO3.from_rotvec(jnp.array([0.2, 0.4, -0.6]))
        assert jnp.allclose((r * r.inverse()).matrix, jnp.eye(3), atol=ATOL)

    def test_retract_is_right_perturbation(self):
        """x.retract(xi) equals x * exp(xi)."""
        x = SO3.from_rotvec(jnp.array([0.5, 0.0, 0.0]))
        xi = jnp.array([0.0, 0.1, 0.0])
        expected = x * SO3.from_rotvec(xi)
        assert jnp.allclose(x.retract(xi).matrix, expected.matrix, atol=ATOL)

    def test_rotate(self):
        r = SO3.from_rotvec(jnp.array([0.0, 0.0, math.pi / 2]))
        assert jnp.allclose(r.rotate(jnp.array([1.0, 0.0, 0.0])), jnp.array([0.0, 1.0, 0.0]), atol=ATOL)


# ──────────────────────────────────────────────
# CompoundManifold
# ──────────────────────────────────────────────


class TestCompoundManifold:
    def _pose(self):
        return CompoundManifold(SO2(0.5), Euclidean([1.0, 2.0]))

    def test_dimension_is_sum(self):
        assert self._pose().dimension() == 3

    def test_container_access(self):
        pose = self._pose()
        assert len(pose) == 2
        assert isinstance(pose[0], SO2)
        heading, position = pose
        assert isinstance(position, Euclidean)

    def test_retract_splits_tangent(self):
        """The tangent vector is split in component order."""
        moved = self._pose().retract(jnp.array([0.1, -1.0, 1.0]))
        assert float(moved[0].angle) == pytest.approx(0.6)
        assert jnp.allclose(moved[1].value, jnp.array([0.0, 3.0]))

    def test_inverse_retract_concatenates(self):
        a = self._pose()
        b = CompoundManifold(SO2(0.7), Euclidean([1.5, 1.0]))
        assert jnp.allclose(b.inverse_retract(a), jnp.array([0.2, 0.5, -1.0]), atol=ATOL)

    def test_wrong_tangent_length_raises(self):
        with pytest.raises(ValueError, match="expected 3"):
            self._pose().retract(jnp.zeros(4))

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="at least one component"):
            CompoundManifold()

    def test_mismatched_inverse_retract_raises(self):
        with pytest.raises(ValueError, match="different numbers of components"):
            self._pose().inverse_retract(CompoundManifold(SO2(0.0)))


# ──────────────────────────────────────────────
# Pytree registration
# ──────────────────────────────────────────────


class TestPytrees:
    @pytest.mark.parametrize("state,v", _states())
    def test_flatten_unflatten(self, state, v):
        """States survive a pytree flatten/unflatten roundtrip."""
        leaves, treedef = jax.tree_util.tree_flatten(state)
        rebuilt = jax.tree_util.tree_unflatten(treedef, leaves)
        assert type(rebuilt) is type(state)
        assert jnp.allclose(rebuilt.inverse_retract(state), 0.0, atol=ATOL)

    def test_tree_map_scales_leaves(self):
        e = jax.tree_util.tree_map(lambda a: 2.0 * a, Euclidean([1.0, 2.0]))
        assert jnp.allclose(e.value, jnp.array([2.0, 4.0]))
