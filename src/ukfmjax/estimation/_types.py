"""Type definitions for manifold state estimation.

Provides the core data types used by the UKF-M engine:

- :class:`FilterState`: Manifold-valued estimate and its tangent-space
  covariance.
- :class:`FilterResult`: Output of a measurement update, containing the
  updated state plus diagnostic information for filter tuning.
- :class:`SigmaSet`: Sigma point perturbations and weights drawn from
  one covariance. Lives for the duration of a single predict or update.
- :class:`StateMeasurement` / :class:`NoiseMeasurement`: Tags selecting
  how a measurement function receives its noise.
- :class:`Sampling`: Names of the available sigma point schemes.

The NamedTuple types are pytrees, so they work with ``jax.tree_util``
whenever the wrapped state is a registered pytree (all classes in
:mod:`ukfmjax.manifolds` are).
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, NamedTuple

from jax import Array

from ukfmjax.manifolds import Manifold


class FilterState(NamedTuple):
    """State of a manifold Kalman filter.

    Attributes:
        x: State estimate, a manifold value of intrinsic dimension ``n``.
        P: Error covariance of shape ``(n, n)`` in the tangent space at
            ``x``. Must be symmetric positive semi-definite.
    """

    x: Any
    P: Array


class FilterResult(NamedTuple):
    """Result of a filter measurement update step.

    Attributes:
        state: Updated :class:`FilterState` after incorporating the
            measurement.
        innovation: Measurement residual ``z - y`` of shape ``(m,)``,
            ``y`` being the sigma point mean measurement.
        innovation_covariance: Innovation covariance ``S`` of shape
            ``(m, m)``. The normalized innovation squared
            ``innovation.T @ S^{-1} @ innovation`` should follow a
            chi-squared distribution with ``m`` degrees of freedom.
        kalman_gain: Kalman gain ``K`` of shape ``(n, m)``.
    """

    state: FilterState
    innovation: Array
    innovation_covariance: Array
    kalman_gain: Array


class SigmaSet(NamedTuple):
    """Sigma point perturbations and weights for one covariance.

    Index 0 of the weight arrays belongs to the unperturbed (mean) point,
    which has no entry in ``deltas``.  Perturbation ``deltas[i]`` pairs
    with weight index ``i + 1``.

    Attributes:
        deltas: Tangent perturbations of shape ``(2n, n)``. Rows
            ``0..n-1`` are the scaled Cholesky columns and rows
            ``n..2n-1`` their negatives, so ``deltas[i] == -deltas[i + n]``.
        wm: Mean weights of shape ``(2n + 1,)``, summing to one.
        wc: Covariance weights of shape ``(2n + 1,)``. Equal to ``wm``
            except possibly at index 0.
    """

    deltas: Array
    wm: Array
    wc: Array


class StateMeasurement(NamedTuple):
    """Measurement function with noise already composed into the state.

    ``fn(x) -> y``: the filter retracts each state perturbation onto the
    estimate before calling ``fn`` and adds the measurement noise
    covariance to the innovation covariance directly.
    """

    fn: Callable[[Manifold], Array]


class NoiseMeasurement(NamedTuple):
    """Measurement function receiving state and measurement noise explicitly.

    ``fn(x, state_noise, measurement_noise) -> y``: the filter samples the
    block-diagonal covariance ``diag(P, R)`` and passes the two blocks of
    each perturbation separately. ``fn`` must apply them itself.
    """

    fn: Callable[[Manifold, Array, Array], Array]


class Sampling(Enum):
    """Sigma point scheme selector."""

    MERWE = "merwe"
    JULIER = "julier"
