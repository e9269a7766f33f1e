"""Unscented Kalman Filter on manifolds (UKF-M) predict and update functions.

Implements the UKF-M of Brossard, Barrau and Bonnabel ("A Code for
Unscented Kalman Filtering on Manifolds", ICRA 2020).  The state is any
object satisfying :class:`~ukfmjax.manifolds.Manifold`; its covariance
lives in the tangent space at the current estimate.  Sigma points are
formed by retracting tangent perturbations onto the estimate, and
propagated points are compared with the predicted mean through the
inverse retraction, never by subtraction.

The prediction treats state uncertainty and process noise separately:
one sigma set is drawn from ``P`` and pushed through the transition
function with zero noise, a second is drawn from ``Q`` and injected as
the noise argument about the unperturbed state.

Updates accept two measurement conventions:

- :class:`~ukfmjax.estimation.StateMeasurement` ``h(x)`` (or a bare
  callable): state perturbations are retracted before calling ``h`` and
  ``R`` is added to the innovation covariance.
- :class:`~ukfmjax.estimation.NoiseMeasurement` ``h(x, w, v)``: the
  augmented covariance ``diag(P, R)`` is sampled and its two blocks are
  passed to ``h``.

These functions are pure: they return new filter states and never
modify their inputs.  They run eagerly, since the typed failures in
:mod:`ukfmjax.estimation._errors` are raised from concrete values.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import jax.numpy as jnp
import jax.scipy.linalg
from jax import Array
from jax.typing import ArrayLike

from ukfmjax.config import get_dtype
from ukfmjax.estimation._errors import SingularInnovationCovariance
from ukfmjax.estimation._types import (
    FilterResult,
    FilterState,
    NoiseMeasurement,
    StateMeasurement,
)
from ukfmjax.estimation.sigma_points import MerweSigmaPoints, SigmaPointScheme
from ukfmjax.manifolds import Manifold

TransitionFn = Callable[[Manifold, Array, Any, float], Manifold]

_DEFAULT_SAMPLING = MerweSigmaPoints()


def _symmetrize(P: Array) -> Array:
    return 0.5 * (P + P.T)


def _weighted_outer(weights: Array, a: Array, b: Array) -> Array:
    """``sum_i weights[i] * outer(a[i], b[i])``."""
    return jnp.einsum("i,ij,ik->jk", weights, a, b)


def _measure(h: Callable[..., ArrayLike], *args) -> Array:
    return jnp.atleast_1d(jnp.asarray(h(*args), dtype=get_dtype()))


def _kalman_gain(T: Array, S: Array) -> Array:
    """Solve ``K S = T`` for the Kalman gain.

    ``S`` is scaled to unit diagonal, ``S = D C D``, before the condition
    check and the solve, so measurements with very different units do not
    make an invertible ``S`` look singular.

    Raises:
        SingularInnovationCovariance: If ``S`` has a non-positive diagonal
            entry, or its scaled form ``C`` is singular or so badly
            conditioned that the solve is meaningless at the working
            precision.
    """
    m = S.shape[0]
    diag = jnp.diag(S)
    if not bool(jnp.all(jnp.isfinite(diag) & (diag > 0.0))):
        raise SingularInnovationCovariance(
            f"Innovation covariance of dimension {m} has a non-positive "
            f"diagonal (min {float(jnp.min(diag)):.3e})"
        )

    d = jnp.sqrt(diag)
    C = S / jnp.outer(d, d)
    cond = jnp.linalg.cond(C)
    eps = jnp.finfo(S.dtype).eps
    if not bool(jnp.isfinite(cond)) or float(cond) * eps >= 1.0:
        raise SingularInnovationCovariance(
            f"Innovation covariance of dimension {m} is singular "
            f"(scaled condition number {float(cond):.3e})"
        )
    # K = T D^-1 C^-1 D^-1
    return jnp.linalg.solve(C.T, (T / d[None, :]).T).T / d[None, :]


def ukfm_predict(
    filter_state: FilterState,
    transition_fn: TransitionFn,
    Q: ArrayLike,
    u: Any,
    dt: float,
    sampling: SigmaPointScheme = _DEFAULT_SAMPLING,
) -> FilterState:
    """Propagate the filter state forward one step.

    The mean is the transition of the current estimate with zero noise.
    The covariance is the sum of two unscented contributions:

    .. math::

        P^- = \\sum_i w_{i+1}\\, \\xi_i \\xi_i^T + \\sum_j w'_{j+1}\\, \\zeta_j \\zeta_j^T

    with ``xi_i = f(x (+) d_i, 0, u, dt) (-) x_pred`` for perturbations
    ``d_i`` drawn from ``P`` and ``zeta_j = f(x, q_j, u, dt) (-) x_pred``
    for noise samples ``q_j`` drawn from ``Q``.  The central weight is
    not used in either sum.

    Args:
        filter_state: Current filter state ``(x, P)``.
        transition_fn: State transition ``f(x, w, u, dt) -> x_next`` where
            ``w`` is a process noise vector of the dimension of ``Q``.
        Q: Process noise covariance of shape ``(m, m)``. ``m`` may differ
            from the state dimension.
        u: Control input, passed through to ``transition_fn`` unchanged.
        dt: Time step, passed through to ``transition_fn`` unchanged.
        sampling: Sigma point scheme. Default: ``MerweSigmaPoints()``.

    Returns:
        FilterState: Predicted state and covariance ``(x_pred, P_pred)``.

    Raises:
        NonPositiveDefiniteCovariance: If ``P`` or ``Q`` cannot be
            factorized.
        InvalidSamplingParameter: If the scheme gives ``n + lambda <= 0``
            for ``P`` or ``Q``.

    Examples:
        ```python
        import jax.numpy as jnp
        from ukfmjax.estimation import FilterState, ukfm_predict
        from ukfmjax.manifolds import Euclidean

        def f(x, w, u, dt):
            return Euclidean(x.value + u * dt + w)

        fs = FilterState(x=Euclidean([0.0, 0.0]), P=jnp.eye(2))
        fs_pred = ukfm_predict(fs, f, 0.01 * jnp.eye(2), jnp.array([1.0, 0.0]), 1.0)
        ```
    """
    dtype = get_dtype()
    x = filter_state.x
    P = jnp.asarray(filter_state.P, dtype=dtype)
    Q = jnp.asarray(Q, dtype=dtype)

    n = x.dimension()
    if P.shape != (n, n):
        raise ValueError(f"Covariance shape {P.shape} does not match state dimension {n}")

    w0 = jnp.zeros(Q.shape[0], dtype=dtype)

    # Project the mean
    x_pred = transition_fn(x, w0, u, dt)

    # State uncertainty
    state_set = sampling.generate(P)
    xi = jnp.stack(
        [transition_fn(x.retract(d), w0, u, dt).inverse_retract(x_pred) for d in state_set.deltas]
    )
    P_state = _weighted_outer(state_set.wc[1:], xi, xi)

    # Process noise
    noise_set = sampling.generate(Q)
    zeta = jnp.stack(
        [transition_fn(x, w, u, dt).inverse_retract(x_pred) for w in noise_set.deltas]
    )
    P_noise = _weighted_outer(noise_set.wc[1:], zeta, zeta)

    return FilterState(x=x_pred, P=_symmetrize(P_state + P_noise))


def ukfm_update(
    filter_state: FilterState,
    z: ArrayLike,
    measurement_fn: StateMeasurement | NoiseMeasurement | Callable[[Manifold], ArrayLike],
    R: ArrayLike,
    sampling: SigmaPointScheme = _DEFAULT_SAMPLING,
) -> FilterResult:
    """Incorporate a measurement into the filter state.

    With ``Y_i`` the measurement of sigma point ``i`` (``i = 0`` being the
    unperturbed estimate) and ``d_i`` its state perturbation:

    .. math::

        y = \\sum_i w^m_i Y_i, \\quad
        S = \\sum_i w^c_i (Y_i - y)(Y_i - y)^T\\; [+ R], \\quad
        T = \\sum_{i \\ge 1} w^c_i d_i (Y_i - y)^T

    ``K = T S^{-1}``, ``x+ = x (+) K (z - y)`` and ``P+ = P - K S K^T``.
    ``R`` is added to ``S`` only for :class:`StateMeasurement`.

    Args:
        filter_state: Predicted filter state ``(x, P)``.
        z: Measurement vector of shape ``(m,)``.
        measurement_fn: A :class:`StateMeasurement`, a
            :class:`NoiseMeasurement`, or a bare callable ``h(x)`` which
            is treated as a :class:`StateMeasurement`.
        R: Measurement noise covariance of shape ``(r, r)``. For
            :class:`StateMeasurement` ``r`` must equal ``m``.
        sampling: Sigma point scheme. Default: ``MerweSigmaPoints()``.

    Returns:
        FilterResult: Updated state, innovation, innovation covariance,
            and Kalman gain.

    Raises:
        NonPositiveDefiniteCovariance: If ``P`` (or ``diag(P, R)``) cannot
            be factorized.
        SingularInnovationCovariance: If ``S`` cannot be inverted.
        InvalidSamplingParameter: If the scheme gives ``n + lambda <= 0``.
        ValueError: If ``P``, ``R`` or the measurement have shapes that
            do not fit the state and each other.

    Examples:
        ```python
        import jax.numpy as jnp
        from ukfmjax.estimation import FilterState, ukfm_update
        from ukfmjax.manifolds import Euclidean

        fs = FilterState(x=Euclidean([0.0, 0.0]), P=jnp.eye(2))
        result = ukfm_update(fs, jnp.array([1.0, 0.1]), lambda x: x.value, 0.1 * jnp.eye(2))
        ```
    """
    dtype = get_dtype()
    x = filter_state.x
    P = jnp.asarray(filter_state.P, dtype=dtype)
    z = jnp.atleast_1d(jnp.asarray(z, dtype=dtype))
    R = jnp.asarray(R, dtype=dtype)

    n = x.dimension()
    if P.shape != (n, n):
        raise ValueError(f"Covariance shape {P.shape} does not match state dimension {n}")

    if isinstance(measurement_fn, NoiseMeasurement):
        h = measurement_fn.fn
        if R.ndim != 2 or R.shape[0] != R.shape[1]:
            raise ValueError(f"Measurement noise covariance must be square, got shape {R.shape}")
        r = R.shape[0]
        sigma_set = sampling.generate(jax.scipy.linalg.block_diag(P, R))
        d_state = sigma_set.deltas[:, :n]
        d_meas = sigma_set.deltas[:, n:]

        Y0 = _measure(h, x, jnp.zeros(n, dtype=dtype), jnp.zeros(r, dtype=dtype))
        Y = [Y0] + [_measure(h, x, w, v) for w, v in zip(d_state, d_meas)]
        noise = None
    else:
        h = measurement_fn.fn if isinstance(measurement_fn, StateMeasurement) else measurement_fn
        sigma_set = sampling.generate(P)
        d_state = sigma_set.deltas

        Y0 = _measure(h, x.retract(jnp.zeros(n, dtype=dtype)))
        Y = [Y0] + [_measure(h, x.retract(d)) for d in d_state]
        noise = R

    Y = jnp.stack(Y)
    if Y.shape[1] != z.shape[0]:
        raise ValueError(
            f"Measurement function returned shape {Y.shape[1:]}, measurement has shape {z.shape}"
        )
    m = z.shape[0]
    if noise is not None and noise.shape != (m, m):
        raise ValueError(
            f"Measurement noise covariance shape {noise.shape} does not match "
            f"measurement dimension {m}"
        )

    y = jnp.einsum("i,ij->j", sigma_set.wm, Y)
    dY = Y - y[None, :]

    # Innovation covariance
    S = _weighted_outer(sigma_set.wc, dY, dY)
    if noise is not None:
        S = S + noise

    # Cross covariance, mean point excluded
    T = _weighted_outer(sigma_set.wc[1:], d_state, dY[1:])

    K = _kalman_gain(T, S)
    innovation = z - y
    x_upd = x.retract(K @ innovation)
    P_upd = _symmetrize(P - K @ S @ K.T)

    return FilterResult(
        state=FilterState(x=x_upd, P=P_upd),
        innovation=innovation,
        innovation_covariance=S,
        kalman_gain=K,
    )


def normalized_innovation_squared(result: FilterResult) -> Array:
    """Normalized innovation squared (NIS) of an update.

    ``nu^T S^{-1} nu`` for innovation ``nu`` and innovation covariance
    ``S``. For a consistent filter it is chi-squared distributed with
    ``m`` degrees of freedom, which makes it the usual statistic for
    gating outlier measurements.

    Args:
        result: Output of :func:`ukfm_update`.

    Returns:
        Scalar NIS value.
    """
    nu = result.innovation
    return nu @ jnp.linalg.solve(result.innovation_covariance, nu)
