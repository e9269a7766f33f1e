"""Stateful UKF-M filter object.

:class:`UKFM` owns a manifold estimate, its covariance, the process noise
covariance, the control input and the sampling scheme, and drives
:func:`~ukfmjax.estimation.ukfm_predict` and
:func:`~ukfmjax.estimation.ukfm_update` against them.  Every field except
the estimate and covariance may be replaced between calls.

Estimate and covariance are committed together only after a step has
fully succeeded.  If a step raises, the previous estimate and covariance
stay in place and remain usable.

The filter imposes no ordering: ``predict`` and ``update`` can be called
in any order and at any rate.  It is not thread-safe.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ukfmjax.config import get_dtype
from ukfmjax.estimation._errors import FilterError
from ukfmjax.estimation._types import (
    FilterResult,
    FilterState,
    NoiseMeasurement,
    Sampling,
    StateMeasurement,
)
from ukfmjax.estimation.sigma_points import SigmaPointScheme, default_sampling
from ukfmjax.estimation.ukfm import TransitionFn, ukfm_predict, ukfm_update
from ukfmjax.manifolds import Manifold

logger = logging.getLogger(__name__)


class UKFM:
    """Unscented Kalman Filter on a manifold.

    Args:
        x: Initial estimate, a :class:`~ukfmjax.manifolds.Manifold` value.
        P: Initial covariance of shape ``(n, n)`` in the tangent space at
            ``x``.
        Q: Process noise covariance of shape ``(m, m)``.
        u: Control input passed to the transition function.
        f: State transition ``f(x, w, u, dt) -> x_next``. May be set later
            through :attr:`transition_fn`; ``predict`` requires it.
        sampling: :class:`Sampling` member or configured scheme. The
            Julier default uses ``lambda = 3 - n`` for the state dimension
            ``n``. Default: ``Sampling.MERWE``.

    Examples:
        ```python
        import jax.numpy as jnp
        from ukfmjax.estimation import UKFM
        from ukfmjax.manifolds import Euclidean

        def f(x, w, u, dt):
            return Euclidean(x.value + u * dt + w)

        ukf = UKFM(Euclidean([0.0, 0.0]), jnp.eye(2), 0.01 * jnp.eye(2),
                   jnp.array([1.0, 0.0]), f)
        ukf.predict(1.0)
        ukf.update(lambda x: x.value, jnp.array([1.0, 0.1]), 0.1 * jnp.eye(2))
        ```
    """

    def __init__(
        self,
        x: Manifold,
        P: ArrayLike,
        Q: ArrayLike,
        u: Any,
        f: TransitionFn | None = None,
        sampling: Sampling | SigmaPointScheme = Sampling.MERWE,
    ) -> None:
        dtype = get_dtype()
        P = jnp.asarray(P, dtype=dtype)
        n = x.dimension()
        if P.shape != (n, n):
            raise ValueError(f"Covariance shape {P.shape} does not match state dimension {n}")

        self._x = x
        self._P = P
        self._Q = jnp.asarray(Q, dtype=dtype)
        self._u = u
        self._f = f
        self._sampling = default_sampling(sampling, n)

    # Estimate

    @property
    def state(self) -> Manifold:
        """Current estimate."""
        return self._x

    @property
    def covariance(self) -> Array:
        """Current covariance in the tangent space at :attr:`state`."""
        return self._P

    @property
    def filter_state(self) -> FilterState:
        return FilterState(x=self._x, P=self._P)

    # Replaceable inputs

    @property
    def transition_fn(self) -> TransitionFn | None:
        return self._f

    @transition_fn.setter
    def transition_fn(self, f: TransitionFn) -> None:
        self._f = f

    @property
    def process_noise(self) -> Array:
        return self._Q

    @process_noise.setter
    def process_noise(self, Q: ArrayLike) -> None:
        self._Q = jnp.asarray(Q, dtype=get_dtype())

    @property
    def control(self) -> Any:
        return self._u

    @control.setter
    def control(self, u: Any) -> None:
        self._u = u

    @property
    def sampling(self) -> SigmaPointScheme:
        return self._sampling

    @sampling.setter
    def sampling(self, sampling: Sampling | SigmaPointScheme) -> None:
        self._sampling = default_sampling(sampling, self._x.dimension())

    def set_sampling_parameters(self, **params: float) -> None:
        """Retune the active sampling scheme.

        Accepts ``alpha``, ``beta``, ``kappa`` for Merwe and ``lam`` for
        Julier.  Validity against a covariance dimension is only checked
        when the scheme is next used.

        Raises:
            ValueError: If a name is not a parameter of the active scheme.
        """
        unknown = set(params) - set(self._sampling._fields)
        if unknown:
            raise ValueError(
                f"{type(self._sampling).__name__} has no parameter(s) {sorted(unknown)}; "
                f"expected some of {list(self._sampling._fields)}"
            )
        self._sampling = self._sampling._replace(**params)

    # Steps

    def predict(self, dt: float) -> None:
        """Propagate estimate and covariance by one step of length ``dt``.

        Raises:
            RuntimeError: If no transition function has been set.
            FilterError: On a numerical failure; the filter is unchanged.
        """
        if self._f is None:
            raise RuntimeError("No transition function set; assign UKFM.transition_fn first")
        try:
            fs = ukfm_predict(self.filter_state, self._f, self._Q, self._u, dt, self._sampling)
        except FilterError as err:
            logger.warning("Prediction rejected, state unchanged: %s", err)
            raise

        self._x, self._P = fs.x, fs.P
        logger.debug("Predicted dt=%s, trace(P)=%.6g", dt, float(jnp.trace(self._P)))

    def update(
        self,
        h: StateMeasurement | NoiseMeasurement | Callable[[Manifold], ArrayLike],
        z: ArrayLike,
        R: ArrayLike,
    ) -> FilterResult:
        """Fuse measurement ``z`` with noise covariance ``R``.

        Args:
            h: Measurement function in either convention; a bare callable
                is a :class:`StateMeasurement`.
            z: Measurement vector.
            R: Measurement noise covariance.

        Returns:
            FilterResult: Updated state and update diagnostics.

        Raises:
            FilterError: On a numerical failure; the filter is unchanged.
        """
        try:
            result = ukfm_update(self.filter_state, z, h, R, self._sampling)
        except FilterError as err:
            logger.warning("Update rejected, state unchanged: %s", err)
            raise

        self._x, self._P = result.state.x, result.state.P
        logger.debug(
            "Updated with %d-dim measurement, trace(P)=%.6g",
            result.innovation.shape[0],
            float(jnp.trace(self._P)),
        )
        return result

    def __repr__(self) -> str:
        return (
            f"UKFM(state={self._x!r}, n={self._x.dimension()}, "
            f"sampling={self._sampling!r})"
        )
