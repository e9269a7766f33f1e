"""Unscented Kalman filtering on manifolds.

Provides the UKF-M building blocks for sequential estimation of states
that live on a manifold. States come from :mod:`ukfmjax.manifolds` or
any object with ``dimension``, ``retract`` and ``inverse_retract``.

Available components:

- :class:`FilterState` -- Manifold estimate and tangent covariance
- :class:`FilterResult` -- Update result with diagnostics
- :class:`SigmaSet` -- Sigma perturbations and weights
- :class:`MerweSigmaPoints`, :class:`JulierSigmaPoints` -- Sigma point schemes
- :class:`Sampling` -- Scheme selector
- :class:`StateMeasurement`, :class:`NoiseMeasurement` -- Measurement conventions
- :func:`ukfm_predict` -- Sigma point propagation on the manifold
- :func:`ukfm_update` -- Sigma point measurement update on the manifold
- :func:`normalized_innovation_squared` -- NIS consistency statistic
- :class:`UKFM` -- Stateful filter with all-or-nothing steps
- :class:`FilterError` and subclasses -- Typed numerical failures
"""

from ukfmjax.estimation._errors import (
    FilterError,
    InvalidSamplingParameter,
    NonPositiveDefiniteCovariance,
    SingularInnovationCovariance,
)
from ukfmjax.estimation._types import (
    FilterResult,
    FilterState,
    NoiseMeasurement,
    Sampling,
    SigmaSet,
    StateMeasurement,
)
from ukfmjax.estimation.filter import UKFM
from ukfmjax.estimation.sigma_points import (
    JulierSigmaPoints,
    MerweSigmaPoints,
    cholesky_lower,
    default_sampling,
)
from ukfmjax.estimation.ukfm import normalized_innovation_squared, ukfm_predict, ukfm_update

__all__ = [
    "FilterState",
    "FilterResult",
    "SigmaSet",
    "Sampling",
    "StateMeasurement",
    "NoiseMeasurement",
    "MerweSigmaPoints",
    "JulierSigmaPoints",
    "default_sampling",
    "cholesky_lower",
    "ukfm_predict",
    "ukfm_update",
    "normalized_innovation_squared",
    "UKFM",
    "FilterError",
    "NonPositiveDefiniteCovariance",
    "SingularInnovationCovariance",
    "InvalidSamplingParameter",
]
