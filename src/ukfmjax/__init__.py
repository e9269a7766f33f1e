"""
ukfmjax is an Unscented Kalman Filter on manifolds (UKF-M) implemented in JAX.
"""

from .config import set_dtype, get_dtype

from .manifolds import (
    Manifold,
    Euclidean,
    SO2,
    SO3,
    CompoundManifold,
)

from .estimation import (
    FilterState,
    FilterResult,
    Sampling,
    StateMeasurement,
    NoiseMeasurement,
    MerweSigmaPoints,
    JulierSigmaPoints,
    ukfm_predict,
    ukfm_update,
    UKFM,
    FilterError,
    NonPositiveDefiniteCovariance,
    SingularInnovationCovariance,
    InvalidSamplingParameter,
)

__all__ = [
    # Config
    "set_dtype",
    "get_dtype",
    # Manifolds
    "Manifold",
    "Euclidean",
    "SO2",
    "SO3",
    "CompoundManifold",
    # Estimation
    "FilterState",
    "FilterResult",
    "Sampling",
    "StateMeasurement",
    "NoiseMeasurement",
    "MerweSigmaPoints",
    "JulierSigmaPoints",
    "ukfm_predict",
    "ukfm_update",
    "UKFM",
    # Errors
    "FilterError",
    "NonPositiveDefiniteCovariance",
    "SingularInnovationCovariance",
    "InvalidSamplingParameter",
]
