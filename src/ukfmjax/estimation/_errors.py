"""Typed failures raised by the UKF-M engine.

Each failure names a different remedy:

- :class:`NonPositiveDefiniteCovariance` -- the covariance being sampled
  is not positive definite even after diagonal loading. Resynchronise
  the estimate.
- :class:`SingularInnovationCovariance` -- the innovation covariance
  cannot be inverted to form the Kalman gain. Fix the measurement model
  or its noise covariance.
- :class:`InvalidSamplingParameter` -- the sigma point parameters give
  ``n + lambda <= 0`` for the covariance being sampled. Retune the filter.

None of them is retried internally, and none leaves a filter partially
updated.
"""

from __future__ import annotations


class FilterError(Exception):
    """Base class for numerical failures of a filter step."""


class NonPositiveDefiniteCovariance(FilterError):
    """Cholesky factorization failed after regularization."""


class SingularInnovationCovariance(FilterError):
    """The innovation covariance is singular or numerically singular."""


class InvalidSamplingParameter(FilterError, ValueError):
    """Sampling parameters give a non-positive sigma point spread."""
