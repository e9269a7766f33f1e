"""Sigma point schemes for the unscented transform on manifolds.

Two schemes share one interface, ``scheme.generate(P) -> SigmaSet``:

- :class:`MerweSigmaPoints` -- Van der Merwe's scaled transform with
  ``lambda = alpha^2 (n + kappa) - n`` and a ``beta`` correction on the
  central covariance weight.
- :class:`JulierSigmaPoints` -- Julier's original transform with a free
  ``lambda``.

Both return tangent-space *perturbations* rather than points: on a
manifold the caller retracts them onto the current estimate.  The
covariance is loaded with ``COVARIANCE_TOLERANCE`` on its diagonal before
factorization, and the sigma point spread ``sqrt(n + lambda)`` must be
real and positive.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ukfmjax.config import get_dtype
from ukfmjax.constants import (
    COVARIANCE_TOLERANCE,
    JULIER_LAMBDA_OFFSET,
    MERWE_ALPHA,
    MERWE_BETA,
    MERWE_KAPPA,
)
from ukfmjax.estimation._errors import InvalidSamplingParameter, NonPositiveDefiniteCovariance
from ukfmjax.estimation._types import Sampling, SigmaSet


def _check_covariance(P: ArrayLike) -> Array:
    P = jnp.asarray(P, dtype=get_dtype())
    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise ValueError(f"Covariance must be a square matrix, got shape {P.shape}")
    if P.shape[0] == 0:
        raise ValueError("Covariance must have at least one row")
    return P


def cholesky_lower(P: ArrayLike) -> Array:
    """Lower Cholesky factor of a regularized covariance.

    Computes ``L`` with ``L @ L.T == P + COVARIANCE_TOLERANCE * I``.

    Args:
        P: Symmetric covariance of shape ``(n, n)``.

    Returns:
        Lower-triangular factor of shape ``(n, n)``.

    Raises:
        NonPositiveDefiniteCovariance: If the regularized matrix is not
            positive definite.
    """
    P = _check_covariance(P)
    n = P.shape[0]
    P_reg = P + COVARIANCE_TOLERANCE * jnp.eye(n, dtype=P.dtype)
    # jnp.linalg.cholesky returns NaNs instead of raising
    L = jnp.linalg.cholesky(P_reg)
    if not bool(jnp.all(jnp.isfinite(L))):
        raise NonPositiveDefiniteCovariance(
            f"Covariance of dimension {n} is not positive definite "
            f"(min eigenvalue {float(jnp.min(jnp.linalg.eigvalsh(P))):.3e}, "
            f"tolerance {COVARIANCE_TOLERANCE:.0e})"
        )
    return L


def _sigma_set(P: Array, lam: float, wc0_offset: float) -> SigmaSet:
    n = P.shape[0]
    spread = n + lam
    if not spread > 0.0:
        raise InvalidSamplingParameter(
            f"Sigma point spread n + lambda = {spread:.6g} is not positive "
            f"for covariance dimension {n}"
        )

    dtype = P.dtype
    L = cholesky_lower(P)
    S = jnp.sqrt(spread) * L

    # columns of S and -S, stored as rows
    deltas = jnp.concatenate([S.T, -S.T], axis=0)

    wi = 1.0 / (2.0 * spread)
    w0 = lam / spread
    wm = jnp.concatenate([jnp.array([w0], dtype=dtype), jnp.full(2 * n, wi, dtype=dtype)])
    wc = wm.at[0].add(wc0_offset)

    return SigmaSet(deltas=deltas, wm=wm, wc=wc)


class MerweSigmaPoints(NamedTuple):
    """Van der Merwe scaled sigma points.

    ``lambda = alpha^2 (n + kappa) - n``; mean weight ``lambda / (n + lambda)``;
    central covariance weight adds ``1 - alpha^2 + beta``; every other
    weight is ``1 / (2 (n + lambda))``.

    Attributes:
        alpha: Spread of the sigma points around the mean. Default: 1e-3.
        beta: Prior knowledge of the distribution; 2 is optimal for
            Gaussians. Default: 2.0.
        kappa: Secondary scaling parameter. Default: 0.0.
    """

    alpha: float = MERWE_ALPHA
    beta: float = MERWE_BETA
    kappa: float = MERWE_KAPPA

    def scaling(self, n: int) -> float:
        """Return ``lambda`` for a covariance of dimension ``n``."""
        return self.alpha**2 * (n + self.kappa) - n

    def generate(self, P: ArrayLike) -> SigmaSet:
        """Draw ``2n`` perturbations and their weights from ``P``.

        Args:
            P: Symmetric covariance of shape ``(n, n)``.

        Returns:
            SigmaSet: Perturbations of shape ``(2n, n)`` and weights of
                shape ``(2n + 1,)``.

        Raises:
            ValueError: If ``P`` is not a non-empty square matrix.
            InvalidSamplingParameter: If ``n + lambda <= 0``.
            NonPositiveDefiniteCovariance: If ``P`` cannot be factorized.
        """
        P = _check_covariance(P)
        lam = self.scaling(P.shape[0])
        return _sigma_set(P, lam, 1.0 - self.alpha**2 + self.beta)


class JulierSigmaPoints(NamedTuple):
    """Julier sigma points with a free scaling parameter.

    Mean weight ``lambda / (n + lambda)``; every other weight
    ``1 / (2 (n + lambda))``. Mean and covariance weights coincide.

    Attributes:
        lam: Scaling parameter ``lambda``. The conventional choice is
            ``3 - n`` for the state dimension ``n``; see
            :meth:`for_dimension`.
    """

    lam: float

    @classmethod
    def for_dimension(cls, n: int) -> JulierSigmaPoints:
        """Julier scheme with ``lambda = 3 - n``."""
        return cls(lam=JULIER_LAMBDA_OFFSET - n)

    def scaling(self, n: int) -> float:
        return self.lam

    def generate(self, P: ArrayLike) -> SigmaSet:
        """Draw ``2n`` perturbations and their weights from ``P``.

        See :meth:`MerweSigmaPoints.generate`.
        """
        P = _check_covariance(P)
        return _sigma_set(P, self.lam, 0.0)


SigmaPointScheme = MerweSigmaPoints | JulierSigmaPoints


def default_sampling(sampling: Sampling | SigmaPointScheme, n: int) -> SigmaPointScheme:
    """Resolve a scheme selector into a configured scheme.

    Args:
        sampling: A :class:`Sampling` member, or an already configured
            scheme which is returned unchanged.
        n: State dimension, used for the Julier default ``lambda = 3 - n``.

    Returns:
        A :class:`MerweSigmaPoints` or :class:`JulierSigmaPoints` instance.
    """
    if isinstance(sampling, (MerweSigmaPoints, JulierSigmaPoints)):
        return sampling
    if sampling == Sampling.MERWE:
        return MerweSigmaPoints()
    if sampling == Sampling.JULIER:
        return JulierSigmaPoints.for_dimension(n)
    raise ValueError(f"Unknown sampling scheme {sampling!r}")
