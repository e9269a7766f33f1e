"""
The `constants` module defines the numerical constants shared by the filter engine.
"""

from jax.numpy import pi as PI

# Mathematical Constants
"""
Full turn in radians. Units: *rad*
"""
TWO_PI = 2.0 * PI

"""
Constant to convert degrees to radians. Equal to 2pi/360. Units: *rad/deg*
"""
DEG2RAD = 2.0 * PI / 360.0

"""
Constant to convert radians to degrees. Equal to 360/2pi. Units: *deg/rad*
"""
RAD2DEG = 360.0 / (PI * 2.0)

# Filter Constants

"""
Diagonal loading added to every covariance before Cholesky factorization.
Masks covariances that are positive semi-definite only up to round-off.
"""
COVARIANCE_TOLERANCE = 1e-6

"""
Default Merwe sigma point spread parameter.
"""
MERWE_ALPHA = 1e-3

"""
Default Merwe prior-distribution parameter. 2 is optimal for Gaussian priors.
"""
MERWE_BETA = 2.0

"""
Default Merwe secondary scaling parameter.
"""
MERWE_KAPPA = 0.0

"""
Julier scaling is ``JULIER_LAMBDA_OFFSET - n`` by default, ``n`` the state dimension.
"""
JULIER_LAMBDA_OFFSET = 3.0
