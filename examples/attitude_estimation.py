# /// script
# requires-python = ">=3.10"
# dependencies = ["typer>=0.9.0", "ukfmjax"]
#
# [tool.uv.sources]
# ukfmjax = { path = ".." }
# ///
"""Estimate a 3D attitude on SO(3) from a gyro and two vector sensors.

Simulates a body spinning at a constant rate, integrates noisy gyro
readings in the prediction step, and corrects the attitude with noisy
body-frame observations of gravity and the magnetic field.  The attitude
error is printed in degrees as the angle of ``R_true^T R_est``.

Requires ukfmjax to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/attitude_estimation.py [OPTIONS]

Examples:
    # Defaults: 200 steps at 100 Hz, Merwe sampling
    uv run examples/attitude_estimation.py

    # Julier sampling, larger initial error
    uv run examples/attitude_estimation.py --sampling julier --initial-error 60
"""

from typing import Annotated

import jax
import jax.numpy as jnp
import typer

from ukfmjax.constants import DEG2RAD, RAD2DEG
from ukfmjax.estimation import UKFM, Sampling
from ukfmjax.manifolds import SO3

GRAVITY = jnp.array([0.0, 0.0, -9.81])
MAGNETIC = jnp.array([0.22, 0.0, -0.42])


def gyro_transition(x, w, u, dt):
    """Integrate the measured body rate ``u`` corrupted by rate noise ``w``."""
    return x.retract((u + w) * dt)


def vector_measurement(x):
    """Gravity and magnetic field expressed in the body frame."""
    R_t = x.matrix.T
    return jnp.concatenate([R_t @ GRAVITY, R_t @ MAGNETIC])


def main(
    steps: Annotated[int, typer.Option(help="Number of filter steps")] = 200,
    dt: Annotated[float, typer.Option(help="Step length in seconds")] = 0.01,
    gyro_noise: Annotated[float, typer.Option(help="Gyro noise std [rad/s]")] = 0.01,
    vector_noise: Annotated[float, typer.Option(help="Vector sensor noise std")] = 0.05,
    initial_error: Annotated[float, typer.Option(help="Initial attitude error [deg]")] = 30.0,
    sampling: Annotated[Sampling, typer.Option(help="Sigma point scheme")] = Sampling.MERWE,
    seed: Annotated[int, typer.Option(help="Random seed")] = 0,
):
    key = jax.random.PRNGKey(seed)
    omega = jnp.array([0.3, -0.2, 0.5])

    truth = SO3.identity()
    ukf = UKFM(
        x=SO3.from_rotvec(jnp.array([initial_error * DEG2RAD, 0.0, 0.0])),
        P=((initial_error * DEG2RAD) ** 2) * jnp.eye(3),
        Q=(gyro_noise**2) * jnp.eye(3),
        u=omega,
        f=gyro_transition,
        sampling=sampling,
    )
    R = (vector_noise**2) * jnp.eye(6)

    print(f"Filter: {ukf!r}")
    for k in range(steps):
        key, k_gyro, k_meas = jax.random.split(key, 3)

        truth = truth.retract(omega * dt)
        ukf.control = omega + gyro_noise * jax.random.normal(k_gyro, (3,))
        ukf.predict(dt)

        z = vector_measurement(truth) + vector_noise * jax.random.normal(k_meas, (6,))
        ukf.update(vector_measurement, z, R)

        if k % 20 == 0 or k == steps - 1:
            err = float(jnp.linalg.norm(ukf.state.inverse_retract(truth))) * RAD2DEG
            sigma = float(jnp.sqrt(jnp.trace(ukf.covariance))) * RAD2DEG
            print(f"  step {k:4d}  error {err:.4f} deg  sigma {sigma:.4f} deg")

    print("Done.")


if __name__ == "__main__":
    typer.run(main)
