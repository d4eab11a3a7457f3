"""Explicit time steppers for massless tracer particles.

Each stepper follows the signature::

    new_x = step(x, t, dt, field_fn)

where ``x`` is an (N, 3) array of positions, ``t`` the physical time, ``dt`` the
step size and ``field_fn(x, t) -> (N, 3)`` the velocity field (a
``StaggeredFieldSampler`` satisfies this).

Forward Euler is the default: one field evaluation per step, first-order local
truncation error in dt. RK4 is available by name for smoother paths at four
evaluations per step.
"""

from typing import Callable, NamedTuple

import numpy as np

FieldFn = Callable[[np.ndarray, float], np.ndarray]


def euler_step(x: np.ndarray, t: float, dt: float, field_fn: FieldFn) -> np.ndarray:
    return x + dt * field_fn(x, t)


def rk4_step(x: np.ndarray, t: float, dt: float, field_fn: FieldFn) -> np.ndarray:
    k1 = field_fn(x, t)
    k2 = field_fn(x + 0.5 * dt * k1, t + 0.5 * dt)
    k3 = field_fn(x + 0.5 * dt * k2, t + 0.5 * dt)
    k4 = field_fn(x + dt * k3, t + dt)
    return x + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


INTEGRATORS = {
    "euler": euler_step,
    "rk4": rk4_step,
}


class IntegrationResult(NamedTuple):
    positions: np.ndarray  # (N, 3), not clamped
    in_domain: np.ndarray  # (N,) bool


def get_stepper(scheme: str):
    try:
        return INTEGRATORS[scheme]
    except KeyError:
        raise ValueError(
            f"Unknown integration scheme '{scheme}'. Available: {sorted(INTEGRATORS)}"
        ) from None


def integrate_particle_position(positions, sampler, dt: float, t: float = 0.0, scheme: str = "euler"):
    """Advance particle positions by one time step.

    Parameters
    ----------
    positions : array_like
        (N, 3) or (3,) world-space positions.
    sampler : StaggeredFieldSampler
        Velocity field of the current snapshot.
    dt : float
        Time step size.
    t : float
        Current simulation time (only used by the field function signature).
    scheme : str
        'euler' (default) or 'rk4'.

    Returns
    -------
    IntegrationResult
        New positions and whether each one is still inside the domain. Positions
        that left the domain are reported as-is; the caller decides what to do.
    """
    step = get_stepper(scheme)
    x = np.atleast_2d(np.asarray(positions, dtype=np.float64))
    new_x = step(x, t, dt, sampler)
    return IntegrationResult(positions=new_x, in_domain=sampler.geometry.contains(new_x))
