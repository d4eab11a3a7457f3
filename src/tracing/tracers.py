"""Characteristic line tracers.

Characteristic lines are tangent to the flow::

    dx(t)/dt = v(x(t), t),    x(0) = x_0

- Streamlines: curves tangent to one frozen velocity field (steady tracing).
- Pathlines: trajectories of single massless particles through a time-varying field.
- Streaklines: all particles released from a fixed point, connected at one instant.

For a steady flow all three coincide.

Tracer kinds (selected once per trace via ``create_tracer``):
- SteadyFlowTracer: ``trace(seeds, geometry, dt, snapshot)`` on a single snapshot
- TimeVaryingTracer / StreaklineTracer: the ``ParticleTracer`` protocol,
  ``set_seeding_locations`` once, ``time_step`` per solver step with the current
  snapshot, ``get_trajectories`` at any time

Trajectories are index-aligned with the seeds for the whole trace. A particle
that leaves the domain (or, with ``flag_field`` given, enters an obstacle) is
terminated and its trajectory stops growing; the point outside is not recorded.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

import numpy as np

from meshing.grid import GridGeometry

from .datastructures import FlowSnapshot, ParticleState, Trajectories, Trajectory
from .integrator import get_stepper, integrate_particle_position
from .sampler import SCALAR_ATTRIBUTES, StaggeredFieldSampler

log = logging.getLogger(__name__)


class TracerKind(str, Enum):
    STREAMLINE = "streamline"
    PATHLINE = "pathline"
    STREAKLINE = "streakline"


class ParticleTracer(Protocol):
    """Common contract of the time-varying tracers."""

    def set_seeding_locations(self, origin, size, seeds, t0: float = 0.0) -> None: ...

    def time_step(self, t: float, dt: float, geometry: GridGeometry, snapshot: FlowSnapshot) -> None: ...

    def get_trajectories(self, snapshot: Optional[FlowSnapshot] = None, geometry: Optional[GridGeometry] = None) -> Trajectories: ...


# =============================================================================
# Shared helpers
# =============================================================================


def _check_options(max_steps, scheme, attributes):
    if max_steps is not None and max_steps < 0:
        raise ValueError(f"max_steps must be non-negative, got {max_steps}")
    get_stepper(scheme)
    unknown = [name for name in attributes if name not in SCALAR_ATTRIBUTES]
    if unknown:
        raise ValueError(f"Unknown attributes {unknown}. Available: {list(SCALAR_ATTRIBUTES)}")
    return tuple(attributes)


def _check_dt(dt):
    if not dt > 0:
        raise ValueError(f"dt must be positive, got {dt}")


def _as_points(seeds) -> np.ndarray:
    points = np.array(seeds, dtype=np.float64).reshape(-1, 3)
    return points


def _admissible(points, lower, upper, flag_field) -> np.ndarray:
    """Inside the closed domain box and, if a flag field is given, in a fluid cell."""
    inside = np.all((points >= lower) & (points <= upper), axis=1)
    if flag_field is not None and len(points):
        inside &= flag_field.is_fluid_point(points)
    return inside


def _record(trajectories, indices, positions, time, samples):
    for n, particle in enumerate(indices):
        values = {name: column[n] for name, column in samples.items()}
        trajectories[particle].append(positions[n], time, **values)


def _backfill(trajectory: Trajectory, sampler: StaggeredFieldSampler, names) -> None:
    """Sample attributes for recorded points that do not have them yet."""
    for name, missing in trajectory.pending_attributes(names).items():
        if missing > 0:
            points = trajectory.points[-missing:]
            trajectory.attributes.setdefault(name, []).extend(
                float(v) for v in sampler.scalar(name, points)
            )


# =============================================================================
# Streamlines (steady flow)
# =============================================================================


class SteadyFlowTracer:
    """Traces streamlines of a single velocity snapshot.

    Stateless across calls. Each particle is integrated until it leaves the
    domain or ``max_steps`` steps were taken, whichever happens first; every
    trajectory starts with its seed.

    Parameters
    ----------
    max_steps : int
        Upper bound on integration steps per particle (guarantees termination
        for closed or stagnant flows).
    scheme : str
        Integration scheme, 'euler' or 'rk4'.
    attributes : tuple of str
        Scalars sampled at every recorded point.
    flag_field : FlagField, optional
        If given, particles entering a non-fluid cell are terminated as well.
    """

    kind = TracerKind.STREAMLINE

    def __init__(self, max_steps: int = 1000, scheme: str = "euler", attributes=(), flag_field=None):
        if max_steps is None:
            raise ValueError("SteadyFlowTracer needs a finite max_steps")
        self.attributes = _check_options(max_steps, scheme, attributes)
        self.max_steps = int(max_steps)
        self.scheme = scheme
        self.flag_field = flag_field

    def trace(self, seeds, geometry: GridGeometry, dt: float, snapshot: FlowSnapshot) -> Trajectories:
        """Integrate every seed through the frozen field and return all trajectories."""
        _check_dt(dt)
        sampler = StaggeredFieldSampler(geometry, snapshot)
        positions = _as_points(seeds)
        trajectories = Trajectories.from_seeds(positions, time=0.0)
        if self.attributes and len(positions):
            samples = sampler.sample_attributes(positions, self.attributes)
            for n, trajectory in enumerate(trajectories):
                for name, column in samples.items():
                    trajectory.attributes[name] = [float(column[n])]

        active = _admissible(positions, geometry.lower, geometry.upper, self.flag_field)
        log.debug(f"Tracing {len(positions)} streamlines ({int(active.sum())} seeds in domain)")

        for step in range(1, self.max_steps + 1):
            indices = np.flatnonzero(active)
            if indices.size == 0:
                break
            result = integrate_particle_position(
                positions[indices], sampler, dt, t=(step - 1) * dt, scheme=self.scheme
            )
            inside = result.in_domain
            if self.flag_field is not None:
                inside &= self.flag_field.is_fluid_point(result.positions)

            moved = indices[inside]
            new_positions = result.positions[inside]
            positions[moved] = new_positions
            samples = sampler.sample_attributes(new_positions, self.attributes) if moved.size else {}
            _record(trajectories, moved, new_positions, step * dt, samples)
            active[indices[~inside]] = False

        log.info(
            f"Traced {len(trajectories)} streamlines: "
            f"{int(active.sum())} reached max_steps={self.max_steps}, "
            f"mean length {trajectories.lengths().mean() if len(trajectories) else 0:.1f} points"
        )
        return trajectories


# =============================================================================
# Pathlines (time-varying flow)
# =============================================================================


class _SeededTrace:
    """Seeding box and protocol checks shared by the time-varying tracers."""

    def __init__(self, origin, size, seeds, t0):
        self.lower = np.asarray(origin, dtype=np.float64).reshape(3)
        self.upper = self.lower + np.asarray(size, dtype=np.float64).reshape(3)
        self.seeds = _as_points(seeds)
        self.time = float(t0)

    def check_geometry(self, geometry: GridGeometry):
        if not (np.allclose(geometry.lower, self.lower) and np.allclose(geometry.upper, self.upper)):
            raise ValueError(
                f"grid bounds {geometry.lower}..{geometry.upper} differ from the "
                f"seeding box {self.lower}..{self.upper}"
            )


class TimeVaryingTracer:
    """Traces pathlines through a sequence of snapshots supplied step by step.

    Protocol: ``set_seeding_locations`` exactly once, then any number of
    ``time_step`` calls, ``get_trajectories`` at any point in between.

    Attributes of a point recorded at time t + dt are sampled from the snapshot
    for that instant: the one passed to the next ``time_step``, or to
    ``get_trajectories``. Until then they are pending.

    Parameters
    ----------
    max_steps : int, optional
        Maximum number of steps per particle; unbounded if None.
    scheme, attributes, flag_field
        As for ``SteadyFlowTracer``.
    """

    kind = TracerKind.PATHLINE

    def __init__(self, max_steps: Optional[int] = None, scheme: str = "euler", attributes=(), flag_field=None):
        self.attributes = _check_options(max_steps, scheme, attributes)
        self.max_steps = max_steps
        self.scheme = scheme
        self.flag_field = flag_field
        self._trace = None

    @property
    def is_seeded(self) -> bool:
        return self._trace is not None

    def _require_seeded(self):
        if self._trace is None:
            raise RuntimeError("set_seeding_locations() must be called first")

    def set_seeding_locations(self, origin, size, seeds, t0: float = 0.0) -> None:
        """Start a trace: one trajectory per seed holding only its start position.

        Raises
        ------
        RuntimeError
            If the tracer was already seeded; start a new trace with a new tracer.
        """
        if self._trace is not None:
            raise RuntimeError("tracer is already seeded; create a new tracer for a new trace")
        trace = _SeededTrace(origin, size, seeds, t0)
        admissible = _admissible(trace.seeds, trace.lower, trace.upper, self.flag_field)

        self._positions = trace.seeds.copy()
        self._states = np.where(admissible, ParticleState.SEEDED, ParticleState.TERMINATED)
        self._steps = np.zeros(len(trace.seeds), dtype=np.int64)
        self._elapsed = np.zeros(len(trace.seeds))
        self._trajectories = Trajectories.from_seeds(trace.seeds, time=trace.time)
        self._trace = trace
        log.debug(f"Seeded {len(trace.seeds)} pathlines ({int(admissible.sum())} in domain)")

    @property
    def states(self) -> np.ndarray:
        self._require_seeded()
        return self._states.copy()

    @property
    def elapsed_time(self) -> np.ndarray:
        """Simulated time each particle has been advected for."""
        self._require_seeded()
        return self._elapsed.copy()

    def time_step(self, t: float, dt: float, geometry: GridGeometry, snapshot: FlowSnapshot) -> None:
        """Advance all live particles by dt using ``snapshot`` as the field at time t."""
        self._require_seeded()
        _check_dt(dt)
        self._trace.check_geometry(geometry)
        sampler = StaggeredFieldSampler(geometry, snapshot)

        # Points recorded at time t (terminated particles included) take this snapshot
        if self.attributes:
            for trajectory in self._trajectories:
                _backfill(trajectory, sampler, self.attributes)

        if self.max_steps is not None:
            self._states[self._steps >= self.max_steps] = ParticleState.TERMINATED
        indices = np.flatnonzero(self._states != ParticleState.TERMINATED)
        if indices.size == 0:
            return

        result = integrate_particle_position(
            self._positions[indices], sampler, dt, t=t, scheme=self.scheme
        )
        inside = result.in_domain
        if self.flag_field is not None:
            inside &= self.flag_field.is_fluid_point(result.positions)

        moved = indices[inside]
        new_positions = result.positions[inside]
        self._positions[moved] = new_positions
        _record(self._trajectories, moved, new_positions, t + dt, {})

        self._states[moved] = ParticleState.ACTIVE
        self._states[indices[~inside]] = ParticleState.TERMINATED
        self._steps[moved] += 1
        self._elapsed[moved] += dt
        if self.max_steps is not None:
            self._states[self._steps >= self.max_steps] = ParticleState.TERMINATED
        self._trace.time = t + dt

        terminated = int((~inside).sum())
        if terminated:
            log.debug(f"t={t + dt:.4g}: {terminated} pathline(s) left the domain")

    def get_trajectories(self, snapshot: Optional[FlowSnapshot] = None, geometry: Optional[GridGeometry] = None) -> Trajectories:
        """Trajectories accumulated so far (seed-only before the first step).

        If ``snapshot`` (and its ``geometry``) is given, attributes still missing
        for recorded points are sampled from it.
        """
        self._require_seeded()
        if snapshot is not None and self.attributes:
            if geometry is None:
                raise ValueError("geometry is required to sample attributes from a snapshot")
            sampler = StaggeredFieldSampler(geometry, snapshot)
            for trajectory in self._trajectories:
                _backfill(trajectory, sampler, self.attributes)
        return self._trajectories


# =============================================================================
# Streaklines (time-varying flow, continuous release)
# =============================================================================


class StreaklineTracer:
    """Continuously releases particles at every seed and connects them.

    Each ``time_step`` releases one particle at every admissible seed and then
    advects all released particles. ``get_trajectories`` returns per seed the
    streak from the seed point through the newest to the oldest surviving
    particle, all at the current instant.

    ``max_steps`` bounds the age of released particles (and so the streak
    length); unbounded if None.
    """

    kind = TracerKind.STREAKLINE

    def __init__(self, max_steps: Optional[int] = None, scheme: str = "euler", attributes=(), flag_field=None):
        self.attributes = _check_options(max_steps, scheme, attributes)
        self.max_steps = max_steps
        self.scheme = scheme
        self.flag_field = flag_field
        self._trace = None
        self._sampler = None

    def _require_seeded(self):
        if self._trace is None:
            raise RuntimeError("set_seeding_locations() must be called first")

    def set_seeding_locations(self, origin, size, seeds, t0: float = 0.0) -> None:
        if self._trace is not None:
            raise RuntimeError("tracer is already seeded; create a new tracer for a new trace")
        trace = _SeededTrace(origin, size, seeds, t0)
        self._releasing = _admissible(trace.seeds, trace.lower, trace.upper, self.flag_field)
        self._particles = np.empty((0, 3))
        self._owner = np.empty(0, dtype=np.int64)
        self._age = np.empty(0, dtype=np.int64)
        self._trace = trace

    @property
    def releasing(self) -> np.ndarray:
        """Per seed, whether it releases particles (False for seeds outside the fluid)."""
        self._require_seeded()
        return self._releasing.copy()

    def time_step(self, t: float, dt: float, geometry: GridGeometry, snapshot: FlowSnapshot) -> None:
        self._require_seeded()
        _check_dt(dt)
        self._trace.check_geometry(geometry)
        sampler = StaggeredFieldSampler(geometry, snapshot)

        release = np.flatnonzero(self._releasing)
        particles = np.vstack([self._particles, self._trace.seeds[release]])
        owner = np.concatenate([self._owner, release])
        age = np.concatenate([self._age, np.zeros(release.size, dtype=np.int64)]) + 1

        if len(particles):
            result = integrate_particle_position(particles, sampler, dt, t=t, scheme=self.scheme)
            keep = result.in_domain
            if self.flag_field is not None:
                keep &= self.flag_field.is_fluid_point(result.positions)
            if self.max_steps is not None:
                keep &= age <= self.max_steps
            particles = result.positions[keep]
            owner = owner[keep]
            age = age[keep]

        self._particles, self._owner, self._age = particles, owner, age
        self._sampler = sampler
        self._trace.time = t + dt

    def get_trajectories(self, snapshot: Optional[FlowSnapshot] = None, geometry: Optional[GridGeometry] = None) -> Trajectories:
        self._require_seeded()
        sampler = self._sampler
        if snapshot is not None:
            if geometry is None:
                raise ValueError("geometry is required to sample attributes from a snapshot")
            sampler = StaggeredFieldSampler(geometry, snapshot)

        trajectories = Trajectories()
        for index, seed in enumerate(self._trace.seeds):
            # Release order is oldest first; the streak runs from the seed outwards
            streak = self._particles[self._owner == index][::-1]
            trajectory = Trajectory()
            for point in np.vstack([seed[np.newaxis, :], streak]):
                trajectory.append(point, self._trace.time)
            if sampler is not None and self.attributes:
                _backfill(trajectory, sampler, self.attributes)
            trajectories.items.append(trajectory)
        return trajectories


# =============================================================================
# Factory
# =============================================================================

TRACERS = {
    TracerKind.STREAMLINE: SteadyFlowTracer,
    TracerKind.PATHLINE: TimeVaryingTracer,
    TracerKind.STREAKLINE: StreaklineTracer,
}


def create_tracer(kind, **kwargs):
    """Instantiate the tracer for a characteristic line kind."""
    try:
        tracer_kind = TracerKind(kind)
    except ValueError:
        raise ValueError(
            f"Unknown tracer kind '{kind}'. Available: {[k.value for k in TracerKind]}"
        ) from None
    return TRACERS[tracer_kind](**kwargs)
