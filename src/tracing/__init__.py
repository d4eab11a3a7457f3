"""Particle tracing through staggered-grid velocity snapshots.

Component Hierarchy:
--------------------
StaggeredFieldSampler (trilinear, per-component staggered offsets)
└── integrate_particle_position (explicit Euler / RK4 steppers)
    ├── SteadyFlowTracer   (streamlines, one snapshot)
    ├── TimeVaryingTracer  (pathlines, snapshot per time step)
    └── StreaklineTracer   (streaklines, continuous release)
"""

from .datastructures import (
    FlowSnapshot,
    ParticleState,
    TracerParameters,
    Trajectories,
    Trajectory,
)
from .integrator import INTEGRATORS, IntegrationResult, euler_step, integrate_particle_position, rk4_step
from .sampler import StaggeredFieldSampler
from .seeding import SCENARIO_SEEDING_RULES, get_particle_seeding_locations
from .tracers import (
    ParticleTracer,
    SteadyFlowTracer,
    StreaklineTracer,
    TimeVaryingTracer,
    TracerKind,
    create_tracer,
)

__all__ = [
    # Data structures
    "FlowSnapshot",
    "ParticleState",
    "TracerParameters",
    "Trajectory",
    "Trajectories",
    # Sampling / integration
    "StaggeredFieldSampler",
    "IntegrationResult",
    "INTEGRATORS",
    "euler_step",
    "rk4_step",
    "integrate_particle_position",
    # Tracers
    "ParticleTracer",
    "TracerKind",
    "SteadyFlowTracer",
    "TimeVaryingTracer",
    "StreaklineTracer",
    "create_tracer",
    # Seeding
    "SCENARIO_SEEDING_RULES",
    "get_particle_seeding_locations",
]
