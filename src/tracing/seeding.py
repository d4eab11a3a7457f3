"""Particle seeding locations per scenario.

The scenario name selects one of a closed set of placement rules:

- ``inflow_face``: lattice on the left (x-min) face, half a cell inside the
  domain, for flows entering through that face;
- ``interior_lattice``: regular cell-centred lattice filling the interior,
  for closed or buoyancy-driven flows.

When a flag field is supplied, candidates in non-fluid cells are dropped and
the lattice is refined until enough fluid candidates exist.
"""

import logging

import numpy as np

from meshing.grid import GridGeometry

log = logging.getLogger(__name__)

MAX_REFINEMENTS = 12


def inflow_face_candidates(count: int, geometry: GridGeometry) -> np.ndarray:
    """About ``count`` points on a (y, z) lattice at x = x_min + dx/2."""
    _, size_y, size_z = geometry.size
    m_y = max(1, int(np.ceil(np.sqrt(count * size_y / size_z))))
    m_z = max(1, int(np.ceil(count / m_y)))
    y = geometry.lower[1] + (np.arange(m_y) + 0.5) / m_y * size_y
    z = geometry.lower[2] + (np.arange(m_z) + 0.5) / m_z * size_z
    Y, Z = np.meshgrid(y, z, indexing="ij")
    X = np.full_like(Y, geometry.lower[0] + 0.5 * geometry.dx)
    return np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])


def interior_lattice_candidates(count: int, geometry: GridGeometry) -> np.ndarray:
    """About ``count`` points on a regular lattice, spacing proportional to the extent."""
    size = geometry.size
    density = (count / np.prod(size)) ** (1.0 / 3.0)
    m = np.maximum(1, np.ceil(size * density).astype(int))
    axes = [geometry.lower[d] + (np.arange(m[d]) + 0.5) / m[d] * size[d] for d in range(3)]
    X, Y, Z = np.meshgrid(*axes, indexing="ij")
    return np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])


SEEDING_RULES = {
    "inflow_face": inflow_face_candidates,
    "interior_lattice": interior_lattice_candidates,
}

SCENARIO_SEEDING_RULES = {
    "driven_cavity": "interior_lattice",
    "natural_convection": "interior_lattice",
    "rayleigh_benard_convection_8-2-1": "interior_lattice",
    "rayleigh_benard_convection_8-2-2": "interior_lattice",
    "rayleigh_benard_convection_8-2-4": "interior_lattice",
    "rayleigh_benard_convection_2d": "interior_lattice",
    "uniform_flow": "interior_lattice",
    "flow_over_step": "inflow_face",
    "karman_vortex_street": "inflow_face",
    "single_tower": "inflow_face",
    "terrain_1": "inflow_face",
    "fuji_san": "inflow_face",
    "zugspitze": "inflow_face",
}


def _spread(candidates: np.ndarray, n: int) -> np.ndarray:
    """Pick n of the candidates, evenly spread over the candidate order."""
    index = (np.arange(n) * len(candidates)) // n
    return candidates[index]


def get_particle_seeding_locations(scenario_name: str, num_particles: int, geometry: GridGeometry, flag_field=None):
    """Seed positions (num_particles, 3) in world coordinates for a scenario.

    Parameters
    ----------
    scenario_name : str
        One of ``SCENARIO_SEEDING_RULES``.
    num_particles : int
        Exact number of seeds to return.
    geometry : GridGeometry
        Domain to seed in.
    flag_field : FlagField, optional
        Used to keep seeds out of obstacle cells.

    Raises
    ------
    ValueError
        Unknown scenario, negative particle count, or no fluid cell reachable
        by the scenario's rule.
    """
    if scenario_name not in SCENARIO_SEEDING_RULES:
        raise ValueError(
            f"No seeding rule for scenario '{scenario_name}'. "
            f"Available: {sorted(SCENARIO_SEEDING_RULES)}"
        )
    if num_particles < 0:
        raise ValueError(f"num_particles must be non-negative, got {num_particles}")
    if num_particles == 0:
        return np.empty((0, 3))

    rule_name = SCENARIO_SEEDING_RULES[scenario_name]
    rule = SEEDING_RULES[rule_name]
    count = num_particles
    for _ in range(MAX_REFINEMENTS):
        candidates = rule(count, geometry)
        if flag_field is not None:
            candidates = candidates[flag_field.is_fluid_point(candidates)]
        if len(candidates) >= num_particles:
            seeds = _spread(candidates, num_particles)
            log.info(f"Seeded {num_particles} particles for '{scenario_name}' ({rule_name})")
            return seeds
        count *= 2

    raise ValueError(
        f"Could not place {num_particles} seeds in fluid cells for '{scenario_name}' ({rule_name})"
    )
