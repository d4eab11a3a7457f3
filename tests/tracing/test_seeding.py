"""Tests for scenario-specific particle seeding."""

import numpy as np
import pytest

from cells import CellType, FlagField, encode_flag
from tracing import SCENARIO_SEEDING_RULES, get_particle_seeding_locations


class TestSeedCounts:
    """Exactly num_particles seeds, all inside the domain."""

    @pytest.mark.parametrize("scenario", sorted(SCENARIO_SEEDING_RULES))
    @pytest.mark.parametrize("num_particles", [1, 7, 64])
    def test_exact_count(self, channel_geometry, scenario, num_particles):
        seeds = get_particle_seeding_locations(scenario, num_particles, channel_geometry)
        assert seeds.shape == (num_particles, 3)
        assert np.all(channel_geometry.contains(seeds))

    def test_zero_particles(self, channel_geometry):
        seeds = get_particle_seeding_locations("driven_cavity", 0, channel_geometry)
        assert seeds.shape == (0, 3)

    def test_seeds_are_distinct(self, channel_geometry):
        seeds = get_particle_seeding_locations("driven_cavity", 50, channel_geometry)
        assert len(np.unique(seeds, axis=0)) == 50

    def test_deterministic(self, channel_geometry):
        a = get_particle_seeding_locations("karman_vortex_street", 12, channel_geometry)
        b = get_particle_seeding_locations("karman_vortex_street", 12, channel_geometry)
        assert np.array_equal(a, b)


class TestPlacementRules:
    """Inflow-face and interior-lattice placement."""

    def test_inflow_face_half_cell_inside(self, channel_geometry):
        seeds = get_particle_seeding_locations("karman_vortex_street", 9, channel_geometry)
        assert np.allclose(seeds[:, 0], 0.5 * channel_geometry.dx)

    def test_interior_lattice_spans_domain(self, channel_geometry):
        seeds = get_particle_seeding_locations("natural_convection", 40, channel_geometry)
        assert seeds[:, 0].max() - seeds[:, 0].min() > 0.5 * channel_geometry.size[0]

    def test_seeds_avoid_obstacles(self, channel_geometry):
        markers = np.full((channel_geometry.ny + 2, channel_geometry.nx + 2), 4)
        markers[0, :] = markers[-1, :] = 0
        markers[:, 0] = markers[:, -1] = 0
        markers[3:, 1:6] = 0  # step in the lower left of the channel
        field = FlagField.from_markers("flow_over_step", markers, channel_geometry)

        seeds = get_particle_seeding_locations("flow_over_step", 16, channel_geometry, flag_field=field)
        assert seeds.shape == (16, 3)
        assert np.all(field.is_fluid_point(seeds))

    def test_no_fluid_cells(self, channel_geometry):
        flags = channel_geometry.allocate(dtype=np.uint32, fill=encode_flag(CellType.NO_SLIP))
        solid = FlagField("driven_cavity", channel_geometry, flags)
        with pytest.raises(ValueError, match="Could not place"):
            get_particle_seeding_locations("driven_cavity", 5, channel_geometry, flag_field=solid)


class TestErrors:
    """Invalid requests."""

    def test_unknown_scenario(self, channel_geometry):
        with pytest.raises(ValueError, match="No seeding rule"):
            get_particle_seeding_locations("lid_driven_torus", 10, channel_geometry)

    def test_negative_count(self, channel_geometry):
        with pytest.raises(ValueError):
            get_particle_seeding_locations("driven_cavity", -1, channel_geometry)
