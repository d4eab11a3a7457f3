"""Tests for the explicit particle steppers."""

import numpy as np
import pytest

from tracing import StaggeredFieldSampler, euler_step, integrate_particle_position, rk4_step
from tracing.integrator import get_stepper


class TestIntegrateParticlePosition:
    """One step through a sampled velocity field."""

    def test_uniform_euler_step(self, channel_geometry, uniform_x_snapshot):
        sampler = StaggeredFieldSampler(channel_geometry, uniform_x_snapshot)
        result = integrate_particle_position([[2.0, 2.0, 2.0]], sampler, dt=0.25)
        assert np.allclose(result.positions, [[2.25, 2.0, 2.0]])
        assert result.in_domain.tolist() == [True]

    def test_repeated_steps_cover_dt_times_n(self, channel_geometry, uniform_x_snapshot):
        sampler = StaggeredFieldSampler(channel_geometry, uniform_x_snapshot)
        x = np.array([[1.0, 2.0, 2.0]])
        for _ in range(20):
            x = integrate_particle_position(x, sampler, dt=0.1).positions
        assert x[0, 0] == pytest.approx(3.0)
        assert x[0, 1:] == pytest.approx([2.0, 2.0])

    def test_leaving_domain_is_reported_not_clamped(self, channel_geometry, uniform_x_snapshot):
        sampler = StaggeredFieldSampler(channel_geometry, uniform_x_snapshot)
        result = integrate_particle_position([[9.95, 2.0, 2.0], [5.0, 2.0, 2.0]], sampler, dt=0.1)
        assert result.in_domain.tolist() == [False, True]
        assert result.positions[0, 0] == pytest.approx(10.05)

    def test_single_point_input(self, channel_geometry, uniform_x_snapshot):
        sampler = StaggeredFieldSampler(channel_geometry, uniform_x_snapshot)
        result = integrate_particle_position([1.0, 1.0, 1.0], sampler, dt=0.5)
        assert result.positions.shape == (1, 3)

    def test_rk4_more_accurate_on_exponential(self, channel_geometry, linear_snapshot):
        # u = x gives x(t) = x0 * exp(t)
        sampler = StaggeredFieldSampler(channel_geometry, linear_snapshot)
        seed = [[1.0, 1.0, 1.0]]
        euler = integrate_particle_position(seed, sampler, dt=0.1, scheme="euler").positions[0, 0]
        rk4 = integrate_particle_position(seed, sampler, dt=0.1, scheme="rk4").positions[0, 0]
        assert euler == pytest.approx(1.1)
        assert rk4 == pytest.approx(np.exp(0.1), abs=1e-6)

    def test_unknown_scheme(self):
        with pytest.raises(ValueError, match="Unknown integration scheme"):
            get_stepper("midpoint")


class TestSteppers:
    """Steppers on analytic field functions."""

    def test_euler_is_one_evaluation(self):
        calls = []

        def field(x, t):
            calls.append(t)
            return np.ones_like(x)

        out = euler_step(np.zeros((2, 3)), 0.0, 0.5, field)
        assert np.allclose(out, 0.5)
        assert calls == [0.0]

    def test_rk4_time_dependent_field(self):
        # dx/dt = t  ->  x(dt) = dt^2 / 2, exact for RK4
        def field(x, t):
            return np.full_like(x, t)

        out = rk4_step(np.zeros((1, 3)), 0.0, 0.2, field)
        assert np.allclose(out, 0.02)
