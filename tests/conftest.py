"""Pytest configuration and fixtures for flag field and tracing tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def cube_geometry():
    """3x3x3 interior cells of unit size, domain [0, 3]^3."""
    from meshing import GridGeometry

    return GridGeometry(nx=3, ny=3, nz=3, dx=1.0, dy=1.0, dz=1.0)


@pytest.fixture
def channel_geometry():
    """Elongated 10x4x4 channel on [0, 10] x [0, 4] x [0, 4]."""
    from meshing import GridGeometry

    return GridGeometry(nx=10, ny=4, nz=4, dx=1.0, dy=1.0, dz=1.0)


@pytest.fixture
def uniform_x_snapshot(channel_geometry):
    """Velocity (1, 0, 0) everywhere, pressure 2 and temperature 300."""
    from tracing import FlowSnapshot

    return FlowSnapshot.uniform(channel_geometry, (1.0, 0.0, 0.0), pressure=2.0, temperature=300.0)


@pytest.fixture
def linear_snapshot(channel_geometry):
    """Each field equals a linear function of the world coordinates of its samples.

    u = x, v = 2 y, w = -z, p = x + y + z, t = 3 z
    """
    from tracing import FlowSnapshot

    def evaluate(field, fn):
        X, Y, Z = np.meshgrid(*channel_geometry.staggered_axes(field), indexing="ij")
        return fn(X, Y, Z)

    return FlowSnapshot(
        u=evaluate("u", lambda x, y, z: x),
        v=evaluate("v", lambda x, y, z: 2.0 * y),
        w=evaluate("w", lambda x, y, z: -z),
        p=evaluate("p", lambda x, y, z: x + y + z),
        t=evaluate("t", lambda x, y, z: 3.0 * z),
    )
