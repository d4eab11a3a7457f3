"""Trilinear sampling of staggered grid fields at arbitrary world positions.

Each velocity component is stored on its own staggered lattice (see
``meshing.grid``): ``u`` on x-faces, ``v`` on y-faces, ``w`` on z-faces, while
pressure and temperature sit at cell centres. Every field gets its own
``RegularGridInterpolator`` over the exact world coordinates of its samples,
so the per-component offsets are handled by the coordinate axes rather than by
index arithmetic.

Query points are clamped onto each field's sample range before interpolation:
points on or beyond the domain boundary return the boundary value and no
extrapolation ever happens.
"""

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from meshing.grid import GridGeometry

from .datastructures import FlowSnapshot

SCALAR_ATTRIBUTES = ("pressure", "temperature", "velocity_magnitude")
_SCALAR_FIELDS = {"pressure": "p", "temperature": "t"}


class StaggeredFieldSampler:
    """Evaluate velocity and scalar fields of one snapshot.

    Parameters
    ----------
    geometry : GridGeometry
        Grid the snapshot lives on.
    snapshot : FlowSnapshot
        Velocity components (and optionally pressure / temperature).

    Attributes
    ----------
    interpolators : dict
        One ``RegularGridInterpolator`` per available field ('u', 'v', 'w', 'p', 't').
    """

    def __init__(self, geometry: GridGeometry, snapshot: FlowSnapshot):
        snapshot.validate(geometry)
        self.geometry = geometry
        self.snapshot = snapshot
        self.axes = {}
        self.interpolators = {}
        for name in ("u", "v", "w", "p", "t"):
            values = getattr(snapshot, name)
            if values is None:
                continue
            axes = geometry.staggered_axes(name)
            self.axes[name] = axes
            self.interpolators[name] = RegularGridInterpolator(
                axes, values, method="linear", bounds_error=False, fill_value=None
            )

    def _evaluate(self, name: str, points: np.ndarray) -> np.ndarray:
        # Clamp onto the sample range of this particular field
        lo = np.array([axis[0] for axis in self.axes[name]])
        hi = np.array([axis[-1] for axis in self.axes[name]])
        clamped = np.clip(points, lo, hi)
        return self.interpolators[name](clamped)

    def velocity(self, points) -> np.ndarray:
        """Velocity vectors at an (N, 3) array of points; returns (N, 3)."""
        pts = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if pts.shape[-1] != 3:
            raise ValueError(f"points must have shape (N, 3), got {pts.shape}")
        return np.column_stack([self._evaluate(c, pts) for c in ("u", "v", "w")])

    def velocity_at(self, point) -> np.ndarray:
        return self.velocity(np.asarray(point, dtype=np.float64).reshape(1, 3))[0]

    def __call__(self, points, t=None) -> np.ndarray:
        """Field function ``(x, t) -> v`` as expected by the integrators."""
        return self.velocity(points)

    def has_scalar(self, name: str) -> bool:
        if name == "velocity_magnitude":
            return True
        return _SCALAR_FIELDS.get(name) in self.interpolators

    def scalar(self, name: str, points) -> np.ndarray:
        """Pressure, temperature or velocity magnitude at (N, 3) points."""
        pts = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if name == "velocity_magnitude":
            return np.linalg.norm(self.velocity(pts), axis=1)
        if name not in _SCALAR_FIELDS:
            raise ValueError(f"Unknown attribute '{name}'. Available: {list(SCALAR_ATTRIBUTES)}")
        key = _SCALAR_FIELDS[name]
        if key not in self.interpolators:
            raise ValueError(f"Snapshot does not provide '{name}'")
        return self._evaluate(key, pts)

    def sample_attributes(self, points, names) -> dict:
        """Dictionary name -> (N,) values for every requested attribute."""
        return {name: self.scalar(name, points) for name in names}
