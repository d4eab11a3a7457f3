"""
GridGeometry: Cartesian staggered grid with a one-cell ghost layer.

Indexing Conventions:
- Cell arrays (flags, pressure, temperature) are shaped (nx+2, ny+2, nz+2) and
  indexed [i, j, k]. Interior cells are i in [1, nx], j in [1, ny], k in [1, nz];
  indices 0 and n+1 are the ghost layer.
- Cell (i, j, k) spans [origin + (i-1)*d, origin + i*d] along each axis, so the
  physical domain is [origin, origin + n*d].
- Staggered velocity components sit on the "upper" face of their cell along
  their own axis (offset 0) and at cell centres along the other axes (offset -0.5).
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np


# Per-axis offsets (in cells, relative to the cell's upper face) of every field
STAGGER_OFFSETS = {
    "u": (0.0, -0.5, -0.5),
    "v": (-0.5, 0.0, -0.5),
    "w": (-0.5, -0.5, 0.0),
    "p": (-0.5, -0.5, -0.5),
    "t": (-0.5, -0.5, -0.5),
}


@dataclass(frozen=True)
class GridGeometry:
    """Immutable grid description shared by the flag field, sampler and tracers."""

    nx: int
    ny: int
    nz: int
    dx: float
    dy: float
    dz: float
    origin: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self):
        for name in ("nx", "ny", "nz"):
            value = getattr(self, name)
            if int(value) != value or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value}")
        for name in ("dx", "dy", "dz"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if len(self.origin) != 3:
            raise ValueError(f"origin must have 3 components, got {self.origin}")
        object.__setattr__(self, "origin", tuple(float(c) for c in self.origin))

    @classmethod
    def from_size(cls, nx, ny, nz, size, origin=(0.0, 0.0, 0.0)):
        """Build a geometry from cell counts and the physical extent of the domain."""
        if len(size) != 3:
            raise ValueError(f"size must have 3 components, got {size}")
        for n in (nx, ny, nz):
            if n <= 0:
                raise ValueError(f"cell counts must be positive, got {(nx, ny, nz)}")
        return cls(
            nx=nx,
            ny=ny,
            nz=nz,
            dx=size[0] / nx,
            dy=size[1] / ny,
            dz=size[2] / nz,
            origin=tuple(origin),
        )

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def cell_counts(self) -> Tuple[int, int, int]:
        return (self.nx, self.ny, self.nz)

    @property
    def spacing(self) -> np.ndarray:
        return np.array([self.dx, self.dy, self.dz])

    @property
    def lower(self) -> np.ndarray:
        return np.array(self.origin)

    @property
    def size(self) -> np.ndarray:
        return np.array(self.cell_counts) * self.spacing

    @property
    def upper(self) -> np.ndarray:
        return self.lower + self.size

    @property
    def ghost_shape(self) -> Tuple[int, int, int]:
        return (self.nx + 2, self.ny + 2, self.nz + 2)

    @property
    def interior(self) -> Tuple[slice, slice, slice]:
        """Slices selecting the interior cells of a ghost-extended array."""
        return (slice(1, self.nx + 1), slice(1, self.ny + 1), slice(1, self.nz + 1))

    def allocate(self, dtype=np.float64, fill=0) -> np.ndarray:
        """Allocate a ghost-extended cell array."""
        return np.full(self.ghost_shape, fill, dtype=dtype)

    # ------------------------------------------------------------------
    # Index / coordinate conversions
    # ------------------------------------------------------------------

    def check_ghost_index(self, i: int, j: int, k: int) -> Tuple[int, int, int]:
        """Validate a ghost-extended index (no negative wrap-around)."""
        for value, n, axis in zip((i, j, k), self.cell_counts, "ijk"):
            if not 0 <= value <= n + 1:
                raise IndexError(f"{axis}={value} outside [0, {n + 1}]")
        return (int(i), int(j), int(k))

    def node_coordinates(self, axis: int, offset: float) -> np.ndarray:
        """World coordinates of all ghost-extended nodes along one axis.

        Parameters
        ----------
        axis : int
            0, 1 or 2 for x, y, z.
        offset : float
            Offset in cells relative to the upper face of each cell
            (0.0 for face-centred, -0.5 for cell-centred samples).
        """
        n = self.cell_counts[axis]
        d = self.spacing[axis]
        return self.origin[axis] + (np.arange(n + 2) + offset) * d

    def staggered_axes(self, field: str):
        """Coordinate axes (x, y, z) of a staggered or cell-centred field."""
        offsets = STAGGER_OFFSETS[field]
        return tuple(self.node_coordinates(axis, offsets[axis]) for axis in range(3))

    def contains(self, points) -> np.ndarray:
        """Closed bounding-box test; accepts a single point or an (N, 3) array."""
        pts = np.asarray(points, dtype=np.float64)
        inside = np.all((pts >= self.lower) & (pts <= self.upper), axis=-1)
        return inside

    def cell_index(self, points) -> np.ndarray:
        """1-based interior cell index (i, j, k) containing each point.

        Points on the upper boundary belong to the last interior cell. Points
        outside the domain are clamped onto the nearest interior cell; combine
        with ``contains`` when that matters.
        """
        pts = np.asarray(points, dtype=np.float64)
        idx = np.floor((pts - self.lower) / self.spacing).astype(np.int64) + 1
        return np.clip(idx, 1, np.array(self.cell_counts))
