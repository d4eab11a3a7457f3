"""FlagField: per-cell classification of the ghost-extended domain.

The field is built once during setup, either from a geometry raster or for an
obstacle-free box, and is read-only afterwards. Construction is two-phase:

1. every cell (ghost layer included) receives its type and modifier bits;
2. the six direction bits of each interior cell are derived from the type bits
   of its face neighbours (bit set iff the neighbour is not fluid).
"""

import logging

import numpy as np

from meshing.grid import GridGeometry

from .flags import (
    FLAG_DTYPE,
    TYPE_MASK,
    CellType,
    Direction,
    FlagBit,
    cell_type_of,
    encode_flag,
    type_bit_count,
)
from .geometry_io import markers_to_flags, read_geometry_raster
from .resampling import nearest_neighbor_resample, resample_volume

log = logging.getLogger(__name__)


class FlagField:
    """Read-only packed flags on a (nx+2, ny+2, nz+2) grid indexed [i, j, k].

    Parameters
    ----------
    scenario_name : str
        Name of the scenario the field was built for.
    geometry : GridGeometry
        Grid the flags live on.
    flags : np.ndarray
        Packed flags with shape ``geometry.ghost_shape``. The array is copied and
        marked non-writeable.
    """

    def __init__(self, scenario_name: str, geometry: GridGeometry, flags: np.ndarray):
        flags = np.array(flags, dtype=FLAG_DTYPE, copy=True)
        if flags.shape != geometry.ghost_shape:
            raise ValueError(
                f"flag array shape {flags.shape} does not match grid {geometry.ghost_shape}"
            )
        if not np.all(type_bit_count(flags) == 1):
            raise ValueError("every cell must carry exactly one cell type")
        flags.setflags(write=False)
        self.scenario_name = scenario_name
        self.geometry = geometry
        self._flags = flags

    # ========================================================
    # Constructors
    # ========================================================

    @classmethod
    def no_obstacles(cls, scenario_name: str, geometry: GridGeometry) -> "FlagField":
        """Fluid interior surrounded by a no-slip ghost layer.

        Thermal walls depend on the scenario: ``natural_convection`` heats the
        left wall and cools the right one, ``rayleigh_benard*`` heats the bottom
        wall and cools the top one.
        """
        flags = geometry.allocate(dtype=FLAG_DTYPE, fill=encode_flag(CellType.NO_SLIP))
        flags[geometry.interior] = encode_flag(CellType.FLUID)

        if scenario_name == "natural_convection":
            flags[0, :, :] |= FLAG_DTYPE(FlagBit.HOT)
            flags[-1, :, :] |= FLAG_DTYPE(FlagBit.COLD)
        elif scenario_name.startswith("rayleigh_benard"):
            flags[:, 0, :] |= FLAG_DTYPE(FlagBit.HOT)
            flags[:, -1, :] |= FLAG_DTYPE(FlagBit.COLD)

        _set_direction_bits(flags, geometry)
        field = cls(scenario_name, geometry, flags)
        log.info(
            f"Initialized obstacle-free flag field for '{scenario_name}' "
            f"({geometry.nx}x{geometry.ny}x{geometry.nz} interior cells)"
        )
        return field

    @classmethod
    def from_markers(cls, scenario_name: str, markers, geometry: GridGeometry) -> "FlagField":
        """Build the field from a categorical marker raster of any resolution.

        A 2-D raster (rows top to bottom = decreasing y, columns = x) covers the
        ghost-extended x-y plane and is extruded along z. A 3-D stack of shape
        (slices, rows, columns) additionally maps slices onto k, back to front.
        Ghost cells the raster marks as fluid become no-slip walls.
        """
        markers = np.asarray(markers)
        nx, ny, nz = geometry.cell_counts

        if markers.ndim == 2:
            plane = nearest_neighbor_resample(markers, width_out=nx + 2, height_out=ny + 2)
            plane = plane[::-1, :].T  # [row, col] -> [i, j]
            volume = np.repeat(plane[:, :, np.newaxis], nz + 2, axis=2)
        elif markers.ndim == 3:
            stack = resample_volume(markers, (nz + 2, ny + 2, nx + 2))
            volume = stack[:, ::-1, :].transpose(2, 1, 0)  # [k, row, col] -> [i, j, k]
        else:
            raise ValueError(f"geometry raster must be 2-D or 3-D, got shape {markers.shape}")

        flags = markers_to_flags(volume)
        _seal_ghost_layer(flags, geometry)
        _set_direction_bits(flags, geometry)
        field = cls(scenario_name, geometry, flags)
        log.info(
            f"Built flag field for '{scenario_name}' from {markers.shape} raster: "
            f"{field.count(CellType.FLUID)} fluid cells, "
            f"{field.obstacle_mask()[geometry.interior].sum()} interior obstacle cells"
        )
        return field

    @classmethod
    def from_geometry_file(cls, scenario_name: str, geometry_filename, geometry: GridGeometry):
        """Read a geometry raster from disk and build the field from it."""
        markers = read_geometry_raster(geometry_filename)
        return cls.from_markers(scenario_name, markers, geometry)

    # ========================================================
    # Queries
    # ========================================================

    @property
    def flags(self) -> np.ndarray:
        """Read-only view of the packed flags (ghost layer included)."""
        return self._flags

    @property
    def shape(self):
        return self._flags.shape

    def flag_at(self, i: int, j: int, k: int) -> int:
        i, j, k = self.geometry.check_ghost_index(i, j, k)
        return int(self._flags[i, j, k])

    def __getitem__(self, index) -> int:
        return self.flag_at(*index)

    def cell_type_at(self, i: int, j: int, k: int) -> CellType:
        return cell_type_of(self.flag_at(i, j, k))

    def fluid_mask(self) -> np.ndarray:
        return (self._flags & FlagBit.FLUID) != 0

    def obstacle_mask(self) -> np.ndarray:
        """Cells that are not fluid (obstacles and boundary cells)."""
        return ~self.fluid_mask()

    def count(self, cell_type: CellType) -> int:
        """Number of cells (ghost layer included) of the given type."""
        return int(np.count_nonzero(self._flags & CellType(cell_type).bit))

    def is_fluid_point(self, points) -> np.ndarray:
        """True for world-space points inside the domain and inside a fluid cell."""
        pts = np.asarray(points, dtype=np.float64)
        idx = self.geometry.cell_index(pts)
        fluid = self.fluid_mask()[idx[..., 0], idx[..., 1], idx[..., 2]]
        return fluid & self.geometry.contains(pts)

    def __repr__(self):
        nx, ny, nz = self.geometry.cell_counts
        return f"FlagField(scenario='{self.scenario_name}', interior={nx}x{ny}x{nz})"


def _set_direction_bits(flags: np.ndarray, geometry: GridGeometry) -> None:
    """Set B_L..B_F on interior cells from the already final type bits."""
    nx, ny, nz = geometry.cell_counts
    not_fluid = (flags & FlagBit.FLUID) == 0
    interior = flags[geometry.interior]
    for direction in Direction:
        di, dj, dk = direction.offset
        neighbor = not_fluid[
            1 + di : nx + 1 + di,
            1 + dj : ny + 1 + dj,
            1 + dk : nz + 1 + dk,
        ]
        interior[neighbor] |= FLAG_DTYPE(direction.bit)


def _seal_ghost_layer(flags: np.ndarray, geometry: GridGeometry) -> None:
    """Turn fluid ghost cells into no-slip walls, keeping thermal/coupling modifiers."""
    ghost = np.ones(flags.shape, dtype=bool)
    ghost[geometry.interior] = False
    open_cells = ghost & ((flags & FlagBit.FLUID) != 0)
    if open_cells.any():
        log.debug(f"Sealing {int(open_cells.sum())} fluid ghost cells as no-slip")
    flags[open_cells] = (flags[open_cells] & ~FLAG_DTYPE(TYPE_MASK)) | FLAG_DTYPE(FlagBit.NO_SLIP)
