"""Cell classification for the staggered-grid solver.

Flag layout, geometry raster import and nearest-neighbour resampling.
"""

from .flags import (
    CellFlags,
    CellType,
    Direction,
    FlagBit,
    b_b,
    b_d,
    b_f,
    b_l,
    b_r,
    b_u,
    borders,
    cell_type_of,
    decode_flag,
    encode_flag,
    is_cold,
    is_coupling,
    is_fluid,
    is_free_slip,
    is_hot,
    is_inflow,
    is_no_slip,
    is_outflow,
)
from .flag_field import FlagField
from .geometry_io import MARKER_FLAGS, read_geometry_raster
from .resampling import nearest_neighbor_indices, nearest_neighbor_resample, resample_volume

__all__ = [
    # Flag layout
    "CellType",
    "Direction",
    "FlagBit",
    "CellFlags",
    "encode_flag",
    "decode_flag",
    "cell_type_of",
    # Predicates
    "is_fluid",
    "is_no_slip",
    "is_free_slip",
    "is_outflow",
    "is_inflow",
    "b_l",
    "b_r",
    "b_d",
    "b_u",
    "b_b",
    "b_f",
    "borders",
    "is_hot",
    "is_cold",
    "is_coupling",
    # Field construction
    "FlagField",
    "MARKER_FLAGS",
    "read_geometry_raster",
    "nearest_neighbor_indices",
    "nearest_neighbor_resample",
    "resample_volume",
]
