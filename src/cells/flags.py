"""Packed cell flags used by the solver's boundary handling.

Bit layout (one ``uint32`` per cell):

====  ============  =================================================
Bit   Name          Meaning
====  ============  =================================================
0     FLUID         cell is fluid
1     NO_SLIP       no-slip boundary cell
2     FREE_SLIP     free-slip boundary cell
3     OUTFLOW       outflow boundary cell
4     INFLOW        inflow boundary cell
5-10  B_L ... B_F   left/right/down/up/back/front neighbour is not fluid
11    HOT           thermally hot
12    COLD          thermally cold
13    COUPLING      cell takes part in a coupling interface
====  ============  =================================================

Bits 0-4 are the cell type and exactly one of them is set. The remaining bits
are independent modifiers. The six direction bits are queried one at a time;
combinations (edges, corners) are left to the caller.
"""

from enum import IntEnum, IntFlag
from typing import FrozenSet, NamedTuple

import numpy as np

FLAG_DTYPE = np.uint32


class CellType(IntEnum):
    """Mutually exclusive cell types; the value is the bit position."""

    FLUID = 0
    NO_SLIP = 1
    FREE_SLIP = 2
    OUTFLOW = 3
    INFLOW = 4

    @property
    def bit(self) -> int:
        return 1 << int(self)


class Direction(IntEnum):
    """Face neighbours; the value is the bit position of the B_* flag."""

    LEFT = 5  # i - 1
    RIGHT = 6  # i + 1
    DOWN = 7  # j - 1
    UP = 8  # j + 1
    BACK = 9  # k - 1
    FRONT = 10  # k + 1

    @property
    def bit(self) -> int:
        return 1 << int(self)

    @property
    def offset(self):
        """(di, dj, dk) pointing at the neighbour."""
        return _DIRECTION_OFFSETS[self]


_DIRECTION_OFFSETS = {
    Direction.LEFT: (-1, 0, 0),
    Direction.RIGHT: (1, 0, 0),
    Direction.DOWN: (0, -1, 0),
    Direction.UP: (0, 1, 0),
    Direction.BACK: (0, 0, -1),
    Direction.FRONT: (0, 0, 1),
}


class FlagBit(IntFlag):
    FLUID = 1 << 0
    NO_SLIP = 1 << 1
    FREE_SLIP = 1 << 2
    OUTFLOW = 1 << 3
    INFLOW = 1 << 4
    B_L = 1 << 5
    B_R = 1 << 6
    B_D = 1 << 7
    B_U = 1 << 8
    B_B = 1 << 9
    B_F = 1 << 10
    HOT = 1 << 11
    COLD = 1 << 12
    COUPLING = 1 << 13


TYPE_MASK = int(
    FlagBit.FLUID | FlagBit.NO_SLIP | FlagBit.FREE_SLIP | FlagBit.OUTFLOW | FlagBit.INFLOW
)
DIRECTION_MASK = int(
    FlagBit.B_L | FlagBit.B_R | FlagBit.B_D | FlagBit.B_U | FlagBit.B_B | FlagBit.B_F
)


# ========================================================
# Predicates (scalar or elementwise on arrays)
# ========================================================


def _bit(flag, position):
    if isinstance(flag, np.ndarray):
        return ((flag >> position) & 1).astype(bool)
    return bool((int(flag) >> position) & 1)


def is_fluid(flag):
    return _bit(flag, 0)


def is_no_slip(flag):
    return _bit(flag, 1)


def is_free_slip(flag):
    return _bit(flag, 2)


def is_outflow(flag):
    return _bit(flag, 3)


def is_inflow(flag):
    return _bit(flag, 4)


def b_l(flag):
    return _bit(flag, 5)


def b_r(flag):
    return _bit(flag, 6)


def b_d(flag):
    return _bit(flag, 7)


def b_u(flag):
    return _bit(flag, 8)


def b_b(flag):
    return _bit(flag, 9)


def b_f(flag):
    return _bit(flag, 10)


def is_hot(flag):
    return _bit(flag, 11)


def is_cold(flag):
    return _bit(flag, 12)


def is_coupling(flag):
    return _bit(flag, 13)


def borders(flag, direction: Direction):
    """True if the neighbour in ``direction`` is a boundary/obstacle cell."""
    return _bit(flag, int(direction))


# ========================================================
# Encoding / decoding
# ========================================================


class CellFlags(NamedTuple):
    """Decoded view of a packed flag."""

    cell_type: CellType
    boundary_neighbors: FrozenSet[Direction]
    hot: bool = False
    cold: bool = False
    coupling: bool = False


def encode_flag(
    cell_type: CellType,
    boundary_neighbors=(),
    hot: bool = False,
    cold: bool = False,
    coupling: bool = False,
) -> int:
    """Pack a cell type and its modifiers into a single integer."""
    flag = CellType(cell_type).bit
    for direction in boundary_neighbors:
        flag |= Direction(direction).bit
    if hot:
        flag |= FlagBit.HOT
    if cold:
        flag |= FlagBit.COLD
    if coupling:
        flag |= FlagBit.COUPLING
    return int(flag)


def cell_type_of(flag) -> CellType:
    """Cell type of a packed flag; raises ValueError unless exactly one type bit is set."""
    type_bits = int(flag) & TYPE_MASK
    if type_bits == 0 or type_bits & (type_bits - 1):
        raise ValueError(f"flag {int(flag):#06x} does not carry exactly one cell type")
    return CellType(type_bits.bit_length() - 1)


def decode_flag(flag) -> CellFlags:
    flag = int(flag)
    return CellFlags(
        cell_type=cell_type_of(flag),
        boundary_neighbors=frozenset(d for d in Direction if flag & d.bit),
        hot=is_hot(flag),
        cold=is_cold(flag),
        coupling=is_coupling(flag),
    )


def type_bit_count(flags: np.ndarray) -> np.ndarray:
    """Number of cell-type bits set per cell (1 everywhere for a valid field)."""
    flags = np.asarray(flags)
    return sum(((flags >> t) & 1).astype(np.int64) for t in range(len(CellType)))
