"""Tests for the packed flag layout and its predicates."""

import numpy as np
import pytest

from cells import (
    CellType,
    Direction,
    FlagBit,
    b_d,
    b_f,
    b_l,
    b_r,
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


class TestBitLayout:
    """Bit positions are part of the solver interface and must not move."""

    @pytest.mark.parametrize(
        "bit,position",
        [
            (FlagBit.FLUID, 0),
            (FlagBit.NO_SLIP, 1),
            (FlagBit.FREE_SLIP, 2),
            (FlagBit.OUTFLOW, 3),
            (FlagBit.INFLOW, 4),
            (FlagBit.B_L, 5),
            (FlagBit.B_R, 6),
            (FlagBit.B_D, 7),
            (FlagBit.B_U, 8),
            (FlagBit.B_B, 9),
            (FlagBit.B_F, 10),
            (FlagBit.HOT, 11),
            (FlagBit.COLD, 12),
            (FlagBit.COUPLING, 13),
        ],
    )
    def test_positions(self, bit, position):
        assert int(bit) == 1 << position

    def test_direction_bits_match_flag_bits(self):
        assert Direction.LEFT.bit == FlagBit.B_L
        assert Direction.FRONT.bit == FlagBit.B_F
        assert Direction.UP.offset == (0, 1, 0)


class TestPredicates:
    """Each predicate reads exactly one bit."""

    def test_type_predicates(self):
        assert is_fluid(encode_flag(CellType.FLUID))
        assert is_no_slip(encode_flag(CellType.NO_SLIP))
        assert is_free_slip(encode_flag(CellType.FREE_SLIP))
        assert is_outflow(encode_flag(CellType.OUTFLOW))
        assert is_inflow(encode_flag(CellType.INFLOW))
        assert not is_fluid(encode_flag(CellType.INFLOW))

    def test_modifiers_do_not_change_type(self):
        flag = encode_flag(CellType.NO_SLIP, hot=True, coupling=True)
        assert is_no_slip(flag)
        assert is_hot(flag)
        assert not is_cold(flag)
        assert is_coupling(flag)
        assert not is_fluid(flag)

    def test_direction_predicates(self):
        flag = encode_flag(CellType.FLUID, boundary_neighbors=[Direction.LEFT, Direction.DOWN])
        assert b_l(flag) and b_d(flag)
        assert not b_r(flag) and not b_f(flag)
        assert borders(flag, Direction.LEFT)
        assert not borders(flag, Direction.UP)

    def test_predicates_vectorise(self):
        flags = np.array(
            [encode_flag(CellType.FLUID), encode_flag(CellType.OUTFLOW, cold=True)],
            dtype=np.uint32,
        )
        assert is_fluid(flags).tolist() == [True, False]
        assert is_cold(flags).tolist() == [False, True]


class TestEncodeDecode:
    """Packing and unpacking of single flags."""

    def test_encode_values(self):
        assert encode_flag(CellType.FLUID) == 1
        assert encode_flag(CellType.NO_SLIP, hot=True) == 2 | 2048
        assert encode_flag(CellType.FLUID, boundary_neighbors=[Direction.LEFT]) == 1 | 32

    def test_decode(self):
        flag = encode_flag(CellType.FLUID, boundary_neighbors=[Direction.BACK, Direction.UP], cold=True)
        decoded = decode_flag(flag)
        assert decoded.cell_type is CellType.FLUID
        assert decoded.boundary_neighbors == frozenset({Direction.BACK, Direction.UP})
        assert decoded.cold and not decoded.hot and not decoded.coupling

    @pytest.mark.parametrize("flag", [0, int(FlagBit.FLUID | FlagBit.NO_SLIP), int(FlagBit.HOT)])
    def test_cell_type_requires_exactly_one_type_bit(self, flag):
        with pytest.raises(ValueError):
            cell_type_of(flag)
