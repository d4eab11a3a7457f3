"""Tests for geometry raster input (PGM and .npy)."""

import numpy as np
import pytest

from cells import MARKER_FLAGS, CellType, encode_flag, read_geometry_raster
from cells.geometry_io import markers_to_flags


def write_p2(path, rows, maxval=4, comment=True):
    height, width = len(rows), len(rows[0])
    lines = ["P2"]
    if comment:
        lines.append("# generated geometry")
    lines += [f"{width} {height}", str(maxval)]
    lines += [" ".join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


class TestReadRaster:
    """Parsing of supported formats."""

    def test_ascii_pgm(self, tmp_path):
        rows = [[0, 0, 0], [3, 4, 2], [0, 0, 0]]
        raster = read_geometry_raster(write_p2(tmp_path / "channel.pgm", rows))
        assert raster.shape == (3, 3)
        assert raster.tolist() == rows

    def test_ascii_pgm_comment_in_body(self, tmp_path):
        path = tmp_path / "commented.pgm"
        path.write_text("P2\n2 2\n# maxval follows\n4\n4 4 # first row\n0 1\n")
        assert read_geometry_raster(path).tolist() == [[4, 4], [0, 1]]

    def test_binary_pgm(self, tmp_path):
        path = tmp_path / "binary.pgm"
        pixels = np.array([[4, 0], [3, 2]], dtype=np.uint8)
        path.write_bytes(b"P5\n2 2\n255\n" + pixels.tobytes())
        assert read_geometry_raster(path).tolist() == [[4, 0], [3, 2]]

    def test_binary_pgm_16_bit(self, tmp_path):
        path = tmp_path / "wide.pgm"
        pixels = np.array([[4, 7, 1]], dtype=">u2")
        path.write_bytes(b"P5 3 1 1000\n" + pixels.tobytes())
        assert read_geometry_raster(path).tolist() == [[4, 7, 1]]

    def test_npy_volume(self, tmp_path):
        path = tmp_path / "terrain.npy"
        volume = np.full((2, 3, 4), 4, dtype=np.int16)
        np.save(path, volume)
        raster = read_geometry_raster(path)
        assert raster.shape == (2, 3, 4)
        assert raster.dtype == np.int64

    def test_npy_float_rejected(self, tmp_path):
        path = tmp_path / "float.npy"
        np.save(path, np.zeros((2, 2)))
        with pytest.raises(ValueError):
            read_geometry_raster(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_geometry_raster(tmp_path / "nope.pgm")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "geometry.png"
        path.write_bytes(b"\x89PNG")
        with pytest.raises(ValueError, match="Unsupported"):
            read_geometry_raster(path)

    def test_truncated_pgm(self, tmp_path):
        path = tmp_path / "short.pgm"
        path.write_text("P2\n3 3\n4\n4 4 4\n")
        with pytest.raises(ValueError):
            read_geometry_raster(path)

    def test_bad_magic(self, tmp_path):
        path = tmp_path / "color.pgm"
        path.write_text("P3\n1 1\n255\n0 0 0\n")
        with pytest.raises(ValueError, match="magic"):
            read_geometry_raster(path)


class TestMarkers:
    """Marker value to flag translation."""

    def test_marker_table(self):
        assert MARKER_FLAGS[4] == encode_flag(CellType.FLUID)
        assert MARKER_FLAGS[0] == encode_flag(CellType.NO_SLIP)
        assert MARKER_FLAGS[3] == encode_flag(CellType.INFLOW)
        assert MARKER_FLAGS[5] == encode_flag(CellType.NO_SLIP, hot=True)

    def test_markers_to_flags_shape(self):
        flags = markers_to_flags(np.array([[4, 0], [2, 1]]))
        assert flags.dtype == np.uint32
        assert flags.tolist() == [
            [MARKER_FLAGS[4], MARKER_FLAGS[0]],
            [MARKER_FLAGS[2], MARKER_FLAGS[1]],
        ]

    @pytest.mark.parametrize("marker", [8, -1, 255])
    def test_unknown_marker(self, marker):
        with pytest.raises(ValueError):
            markers_to_flags(np.array([[4, marker]]))

    def test_shipped_geometries_parse(self):
        from pathlib import Path

        geometry_dir = Path(__file__).parent.parent.parent / "geometry"
        for path in sorted(geometry_dir.glob("*.pgm")):
            raster = read_geometry_raster(path)
            assert raster.ndim == 2
            assert set(np.unique(raster)) <= set(MARKER_FLAGS)
