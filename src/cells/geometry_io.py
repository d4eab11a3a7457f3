"""Geometry raster input.

A geometry raster is a categorical 2-D bitmap (optionally a stack of bitmaps)
with one marker per cell. Rows run from the top of the domain (largest y)
to the bottom, columns from left to right (increasing x).

Supported encodings:
- PGM, ASCII (P2, comments allowed) or binary (P5, 8 or 16 bit)
- NumPy ``.npy`` arrays (2-D or 3-D integer arrays)
"""

import logging
from pathlib import Path

import numpy as np

from .flags import CellType, encode_flag

log = logging.getLogger(__name__)


# Marker value -> packed flag (type bit plus thermal/coupling modifiers)
MARKER_FLAGS = {
    0: encode_flag(CellType.NO_SLIP),
    1: encode_flag(CellType.FREE_SLIP),
    2: encode_flag(CellType.OUTFLOW),
    3: encode_flag(CellType.INFLOW),
    4: encode_flag(CellType.FLUID),
    5: encode_flag(CellType.NO_SLIP, hot=True),
    6: encode_flag(CellType.NO_SLIP, cold=True),
    7: encode_flag(CellType.NO_SLIP, coupling=True),
}


def markers_to_flags(markers: np.ndarray) -> np.ndarray:
    """Map marker values to packed flags without direction bits."""
    markers = np.asarray(markers)
    unknown = np.setdiff1d(np.unique(markers), list(MARKER_FLAGS))
    if unknown.size:
        raise ValueError(
            f"unknown geometry markers {unknown.tolist()}; "
            f"valid markers are {sorted(MARKER_FLAGS)}"
        )
    lookup = np.zeros(max(MARKER_FLAGS) + 1, dtype=np.uint32)
    for marker, flag in MARKER_FLAGS.items():
        lookup[marker] = flag
    return lookup[markers.astype(np.int64)]


def read_geometry_raster(path) -> np.ndarray:
    """Load a geometry raster from disk.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        If the file cannot be parsed.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Geometry file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".pgm":
        raster = _read_pgm(path)
    elif suffix == ".npy":
        raster = np.load(path, allow_pickle=False)
        if raster.ndim not in (2, 3) or not np.issubdtype(raster.dtype, np.integer):
            raise ValueError(
                f"{path.name}: expected a 2-D or 3-D integer array, "
                f"got {raster.dtype} {raster.shape}"
            )
    else:
        raise ValueError(f"Unsupported geometry format '{suffix}' ({path.name})")

    log.info(f"Loaded geometry raster {path.name} with shape {raster.shape}")
    return raster.astype(np.int64)


def _read_pgm(path: Path) -> np.ndarray:
    data = path.read_bytes()
    tokens = []
    pos = 0
    # Header: magic, width, height, maxval (whitespace/comment separated)
    while len(tokens) < 4:
        while pos < len(data) and data[pos : pos + 1].isspace():
            pos += 1
        if pos >= len(data):
            raise ValueError(f"{path.name}: truncated PGM header")
        if data[pos : pos + 1] == b"#":
            while pos < len(data) and data[pos : pos + 1] not in (b"\n", b"\r"):
                pos += 1
            continue
        start = pos
        while pos < len(data) and not data[pos : pos + 1].isspace():
            pos += 1
        tokens.append(data[start:pos].decode("ascii", errors="replace"))

    magic = tokens[0]
    try:
        width, height, maxval = (int(t) for t in tokens[1:])
    except ValueError as exc:
        raise ValueError(f"{path.name}: malformed PGM header {tokens}") from exc
    if width <= 0 or height <= 0 or not 0 < maxval < 65536:
        raise ValueError(f"{path.name}: invalid PGM dimensions {tokens[1:]}")

    if magic == "P2":
        body = _strip_comments(data[pos:]).decode("ascii", errors="replace")
        try:
            values = np.array([int(v) for v in body.split()], dtype=np.int64)
        except ValueError as exc:
            raise ValueError(f"{path.name}: non-integer PGM value") from exc
    elif magic == "P5":
        dtype = np.dtype(">u2") if maxval > 255 else np.dtype("u1")
        # Exactly one whitespace byte separates the header from the raster
        values = np.frombuffer(data[pos + 1 :], dtype=dtype).astype(np.int64)
    else:
        raise ValueError(f"{path.name}: unsupported PGM magic number '{magic}'")

    if values.size < width * height:
        raise ValueError(
            f"{path.name}: expected {width * height} values, found {values.size}"
        )
    return values[: width * height].reshape(height, width)


def _strip_comments(body: bytes) -> bytes:
    return b"\n".join(line.split(b"#", 1)[0] for line in body.splitlines())
