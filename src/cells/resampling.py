"""Nearest-neighbour resampling of categorical marker rasters.

Markers are categorical (obstacle, fluid, boundary type), so no interpolation
or averaging is ever done: every output cell copies exactly one input cell.
"""

import logging

import numpy as np

log = logging.getLogger(__name__)


def nearest_neighbor_indices(n_in: int, n_out: int) -> np.ndarray:
    """Input index sampled by each of ``n_out`` output cells.

    Output cell ``o`` maps to ``floor(o * n_in / n_out)``, clamped to
    ``[0, n_in - 1]``. Works for both magnification and minification.
    """
    if n_in <= 0 or n_out <= 0:
        raise ValueError(f"resolutions must be positive, got n_in={n_in}, n_out={n_out}")
    idx = (np.arange(n_out, dtype=np.int64) * n_in) // n_out
    return np.clip(idx, 0, n_in - 1)


def nearest_neighbor_resample(values_in, width_out: int, height_out: int) -> np.ndarray:
    """Resample a (height_in, width_in) raster to (height_out, width_out).

    Parameters
    ----------
    values_in : array_like
        2-D raster indexed [row, column] = [y, x].
    width_out, height_out : int
        Output resolution.

    Returns
    -------
    np.ndarray
        Raster of shape (height_out, width_out) with the dtype of the input.
    """
    values_in = np.asarray(values_in)
    if values_in.ndim != 2:
        raise ValueError(f"expected a 2-D raster, got shape {values_in.shape}")
    height_in, width_in = values_in.shape
    rows = nearest_neighbor_indices(height_in, height_out)
    cols = nearest_neighbor_indices(width_in, width_out)
    if (height_in, width_in) != (height_out, width_out):
        log.debug(
            f"Resampling raster {width_in}x{height_in} -> {width_out}x{height_out}"
        )
    return values_in[np.ix_(rows, cols)]


def resample_flat(values_in, width_in: int, height_in: int, width_out: int, height_out: int):
    """Same as ``nearest_neighbor_resample`` for a row-major flat sequence."""
    values_in = np.asarray(values_in)
    if values_in.size != width_in * height_in:
        raise ValueError(
            f"got {values_in.size} values for a {width_in}x{height_in} raster"
        )
    raster = values_in.reshape(height_in, width_in)
    return nearest_neighbor_resample(raster, width_out, height_out).ravel()


def resample_volume(values_in, shape_out) -> np.ndarray:
    """Nearest-neighbour resampling of an N-D raster, axis by axis."""
    values_in = np.asarray(values_in)
    if values_in.ndim != len(shape_out):
        raise ValueError(
            f"shape_out {tuple(shape_out)} does not match raster rank {values_in.ndim}"
        )
    index = [
        nearest_neighbor_indices(n_in, n_out)
        for n_in, n_out in zip(values_in.shape, shape_out)
    ]
    return values_in[np.ix_(*index)]
