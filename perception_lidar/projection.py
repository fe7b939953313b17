"""
Cartesian Projector
===================
Converts a range image into 3D points through the lookup table:

    xyz[u * W + v] = direction[u * W + v] * range[u, v] + offset[u * W + v]

Computed in float64. Zero-range cells land on their offset; masking them is
left to the assembler.
"""

import numpy as np

from .errors import DimensionMismatch
from .point import to_float32
from .scan import XYZLut


def _check_range(range_image: np.ndarray, lut: XYZLut) -> np.ndarray:
    range_image = np.asarray(range_image)
    if range_image.shape != lut.shape:
        raise DimensionMismatch(
            f"Range image {range_image.shape} does not match lookup table {lut.shape}"
        )
    return range_image


def cartesian(range_image, lut: XYZLut) -> np.ndarray:
    """Project ``range_image`` (H, W) to an (H*W, 3) float64 array."""
    range_image = _check_range(range_image, lut)
    r = range_image.reshape(-1, 1).astype(np.float64)
    return lut.direction * r + lut.offset


def cartesian_f(points: np.ndarray, range_image, lut: XYZLut) -> np.ndarray:
    """
    Project into a preallocated (H*W, 3) float32 buffer and return it.

    The buffer is reallocated when its shape does not fit, so callers can keep
    one around between scans of the same sensor.
    """
    n = lut.height * lut.width
    if points is None or points.shape != (n, 3) or points.dtype != np.float32:
        points = np.empty((n, 3), dtype=np.float32)
    points[:] = to_float32(cartesian(range_image, lut))
    return points
