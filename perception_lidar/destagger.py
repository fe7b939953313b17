"""
Row Destagger
=============
Removes the azimuth skew between beams caused by sequential firing.

Each row is rotated left by its shift so that output column ``k`` of row ``u``
holds input column ``(shift[u] + k) mod W``. The rotation is a bijection per
row and rows are independent, so all rows are gathered in one indexed copy.
"""

import numpy as np

from .errors import DimensionMismatch
from .point import Cloud


def check_shift_table(pixel_shift_by_row, height: int) -> np.ndarray:
    shifts = np.asarray(pixel_shift_by_row)
    if shifts.size and shifts.dtype.kind not in "iu":
        raise DimensionMismatch(
            f"Shift table must hold whole column counts, got dtype {shifts.dtype}"
        )
    if shifts.ndim != 1 or shifts.shape[0] != height:
        raise DimensionMismatch(
            f"Shift table has shape {shifts.shape}, image height is {height}"
        )
    return shifts.astype(np.int64)


def normalize_shifts(pixel_shift_by_row, width: int) -> np.ndarray:
    """Shifts reduced to ``[0, width)``. Negative shifts rotate right."""
    return np.mod(np.asarray(pixel_shift_by_row, dtype=np.int64), width)


def _source_columns(shifts: np.ndarray, width: int, inverse: bool) -> np.ndarray:
    if inverse:
        shifts = -shifts
    shifts = normalize_shifts(shifts, width)
    return (shifts[:, np.newaxis] + np.arange(width)[np.newaxis, :]) % width


def destagger_image(image, pixel_shift_by_row, inverse: bool = False) -> np.ndarray:
    """
    Rotate every row of an (H, W, ...) array by its shift.

    ``inverse=True`` undoes a previous destagger.
    """
    image = np.asarray(image)
    if image.ndim < 2:
        raise DimensionMismatch(f"Expected an (H, W) image, got shape {image.shape}")
    h, w = image.shape[:2]
    shifts = check_shift_table(pixel_shift_by_row, h)
    if w == 0:
        return image.copy()
    cols = _source_columns(shifts, w, inverse)
    return image[np.arange(h)[:, np.newaxis], cols]


def destagger(cloud: Cloud, pixel_shift_by_row, inverse: bool = False) -> Cloud:
    """Return a new destaggered cloud; ``cloud`` is left unchanged."""
    out = Cloud()
    out.points = destagger_image(cloud.points, pixel_shift_by_row, inverse)
    return out
