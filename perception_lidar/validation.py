"""
Destagger Validator
===================
Self-test for destaggered clouds. Walking a row left to right the azimuth
``atan2(y, x)`` must not increase; walking a column top to bottom the
elevation ``atan2(z, range)`` must not increase. A zero angle means "no
return" and is skipped on either side of a comparison.

Violations are reported and logged, never raised: this catches calibration
or shift-table errors during integration, it is not a runtime guard.
"""

import logging
from typing import List, NamedTuple

import numpy as np

from .point import Cloud

logger = logging.getLogger(__name__)


class Violation(NamedTuple):
    kind: str      # "azimuth" or "elevation"
    row: int
    column: int    # first cell of the offending pair
    angle_a: float
    angle_b: float


def _increasing_pairs(angles: np.ndarray, axis: int) -> np.ndarray:
    """Index array of cells whose angle is below the next one along ``axis``."""
    if axis == 1:
        a, b = angles[:, :-1], angles[:, 1:]
    else:
        a, b = angles[:-1, :], angles[1:, :]
    bad = (a < b) & (a != 0) & (b != 0)
    return np.argwhere(bad)


def azimuth_angles(cloud: Cloud) -> np.ndarray:
    return np.arctan2(cloud.points["y"], cloud.points["x"]).astype(np.float32)


def elevation_angles(cloud: Cloud) -> np.ndarray:
    rng = cloud.points["range"].astype(np.float32)
    return np.arctan2(cloud.points["z"], rng).astype(np.float32)


def validate_destagger(cloud: Cloud) -> List[Violation]:
    """Check every row and every column; an empty list means consistent."""
    violations: List[Violation] = []

    azimuth = azimuth_angles(cloud)
    for row, col in _increasing_pairs(azimuth, axis=1):
        violations.append(
            Violation("azimuth", int(row), int(col),
                      float(azimuth[row, col]), float(azimuth[row, col + 1]))
        )

    elevation = elevation_angles(cloud)
    for row, col in _increasing_pairs(elevation, axis=0):
        violations.append(
            Violation("elevation", int(row), int(col),
                      float(elevation[row, col]), float(elevation[row + 1, col]))
        )

    for v in violations[:10]:
        logger.warning(
            "Destagger check failed: %s at row %d col %d (%.6f < %.6f)",
            v.kind, v.row, v.column, v.angle_a, v.angle_b,
        )
    if len(violations) > 10:
        logger.warning("... %d more destagger violations", len(violations) - 10)
    return violations


def check_destagger(cloud: Cloud) -> bool:
    return not validate_destagger(cloud)
