"""
Scan and Lookup Table containers
================================
Concrete forms of the inputs the pipeline consumes:

    LidarScan  - H x W channel images plus W per-column timestamps (ns)
    XYZLut     - per-cell unit direction and offset, (H*W, 3) float64

Both are produced upstream (packet parsing and sensor calibration live
elsewhere). The ``.npz`` helpers let the node replay scans recorded by
those upstream tools.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np

from .channels import ChanField
from .errors import DimensionMismatch


class LidarScan:
    """
    One frame of per-cell channel data.

    Args:
        height: Number of beams (rows).
        width: Number of firings per frame (columns).
        timestamps: ``W`` nanosecond column timestamps. Defaults to zeros.
        fields: Mapping of ``ChanField`` to ``(H, W)`` images.
    """

    def __init__(
        self,
        height: int,
        width: int,
        timestamps=None,
        fields: Optional[Dict[ChanField, np.ndarray]] = None,
    ):
        if height <= 0 or width <= 0:
            raise DimensionMismatch(f"Invalid scan size {height}x{width}")
        self.h = int(height)
        self.w = int(width)

        if timestamps is None:
            timestamps = np.zeros(self.w, dtype=np.uint64)
        ts = np.asarray(timestamps, dtype=np.uint64)
        if ts.shape != (self.w,):
            raise DimensionMismatch(
                f"Expected {self.w} column timestamps, got shape {ts.shape}"
            )
        self._timestamps = ts

        self._fields: Dict[ChanField, np.ndarray] = {}
        for f, image in (fields or {}).items():
            self.add_field(f, image)

    @property
    def height(self) -> int:
        return self.h

    @property
    def width(self) -> int:
        return self.w

    def add_field(self, field: ChanField, image) -> None:
        image = np.asarray(image)
        if image.shape != (self.h, self.w):
            raise DimensionMismatch(
                f"Channel {field.value} has shape {image.shape}, "
                f"scan is {self.h}x{self.w}"
            )
        self._fields[field] = image

    def field_type(self, field: ChanField):
        """dtype of ``field``, or None when the profile does not carry it."""
        image = self._fields.get(field)
        return None if image is None else image.dtype

    def field(self, field: ChanField) -> np.ndarray:
        return self._fields[field]

    def fields(self):
        return list(self._fields)

    def timestamp(self) -> np.ndarray:
        return self._timestamps

    def timestamps(self) -> np.ndarray:
        return self._timestamps


class XYZLut:
    """
    Precomputed projection lookup table.

    ``direction`` and ``offset`` are (H*W, 3) float64 arrays, row-major over
    (row, column). They are frozen after construction so one table can be
    shared by any number of concurrent assembly calls.
    """

    def __init__(self, height: int, width: int, direction, offset):
        self.height = int(height)
        self.width = int(width)
        n = self.height * self.width

        direction = np.array(direction, dtype=np.float64).reshape(-1, 3)
        offset = np.array(offset, dtype=np.float64).reshape(-1, 3)
        if offset.shape == (1, 3):
            # a single sensor-origin offset shared by every beam
            offset = np.repeat(offset, n, axis=0)
        if direction.shape != (n, 3) or offset.shape != (n, 3):
            raise DimensionMismatch(
                f"Lookup table needs {n} entries for {self.height}x{self.width}, "
                f"got direction {direction.shape} and offset {offset.shape}"
            )

        direction.flags.writeable = False
        offset.flags.writeable = False
        self.direction = direction
        self.offset = offset

    @classmethod
    def from_grids(cls, direction, offset) -> "XYZLut":
        """Build from (H, W, 3) direction and offset grids."""
        direction = np.asarray(direction)
        if direction.ndim != 3 or direction.shape[2] != 3:
            raise DimensionMismatch(f"Expected (H, W, 3) grid, got {direction.shape}")
        h, w = direction.shape[:2]
        return cls(h, w, direction, offset)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width


# ── .npz interchange ─────────────────────────────────────────────────────
def save_scan_npz(path, scan: LidarScan) -> None:
    arrays = {f"field_{f.value}": scan.field(f) for f in scan.fields()}
    np.savez(Path(path), timestamps=scan.timestamps(), **arrays)


def load_scan_npz(path) -> LidarScan:
    """Load a scan saved by ``save_scan_npz``; ``H, W`` come from the images."""
    with np.load(Path(path)) as data:
        timestamps = data["timestamps"]
        fields = {
            ChanField(key[len("field_"):]): data[key]
            for key in data.files
            if key.startswith("field_")
        }

    if not fields:
        raise DimensionMismatch(f"Scan file {path} carries no channel images")
    height, width = next(iter(fields.values())).shape
    return LidarScan(height, width, timestamps=timestamps, fields=fields)


def load_lut_npz(path) -> Tuple[XYZLut, np.ndarray]:
    """
    Load a calibration file with ``direction`` and ``offset`` (H, W, 3) grids
    and an optional ``pixel_shift_by_row`` array.
    """
    with np.load(Path(path)) as data:
        lut = XYZLut.from_grids(data["direction"], data["offset"])
        if "pixel_shift_by_row" in data.files:
            shifts = np.asarray(data["pixel_shift_by_row"], dtype=np.int64)
        else:
            shifts = np.zeros(lut.height, dtype=np.int64)
    return lut, shifts
