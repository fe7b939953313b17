"""
Point model
===========
Structured point layout for lidar clouds and the named narrowing steps used
to fill it.

Field layout (matches the sensor driver's PointCloud2 point):
    x, y, z        float32   position in sensor frame
    intensity      float32   signal
    t              uint32    ns offset from the scan reference time
    reflectivity   uint16
    ring           uint16    beam row
    ambient        uint16    near-infrared
    range          uint32    raw range

Narrowing policy:
    float -> float32    IEEE round-to-nearest
    int   -> uintN      modular wrap (two's complement truncation), so
                        65536 -> 0 for uint16 and -1 -> 2**32 - 1 for uint32
"""

from typing import List, Tuple

import numpy as np

from .errors import UnsupportedRingWidth

POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.float32),
        ("t", np.uint32),
        ("reflectivity", np.uint16),
        ("ring", np.uint16),
        ("ambient", np.uint16),
        ("range", np.uint32),
    ]
)

RING_BITS = (8, 16)


def point_fields() -> List[Tuple[str, int, np.dtype]]:
    """(name, byte offset, numpy dtype) for every field of POINT_DTYPE."""
    fields = []
    for name in POINT_DTYPE.names:
        dtype, offset = POINT_DTYPE.fields[name][:2]
        fields.append((name, offset, dtype))
    return fields


POINT_FIELDS = point_fields()


# ── Narrowing steps ──────────────────────────────────────────────────────
def to_float32(values) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).astype(np.float32)


def _wrap(values, bits: int) -> np.ndarray:
    values = np.asarray(values)
    if values.dtype.kind == "f":
        # truncate toward zero first, as an integer cast does
        values = np.trunc(values)
    return (values.astype(np.int64) & ((1 << bits) - 1)).astype(f"uint{bits}")


def to_uint16(values) -> np.ndarray:
    return _wrap(values, 16)


def to_uint32(values) -> np.ndarray:
    return _wrap(values, 32)


def to_ring(rows, bits: int = 16) -> np.ndarray:
    """
    Row index as stored in ``ring``. With ``bits=8`` rows above 255 wrap;
    keeping rows in range is the caller's configuration concern.
    """
    if bits not in RING_BITS:
        raise UnsupportedRingWidth(
            f"ring storage must be one of {RING_BITS} bits, got {bits}"
        )
    return _wrap(rows, bits).astype(np.uint16)


class Cloud:
    """
    Organized H x W point grid.

    ``points[u, v]`` is the point of beam row ``u`` and firing column ``v``.
    """

    def __init__(self, width: int = 0, height: int = 0):
        self.points = np.zeros((int(height), int(width)), dtype=POINT_DTYPE)

    @property
    def height(self) -> int:
        return self.points.shape[0]

    @property
    def width(self) -> int:
        return self.points.shape[1]

    @property
    def size(self) -> int:
        return self.points.size

    def resize(self, width: int, height: int) -> bool:
        """Reallocate storage when dimensions differ. Returns True if it did."""
        if (self.height, self.width) == (height, width):
            return False
        self.points = np.zeros((int(height), int(width)), dtype=POINT_DTYPE)
        return True

    def at(self, column: int, row: int):
        return self.points[row, column]

    def xyz(self) -> np.ndarray:
        """(H, W, 3) float32 copy of the positions."""
        return np.stack(
            [self.points["x"], self.points["y"], self.points["z"]], axis=-1
        )

    def copy(self) -> "Cloud":
        out = Cloud()
        out.points = self.points.copy()
        return out

    def __repr__(self) -> str:
        return f"Cloud(width={self.width}, height={self.height})"
