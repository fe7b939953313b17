"""
Channel Selector
================
Maps a logical channel family plus a "second return" flag to the concrete
channel to read from a scan, and fetches it with a zero-filled fallback when
the sensor profile did not populate it.

Dual-return profiles expose RANGE2 / SIGNAL2 / REFLECTIVITY2. NEAR_IR has no
second-return variant.
"""

from enum import Enum
from typing import NamedTuple

import numpy as np

from .errors import DimensionMismatch, UnsupportedChannel


class ChanField(Enum):
    RANGE = "RANGE"
    RANGE2 = "RANGE2"
    SIGNAL = "SIGNAL"
    SIGNAL2 = "SIGNAL2"
    REFLECTIVITY = "REFLECTIVITY"
    REFLECTIVITY2 = "REFLECTIVITY2"
    NEAR_IR = "NEAR_IR"


# (first return, second return) per channel
_RETURN_TABLE = {
    ChanField.RANGE: (ChanField.RANGE, ChanField.RANGE2),
    ChanField.RANGE2: (ChanField.RANGE, ChanField.RANGE2),
    ChanField.SIGNAL: (ChanField.SIGNAL, ChanField.SIGNAL2),
    ChanField.SIGNAL2: (ChanField.SIGNAL, ChanField.SIGNAL2),
    ChanField.REFLECTIVITY: (ChanField.REFLECTIVITY, ChanField.REFLECTIVITY2),
    ChanField.REFLECTIVITY2: (ChanField.REFLECTIVITY, ChanField.REFLECTIVITY2),
    ChanField.NEAR_IR: (ChanField.NEAR_IR, ChanField.NEAR_IR),
}

# Native numeric width of each channel family
CHANNEL_DTYPES = {
    ChanField.RANGE: np.uint32,
    ChanField.RANGE2: np.uint32,
    ChanField.SIGNAL: np.uint32,
    ChanField.SIGNAL2: np.uint32,
    ChanField.REFLECTIVITY: np.uint16,
    ChanField.REFLECTIVITY2: np.uint16,
    ChanField.NEAR_IR: np.uint16,
}


class ChannelSet(NamedTuple):
    """Channel images selected for one return, each ``(H, W)``."""
    range: np.ndarray
    signal: np.ndarray
    reflectivity: np.ndarray
    near_ir: np.ndarray


def suitable_return(field: ChanField, second: bool) -> ChanField:
    """Return the concrete channel for ``field`` and the requested return."""
    try:
        first_field, second_field = _RETURN_TABLE[field]
    except (KeyError, TypeError):
        raise UnsupportedChannel(f"No return mapping for channel {field!r}") from None
    return second_field if second else first_field


def get_or_fill_zero(field: ChanField, scan, dtype=None) -> np.ndarray:
    """
    Fetch a channel image cast to ``dtype`` (the channel's native width by
    default). A channel missing from the scan reads as all zeros.
    """
    if dtype is None:
        dtype = CHANNEL_DTYPES[field]

    if scan.field_type(field) is None:
        return np.zeros((scan.height, scan.width), dtype=dtype)

    image = np.asarray(scan.field(field))
    if image.shape != (scan.height, scan.width):
        raise DimensionMismatch(
            f"Channel {field.value} has shape {image.shape}, "
            f"scan is {scan.height}x{scan.width}"
        )
    return image.astype(dtype, copy=True)


def select_channels(scan, return_index: int = 0) -> ChannelSet:
    """Fetch range, signal, reflectivity and near-IR for one return."""
    second = return_index == 1
    return ChannelSet(
        range=get_or_fill_zero(suitable_return(ChanField.RANGE, second), scan),
        signal=get_or_fill_zero(suitable_return(ChanField.SIGNAL, second), scan),
        reflectivity=get_or_fill_zero(
            suitable_return(ChanField.REFLECTIVITY, second), scan
        ),
        near_ir=get_or_fill_zero(suitable_return(ChanField.NEAR_IR, second), scan),
    )
