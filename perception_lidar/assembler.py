"""
Point Assembler
===============
Builds an organized point cloud from one scan.

Pipeline:
    LidarScan ──→ [Select channels] ──┐
                                       ├──→ [Fill cells] → Cloud (H x W)
    XYZLut ─────→ [Project ranges] ───┘

Every cell is independent, so rows can be filled in blocks on a thread pool.
All size checks run before the destination cloud is touched.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

import numpy as np

from .channels import ChannelSet, select_channels
from .destagger import destagger as destagger_cloud
from .destagger import check_shift_table
from .errors import DimensionMismatch, UnsupportedRingWidth
from .point import Cloud, RING_BITS, to_float32, to_ring, to_uint16, to_uint32
from .projection import cartesian
from .scan import XYZLut

logger = logging.getLogger(__name__)


def reference_timestamp(scan) -> int:
    """First non-zero column timestamp of the scan, or 0 if none is set."""
    ts = np.asarray(scan.timestamps())
    valid = np.flatnonzero(ts)
    return int(ts[valid[0]]) if valid.size else 0


def relative_timestamps(column_ts, scan_ts: int) -> np.ndarray:
    """
    Per-column offsets ``min(ts[v] - scan_ts, scan_ts)`` narrowed to uint32.

    The upper clamp bounds offsets produced by clock anomalies. There is no
    lower clamp: columns stamped before ``scan_ts`` wrap modulo 2**32.
    """
    ts = np.asarray(column_ts).astype(np.int64)
    scan_ts = np.int64(scan_ts)
    return to_uint32(np.minimum(ts - scan_ts, scan_ts))


def _fill_rows(
    points: np.ndarray,
    start: int,
    stop: int,
    xyz: np.ndarray,
    t: np.ndarray,
    channels: ChannelSet,
    ring_bits: int,
) -> None:
    block = points[start:stop]
    xyz_block = xyz[start:stop]

    block["x"] = to_float32(xyz_block[..., 0])
    block["y"] = to_float32(xyz_block[..., 1])
    block["z"] = to_float32(xyz_block[..., 2])
    block["intensity"] = to_float32(channels.signal[start:stop])
    block["t"] = t[np.newaxis, :]
    block["reflectivity"] = to_uint16(channels.reflectivity[start:stop])
    block["ring"] = to_ring(np.arange(start, stop), ring_bits)[:, np.newaxis]
    block["ambient"] = to_uint16(channels.near_ir[start:stop])
    block["range"] = to_uint32(channels.range[start:stop])


def copy_scan_to_cloud(
    cloud: Cloud,
    scan,
    scan_ts: int,
    points: np.ndarray,
    channels: ChannelSet,
    ring_bits: int = 16,
    workers: int = 1,
) -> Cloud:
    """
    Fill ``cloud`` in place from projected ``points`` (H*W, 3) and the
    selected channel images. ``cloud`` must already be sized H x W.
    """
    h, w = scan.height, scan.width
    if (cloud.height, cloud.width) != (h, w):
        raise DimensionMismatch(
            f"Cloud is {cloud.height}x{cloud.width}, scan is {h}x{w}"
        )

    xyz = np.asarray(points).reshape(h, w, 3)
    t = relative_timestamps(scan.timestamps(), scan_ts)

    if workers <= 1 or h == 1:
        _fill_rows(cloud.points, 0, h, xyz, t, channels, ring_bits)
        return cloud

    bounds = np.linspace(0, h, min(workers, h) + 1, dtype=int)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(_fill_rows, cloud.points, start, stop, xyz, t, channels, ring_bits)
            for start, stop in zip(bounds[:-1], bounds[1:])
        ]
        for fut in futures:
            fut.result()
    return cloud


def _validate(scan, lut: XYZLut, ring_bits: int) -> None:
    if lut.shape != (scan.height, scan.width):
        raise DimensionMismatch(
            f"Lookup table is {lut.height}x{lut.width}, scan is {scan.height}x{scan.width}"
        )
    n_ts = len(scan.timestamps())
    if n_ts != scan.width:
        raise DimensionMismatch(f"Scan has {n_ts} column timestamps for width {scan.width}")
    if ring_bits not in RING_BITS:
        raise UnsupportedRingWidth(f"ring_bits must be one of {RING_BITS}, got {ring_bits}")


def assemble(
    scan,
    lut: XYZLut,
    scan_ts: int,
    return_index: int = 0,
    cloud: Optional[Cloud] = None,
    ring_bits: int = 16,
    mask_no_return: bool = False,
    workers: int = 1,
) -> Cloud:
    """
    Assemble an organized cloud from ``scan``.

    Args:
        scan: Object with ``height``, ``width``, ``field_type``, ``field`` and
            ``timestamps``.
        lut: Lookup table matching the scan's (H, W).
        scan_ts: Reference timestamp (ns) the per-point ``t`` is relative to.
        return_index: 0 for the first return, 1 for the second.
        cloud: Destination reused between calls; resized only if needed.
        ring_bits: Storage width of the ring tag (8 or 16).
        mask_no_return: Mark positions of zero-range cells as NaN.
        workers: Number of threads filling row blocks.

    Raises:
        DimensionMismatch: Before touching ``cloud`` if any size disagrees.
    """
    _validate(scan, lut, ring_bits)
    channels = select_channels(scan, return_index)
    xyz = cartesian(channels.range, lut)

    if cloud is None:
        cloud = Cloud(scan.width, scan.height)
    elif cloud.resize(scan.width, scan.height):
        logger.debug("Resized cloud to %dx%d", scan.height, scan.width)

    copy_scan_to_cloud(cloud, scan, scan_ts, xyz, channels, ring_bits, workers)

    if mask_no_return:
        no_return = channels.range == 0
        for axis in ("x", "y", "z"):
            cloud.points[axis][no_return] = np.nan
    return cloud


def scan_to_cloud(
    scan,
    lut: XYZLut,
    scan_ts: int,
    return_index: int = 0,
    cloud: Optional[Cloud] = None,
    pixel_shift_by_row=None,
    destagger: bool = False,
    **kwargs,
) -> Tuple[Cloud, Optional[Cloud]]:
    """
    Assemble ``scan`` and, when ``destagger`` is set, also return the
    destaggered copy. The shift table is checked before assembly starts.
    """
    if destagger:
        if pixel_shift_by_row is None:
            raise DimensionMismatch("destagger requested without a shift table")
        check_shift_table(pixel_shift_by_row, scan.height)

    cloud = assemble(scan, lut, scan_ts, return_index, cloud=cloud, **kwargs)
    if not destagger:
        return cloud, None
    return cloud, destagger_cloud(cloud, pixel_shift_by_row)
