import numpy as np
import pytest

from perception_lidar.channels import ChanField
from perception_lidar.scan import LidarScan, XYZLut


def spinning_lut(height, width):
    """
    Lookup table of an idealized spinning sensor: azimuth falls from +pi to
    -pi across the columns, elevation falls from +0.3 to -0.3 rad down the rows.
    """
    phi = np.linspace(0.3, -0.3, height)[:, np.newaxis]
    theta = np.pi * (1.0 - (2.0 * np.arange(width) + 1.0) / width)[np.newaxis, :]
    direction = np.stack(
        [
            np.cos(phi) * np.cos(theta),
            np.cos(phi) * np.sin(theta),
            np.sin(phi) * np.ones_like(theta),
        ],
        axis=-1,
    )
    return XYZLut.from_grids(direction, np.zeros_like(direction))


def make_scan(range_image, timestamps=None, **fields):
    range_image = np.asarray(range_image, dtype=np.uint32)
    h, w = range_image.shape
    images = {ChanField.RANGE: range_image}
    for name, image in fields.items():
        images[ChanField[name.upper()]] = np.asarray(image)
    return LidarScan(h, w, timestamps=timestamps, fields=images)


@pytest.fixture
def lut_2x4():
    direction = np.zeros((2, 4, 3))
    direction[..., 0] = 1.0
    offset = np.zeros((2, 4, 3))
    offset[..., 0] = 1.5
    offset[..., 1] = -2.25
    offset[..., 2] = 0.125
    return XYZLut.from_grids(direction, offset)


@pytest.fixture
def scan_2x4():
    return make_scan(
        [[10, 20, 30, 40], [10, 20, 30, 40]],
        timestamps=[1000, 1250, 1500, 1750],
        signal=[[1, 2, 3, 4], [5, 6, 7, 8]],
        reflectivity=[[100, 200, 300, 400], [0, 65535, 65536, 7]],
        near_ir=[[11, 12, 13, 14], [15, 16, 17, 18]],
    )
