import logging

import numpy as np

from perception_lidar.assembler import assemble
from perception_lidar.destagger import destagger
from perception_lidar.point import Cloud
from perception_lidar.validation import check_destagger, validate_destagger

from conftest import make_scan, spinning_lut

SHIFTS = np.array([0, 3, 6, 9, 0, 3, 6, 9])


def destaggered_cloud():
    """Cloud whose columns already follow azimuth order."""
    lut = spinning_lut(8, 16)
    return assemble(make_scan(np.full((8, 16), 1000)), lut, scan_ts=0)


def test_ordered_cloud_has_no_violations():
    assert validate_destagger(destaggered_cloud()) == []


def test_correct_shifts_restore_order():
    staggered = destagger(destaggered_cloud(), SHIFTS, inverse=True)
    assert validate_destagger(staggered)

    assert validate_destagger(destagger(staggered, SHIFTS)) == []
    assert check_destagger(destagger(staggered, SHIFTS))


def test_corrupted_shift_is_localized_to_its_row(caplog):
    staggered = destagger(destaggered_cloud(), SHIFTS, inverse=True)
    corrupted = SHIFTS.copy()
    corrupted[2] += 1

    with caplog.at_level(logging.WARNING, logger="perception_lidar.validation"):
        violations = validate_destagger(destagger(staggered, corrupted))

    assert violations
    assert {v.row for v in violations} == {2}
    assert {v.kind for v in violations} == {"azimuth"}
    assert violations[0].column == 14
    assert violations[0].angle_a < violations[0].angle_b
    assert "azimuth" in caplog.text


def test_zero_angles_are_ignored():
    cloud = Cloud(4, 3)
    cloud.points["x"][1] = [1.0, 0.0, 1.0, 0.0]
    cloud.points["y"][1] = [-1.0, 0.0, 1.0, 0.0]
    # row 1: -pi/4, 0, +pi/4, 0 -> the only increase spans a zero
    assert validate_destagger(cloud) == []


def test_elevation_increase_reported():
    cloud = Cloud(1, 2)
    cloud.points["z"] = [[-1.0], [1.0]]
    cloud.points["range"] = 10

    violations = validate_destagger(cloud)

    assert len(violations) == 1
    v = violations[0]
    assert (v.kind, v.row, v.column) == ("elevation", 0, 0)
    assert v.angle_a < 0 < v.angle_b
    assert not check_destagger(cloud)
