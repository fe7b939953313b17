import numpy as np
import pytest

from perception_lidar.destagger import destagger, destagger_image, normalize_shifts
from perception_lidar.errors import DimensionMismatch
from perception_lidar.point import Cloud


def numbered_cloud(height, width):
    cloud = Cloud(width, height)
    cloud.points["range"] = np.arange(height * width).reshape(height, width)
    cloud.points["x"] = np.linspace(-5.0, 5.0, height * width).reshape(height, width)
    return cloud


def test_concrete_rotation():
    image = np.array([[10, 20, 30, 40], [10, 20, 30, 40]])
    assert destagger_image(image, [0, 2]).tolist() == [[10, 20, 30, 40], [30, 40, 10, 20]]


def test_zero_shifts_are_identity():
    cloud = numbered_cloud(4, 6)
    out = destagger(cloud, np.zeros(4, dtype=int))
    assert out.points.tobytes() == cloud.points.tobytes()
    assert out is not cloud


def test_rows_are_permuted_not_mixed():
    cloud = numbered_cloud(5, 7)
    shifts = [0, 1, 3, 6, 13]
    out = destagger(cloud, shifts)
    for row in range(5):
        assert sorted(out.points["range"][row]) == sorted(cloud.points["range"][row])


def test_output_column_takes_shifted_input_column():
    cloud = numbered_cloud(3, 5)
    shifts = [1, 4, 2]
    out = destagger(cloud, shifts)
    for u, s in enumerate(shifts):
        for k in range(5):
            assert out.at(k, u)["range"] == cloud.at((s + k) % 5, u)["range"]


@pytest.mark.parametrize("shifts", [[0, 0, 0], [1, 2, 3], [7, -1, 12], [5, 5, 5]])
def test_negated_shifts_restore_original(shifts):
    cloud = numbered_cloud(3, 8)
    negated = [(-s) % 8 for s in shifts]

    restored = destagger(destagger(cloud, shifts), negated)

    assert restored.points.tobytes() == cloud.points.tobytes()


def test_inverse_undoes_destagger():
    cloud = numbered_cloud(4, 6)
    shifts = [0, 2, 4, 5]
    restored = destagger(destagger(cloud, shifts), shifts, inverse=True)
    assert restored.points.tobytes() == cloud.points.tobytes()


def test_single_column_is_always_identity():
    cloud = numbered_cloud(3, 1)
    out = destagger(cloud, [5, -3, 1])
    assert out.points.tobytes() == cloud.points.tobytes()
    assert normalize_shifts([5, -3, 1], 1).tolist() == [0, 0, 0]


def test_negative_shift_rotates_right():
    assert normalize_shifts([-1, 9, 4], 4).tolist() == [3, 1, 0]
    assert destagger_image([[1, 2, 3, 4]], [-1]).tolist() == [[4, 1, 2, 3]]


def test_input_cloud_not_modified():
    cloud = numbered_cloud(2, 4)
    before = cloud.points.copy()
    destagger(cloud, [1, 3])
    assert cloud.points.tobytes() == before.tobytes()


@pytest.mark.parametrize("shifts", [[0], [0, 1, 2], [[0, 1]]])
def test_shift_table_length_must_match_rows(shifts):
    with pytest.raises(DimensionMismatch):
        destagger(numbered_cloud(2, 4), shifts)


def test_multichannel_image_rotates_whole_cells():
    image = np.arange(2 * 3 * 2).reshape(2, 3, 2)
    out = destagger_image(image, [0, 1])
    assert out[1].tolist() == [[8, 9], [10, 11], [6, 7]]


@pytest.mark.parametrize("shifts", [[0.0, 1.7], np.array([1.0, 2.0])])
def test_fractional_shift_table_rejected(shifts):
    with pytest.raises(DimensionMismatch):
        destagger(numbered_cloud(2, 4), shifts)


def test_unsigned_shift_table_accepted():
    out = destagger_image([[1, 2, 3]], np.array([1], dtype=np.uint16))
    assert out.tolist() == [[2, 3, 1]]
