import numpy as np
import pytest

from calibu.cameras import LinearCamera
from calibu.geometry import SE3, SO3
from calibu.rectify import (
    BilinearLutPoint,
    LookupTable,
    create_lookup_table,
    create_lookup_table_with_transform,
    create_scanline_rectified_lookup_and_cameras,
    create_warp_map,
    min_max_rotated_col,
    min_max_rotated_row,
    project_homogeneous,
    rectify,
)


def _unit_camera(width=5, height=4):
    return LinearCamera([1.0, 1.0, 0.0, 0.0], (width, height))


def test_lookup_table_dimensions_and_points():
    lut = LookupTable(3, 2)
    assert (lut.width, lut.height) == (3, 2)
    p = BilinearLutPoint(4, 7, 0.5, 0.5, 0.0, 0.0)
    lut.set_point(1, 2, p)
    assert lut.point(1, 2) == p
    with pytest.raises(IndexError):
        lut.set_point(2, 0, p)


def test_empty_lookup_table_has_zero_height():
    assert LookupTable().height == 0


def test_identity_lookup_reproduces_image():
    cam = _unit_camera()
    lut = create_lookup_table(cam)
    image = np.arange(20, dtype=np.uint8).reshape(4, 5)
    out = rectify(lut, image)
    assert out.dtype == np.uint8
    np.testing.assert_array_equal(out, image)


def test_identity_lookup_multichannel():
    cam = _unit_camera()
    lut = create_lookup_table(cam)
    image = np.arange(60, dtype=np.uint8).reshape(4, 5, 3)
    out = rectify(lut, image, channels=3)
    np.testing.assert_array_equal(out, image)


def test_lookup_from_params_matches_explicit_inverse_k():
    cam = LinearCamera([10.0, 12.0, 3.5, 2.0], (8, 6))
    a = create_lookup_table(cam)
    b = create_lookup_table_with_transform(cam, np.linalg.inv(cam.K()))
    np.testing.assert_array_equal(a.idx0, b.idx0)
    np.testing.assert_allclose(a.weights, b.weights, atol=1e-6)


def test_larger_lookup_is_centred_and_in_bounds():
    cam = _unit_camera(4, 3)
    lut = create_lookup_table_with_transform(cam, np.eye(3), LookupTable(), 6, 5)
    assert (lut.width, lut.height) == (6, 5)
    np.testing.assert_allclose(lut.weights.sum(axis=1), 1.0, atol=1e-6)
    assert lut.idx0.min() >= 0
    assert lut.idx1.max() + 1 < 4 * 3
    centre = lut.point(1, 1)
    assert centre.idx0 == 0
    assert centre.w00 == pytest.approx(1.0)


def test_existing_table_size_is_kept():
    cam = _unit_camera(4, 3)
    lut = create_lookup_table_with_transform(cam, np.eye(3), LookupTable(2, 2))
    assert (lut.width, lut.height) == (2, 2)


def test_custom_point_bilinear_average():
    lut = LookupTable(1, 1)
    lut.set_point(0, 0, BilinearLutPoint(0, 2, 0.25, 0.25, 0.25, 0.25))
    image = np.array([[0.0, 4.0], [8.0, 12.0]])
    out = rectify(lut, image)
    assert out.shape == (1, 1)
    assert out[0, 0] == pytest.approx(np.mean(image))


def test_rectify_errors():
    with pytest.raises(ValueError):
        rectify(LookupTable(), np.zeros((2, 2)))
    lut = create_lookup_table(_unit_camera())
    with pytest.raises(ValueError):
        rectify(lut, np.zeros(3, dtype=np.uint8))
    with pytest.raises(ValueError):
        rectify(lut, np.zeros((4, 5)), channels=0)


def test_warp_map_identity():
    cam = _unit_camera()
    warp = create_warp_map(cam, np.eye(3))
    assert warp.shape == (4, 5, 2)
    rows, cols = np.mgrid[0:4, 0:5]
    np.testing.assert_allclose(warp[..., 0], cols)
    np.testing.assert_allclose(warp[..., 1], rows)


def test_warp_map_clamps_to_image():
    cam = _unit_camera()
    shift = np.array([[1.0, 0.0, 10.0], [0.0, 1.0, -10.0], [0.0, 0.0, 1.0]])
    warp = create_warp_map(cam, shift)
    np.testing.assert_allclose(warp[..., 0], cam.width - 1)
    np.testing.assert_allclose(warp[..., 1], 0.0)


def test_project_homogeneous():
    np.testing.assert_allclose(project_homogeneous([2.0, 4.0, 2.0]), [1.0, 2.0])
    np.testing.assert_allclose(project_homogeneous([3.0, 6.0, 9.0, 3.0]), [1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        project_homogeneous([1.0, 2.0])


def test_min_max_ranges_identity():
    cam = _unit_camera(5, 4)
    cols = min_max_rotated_col(cam, np.eye(3))
    rows = min_max_rotated_row(cam, np.eye(3))
    assert (cols.minr, cols.maxr) == pytest.approx((0.0, 4.0))
    assert (rows.minr, rows.maxr) == pytest.approx((0.0, 3.0))


def test_scanline_rectification_pure_baseline():
    params = [100.0, 100.0, 31.5, 23.5]
    left = LinearCamera(params, (64, 48))
    right = LinearCamera(params, (64, 48))
    t_rl = SE3(np.eye(3), [-0.1, 0.0, 0.0])
    result = create_scanline_rectified_lookup_and_cameras(t_rl, left, right)
    assert result.rig.num_cams() == 2
    np.testing.assert_allclose(result.t_nr_nl.translation, [-0.1, 0.0, 0.0], atol=1e-12)
    for cam in result.rig.cameras:
        np.testing.assert_allclose(cam.params, params, atol=1e-9)
        assert (cam.width, cam.height) == (64, 48)
    image = np.arange(64 * 48, dtype=np.float64).reshape(48, 64)
    np.testing.assert_allclose(rectify(result.left_lut, image), image, atol=1e-3)


def test_scanline_rectification_rotated_pair_is_well_formed():
    params = [80.0, 80.0, 15.5, 11.5]
    left = LinearCamera(params, (32, 24))
    right = LinearCamera(params, (32, 24))
    t_rl = SE3(SO3.exp([0.0, 0.05, 0.02]), [-0.2, 0.01, 0.0])
    result = create_scanline_rectified_lookup_and_cameras(t_rl, left, right)
    for lut in (result.left_lut, result.right_lut):
        assert (lut.width, lut.height) == (32, 24)
        np.testing.assert_allclose(lut.weights.sum(axis=1), 1.0, atol=1e-5)
        assert lut.idx1.max() + 1 < 32 * 24
    baseline = np.linalg.norm(t_rl.inverse().translation)
    assert result.t_nr_nl.translation[0] == pytest.approx(-baseline)
    np.testing.assert_allclose(result.rig.cameras[0].params, result.rig.cameras[1].params)