import numpy as np
import pytest

from calibu.camera_models import (
    DerivativeUnavailableError,
    KannalaBrandtCamera,
    Rational6Camera,
    create_camera,
)
from calibu.cameras import LinearCamera


def _kb4(k=(0.01, -0.002, 0.0005, -0.0001)):
    return KannalaBrandtCamera([400.0, 410.0, 320.0, 240.0, *k], (640, 480))


def _rational(k=(0.1, 0.0, 0.0, 0.05, 0.0, 0.0)):
    return Rational6Camera([400.0, 410.0, 320.0, 240.0, *k], (640, 480))


def _numeric_jacobian(f, x, eps=1e-6):
    x = np.asarray(x, dtype=float)
    cols = []
    for i in range(x.size):
        dx = np.zeros_like(x)
        dx[i] = eps
        cols.append((f(x + dx) - f(x - dx)) / (2 * eps))
    return np.column_stack(cols)


@pytest.mark.parametrize("pix", [(100.0, 50.0), (500.0, 400.0), (330.0, 200.0)])
def test_kb4_unproject_project_round_trip(pix):
    cam = _kb4()
    assert np.allclose(cam.project(cam.unproject(pix)), pix, atol=1e-6)


def test_kb4_unproject_is_unit_ray():
    cam = _kb4()
    ray = cam.unproject((100.0, 70.0))
    assert np.linalg.norm(ray) == pytest.approx(1.0)


def test_kb4_optical_axis_hits_principal_point():
    cam = _kb4()
    assert np.allclose(cam.project([0.0, 0.0, 2.0]), [320.0, 240.0])
    assert np.allclose(cam.unproject((320.0, 240.0)), [0.0, 0.0, 1.0])


def test_kb4_project_scale_invariant():
    cam = _kb4()
    ray = np.array([0.2, -0.1, 1.0])
    assert np.allclose(cam.project(ray), cam.project(3.0 * ray))


def test_kb4_d_project_d_ray_matches_finite_differences():
    cam = _kb4()
    ray = np.array([0.3, -0.2, 1.1])
    analytic = cam.d_project_d_ray(ray)
    numeric = _numeric_jacobian(cam.project, ray)
    assert analytic.shape == (2, 3)
    assert np.allclose(analytic, numeric, atol=1e-4)


def test_kb4_param_derivatives_shape_and_pinhole_part():
    cam = _kb4()
    lin = LinearCamera(cam.params[:4], (640, 480))
    ray = np.array([0.3, -0.2, 1.1])
    dp = cam.d_project_d_params(ray)
    assert dp.shape == (2, 8)
    assert np.allclose(dp[:, :4], lin.d_project_d_params(ray))
    assert np.allclose(dp[:, 4:], 0.0)
    du = cam.d_unproject_d_params((100.0, 50.0))
    assert du.shape == (3, 8)
    assert np.allclose(du[:, :4], lin.d_unproject_d_params((100.0, 50.0)))


def test_rational_without_distortion_matches_linear():
    cam = _rational((0.0, 0.0, 0.0, 0.0, 0.0, 0.0))
    lin = LinearCamera(cam.params[:4], (640, 480))
    ray = np.array([0.4, 0.1, 1.3])
    assert np.allclose(cam.project(ray), lin.project(ray))
    assert np.allclose(cam.unproject((50.0, 60.0)), lin.unproject((50.0, 60.0)))


def test_rational_factor_at_zero_is_one():
    assert _rational().factor(0.0) == pytest.approx(1.0)


@pytest.mark.parametrize("rd", [0.1, 0.3, 0.6])
def test_rational_factor_inv_inverts_factor(rd):
    cam = _rational()
    ru = rd * cam.factor_inv(rd)
    assert ru * cam.factor(ru) == pytest.approx(rd, rel=1e-8)


def test_rational_d_factor_d_rad_matches_finite_differences():
    cam = _rational()
    ru = 0.4
    fac, deriv = cam.d_factor_d_rad(ru)
    eps = 1e-6
    numeric = (cam.factor(ru + eps) - cam.factor(ru - eps)) / (2 * eps)
    assert fac == pytest.approx(cam.factor(ru))
    assert deriv == pytest.approx(numeric, rel=1e-5)


@pytest.mark.parametrize("pix", [(100.0, 50.0), (500.0, 400.0)])
def test_rational_round_trip(pix):
    cam = _rational()
    assert np.allclose(cam.project(cam.unproject(pix)), pix, atol=1e-6)


def test_rational_d_project_d_ray_matches_finite_differences():
    cam = _rational()
    ray = np.array([0.3, -0.2, 1.1])
    assert np.allclose(cam.d_project_d_ray(ray), _numeric_jacobian(cam.project, ray), atol=1e-4)


def test_rational_param_derivatives_raise():
    cam = _rational()
    with pytest.raises(DerivativeUnavailableError):
        cam.d_project_d_params([0.1, 0.2, 1.0])
    with pytest.raises(DerivativeUnavailableError):
        cam.d_unproject_d_params([10.0, 20.0])


def test_wrong_parameter_count_rejected():
    with pytest.raises(ValueError):
        KannalaBrandtCamera([1.0, 2.0, 3.0, 4.0])


@pytest.mark.parametrize(
    "name, cls, n",
    [
        ("calibu_fu_fv_u0_v0", LinearCamera, 4),
        ("calibu_fu_fv_u0_v0_kb4", KannalaBrandtCamera, 8),
        ("calibu_fu_fv_u0_v0_rational6", Rational6Camera, 10),
    ],
)
def test_create_camera(name, cls, n):
    cam = create_camera(name)
    assert isinstance(cam, cls)
    assert cam.type == name
    assert np.array_equal(cam.params, np.ones(n))


def test_create_camera_unknown():
    with pytest.raises(ValueError):
        create_camera("no_such_model")