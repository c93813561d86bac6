"""Distorting camera models: Kannala-Brandt and six-coefficient rational."""

from __future__ import annotations

import math

import numpy as np

from calibu.cameras import (
    CameraModel,
    LinearCamera,
    d_dehomogenize_d_ray,
    d_mult_inv_k_d_params,
    d_mult_k_d_params,
    dehomogenize,
    homogenize,
    mult_inv_k,
    mult_k,
    pix_norm,
)

_NEWTON_ITERATIONS = 5


class DerivativeUnavailableError(RuntimeError):
    """Raised when a camera model does not define a requested derivative."""


def _components(value, size: int, name: str) -> tuple[float, ...]:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.size != size:
        raise ValueError(f"{name} must have {size} elements, got {arr.size}")
    return tuple(float(v) for v in arr)


class KannalaBrandtCamera(CameraModel):
    """Kannala-Brandt generic model: (fu, fv, u0, v0, k0, k1, k2, k3).

    The image radius is r = th + k0 th^3 + k1 th^5 + k2 th^7 + k3 th^9,
    where th is the angle between the ray and the optical axis.
    """

    NUM_PARAMS = 8
    TYPE_NAME = "calibu_fu_fv_u0_v0_kb4"

    def unproject(self, pix) -> np.ndarray:
        fu, fv, u0, v0, k0, k1, k2, k3 = (float(p) for p in self._params)
        x, y = _components(pix, 2, "pix")
        un = x - u0
        vn = y - v0
        psi = math.atan2(fu * vn, fv * un)
        rth = un / (fu * math.cos(psi))

        # Newton's method on (r(th) - rth)^2.
        th = rth
        for _ in range(_NEWTON_ITERATIONS):
            th2 = th * th
            th3 = th2 * th
            th4 = th2 * th2
            th6 = th4 * th2
            x0 = k0 * th3 + k1 * th4 * th + k2 * th6 * th + k3 * th6 * th3 - rth + th
            x1 = 3 * k0 * th2 + 5 * k1 * th4 + 7 * k2 * th6 + 9 * k3 * th6 * th2 + 1
            d = 2 * x0 * x1
            d2 = 4 * th * x0 * (3 * k0 + 10 * k1 * th2 + 21 * k2 * th4 + 36 * k3 * th6) + 2 * x1 * x1
            th -= d / d2

        return np.array(
            [math.sin(th) * math.cos(psi), math.sin(th) * math.sin(psi), math.cos(th)]
        )

    def project(self, ray) -> np.ndarray:
        fu, fv, u0, v0, k0, k1, k2, k3 = (float(p) for p in self._params)
        x, y, z = _components(ray, 3, "ray")
        theta = math.atan2(math.sqrt(x * x + y * y), z)
        psi = math.atan2(y, x)
        theta2 = theta * theta
        theta3 = theta2 * theta
        theta5 = theta3 * theta2
        theta7 = theta5 * theta2
        theta9 = theta7 * theta2
        r = theta + k0 * theta3 + k1 * theta5 + k2 * theta7 + k3 * theta9
        return np.array([fu * r * math.cos(psi) + u0, fv * r * math.sin(psi) + v0])

    def d_project_d_params(self, ray) -> np.ndarray:
        j = np.zeros((2, self.NUM_PARAMS))
        j[:, :4] = d_mult_k_d_params(dehomogenize(ray))
        return j

    def d_unproject_d_params(self, pix) -> np.ndarray:
        j = np.zeros((3, self.NUM_PARAMS))
        j[:, :4] = d_mult_inv_k_d_params(self._params, pix)
        return j

    def d_project_d_ray(self, ray) -> np.ndarray:
        fu, fv = float(self._params[0]), float(self._params[1])
        k0, k1, k2, k3 = (float(p) for p in self._params[4:8])
        rx, ry, rz = _components(ray, 3, "ray")

        x0 = rx * rx
        x1 = ry * ry
        x2 = x0 + x1
        x3 = math.sqrt(x2)
        x4 = x2 ** 1.5
        x5 = rz * rz + x2
        a = math.atan2(x3, rz)
        a2 = a * a
        a4 = a2 * a2
        a6 = a4 * a2
        a8 = a4 * a4
        x11 = k0 * a2 + k1 * a4 + k2 * a6 + k3 * a8 + 1
        x12 = 3 * k0 * a2 + 5 * k1 * a4 + 7 * k2 * a6 + 9 * k3 * a8 + 1
        x13 = rz * x12 / (x2 * x5) - x11 * a / x4
        x14 = rx * fu
        x15 = ry * fv
        x16 = -1 / x4
        x17 = x11 * a
        x18 = -x12 / x5
        x19 = x17 / x3
        x20 = rz * x12 / (x2 * x5)

        return np.array(
            [
                [fu * (x0 * x16 * x17 + x0 * x20 + x19), ry * x13 * x14, x14 * x18],
                [rx * x13 * x15, fv * (x1 * x16 * x17 + x1 * x20 + x19), x15 * x18],
            ]
        )


class Rational6Camera(CameraModel):
    """Rational radial distortion: (fu, fv, u0, v0, k1, ..., k6).

    The distortion factor is (1 + k1 r^2 + k2 r^4 + k3 r^6) / (1 + k4 r^2 + k5 r^4 + k6 r^6).
    """

    NUM_PARAMS = 10
    TYPE_NAME = "calibu_fu_fv_u0_v0_rational6"

    def _coefficients(self) -> tuple[float, ...]:
        return tuple(float(p) for p in self._params[4:10])

    def factor(self, rad: float) -> float:
        """Distortion factor at undistorted radius ``rad``."""
        k1, k2, k3, k4, k5, k6 = self._coefficients()
        r2 = rad * rad
        r4 = r2 * r2
        return (1.0 + k1 * r2 + k2 * r4 + k3 * r4 * r2) / (1.0 + k4 * r2 + k5 * r4 + k6 * r4 * r2)

    def d_factor_d_rad(self, ru: float) -> tuple[float, float]:
        """Distortion factor at ``ru`` and its derivative with respect to the radius."""
        fac = self.factor(ru)
        k1, k2, k3, k4, k5, k6 = self._coefficients()
        ru2 = ru * ru
        ru4 = ru2 * ru2
        ru6 = ru4 * ru2
        numer = k1 * ru2 + k2 * ru4 + k3 * ru6 + 1
        denom = k4 * ru2 + k5 * ru4 + k6 * ru6 + 1
        d_numer = ru * (2 * k1 + 4 * k2 * ru2 * 6 * k3 * ru4)
        d_denom = ru * (2 * k4 + 4 * k5 * ru2 * 6 * k6 * ru4)
        return fac, (d_numer * denom - numer * d_denom) / (denom * denom)

    def factor_inv(self, rd: float) -> float:
        """Undistortion factor ru / rd for distorted radius ``rd``, found by Newton's method."""
        if rd == 0.0:
            return 1.0
        k1, k2, k3, k4, k5, k6 = self._coefficients()
        ru = rd
        for _ in range(_NEWTON_ITERATIONS):
            ru2 = ru * ru
            ru4 = ru2 * ru2
            ru6 = ru4 * ru2
            numer = k1 * ru2 + k2 * ru4 + k3 * ru6 + 1
            denom = k4 * ru2 + k5 * ru4 + k6 * ru6 + 1
            pol = numer / denom
            d_numer = ru * (2 * k1 + 4 * k2 * ru2 * 6 * k3 * ru4)
            d_denom = ru * (2 * k4 + 4 * k5 * ru2 * 6 * k6 * ru4)
            denom2 = denom * denom
            numer2 = d_numer * denom - numer * d_denom
            d_pol = numer2 / denom2
            d_ru_pol = pol + ru * d_pol
            ru_pol_r = ru * pol - rd

            d = 2 * ru_pol_r * d_ru_pol
            d2_numer = 2 * k1 + 12 * k2 * ru2 + 30 * k3 * ru4
            d2_denom = 2 * k4 + 12 * k5 * ru2 + 30 * k6 * ru4
            d2 = 2 * (
                d_ru_pol * d_ru_pol
                + ru_pol_r
                * (
                    2 * d_pol
                    + ((d2_numer * denom - d2_denom * numer) * denom2 - 2 * denom2 * d_denom * numer2)
                    / (denom2 * denom2)
                )
            )
            ru -= d / d2
        return ru / rd

    def unproject(self, pix) -> np.ndarray:
        pix_kinv = mult_inv_k(self._params, pix)
        return homogenize(pix_kinv * self.factor_inv(pix_norm(pix_kinv)))

    def project(self, ray) -> np.ndarray:
        pix = dehomogenize(ray)
        return mult_k(self._params, pix * self.factor(pix_norm(pix)))

    def d_project_d_ray(self, ray) -> np.ndarray:
        pix = dehomogenize(ray)
        j_dehomog = d_dehomogenize_d_ray(ray)
        rad = pix_norm(pix)
        fac, dfac_drad = self.d_factor_d_rad(rad)
        if rad == 0.0:
            dfac_dp = np.zeros(2)
        else:
            dfac_dp = pix * (dfac_drad / rad)
        fu, fv = float(self._params[0]), float(self._params[1])
        k_dist = np.array(
            [
                [dfac_dp[0] * fu * pix[0] + fac * fu, dfac_dp[1] * fu * pix[0]],
                [dfac_dp[0] * fv * pix[1], dfac_dp[1] * fv * pix[1] + fac * fv],
            ]
        )
        return k_dist @ j_dehomog

    def d_project_d_params(self, ray) -> np.ndarray:
        raise DerivativeUnavailableError("d_project_d_params is not defined for the rational6 model")

    def d_unproject_d_params(self, pix) -> np.ndarray:
        raise DerivativeUnavailableError("d_unproject_d_params is not defined for the rational6 model")


_MODELS: dict[str, type[CameraModel]] = {
    cls.TYPE_NAME: cls for cls in (LinearCamera, KannalaBrandtCamera, Rational6Camera)
}


def create_camera(type_name: str) -> CameraModel:
    """New camera of the named model, with every parameter set to one."""
    try:
        cls = _MODELS[type_name]
    except KeyError:
        raise ValueError(f"unknown camera type {type_name!r}") from None
    return cls()