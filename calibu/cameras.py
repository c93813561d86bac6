"""Camera model interface, shared pinhole helpers and the linear (pinhole) model."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np

from calibu.geometry import SE3


def _vec(value, size: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.size != size:
        raise ValueError(f"{name} must have {size} elements, got {arr.size}")
    return arr


def pix_norm(pix) -> float:
    """Euclidean distance from (0, 0) to the given point."""
    x, y = _vec(pix, 2, "pix")
    return math.sqrt(x * x + y * y)


def scale_params(s: float, params) -> np.ndarray:
    """Intrinsics for an image scaled by ``s`` (pixel centres kept aligned)."""
    p = np.asarray(params, dtype=float).reshape(-1).copy()
    if p.size < 4:
        raise ValueError("at least four parameters (fu, fv, u0, v0) are required")
    p[0] *= s
    p[1] *= s
    p[2] = s * (p[2] + 0.5) - 0.5
    p[3] = s * (p[3] + 0.5) - 0.5
    return p


def k_matrix(params) -> np.ndarray:
    """Calibration matrix built from the first four parameters (fu, fv, u0, v0)."""
    p = np.asarray(params, dtype=float).reshape(-1)
    if p.size < 4:
        raise ValueError("at least four parameters (fu, fv, u0, v0) are required")
    return np.array([[p[0], 0.0, p[2]], [0.0, p[1], p[3]], [0.0, 0.0, 1.0]])


def dehomogenize(ray) -> np.ndarray:
    """(x, y, z) -> (x / z, y / z)."""
    x, y, z = _vec(ray, 3, "ray")
    return np.array([x / z, y / z])


def homogenize(pix) -> np.ndarray:
    """(x, y) -> (x, y, 1)."""
    x, y = _vec(pix, 2, "pix")
    return np.array([x, y, 1.0])


def d_dehomogenize_d_ray(ray) -> np.ndarray:
    """2x3 derivative of :func:`dehomogenize` with respect to the ray."""
    x, y, z = _vec(ray, 3, "ray")
    z_inv = 1.0 / z
    z_sq = z * z
    return np.array([[z_inv, 0.0, -x / z_sq], [0.0, z_inv, -y / z_sq]])


def d_mult_k_d_params(pix) -> np.ndarray:
    """2x4 derivative of :func:`mult_k` with respect to (fu, fv, u0, v0)."""
    x, y = _vec(pix, 2, "pix")
    return np.array([[x, 0.0, 1.0, 0.0], [0.0, y, 0.0, 1.0]])


def d_mult_inv_k_d_params(params, pix) -> np.ndarray:
    """3x4 derivative of the homogenized :func:`mult_inv_k` w.r.t. (fu, fv, u0, v0)."""
    p = np.asarray(params, dtype=float).reshape(-1)
    x, y = _vec(pix, 2, "pix")
    j = np.zeros((3, 4))
    j[0, 0] = -(x - p[2]) / (p[0] * p[0])
    j[1, 1] = -(y - p[3]) / (p[1] * p[1])
    j[0, 2] = -1.0 / p[0]
    j[1, 3] = -1.0 / p[1]
    return j


def mult_k(params, pix) -> np.ndarray:
    """Place a normalised image-plane point at its pixel location."""
    p = np.asarray(params, dtype=float).reshape(-1)
    x, y = _vec(pix, 2, "pix")
    return np.array([p[0] * x + p[2], p[1] * y + p[3]])


def mult_inv_k(params, pix) -> np.ndarray:
    """Map a pixel location onto the normalised image plane."""
    p = np.asarray(params, dtype=float).reshape(-1)
    x, y = _vec(pix, 2, "pix")
    return np.array([(x - p[2]) / p[0], (y - p[3]) / p[1]])


class CameraModel(ABC):
    """A camera: intrinsic parameters, image size and descriptive metadata.

    Parameters are ordered (fu, fv, u0, v0, ...distortion).
    """

    NUM_PARAMS: int = 0
    TYPE_NAME: str = ""

    def __init__(self, params=None, image_size=(0, 0)):
        self.params = np.ones(self.NUM_PARAMS) if params is None else params
        self.set_image_dimensions(*image_size)
        self.pose = SE3()
        self.rdf = np.eye(3)
        self.version = 0
        self.index = 0
        self.serial_number = 0
        self.name = ""
        self.type = self.TYPE_NAME

    @property
    def params(self) -> np.ndarray:
        return self._params

    @params.setter
    def params(self, value) -> None:
        arr = np.array(value, dtype=float).reshape(-1)
        if arr.size != self.NUM_PARAMS:
            raise ValueError(
                f"{type(self).__name__} takes {self.NUM_PARAMS} parameters, got {arr.size}"
            )
        self._params = arr

    @property
    def num_params(self) -> int:
        return int(self._params.size)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def set_image_dimensions(self, width: int, height: int) -> None:
        self._width = int(width)
        self._height = int(height)

    def scale(self, s: float) -> None:
        """Adapt the intrinsics to an image scaled by ``s``."""
        self._params = scale_params(s, self._params)

    def info(self) -> str:
        """Human-readable summary of the model."""
        r = self.rdf
        p = self._params
        lines = [
            "camera model info:",
            "    Right        = [%d; %d; %d] unit vector" % (int(r[0, 0]), int(r[0, 1]), int(r[0, 2])),
            "    Down         = [%d; %d; %d] unit vector" % (int(r[1, 0]), int(r[1, 1]), int(r[1, 2])),
            "    Forward      = [%d; %d; %d] unit vector" % (int(r[2, 0]), int(r[2, 1]), int(r[2, 2])),
            "    Width        = %d pixels" % self._width,
            "    Height       = %d pixels" % self._height,
            "    Horiz Center = %.3f pixels" % p[2],
            "    Vert Center  = %.3f pixels" % p[3],
            "    Horiz FOV    = %.3f degrees"
            % (180.0 * 2.0 * math.atan2(self._width // 2, p[0]) / math.pi),
            "    Vert  FOV    = %.3f degrees"
            % (180.0 * 2.0 * math.atan2(self._height // 2, p[1]) / math.pi),
        ]
        return "\n".join(lines) + "\n"

    def K(self) -> np.ndarray:
        """Calibration matrix, assuming the first parameters are fu, fv, u0, v0."""
        return k_matrix(self._params)

    @abstractmethod
    def unproject(self, pix) -> np.ndarray:
        """Ray through an image location."""

    @abstractmethod
    def project(self, ray) -> np.ndarray:
        """Image location of a ray or 3D point."""

    @abstractmethod
    def d_project_d_ray(self, ray) -> np.ndarray:
        """2x3 derivative of :meth:`project` along the ray."""

    @abstractmethod
    def d_project_d_params(self, ray) -> np.ndarray:
        """2xN derivative of :meth:`project` with respect to the parameters."""

    @abstractmethod
    def d_unproject_d_params(self, pix) -> np.ndarray:
        """3xN derivative of :meth:`unproject` with respect to the parameters."""

    @staticmethod
    def _moved_ray(t_ba: SE3, ray, rho: float) -> tuple[np.ndarray, np.ndarray]:
        rot = t_ba.so3.matrix()
        moved = rot @ _vec(ray, 3, "ray") + rho * t_ba.translation
        return rot, moved

    def transfer_3d(self, t_ba: SE3, ray, rho: float) -> np.ndarray:
        """Project a ray with inverse depth ``rho`` into a camera at ``t_ba``."""
        _, moved = self._moved_ray(t_ba, ray, rho)
        return self.project(moved)

    def d_transfer_3d_d_ray(self, t_ba: SE3, ray, rho: float) -> np.ndarray:
        """2x4 derivative of :meth:`transfer_3d` w.r.t. the ray and inverse depth."""
        rot, moved = self._moved_ray(t_ba, ray, rho)
        dproj = self.d_project_d_ray(moved)
        j = np.zeros((2, 4))
        j[:, :3] = dproj @ rot
        j[:, 3] = dproj @ t_ba.translation
        return j

    def d_transfer_d_params(self, t_ba: SE3, pix, rho: float) -> np.ndarray:
        """Total derivative w.r.t. the parameters of transferring pixel ``pix``."""
        ray = self.unproject(pix)
        rot, moved = self._moved_ray(t_ba, ray, rho)
        dtransfer_dray = self.d_project_d_ray(moved) @ rot
        return self.d_project_d_params(moved) + dtransfer_dray @ self.d_unproject_d_params(pix)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(params={self._params.tolist()}, "
            f"image_size=({self._width}, {self._height}))"
        )


class LinearCamera(CameraModel):
    """Pinhole camera with parameters (fu, fv, u0, v0)."""

    NUM_PARAMS = 4
    TYPE_NAME = "calibu_fu_fv_u0_v0"

    def unproject(self, pix) -> np.ndarray:
        return homogenize(mult_inv_k(self._params, pix))

    def project(self, ray) -> np.ndarray:
        return mult_k(self._params, dehomogenize(ray))

    def d_project_d_params(self, ray) -> np.ndarray:
        return d_mult_k_d_params(dehomogenize(ray))

    def d_unproject_d_params(self, pix) -> np.ndarray:
        return d_mult_inv_k_d_params(self._params, pix)

    def d_project_d_ray(self, ray) -> np.ndarray:
        j = d_dehomogenize_d_ray(ray)
        fu, fv = self._params[0], self._params[1]
        j[0, 0] *= fu
        j[1, 1] *= fv
        j[0, 2] *= fu
        j[1, 2] *= fv
        return j