"""Lookup-table image rectification and scan-line stereo rectification."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from calibu.cameras import CameraModel, LinearCamera
from calibu.geometry import SE3
from calibu.rect import Range
from calibu.rig import Rig


class BorderTreatment(enum.Enum):
    """How pixels that fall outside the source image are filled."""

    REPEAT = 0
    BLACK = 1


@dataclass
class BilinearLutPoint:
    """Source indices and bilinear weights for one output pixel.

    ``idx0`` is the top-left source pixel and ``idx1`` the pixel one row below it.
    """

    idx0: int = 0
    idx1: int = 0
    w00: float = 0.0
    w01: float = 0.0
    w10: float = 0.0
    w11: float = 0.0


class LookupTable:
    """Per-output-pixel bilinear sampling table, stored row by row."""

    def __init__(self, width: int = 0, height: int = 0):
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        """Reallocate the table for ``width`` x ``height`` output pixels."""
        if width < 0 or height < 0:
            raise ValueError("lookup table dimensions must not be negative")
        count = width * height
        self.width = int(width)
        self.idx0 = np.zeros(count, dtype=np.int64)
        self.idx1 = np.zeros(count, dtype=np.int64)
        self.weights = np.zeros((count, 4), dtype=np.float32)

    @property
    def height(self) -> int:
        return 0 if self.width == 0 else len(self.idx0) // self.width

    def _offset(self, row: int, col: int) -> int:
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(f"({row}, {col}) is outside a {self.width}x{self.height} table")
        return row * self.width + col

    def set_point(self, row: int, col: int, point: BilinearLutPoint) -> None:
        i = self._offset(row, col)
        self.idx0[i] = point.idx0
        self.idx1[i] = point.idx1
        self.weights[i] = (point.w00, point.w01, point.w10, point.w11)

    def point(self, row: int, col: int) -> BilinearLutPoint:
        i = self._offset(row, col)
        w00, w01, w10, w11 = (float(w) for w in self.weights[i])
        return BilinearLutPoint(int(self.idx0[i]), int(self.idx1[i]), w00, w01, w10, w11)

    def __repr__(self) -> str:
        return f"LookupTable(width={self.width}, height={self.height})"


def _clamp(values: np.ndarray, upper: float) -> np.ndarray:
    # NaN maps to zero, as with max(0, v) then min(v, upper).
    return np.minimum(np.fmax(values, 0.0), upper)


def create_lookup_table_with_transform(
    cam_from: CameraModel,
    r_on_kinv,
    lut: LookupTable | None = None,
    lookup_width: int = 0,
    lookup_height: int = 0,
) -> LookupTable:
    """Fill ``lut`` to remap ``cam_from`` onto a linear, possibly rotated, model.

    ``r_on_kinv`` maps homogeneous pixels of the new model to rays of the old one.
    Without explicit dimensions the table keeps its own size, or takes the camera's
    size when it is empty. The filled table is returned.
    """
    if lut is None:
        lut = LookupTable()
    cam_width = cam_from.width
    cam_height = cam_from.height
    if cam_width < 2 or cam_height < 2:
        raise ValueError("source camera image must be at least 2x2 pixels")

    if lookup_width < 1 or lookup_height < 1:
        if lut.height == 0:
            lookup_width, lookup_height = cam_width, cam_height
            lut.resize(lookup_width, lookup_height)
        else:
            lookup_width, lookup_height = lut.width, lut.height
    elif (lut.width, lut.height) != (lookup_width, lookup_height):
        lut.resize(lookup_width, lookup_height)

    x_offset = (lookup_width - cam_width) / 2.0
    y_offset = (lookup_height - cam_height) / 2.0

    rows, cols = np.mgrid[0:lookup_height, 0:lookup_width]
    pixels = np.stack(
        [cols.ravel() - x_offset, rows.ravel() - y_offset, np.ones(rows.size)]
    )
    rays = (np.asarray(r_on_kinv, dtype=float) @ pixels).T
    warped = np.array([cam_from.project(ray) for ray in rays]).reshape(-1, 2)

    px = _clamp(warped[:, 0], cam_width - 1.0)
    py = _clamp(warped[:, 1], cam_height - 1.0)
    u = px.astype(np.int64)
    v = py.astype(np.int64)
    su = (px - u).astype(np.float32)
    sv = (py - v).astype(np.float32)

    # Keep the last row and column in bounds for the +1 neighbour access.
    last_col = u == cam_width - 1
    u[last_col] -= 1
    su[last_col] = 1.0
    last_row = v == cam_height - 1
    v[last_row] -= 1
    sv[last_row] = 1.0

    one = np.float32(1.0)
    lut.idx0 = u + v * cam_width
    lut.idx1 = lut.idx0 + cam_width
    lut.weights = np.stack(
        [(one - su) * (one - sv), su * (one - sv), (one - su) * sv, su * sv], axis=1
    ).astype(np.float32)
    return lut


def create_lookup_table(
    cam_from: CameraModel,
    lut: LookupTable | None = None,
    lookup_width: int = 0,
    lookup_height: int = 0,
) -> LookupTable:
    """Lookup table remapping ``cam_from`` onto the linear model of its first four parameters."""
    fu, fv, u0, v0 = (float(p) for p in cam_from.params[:4])
    r_on_kinv = np.array(
        [[1.0 / fu, 0.0, -u0 / fu], [0.0, 1.0 / fv, -v0 / fv], [0.0, 0.0, 1.0]]
    )
    return create_lookup_table_with_transform(
        cam_from, r_on_kinv, lut, lookup_width, lookup_height
    )


def create_warp_map(cam_from: CameraModel, r_on_kinv) -> np.ndarray:
    """Source pixel location (x, y) for every pixel, as a (height, width, 2) float32 array."""
    width, height = cam_from.width, cam_from.height
    rows, cols = np.mgrid[0:height, 0:width]
    pixels = np.stack([cols.ravel(), rows.ravel(), np.ones(rows.size)]).astype(float)
    rays = (np.asarray(r_on_kinv, dtype=float) @ pixels).T
    warped = np.array([cam_from.project(ray) for ray in rays]).reshape(-1, 2)
    warped[:, 0] = _clamp(warped[:, 0], width - 1.0)
    warped[:, 1] = _clamp(warped[:, 1], height - 1.0)
    return warped.astype(np.float32).reshape(height, width, 2)


def rectify(lut: LookupTable, image, channels: int = 1) -> np.ndarray:
    """Resample ``image`` through ``lut``; channels are interleaved per pixel.

    The result has shape (height, width) for one channel, else (height, width, channels),
    and the dtype of the input.
    """
    if channels < 1:
        raise ValueError("channels must be at least 1")
    height, width = lut.height, lut.width
    if height == 0:
        raise ValueError("lookup table is empty")
    src = np.asarray(image)
    flat = src.reshape(-1)
    highest = int(max(lut.idx0.max(), lut.idx1.max())) + 1
    if int(min(lut.idx0.min(), lut.idx1.min())) < 0 or (highest + 1) * channels > flat.size:
        raise ValueError("image is too small for this lookup table")

    work = flat.astype(np.result_type(np.float32, flat.dtype))
    ch = np.arange(channels)
    i00 = lut.idx0[:, None] * channels + ch
    i01 = (lut.idx0[:, None] + 1) * channels + ch
    i10 = lut.idx1[:, None] * channels + ch
    i11 = (lut.idx1[:, None] + 1) * channels + ch
    w = lut.weights.astype(work.dtype)
    out = (
        w[:, 0:1] * work[i00]
        + w[:, 1:2] * work[i01]
        + w[:, 2:3] * work[i10]
        + w[:, 3:4] * work[i11]
    )
    out = out.astype(src.dtype)
    return out.reshape(height, width) if channels == 1 else out.reshape(height, width, channels)


def project_homogeneous(p) -> np.ndarray:
    """Divide by the last coordinate: 3-vectors to 2, 4-vectors to 3."""
    arr = np.asarray(p, dtype=float).reshape(-1)
    if arr.size not in (3, 4):
        raise ValueError("expected a 3- or 4-vector")
    return arr[:-1] / arr[-1]


def min_max_rotated_col(cam: CameraModel, rnl_l) -> Range:
    """Horizontal normalised range seen by every row after rotating rays by ``rnl_l``."""
    rot = np.asarray(rnl_l, dtype=float)
    result = Range.open()
    for row in range(cam.height):
        ln = project_homogeneous(rot @ cam.unproject((0.0, row)))
        rn = project_homogeneous(rot @ cam.unproject((cam.width - 1.0, row)))
        result.exclude_less_than(float(ln[0]))
        result.exclude_greater_than(float(rn[0]))
    return result


def min_max_rotated_row(cam: CameraModel, rnl_l) -> Range:
    """Vertical normalised range seen by every column after rotating rays by ``rnl_l``."""
    rot = np.asarray(rnl_l, dtype=float)
    result = Range.open()
    for col in range(cam.width):
        tn = project_homogeneous(rot @ cam.unproject((col, 0.0)))
        bn = project_homogeneous(rot @ cam.unproject((col, cam.height - 1.0)))
        result.exclude_less_than(float(tn[1]))
        result.exclude_greater_than(float(bn[1]))
    return result


class ScanlineRectification(NamedTuple):
    rig: Rig
    t_nr_nl: SE3
    left_lut: LookupTable
    right_lut: LookupTable


def _normalized(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


def create_scanline_rectified_lookup_and_cameras(
    t_rl: SE3, cam_left: CameraModel, cam_right: CameraModel
) -> ScanlineRectification:
    """Scan-line rectify a stereo pair.

    Returns a rig of two identical linear cameras, the rectified extrinsics
    ``t_nr_nl`` and the lookup tables for the left and right images.
    """
    r_rl = t_rl.so3
    r_lr = r_rl.inverse()
    l_r = t_rl.translation
    r_l = -(r_lr * l_r)

    lup_l = np.array([0.0, -1.0, 0.0])
    rup_l = r_lr * np.array([0.0, -1.0, 0.0])

    # Forward directions perpendicular to the baseline, averaged over both cameras.
    lfwd_l = _normalized(np.cross(lup_l, r_l))
    rfwd_l = _normalized(np.cross(rup_l, r_l))
    avgfwd_l = lfwd_l + rfwd_l

    x_l = _normalized(r_l)
    z_l = _normalized(avgfwd_l)
    y_l = _normalized(np.cross(z_l, x_l))
    rnl_l = np.column_stack([x_l, y_l, z_l])

    t_nr_nl = SE3(np.eye(3), [-float(np.linalg.norm(r_l)), 0.0, 0.0])

    range_width = min_max_rotated_col(cam_left, rnl_l)
    range_height = min_max_rotated_row(cam_left, rnl_l)

    fu = (cam_left.width - 1) / range_width.size()
    fv = (cam_left.height - 1) / range_height.size()
    u0 = -fu * range_width.minr
    v0 = -fv * range_height.minr

    params = [fu, fv, u0, v0]
    size = (cam_left.width, cam_left.height)
    new_left = LinearCamera(params, size)
    new_right = LinearCamera(params, size)
    new_left.pose = SE3()
    # The rectified extrinsics are recorded on the left model, as the rig format expects.
    new_left.pose = t_nr_nl

    rig = Rig()
    rig.add_camera(new_left)
    rig.add_camera(new_right)

    k_inv = np.linalg.inv(new_left.K())
    rl_nl_kinv = rnl_l.T @ k_inv
    rr_nr_kinv = r_lr.inverse().matrix() @ rnl_l.T @ k_inv

    left_lut = create_lookup_table_with_transform(cam_left, rl_nl_kinv, LookupTable())
    right_lut = create_lookup_table_with_transform(cam_right, rr_nr_kinv, LookupTable())
    return ScanlineRectification(rig, t_nr_nl, left_lut, right_lut)