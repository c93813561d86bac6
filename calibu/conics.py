"""Conic (ellipse) estimation from image gradients and plane recovery from conics."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace

import numpy as np

from calibu.cameras import CameraModel
from calibu.geometry import estimate_homography
from calibu.label import PixelClass
from calibu.rect import IRectangle

_BORDER = 3


@dataclass
class Conic:
    """An image conic: matrix ``C``, its dual, centre and source region."""

    C: np.ndarray = field(default_factory=lambda: np.eye(3))
    dual: np.ndarray = field(default_factory=lambda: np.eye(3))
    center: np.ndarray = field(default_factory=lambda: np.zeros(2))
    bbox: IRectangle = field(default_factory=IRectangle)


def get_axes_lengths(c: Conic) -> np.ndarray:
    """Lengths of the two semi-axes of an ellipse conic."""
    C = np.asarray(c.C, dtype=float)
    top = C[:2, :2]
    eigenval = np.real(np.linalg.eigvals(top))
    det_ratio = -np.linalg.det(C) / np.linalg.det(top)
    return np.sqrt(det_ratio / eigenval)


def distance(c1: Conic, c2: Conic, circle_radius: float) -> float:
    """Distance measure between two conics, scaled by the circle radius."""
    q = np.asarray(c1.dual, dtype=float) @ np.asarray(c2.C, dtype=float)
    diagonal_sum = float(np.diagonal(q).sum())
    dsq = 3.0 - diagonal_sum / np.cbrt(np.linalg.det(q))
    return float(np.sqrt(dsq) * circle_radius)


def rot_y(theta: float) -> np.ndarray:
    """Rotation by ``theta`` about the y axis."""
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def plane_cost(plane, conic: Conic, K) -> float:
    """How far ``conic`` is from a circle when viewed through the plane's rotation."""
    K = np.asarray(K, dtype=float)
    cn = K.T @ np.asarray(conic.C, dtype=float) @ K
    R = np.asarray(plane[1], dtype=float)
    c_ = R.T @ cn @ R
    a = c_[0, 0]
    c = c_[1, 1]
    return float(abs(a - c) / max(abs(a), abs(c)))


def planes_cost(plane, conics, K, threshold: float) -> float:
    """Mean :func:`plane_cost` over the conics scoring below ``threshold``; NaN if none."""
    costs = [cost for cost in (plane_cost(plane, c, K) for c in conics) if cost < threshold]
    if not costs:
        return math.nan
    return sum(costs) / len(costs)


def plane_from_conic(c: Conic, plane_circle_radius: float, K) -> list[tuple[np.ndarray, np.ndarray]]:
    """The two planes (n/d, rotation) on which ``c`` is the image of a circle."""
    K = np.asarray(K, dtype=float)
    cn = K.T @ np.asarray(c.C, dtype=float) @ K
    u, l, _ = np.linalg.svd(cn)
    t = float(np.arctan(np.sqrt((l[1] - l[0]) / (l[2] - l[1]))))
    d = float(np.sqrt((l[1] * l[1]) / (l[0] * l[2]))) * plane_circle_radius

    planes = []
    for i in range(2):
        theta = (i * 2 - 1) * t
        R = u @ rot_y(theta)
        n = R @ np.array([0.0, 0.0, -1.0])
        planes.append((n / np.linalg.norm(n) / d, R))
    return planes


def plane_from_conics(conics, plane_circle_radius: float, K, inlier_threshold: float):
    """Plane hypothesis with the lowest mean cost over all conics.

    Returns None if no hypothesis received a finite score.
    """
    conics = list(conics)
    if not conics:
        raise ValueError("at least one conic is required")
    best_score = math.inf
    best = None
    for conic in conics:
        for plane in plane_from_conic(conic, plane_circle_radius, K):
            cost = planes_cost(plane, conics, K, inlier_threshold)
            if cost < best_score:
                best_score = cost
                best = plane
    return best


def unmap_conic(c: Conic, cam: CameraModel) -> Conic:
    """Remove lens distortion from a conic using a locally fitted homography."""
    bbox = c.bbox
    d = [
        np.asarray(c.center, dtype=float),
        np.array([bbox.x1, bbox.y1], dtype=float),
        np.array([bbox.x1, bbox.y2], dtype=float),
        np.array([bbox.x2, bbox.y1], dtype=float),
        np.array([bbox.x2, bbox.y2], dtype=float),
    ]
    u = [np.asarray(cam.project(cam.unproject(p)), dtype=float) for p in d]
    h_du = estimate_homography(u, d)
    C = h_du.T @ np.asarray(c.C, dtype=float) @ h_du
    return Conic(C=C, dual=np.linalg.inv(C), center=u[0])


def find_ellipse(d_image, region: IRectangle) -> np.ndarray:
    """Fit a conic to the gradient field inside ``region``.

    ``d_image`` has shape (height, width, 2) holding the x and y derivatives.
    Raises ``numpy.linalg.LinAlgError`` if the fitted dual conic is singular.
    """
    grad = np.asarray(d_image, dtype=float)
    if grad.ndim != 3 or grad.shape[2] != 2:
        raise ValueError("gradient image must have shape (height, width, 2)")
    h, w = grad.shape[:2]
    if region.x1 < 0 or region.y1 < 0 or region.x2 >= w or region.y2 >= h:
        raise ValueError("region lies outside the gradient image")

    vs, us = np.mgrid[region.y1:region.y2 + 1, region.x1:region.x2 + 1]
    patch = grad[region.y1:region.y2 + 1, region.x1:region.x2 + 1]
    a = patch[..., 0].ravel()
    b = patch[..., 1].ravel()
    c = -(a * us.ravel() + b * vs.ravel())

    k = np.stack([a * a, a * b, b * b, a * c, b * c], axis=1)
    A = k.T @ k
    rhs = -(k * (c * c)[:, None]).sum(axis=0)
    x = np.linalg.lstsq(A, rhs, rcond=None)[0]

    c_star = np.array(
        [
            [x[0], x[1] / 2.0, x[3] / 2.0],
            [x[1] / 2.0, x[2], x[4] / 2.0],
            [x[3] / 2.0, x[4] / 2.0, 1.0],
        ]
    )
    return np.linalg.inv(c_star)


def find_conics(candidates, d_image) -> list[Conic]:
    """Fit a conic to each candidate region, keeping those centred near their region."""
    conics = []
    for candidate in candidates:
        region = candidate.bbox
        try:
            C = find_ellipse(d_image, region)
            dual = np.linalg.inv(C)
        except np.linalg.LinAlgError:
            continue
        dual = dual / dual[2, 2]
        center = np.array([dual[0, 2], dual[1, 2]])
        max_dist = (region.width() + region.height()) / 8.0
        if np.linalg.norm(center - np.array(region.center())) < max_dist:
            conics.append(Conic(C=C, dual=dual, center=center, bbox=region))
    return conics


def find_candidate_conics_from_labels(
    w: int,
    h: int,
    labels,
    min_area: float,
    max_area: float,
    min_density: float,
    min_aspect: float,
) -> list[PixelClass]:
    """Root regions plausibly holding an ellipse, with slightly grown boxes."""
    candidates = []
    for pc in labels:
        if pc.equiv != -1:
            continue
        r = pc.bbox
        if not (r.x1 >= _BORDER and r.y1 >= _BORDER and r.x2 < w - _BORDER and r.y2 < h - _BORDER):
            continue
        area = r.area()
        if not (min_area <= area <= max_area):
            continue
        aspect = r.width() / r.height()
        if not (min_aspect < aspect < 1.0 / min_aspect):
            continue
        if min_density <= pc.size / area:
            bbox = r.grow(2).clamp(_BORDER, _BORDER, w - (1 + _BORDER), h - (1 + _BORDER))
            candidates.append(replace(pc, bbox=bbox))
    return candidates