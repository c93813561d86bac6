"""Rotations, rigid transforms, homographies and related geometric helpers."""

from __future__ import annotations

import math

import numpy as np

_SMALL_EPS = 1e-10


def _vector(value, size: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.size != size:
        raise ValueError(f"{name} must have {size} elements, got {arr.size}")
    return arr


def _normalized_quaternion(q) -> np.ndarray:
    arr = _vector(q, 4, "quaternion")
    norm = float(np.linalg.norm(arr))
    if norm == 0.0 or not math.isfinite(norm):
        raise ValueError("quaternion must have a finite, non-zero norm")
    return arr / norm


def _quaternion_product(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    av, aw = a[:3], a[3]
    bv, bw = b[:3], b[3]
    vec = aw * bv + bw * av + np.cross(av, bv)
    return np.append(vec, aw * bw - float(np.dot(av, bv)))


def _quaternion_from_matrix(m: np.ndarray) -> np.ndarray:
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0.0:
        s = math.sqrt(trace + 1.0)
        w = 0.5 * s
        s = 0.5 / s
        return np.array(
            [
                (m[2, 1] - m[1, 2]) * s,
                (m[0, 2] - m[2, 0]) * s,
                (m[1, 0] - m[0, 1]) * s,
                w,
            ]
        )
    i = 0
    if m[1, 1] > m[0, 0]:
        i = 1
    if m[2, 2] > m[i, i]:
        i = 2
    j = (i + 1) % 3
    k = (j + 1) % 3
    s = math.sqrt(m[i, i] - m[j, j] - m[k, k] + 1.0)
    q = np.zeros(4)
    q[i] = 0.5 * s
    s = 0.5 / s
    q[3] = (m[k, j] - m[j, k]) * s
    q[j] = (m[j, i] + m[i, j]) * s
    q[k] = (m[k, i] + m[i, k]) * s
    return q


def _matrix_from_quaternion(q: np.ndarray) -> np.ndarray:
    x, y, z, w = q
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
    )


class SO3:
    """A 3D rotation, held as a unit quaternion (x, y, z, w)."""

    __slots__ = ("_q",)

    def __init__(self, matrix=None):
        if matrix is None:
            self._q = np.array([0.0, 0.0, 0.0, 1.0])
        else:
            m = np.asarray(matrix, dtype=float)
            if m.shape != (3, 3):
                raise ValueError("rotation matrix must be 3x3")
            self._q = _normalized_quaternion(_quaternion_from_matrix(m))

    @classmethod
    def from_quaternion(cls, q) -> "SO3":
        """Build a rotation from quaternion coefficients (x, y, z, w)."""
        obj = cls.__new__(cls)
        obj._q = _normalized_quaternion(q)
        return obj

    @classmethod
    def exp(cls, omega) -> "SO3":
        """Rotation from a rotation vector (axis times angle)."""
        w = _vector(omega, 3, "omega")
        theta = float(np.linalg.norm(w))
        half = 0.5 * theta
        if theta < _SMALL_EPS:
            theta_sq = theta * theta
            theta_po4 = theta_sq * theta_sq
            imag = 0.5 - theta_sq / 48.0 + theta_po4 / 3840.0
            real = 1.0 - theta_sq / 8.0 + theta_po4 / 384.0
        else:
            imag = math.sin(half) / theta
            real = math.cos(half)
        return cls.from_quaternion(np.append(imag * w, real))

    def log(self) -> np.ndarray:
        """Rotation vector of this rotation."""
        vec = self._q[:3]
        w = float(self._q[3])
        n = float(np.linalg.norm(vec))
        if n < _SMALL_EPS:
            factor = 2.0 / w - 2.0 / 3.0 * n * n / (w * w * w)
        elif abs(w) < _SMALL_EPS:
            factor = math.pi / n if w > 0 else -math.pi / n
        else:
            factor = 2.0 * math.atan(n / w) / n
        return factor * vec

    def inverse(self) -> "SO3":
        return SO3.from_quaternion(np.append(-self._q[:3], self._q[3]))

    def quaternion(self) -> np.ndarray:
        """Unit quaternion coefficients (x, y, z, w)."""
        return self._q.copy()

    def matrix(self) -> np.ndarray:
        return _matrix_from_quaternion(self._q)

    def __mul__(self, other):
        if isinstance(other, SO3):
            return SO3.from_quaternion(_quaternion_product(self._q, other._q))
        arr = np.asarray(other, dtype=float)
        if arr.ndim >= 1 and arr.shape[0] == 3:
            return self.matrix() @ arr
        return NotImplemented

    def __repr__(self) -> str:
        return f"SO3(quaternion={self._q.tolist()})"


class SE3:
    """A rigid transform: rotation followed by translation."""

    __slots__ = ("so3", "translation")

    def __init__(self, rotation=None, translation=None):
        if rotation is None:
            self.so3 = SO3()
        elif isinstance(rotation, SO3):
            self.so3 = rotation
        else:
            self.so3 = SO3(rotation)
        if translation is None:
            self.translation = np.zeros(3)
        else:
            self.translation = _vector(translation, 3, "translation").copy()

    @classmethod
    def exp(cls, tangent) -> "SE3":
        """Transform from a twist (translational part first, then rotational)."""
        xi = _vector(tangent, 6, "tangent")
        upsilon, omega = xi[:3], xi[3:]
        so3 = SO3.exp(omega)
        theta = float(np.linalg.norm(omega))
        w = skew_symmetric(omega)
        w2 = w @ w
        if theta < _SMALL_EPS:
            v = np.eye(3) + 0.5 * w + w2 / 6.0
        else:
            theta_sq = theta * theta
            v = (
                np.eye(3)
                + (1.0 - math.cos(theta)) / theta_sq * w
                + (theta - math.sin(theta)) / (theta_sq * theta) * w2
            )
        return cls(so3, v @ upsilon)

    @classmethod
    def from_matrix(cls, m) -> "SE3":
        """Transform from a 4x4 or 3x4 matrix."""
        arr = np.asarray(m, dtype=float)
        if arr.shape not in ((4, 4), (3, 4)):
            raise ValueError("transform matrix must be 4x4 or 3x4")
        return cls(arr[:3, :3], arr[:3, 3])

    @classmethod
    def from_params(cls, params) -> "SE3":
        """Transform from 7 parameters: quaternion (x, y, z, w) then translation."""
        p = _vector(params, 7, "params")
        return cls(SO3.from_quaternion(p[:4]), p[4:])

    def to_params(self) -> np.ndarray:
        return np.concatenate([self.so3.quaternion(), self.translation])

    def inverse(self) -> "SE3":
        inv = self.so3.inverse()
        return SE3(inv, -(inv * self.translation))

    def matrix(self) -> np.ndarray:
        m = np.eye(4)
        m[:3, :3] = self.so3.matrix()
        m[:3, 3] = self.translation
        return m

    def matrix3x4(self) -> np.ndarray:
        return self.matrix()[:3, :]

    def __mul__(self, other):
        if isinstance(other, SE3):
            return SE3(self.so3 * other.so3, self.so3 * other.translation + self.translation)
        arr = np.asarray(other, dtype=float)
        if arr.ndim == 1 and arr.shape[0] == 3:
            return self.so3.matrix() @ arr + self.translation
        if arr.ndim == 2 and arr.shape[0] == 3:
            return self.so3.matrix() @ arr + self.translation[:, None]
        return NotImplemented

    def __repr__(self) -> str:
        return (
            f"SE3(quaternion={self.so3.quaternion().tolist()}, "
            f"translation={self.translation.tolist()})"
        )


def is_nan(x) -> bool:
    """True if any element is NaN."""
    return bool(np.isnan(np.asarray(x, dtype=float)).any())


def is_finite(x) -> bool:
    """True if every element is finite."""
    return bool(np.isfinite(np.asarray(x, dtype=float)).all())


def estimate_homography(a, b) -> np.ndarray:
    """Homography H_ba mapping points ``a`` onto points ``b``, normalised so H[2,2] == 1."""
    pa = np.asarray(a, dtype=float).reshape(-1, 2)
    pb = np.asarray(b, dtype=float).reshape(-1, 2)
    if pa.shape != pb.shape:
        raise ValueError("point lists must have the same length")
    if len(pa) == 0:
        raise ValueError("at least one point correspondence is required")
    rows = []
    for (u1, v1), (u2, v2) in zip(pa, pb):
        rows.append([u1, v1, 1.0, 0.0, 0.0, 0.0, -u1 * u2, -v1 * u2, -u2])
        rows.append([0.0, 0.0, 0.0, u1, v1, 1.0, -u1 * v2, -v1 * v2, -v2])
    _, _, vt = np.linalg.svd(np.array(rows), full_matrices=True)
    h = vt[8].reshape(3, 3)
    return h / h[2, 2]


def skew_symmetric(v) -> np.ndarray:
    """Cross-product matrix of a 3-vector."""
    x, y, z = _vector(v, 3, "vector")
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def symmetry_transform(n) -> np.ndarray:
    """Reflection (4x4) induced by the plane N = (n, -d)."""
    plane = _vector(n, 4, "plane")
    normal = plane[:3]
    d = -plane[3]
    s = np.eye(4)
    s[:3, :3] = np.eye(3) - 2.0 * np.outer(normal, normal)
    s[:3, 3] = 2.0 * d * normal
    return s


def rotation_between(a, b) -> SO3:
    """Rotation taking direction ``a`` onto direction ``b`` about the axis a x b.

    Parallel or exactly opposite vectors give the identity.
    """
    va = _vector(a, 3, "a")
    vb = _vector(b, 3, "b")
    n = np.cross(va, vb)
    if float(np.dot(n, n)) == 0.0:
        return SO3()
    n = n / np.linalg.norm(n)
    a_unit = va / np.linalg.norm(va)
    b_unit = vb / np.linalg.norm(vb)
    r1 = np.column_stack([a_unit, n, np.cross(n, a_unit)])
    m = np.column_stack([b_unit, n, np.cross(n, b_unit)])
    return SO3(m @ r1.T)


def plane_basis_wp(nd_w) -> SE3:
    """Frame whose z = 0 plane is the plane given by n/d in world coordinates."""
    nd = _vector(nd_w, 3, "nd_w")
    d = 1.0 / float(np.linalg.norm(nd))
    n = d * nd
    r_wn = rotation_between([0.0, 0.0, -1.0], n)
    return SE3(r_wn, -d * n)


def se3_plus(x, delta) -> np.ndarray:
    """Apply a 6-dof increment on the right of a 7-parameter transform."""
    t = SE3.from_params(x)
    return (t * SE3.exp(_vector(delta, 6, "delta"))).to_params()


def se3_plus_jacobian(x) -> np.ndarray:
    """7x6 Jacobian of :func:`se3_plus` with respect to the increment at zero."""
    p = _vector(x, 7, "x")
    q1, q2, q3, q0 = p[:4]
    h0, h1, h2, h3 = 0.5 * q0, 0.5 * q1, 0.5 * q2, 0.5 * q3
    j = np.zeros((7, 6))
    j[0, 3:] = [h0, -h3, h2]
    j[1, 3:] = [h3, h0, -h1]
    j[2, 3:] = [-h2, h1, h0]
    j[3, 3:] = [-h1, -h2, -h3]
    j[4, :3] = [1.0 - 2.0 * (q2 * q2 + q3 * q3), 2.0 * (q1 * q2 - q0 * q3), 2.0 * (q1 * q3 + q0 * q2)]
    j[5, :3] = [2.0 * (q1 * q2 + q0 * q3), 1.0 - 2.0 * (q1 * q1 + q3 * q3), 2.0 * (q2 * q3 - q0 * q1)]
    j[6, :3] = [2.0 * (q1 * q3 - q0 * q2), 2.0 * (q2 * q3 + q0 * q1), 1.0 - 2.0 * (q1 * q1 + q2 * q2)]
    return j