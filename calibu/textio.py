"""Text forms of matrices, rotations and transforms: ``[ a, b; c, d ]``."""

from __future__ import annotations

import re

import numpy as np

from calibu.geometry import SE3, SO3

_NUMBER = re.compile(
    r"\s*([+-]?(?:inf(?:inity)?|nan|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))",
    re.IGNORECASE,
)


def _format_scalar(v) -> str:
    if isinstance(v, (bool, np.bool_, int, np.integer)):
        return str(int(v))
    return f"{float(v):.6g}"


def format_matrix(m) -> str:
    """Format a matrix (or a vector, as a column) as ``[ a, b; c, d ]``."""
    arr = np.asarray(m)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError("only non-empty vectors and matrices can be formatted")
    body = "; ".join(", ".join(_format_scalar(v) for v in row) for row in arr)
    return f"[ {body} ]"


def _strtod(field: str) -> float:
    match = _NUMBER.match(field)
    return float(match.group(1)) if match else 0.0


def _take(text: str, delim: str) -> tuple[str, str]:
    head, sep, tail = text.partition(delim)
    return (head, tail) if sep else (text, "")


def _delimiters(rows: int, cols: int):
    for i in range(rows):
        for j in range(cols):
            if j < cols - 1:
                yield ","
            elif i < rows - 1:
                yield ";"
            else:
                yield "]"


def _read_matrix(text: str, rows: int, cols: int, default) -> tuple[np.ndarray, str]:
    if rows < 1 or cols < 1:
        raise ValueError("matrix must have at least one row and one column")
    if default is None:
        result = np.zeros((rows, cols))
    else:
        result = np.array(default, dtype=float)
        if result.size != rows * cols:
            raise ValueError("default does not match the requested shape")
        result = result.reshape(rows, cols)
    if not text:
        return result, text
    start = text.find("[")
    rest = "" if start < 0 else text[start + 1:]
    values = []
    for delim in _delimiters(rows, cols):
        field, rest = _take(rest, delim)
        values.append(_strtod(field))
    return np.array(values).reshape(rows, cols), rest


def parse_matrix(text: str, rows: int, cols: int, default=None) -> np.ndarray:
    """Read a ``rows`` x ``cols`` matrix from text; empty text yields ``default``.

    Fields that are missing or unreadable read as zero.
    """
    matrix, _ = _read_matrix(text, rows, cols, default)
    return matrix


def format_so3(r: SO3) -> str:
    """Quaternion coefficients (x, y, z, w) as a column."""
    return format_matrix(r.quaternion())


def _read_so3(text: str) -> tuple[SO3, str]:
    coeffs, rest = _read_matrix(text, 4, 1, [0.0, 0.0, 0.0, 1.0])
    return SO3.from_quaternion(coeffs.ravel()), rest


def parse_so3(text: str) -> SO3:
    rotation, _ = _read_so3(text)
    return rotation


def format_se3(t: SE3) -> str:
    return f"[{format_so3(t.so3)},{format_matrix(t.translation)}]"


def parse_se3(text: str) -> SE3:
    """Read a transform written by :func:`format_se3`.

    Text that does not begin with ``[`` yields the identity.
    """
    if not text.startswith("["):
        return SE3()
    rotation, rest = _read_so3(text[1:])
    _, rest = _take(rest, ",")
    translation, _ = _read_matrix(rest, 3, 1, None)
    return SE3(rotation, translation.ravel())