"""Numeric ranges and axis-aligned rectangles."""

from __future__ import annotations

import sys
from dataclasses import dataclass, replace

_MAX = sys.float_info.max


@dataclass
class Range:
    """A closed interval [minr, maxr]; empty by default."""

    minr: float = _MAX
    maxr: float = -_MAX

    @classmethod
    def open(cls) -> "Range":
        """A range covering every value."""
        return cls(-_MAX, _MAX)

    @classmethod
    def closed(cls) -> "Range":
        """A range covering no value."""
        return cls(_MAX, -_MAX)

    def empty(self) -> bool:
        return self.maxr <= self.minr

    def insert(self, v: float) -> None:
        """Expand the range to include ``v``."""
        self.minr = min(self.minr, v)
        self.maxr = max(self.maxr, v)

    def exclude_less_than(self, v: float) -> None:
        self.minr = max(self.minr, v)

    def exclude_greater_than(self, v: float) -> None:
        self.maxr = min(self.maxr, v)

    def size(self) -> float:
        return self.maxr - self.minr

    def __str__(self) -> str:
        return f"[{self.minr:g}, {self.maxr:g}]"


def range_union(lhs: Range, rhs: Range) -> Range:
    return Range(min(lhs.minr, rhs.minr), max(lhs.maxr, rhs.maxr))


def range_intersection(lhs: Range, rhs: Range) -> Range:
    return Range(max(lhs.minr, rhs.minr), min(lhs.maxr, rhs.maxr))


@dataclass
class Rectangle:
    """Real-valued rectangle with corners (x1, y1) and (x2, y2)."""

    x1: float = 0.0
    y1: float = 0.0
    x2: float = 0.0
    y2: float = 0.0

    def width(self) -> float:
        return max(0.0, self.x2 - self.x1)

    def height(self) -> float:
        return max(0.0, self.y2 - self.y1)

    def intersects_with(self, other: "Rectangle") -> bool:
        return not (
            self.y2 <= other.y1
            or self.y1 >= other.y2
            or self.x2 <= other.x1
            or self.x1 >= other.x2
        )

    def contains(self, other: "Rectangle") -> bool:
        return (
            self.y1 <= other.y1
            and self.x1 <= other.x1
            and self.x2 >= other.x2
            and self.y2 >= other.y2
        )

    def contains_point(self, p) -> bool:
        x, y = p[0], p[1]
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2


@dataclass
class IRectangle:
    """Integer pixel rectangle with inclusive corners (x1, y1) and (x2, y2)."""

    x1: int = 0
    y1: int = 0
    x2: int = 0
    y2: int = 0

    def width(self) -> int:
        return max(0, self.x2 + 1 - self.x1)

    def height(self) -> int:
        return max(0, self.y2 + 1 - self.y1)

    def area(self) -> int:
        return self.width() * self.height()

    def intersects_with(self, other: "IRectangle") -> bool:
        return not (
            self.y2 < other.y1
            or self.y1 > other.y2
            or self.x2 < other.x1
            or self.x1 > other.x2
        )

    def contains(self, other: "IRectangle") -> bool:
        """True if ``other`` lies strictly inside this rectangle."""
        return (
            self.y1 < other.y1
            and self.x1 < other.x1
            and self.x2 > other.x2
            and self.y2 > other.y2
        )

    def contains_point(self, x, y) -> bool:
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2

    def insert(self, x: int, y: int) -> None:
        """Grow the rectangle to include the pixel (x, y)."""
        self.x1 = min(self.x1, x)
        self.x2 = max(self.x2, x)
        self.y1 = min(self.y1, y)
        self.y2 = max(self.y2, y)

    def include(self, other: "IRectangle") -> None:
        """Grow the rectangle to include ``other``."""
        self.x1 = min(self.x1, other.x1)
        self.x2 = max(self.x2, other.x2)
        self.y1 = min(self.y1, other.y1)
        self.y2 = max(self.y2, other.y2)

    def grow(self, r: int) -> "IRectangle":
        return replace(self, x1=self.x1 - r, y1=self.y1 - r, x2=self.x2 + r, y2=self.y2 + r)

    def clamp(self, minx: int, miny: int, maxx: int, maxy: int) -> "IRectangle":
        return replace(
            self,
            x1=max(minx, self.x1),
            y1=max(miny, self.y1),
            x2=min(maxx, self.x2),
            y2=min(maxy, self.y2),
        )

    def center(self) -> tuple[float, float]:
        return ((self.x2 + self.x1) / 2.0, (self.y2 + self.y1) / 2.0)