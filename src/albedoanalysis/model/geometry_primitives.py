"""
Geometric Primitives for Image-Space Annotation.

All annotation geometry lives in image-pixel space (origin at the image
top-left corner, one unit per native pixel). The affine helper here is the
single place where 2D transforms are composed and inverted.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
import numpy as np
import math

if TYPE_CHECKING:
    import numpy.typing as npt


class NonInvertibleTransformError(ArithmeticError):
    """Raised when a degenerate (zero-scale) transform is inverted."""


@dataclass(frozen=True)
class Point:
    """A point in a 2D coordinate system (image or viewport)."""
    x: float
    y: float

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Point:
        return Point(self.x * scalar, self.y * scalar)

    def distance_to(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def is_close(self, other: Point, tol: float = 1e-6) -> bool:
        return abs(self.x - other.x) <= tol and abs(self.y - other.y) <= tol

    def to_array(self) -> npt.NDArray[np.float64]:
        return np.array([self.x, self.y])


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle given by its top-left corner and size."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, a: Point, b: Point) -> Rect:
        """Normalised rectangle spanned by two arbitrary corner points."""
        return cls(
            x=min(a.x, b.x),
            y=min(a.y, b.y),
            width=abs(b.x - a.x),
            height=abs(b.y - a.y),
        )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def contains(self, point: Point, margin: float = 0.0) -> bool:
        return (
            self.x - margin <= point.x <= self.right + margin
            and self.y - margin <= point.y <= self.bottom + margin
        )

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def exceeds(self, min_width: float, min_height: float) -> bool:
        """True when both sides are strictly larger than the given minimums."""
        return self.width > min_width and self.height > min_height

    def clipped(self, width: float, height: float) -> Optional[Rect]:
        """
        Intersect with the bounds [0, width) x [0, height).
        Returns None when nothing is left.
        """
        x0 = max(0.0, self.x)
        y0 = max(0.0, self.y)
        x1 = min(float(width), self.right)
        y1 = min(float(height), self.bottom)
        if x1 <= x0 or y1 <= y0:
            return None
        return Rect(x0, y0, x1 - x0, y1 - y0)


class AffineTransform:
    """
    2D affine transform stored as a 3x3 homogeneous matrix.

    Composition follows matrix order: ``a.compose(b)`` applies ``b`` first
    and ``a`` second, i.e. ``(a @ b) * p``.
    """

    def __init__(self, matrix: Optional[npt.NDArray[np.float64]] = None) -> None:
        if matrix is None:
            matrix = np.eye(3)
        self.matrix = np.asarray(matrix, dtype=np.float64)

    @classmethod
    def identity(cls) -> AffineTransform:
        return cls()

    @classmethod
    def scale_translate(cls, scale: float, tx: float, ty: float) -> AffineTransform:
        """Uniform scale followed by a translation."""
        return cls(np.array([
            [scale, 0.0, tx],
            [0.0, scale, ty],
            [0.0, 0.0, 1.0],
        ]))

    def compose(self, inner: AffineTransform) -> AffineTransform:
        return AffineTransform(self.matrix @ inner.matrix)

    @property
    def determinant(self) -> float:
        return float(np.linalg.det(self.matrix[:2, :2]))

    def inverted(self) -> AffineTransform:
        if abs(self.determinant) < 1e-12:
            raise NonInvertibleTransformError(
                f"Transform is not invertible (det={self.determinant:g})."
            )
        return AffineTransform(np.linalg.inv(self.matrix))

    def apply(self, point: Point) -> Point:
        x, y, _ = self.matrix @ np.array([point.x, point.y, 1.0])
        return Point(float(x), float(y))

    def apply_rect(self, rect: Rect) -> Rect:
        """Map both corners of an axis-aligned rectangle (no rotation assumed)."""
        return Rect.from_corners(
            self.apply(Point(rect.x, rect.y)),
            self.apply(Point(rect.right, rect.bottom)),
        )

    def to_tuple(self) -> tuple[float, float, float, float, float, float]:
        """(m11, m12, m21, m22, dx, dy) in the row-vector convention used by QTransform."""
        m = self.matrix
        return (
            float(m[0, 0]), float(m[1, 0]),
            float(m[0, 1]), float(m[1, 1]),
            float(m[0, 2]), float(m[1, 2]),
        )

    def __repr__(self) -> str:
        return f"AffineTransform({self.matrix.tolist()!r})"
