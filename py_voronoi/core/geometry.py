"""
Geometric primitives for incremental Voronoi construction.

Points, segments and bounding boxes are immutable value types. All distance
comparisons use squared distances, and every tolerance check goes through
the single process-wide EPSILON.
"""

from typing import NamedTuple, Optional, Tuple, Union

# Tolerance for every coordinate, determinant and extent comparison
EPSILON = 1e-7


class Point(NamedTuple):
    """A point in the plane."""
    x: float
    y: float

    def equals(self, other: "PointLike") -> bool:
        """Approximate equality: both coordinates differ by less than EPSILON."""
        return abs(self.x - other[0]) < EPSILON and abs(self.y - other[1]) < EPSILON

    def __repr__(self) -> str:
        return f"({self.x:f}, {self.y:f})"


PointLike = Union[Point, Tuple[float, float]]


def as_point(value) -> Point:
    """Coerce an (x, y) pair, numpy row or Point into a Point of floats."""
    if isinstance(value, Point):
        return value
    x, y = value
    return Point(float(x), float(y))


def points_equal(a: PointLike, b: PointLike) -> bool:
    return abs(a[0] - b[0]) < EPSILON and abs(a[1] - b[1]) < EPSILON


class Segment(NamedTuple):
    """A line segment between two points."""
    start: Point
    end: Point

    def reversed(self) -> "Segment":
        return Segment(self.end, self.start)

    def __repr__(self) -> str:
        return f"[{self.start!r} -> {self.end!r}]"


class BoundingBox(NamedTuple):
    """Axis-aligned rectangle given by its minimum and maximum corners."""
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    def contains(self, p: PointLike) -> bool:
        """Check whether a point falls inside the box, allowing EPSILON slack."""
        return (self.x_min - EPSILON < p[0] < self.x_max + EPSILON
                and self.y_min - EPSILON < p[1] < self.y_max + EPSILON)

    def expanded(self, dx: float, dy: float) -> "BoundingBox":
        """Return a copy grown by dx on both x sides and dy on both y sides."""
        return BoundingBox(self.x_min - dx, self.y_min - dy,
                           self.x_max + dx, self.y_max + dy)

    def __repr__(self) -> str:
        return f"[({self.x_min:f}, {self.y_min:f})->({self.x_max:f}, {self.y_max:f})]"


def dist_squared(p1: PointLike, p2: PointLike) -> float:
    """Squared Euclidean distance, used for all distance comparisons."""
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    return dx * dx + dy * dy


def distance(p1: PointLike, p2: PointLike) -> float:
    return dist_squared(p1, p2) ** 0.5


def cross_product(p1: PointLike, p2: PointLike, p3: PointLike) -> float:
    """
    Cross product of (p2 - p1) and (p3 - p1).

    Positive when p3 lies to the left of the directed line p1 -> p2.
    """
    return (p2[0] - p1[0]) * (p3[1] - p1[1]) - (p2[1] - p1[1]) * (p3[0] - p1[0])


def closer_to(reference: PointLike, p1: PointLike, p2: PointLike) -> PointLike:
    """Return p1 if it is strictly closer to reference than p2, else p2."""
    return p1 if dist_squared(reference, p1) < dist_squared(reference, p2) else p2


def further_from(reference: PointLike, p1: PointLike, p2: PointLike) -> PointLike:
    """Return p2 if p1 is strictly closer to reference, else p1."""
    return p2 if dist_squared(reference, p1) < dist_squared(reference, p2) else p1


def midpoint(p1: PointLike, p2: PointLike) -> Point:
    return Point((p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2)


def bisector(segment: Segment, box: BoundingBox) -> Segment:
    """
    Perpendicular bisector of a segment's endpoints, clipped to a box.

    The bisector runs from the box's y_min edge to its y_max edge; an end
    whose x falls outside the box is pulled back onto the nearest vertical
    edge. Vertical and horizontal input segments are handled separately
    since their bisectors have zero or undefined slope.

    Args:
        segment: Segment whose endpoints are bisected
        box: Clipping region for the returned segment

    Returns:
        New segment lying on the bisector
    """
    start, end = segment
    x_mid = (start[0] + end[0]) / 2
    y_mid = (start[1] + end[1]) / 2

    if abs(start[0] - end[0]) < EPSILON:
        return Segment(Point(box.x_min, y_mid), Point(box.x_max, y_mid))
    if abs(start[1] - end[1]) < EPSILON:
        return Segment(Point(x_mid, box.y_min), Point(x_mid, box.y_max))

    # y = m * x + c
    m = -(end[0] - start[0]) / (end[1] - start[1])
    c = y_mid - m * x_mid

    def clip(y_edge: float) -> Point:
        x = (y_edge - c) / m
        if x < box.x_min:
            return Point(box.x_min, m * box.x_min + c)
        if x > box.x_max:
            return Point(box.x_max, m * box.x_max + c)
        return Point(x, y_edge)

    return Segment(clip(box.y_min), clip(box.y_max))


def intersection(a: Segment, b: Segment) -> Optional[Point]:
    """
    Intersection point of two segments.

    Args:
        a: First segment
        b: Second segment

    Returns:
        The intersection, or None if the segments are parallel (determinant
        within EPSILON of zero) or the crossing of their supporting lines
        lies outside either segment's extent by more than EPSILON
    """
    (ax1, ay1), (ax2, ay2) = a
    (bx1, by1), (bx2, by2) = b

    det = (ax1 - ax2) * (by1 - by2) - (ay1 - ay2) * (bx1 - bx2)
    if abs(det) <= EPSILON:
        return None

    da = ax1 * ay2 - ay1 * ax2
    db = bx1 * by2 - by1 * bx2
    x = (da * (bx1 - bx2) - (ax1 - ax2) * db) / det
    y = (da * (by1 - by2) - (ay1 - ay2) * db) / det

    if (x + EPSILON < min(ax1, ax2) or x - EPSILON > max(ax1, ax2)
            or x + EPSILON < min(bx1, bx2) or x - EPSILON > max(bx1, bx2)):
        return None
    if (y + EPSILON < min(ay1, ay2) or y - EPSILON > max(ay1, ay2)
            or y + EPSILON < min(by1, by2) or y - EPSILON > max(by1, by2)):
        return None

    return Point(x, y)
