"""
Cell/border graph representation of a Voronoi diagram.

Cells live in an arena owned by the diagram and are addressed by integer id.
A border segment stores the id of the neighbouring cell rather than a
reference to it, so the graph has no ownership cycles.

Border segments are oriented so that the owning cell's generator lies on
their positive (left) side. The matching segment held by the neighbour runs
the other way.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from .geometry import (
    EPSILON,
    Point,
    cross_product,
    distance,
    midpoint,
    points_equal,
)

# The first cells of every diagram are the sentinel cells
SENTINEL_COUNT = 3


@dataclass(frozen=True)
class BorderSegment:
    """One edge of a cell polygon plus the id of the cell on its other side."""
    start: Point
    end: Point
    neighbor: int

    def reversed(self, neighbor: int) -> "BorderSegment":
        """The same edge as seen from the neighbouring cell."""
        return BorderSegment(self.end, self.start, neighbor)

    def matches_reversed(self, other: "BorderSegment") -> bool:
        return points_equal(self.start, other.end) and points_equal(self.end, other.start)

    def __repr__(self) -> str:
        return f"[{self.start!r} -> {self.end!r} | {self.neighbor}]"


def oriented(start: Point, end: Point, generator: Point, neighbor: int) -> BorderSegment:
    """Build a border segment with the generator on its positive side."""
    if cross_product(start, end, generator) < 0:
        start, end = end, start
    return BorderSegment(start, end, neighbor)


@dataclass
class Cell:
    """
    A Voronoi cell: a generator and the border segments enclosing it.

    id and generator never change once the cell exists. The borders list is
    replaced whenever a later insertion cuts into the cell.
    """
    id: int
    generator: Point
    borders: List[BorderSegment] = field(default_factory=list)

    def __hash__(self) -> int:
        return self.id

    def __eq__(self, other) -> bool:
        return isinstance(other, Cell) and other.id == self.id

    def neighbor_ids(self) -> List[int]:
        """Ids of the neighbouring cells, in border order, without repeats."""
        seen = []
        for border in self.borders:
            if border.neighbor not in seen:
                seen.append(border.neighbor)
        return seen

    def contains(self, p: Point) -> bool:
        """Strict point-in-convex-polygon test against the oriented borders."""
        if not self.borders:
            return False
        return all(cross_product(b.start, b.end, p) > 0 for b in self.borders)

    def vertices(self) -> List[Point]:
        """
        Polygon vertices in counter-clockwise order (positive orientation).

        Borders are not stored in chain order, so they are linked up by
        matching each segment's end to the next segment's start.
        """
        if not self.borders:
            return []

        remaining = list(self.borders)
        current = remaining.pop(0)
        chain = [current.start]
        while remaining:
            for i, border in enumerate(remaining):
                if points_equal(border.start, current.end):
                    current = remaining.pop(i)
                    break
            else:
                # Open chain (sentinel cells); fall back to the nearest start
                i = min(range(len(remaining)),
                        key=lambda k: distance(remaining[k].start, current.end))
                current = remaining.pop(i)
            chain.append(current.start)
        if not points_equal(current.end, chain[0]):
            chain.append(current.end)
        return chain

    def __repr__(self) -> str:
        return f"Cell({self.id}, {self.generator!r}, borders={len(self.borders)})"


def check_symmetry(cells: Sequence[Cell]) -> List[str]:
    """
    Check that every neighbour reference is mirrored by the neighbour.

    Returns:
        List of problem descriptions, empty if the graph is symmetric
    """
    problems = []
    for cell in cells:
        for border in cell.borders:
            if not 0 <= border.neighbor < len(cells):
                problems.append(f"cell {cell.id}: border {border!r} references unknown cell")
                continue
            other = cells[border.neighbor]
            if not any(b.neighbor == cell.id and border.matches_reversed(b)
                       for b in other.borders):
                problems.append(
                    f"cell {cell.id}: border {border!r} has no mirror in cell {other.id}")
    return problems


def check_equidistance(cells: Sequence[Cell], tolerance: float = EPSILON) -> List[str]:
    """Check that each shared border's midpoint is equidistant from both generators."""
    problems = []
    for cell in cells:
        for border in cell.borders:
            if not 0 <= border.neighbor < len(cells):
                continue
            mid = midpoint(border.start, border.end)
            other = cells[border.neighbor]
            gap = abs(distance(mid, cell.generator) - distance(mid, other.generator))
            if gap >= tolerance:
                problems.append(
                    f"cell {cell.id}: border {border!r} midpoint off by {gap:g}")
    return problems


def check_containment(cells: Sequence[Cell], skip: int = SENTINEL_COUNT) -> List[str]:
    """Check that every non-sentinel generator lies strictly inside its own cell."""
    return [f"cell {cell.id}: generator {cell.generator!r} outside its borders"
            for cell in cells[skip:] if not cell.contains(cell.generator)]


def check_distinct_generators(cells: Iterable[Cell]) -> List[str]:
    """Check that no two cells share a generator (within EPSILON)."""
    problems = []
    ordered = sorted(cells, key=lambda c: c.generator.x)
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if b.generator.x - a.generator.x >= EPSILON:
                break
            if points_equal(a.generator, b.generator):
                problems.append(f"cells {a.id} and {b.id} share generator {a.generator!r}")
    return problems
