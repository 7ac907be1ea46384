"""
Incremental Voronoi diagram construction.

Generators are inserted one at a time. Each insertion finds the cell that
contains the new point, then walks the ring of cells around the new point,
cutting each one along its bisector with the new generator. If any cell in
the ring does not split cleanly the whole insertion is rolled back.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog

from .cell_graph import (
    SENTINEL_COUNT,
    BorderSegment,
    Cell,
    check_containment,
    check_distinct_generators,
    check_equidistance,
    check_symmetry,
    oriented,
)
from .geometry import (
    BoundingBox,
    Point,
    Segment,
    as_point,
    bisector,
    cross_product,
    dist_squared,
    intersection,
    points_equal,
)
from .spatial_hash import SpatialHash

logger = structlog.get_logger()

# Plane extent multiplier placing the sentinel generators far outside the plane
SUPER_FACTOR = 4

# Bisector clipping margin (in super extents) used while building the sentinels
INIT_BISECT_FACTOR = 4

# Bisector clipping margin (in super extents) used for every later insertion
GENERAL_BISECT_FACTOR = 3

# Distance (relative to the bisector bound) within which a recomputed ring
# vertex is replaced by the copy already written into a neighbouring cell
VERTEX_SNAP_FACTOR = 1e-8

# A ring vertex already fixed during the current insertion: the id of the
# cell that computed it and the point itself
Anchor = Tuple[int, Point]


class InsertStatus(str, Enum):
    """Outcome of a single insertion."""
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    WRONG_INTERSECTIONS = "wrong_intersections"
    MISSED_BORDER = "missed_border"


@dataclass
class InsertResult:
    """
    Detailed result of Diagram.try_insert.

    cell_id is the new cell on success and the existing cell holding the
    same generator for a duplicate. intersections is the number of distinct
    bisector crossings found when the status is WRONG_INTERSECTIONS.
    """
    status: InsertStatus
    point: Point
    cell_id: Optional[int] = None
    intersections: Optional[int] = None

    @property
    def inserted(self) -> bool:
        return self.status is InsertStatus.INSERTED

    def __bool__(self) -> bool:
        return self.inserted


@dataclass
class DiagramStats:
    """Running counters for a diagram."""
    inserted: int = 0
    duplicates: int = 0
    degenerate: int = 0
    search_steps: int = 0
    hash_misses: int = 0


class _CellSplit(NamedTuple):
    """How one ring cell is cut by the bisector with the new generator."""
    borders: Optional[List[BorderSegment]]
    new_edge: Optional[BorderSegment]
    next_id: Optional[int]
    crossings: int


class Diagram:
    """
    A Voronoi diagram over the square plane [0, size] x [0, size].

    Three sentinel cells, whose generators form a triangle far larger than
    the plane, are created up front so every real insertion lands in a
    bounded region. They always occupy the first three slots of cells().
    Cell ids are handed out by a per-diagram counter and double as indices
    into the cell list.
    """

    def __init__(self, size: float, points: Optional[Iterable] = None,
                 hash_size_hint: Optional[int] = None):
        """
        Initialize the diagram and, optionally, insert a batch of points.

        Args:
            size: Edge length of the visible plane
            points: Points to insert in iteration order. When given, the
                spatial hash is sized once for the batch instead of growing.
            hash_size_hint: Expected total point count, overriding len(points)
                when sizing a fixed hash
        """
        self._boundary = BoundingBox(0.0, 0.0, float(size), float(size))
        self._cells: List[Cell] = []
        self._next_id = 0
        self._stats = DiagramStats()

        hashed_size = math.ceil(max(self._boundary.width, self._boundary.height)) + 1
        batch = None if points is None else [as_point(p) for p in points]
        if batch is None and hash_size_hint is None:
            self.hash = SpatialHash.growing(hashed_size)
        else:
            expected = hash_size_hint if hash_size_hint is not None else len(batch)
            self.hash = SpatialHash.fixed(expected, hashed_size)

        self._setup_sentinels()

        logger.info("Diagram created", size=size,
                    hash="resizable" if self.hash.resizable else "fixed")

        if batch:
            for p in batch:
                self.insert(p)
            logger.info("Points inserted", requested=len(batch),
                        inserted=self._stats.inserted,
                        duplicates=self._stats.duplicates,
                        degenerate=self._stats.degenerate)

    @classmethod
    def from_points(cls, points: Iterable, size: float) -> "Diagram":
        return cls(size, points=points)

    def __len__(self) -> int:
        return len(self._cells)

    @property
    def boundary(self) -> BoundingBox:
        return self._boundary

    @property
    def bisector_bound(self) -> BoundingBox:
        return self._bisector_bound

    @property
    def stats(self) -> DiagramStats:
        """Snapshot of the running counters."""
        return replace(self._stats, hash_misses=self.hash.misses)

    def size(self) -> float:
        """Edge length of the visible plane."""
        return self._boundary.x_max

    def cells(self) -> List[Cell]:
        """All committed cells in creation order, sentinels first."""
        return list(self._cells)

    def real_cells(self) -> List[Cell]:
        return self._cells[SENTINEL_COUNT:]

    def cell(self, cell_id: int) -> Cell:
        if not 0 <= cell_id < len(self._cells):
            raise IndexError(f"No cell with id {cell_id}")
        return self._cells[cell_id]

    def generators(self) -> np.ndarray:
        """(n, 2) array of real-cell generators in insertion order."""
        real = self.real_cells()
        if not real:
            return np.empty((0, 2), dtype=float)
        return np.array([c.generator for c in real], dtype=float)

    def insert(self, point) -> bool:
        """
        Insert a generator.

        Returns:
            True if a cell was added, False if the point was rejected as a
            duplicate or as degenerate. A rejected insertion leaves the
            diagram exactly as it was.
        """
        return self.try_insert(point).inserted

    def insert_many(self, points: Iterable) -> List[bool]:
        return [self.insert(p) for p in points]

    def try_insert(self, point) -> InsertResult:
        """Insert a generator, reporting why it was rejected if it was."""
        v = as_point(point)
        first = self.find_cell(v)

        if v.equals(first.generator):
            self._stats.duplicates += 1
            logger.warning("Skipped duplicate generator", point=v, cell=first.id)
            return InsertResult(InsertStatus.DUPLICATE, v, cell_id=first.id)

        new_id = self._next_id
        new_borders: List[BorderSegment] = []
        # Borders of every cell touched so far, as they were before this insertion
        journal: Dict[int, List[BorderSegment]] = {}
        # Vertices of the new cell found so far; later cells reuse them
        anchors: List[Anchor] = []

        current = first
        while True:
            split = self._split_cell(current, v, new_id, anchors)
            if split.borders is None:
                return self._abort(journal, InsertResult(
                    InsertStatus.WRONG_INTERSECTIONS, v, intersections=split.crossings))
            if current.id in journal:
                return self._abort(journal, InsertResult(InsertStatus.MISSED_BORDER, v))

            journal[current.id] = current.borders
            current.borders = split.borders
            new_borders.append(split.new_edge)

            # The walk leaves through new_edge.end; the first cell's start
            # vertex is where the ring closes
            if current is first:
                anchors.append((current.id, split.new_edge.start))
            anchors.append((current.id, split.new_edge.end))

            current = self._cells[split.next_id]
            if current is first:
                break

        cell = Cell(new_id, v, new_borders)
        self._add_cell(cell)
        self._stats.inserted += 1
        logger.debug("Inserted generator", point=v, cell=new_id, ring=len(journal))
        return InsertResult(InsertStatus.INSERTED, v, cell_id=new_id)

    def find_cell(self, point) -> Cell:
        """
        Find the cell containing a point.

        Starts from the spatial hash's guess (or the newest cell) and moves
        to a strictly closer neighbour until no neighbour is closer.
        """
        p = as_point(point)
        guess = self.hash.guess_closest(p)
        if guess is None or len(self._cells) <= SENTINEL_COUNT:
            current = self._cells[-1]
        else:
            current = guess

        best = dist_squared(current.generator, p)
        while True:
            self._stats.search_steps += 1
            closest = current
            for neighbor_id in current.neighbor_ids():
                neighbor = self._cells[neighbor_id]
                d = dist_squared(neighbor.generator, p)
                if d < best:
                    closest, best = neighbor, d
            if closest is current:
                return current
            current = closest

    def validate(self) -> List[str]:
        """Run the graph invariant checks, returning any problems found."""
        return (check_symmetry(self._cells)
                + check_equidistance(self._cells)
                + check_containment(self._cells)
                + check_distinct_generators(self.real_cells()))

    def _split_cell(self, cell: Cell, v: Point, new_id: int,
                    anchors: Iterable[Anchor] = ()) -> _CellSplit:
        """
        Cut a cell along the bisector of its generator and v.

        Borders entirely on the generator's side are kept, borders crossed by
        the bisector are trimmed to their generator-side part, and the rest
        are dropped. Crossings that coincide (the bisector passing through a
        polygon vertex) count once; the border consumed at that vertex is
        the one leading to the next cell of the ring.

        A crossing on a border shared with a cell already split during this
        insertion is replaced by the vertex that cell computed, so both sides
        of the border end at the same point.
        """
        gen = cell.generator
        cut = bisector(Segment(v, gen), self._bisector_bound)

        def far_side(p: Point) -> float:
            return dist_squared(p, v) - dist_squared(p, gen)

        kept: List[BorderSegment] = []
        # Each crossing: [point, anchored, borders meeting there]
        crossings: List[list] = []

        for border in cell.borders:
            hit = intersection(cut, Segment(border.start, border.end))
            if hit is None:
                if far_side(border.start) > 0 and far_side(border.end) > 0:
                    kept.append(border)
                continue
            snapped = self._snap(hit, border.neighbor, anchors)
            anchored = snapped is not hit

            for crossing in crossings:
                if points_equal(crossing[0], snapped):
                    crossing[2].append(border)
                    if anchored and not crossing[1]:
                        crossing[0], crossing[1] = snapped, True
                    break
            else:
                crossings.append([snapped, anchored, [border]])

        if len(crossings) != 2:
            return _CellSplit(None, None, None, len(crossings))

        leads = []
        for point, _, borders in crossings:
            # Every border meeting at a crossing is trimmed to the same point
            trims = []
            for border in borders:
                if far_side(border.start) >= far_side(border.end):
                    trims.append((border, BorderSegment(border.start, point, border.neighbor)))
                else:
                    trims.append((border, BorderSegment(point, border.end, border.neighbor)))
            leads.append(min(trims, key=lambda t: dist_squared(t[1].start, t[1].end))[0])
            for _, trimmed in trims:
                if not points_equal(trimmed.start, trimmed.end):
                    kept.append(trimmed)

        (i1, _, _), (i2, _, _) = crossings
        l1, l2 = leads
        if cross_product(i1, i2, v) > 0:
            new_edge = BorderSegment(i1, i2, cell.id)
            next_id = l2.neighbor
        else:
            new_edge = BorderSegment(i2, i1, cell.id)
            next_id = l1.neighbor
        kept.append(new_edge.reversed(new_id))

        return _CellSplit(kept, new_edge, next_id, 2)

    def _snap(self, hit: Point, neighbor: int, anchors: Iterable[Anchor]) -> Point:
        """Return the nearest anchor computed by neighbor if hit is within reach of it."""
        best, best_d = hit, self._snap_tolerance ** 2
        for cell_id, anchor in anchors:
            if cell_id != neighbor:
                continue
            d = dist_squared(anchor, hit)
            if d <= best_d:
                best, best_d = anchor, d
        return best

    def _abort(self, journal: Dict[int, List[BorderSegment]],
               result: InsertResult) -> InsertResult:
        """Restore every touched cell's borders and report the failure."""
        for cell_id, borders in journal.items():
            self._cells[cell_id].borders = borders
        self._stats.degenerate += 1
        logger.warning("Skipped degenerate generator", point=result.point,
                       reason=result.status.value, intersections=result.intersections,
                       restored=len(journal))
        return result

    def _add_cell(self, cell: Cell) -> None:
        if len(self._cells) >= SENTINEL_COUNT:
            self.hash.put(cell)
        self._cells.append(cell)
        self._next_id += 1

    def _setup_sentinels(self) -> None:
        """Create the three sentinel cells enclosing the plane."""
        b = self._boundary
        x_range = b.width
        y_range = b.height
        x_super = x_range * SUPER_FACTOR
        y_super = y_range * SUPER_FACTOR

        self._bisector_bound = b.expanded(x_super * GENERAL_BISECT_FACTOR,
                                          y_super * GENERAL_BISECT_FACTOR)
        self._snap_tolerance = VERTEX_SNAP_FACTOR * max(self._bisector_bound.width,
                                                        self._bisector_bound.height)
        init_bound = b.expanded(x_super * INIT_BISECT_FACTOR,
                                y_super * INIT_BISECT_FACTOR)

        # The three bisectors meet at the centre of the plane's x range
        v1 = Point(b.x_min + x_range / 2, b.y_min - y_super + y_range / 2)
        v2 = Point(b.x_max + x_super - x_range / 2, b.y_max + y_super - y_super / 2)
        v3 = Point(b.x_min - x_super + x_range / 2, b.y_max + y_super - y_super / 2)

        c1 = Cell(self._next_id, v1)
        c2 = Cell(self._next_id + 1, v2)
        c3 = Cell(self._next_id + 2, v3)

        l1 = bisector(Segment(v1, v2), init_bound)
        l2 = bisector(Segment(v2, v3), init_bound)
        l3 = bisector(Segment(v1, v3), init_bound)

        i1 = intersection(l1, l2)
        i2 = intersection(l2, l3)
        i3 = intersection(l1, l3)

        for (start, end), a, c in (((l1.start, i1), c1, c2),
                                   ((i2, l2.end), c2, c3),
                                   ((l3.start, i3), c1, c3)):
            edge = oriented(start, end, a.generator, c.id)
            a.borders.append(edge)
            c.borders.append(edge.reversed(a.id))

        for cell in (c1, c2, c3):
            self._add_cell(cell)
