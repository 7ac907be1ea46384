"""
Spatial hash for seeding nearest-cell searches.

A uniform grid of buckets is laid over the plane, each bucket holding at most
one cell. Lookups probe the bucket of the query point and its eight
neighbours and return the first cell found. The answer is only a starting
guess for the diagram's local descent, never an authoritative nearest cell.
"""

import math
from typing import Iterator, List, Optional, Tuple

import structlog

from .cell_graph import Cell
from .geometry import PointLike

logger = structlog.get_logger()

# Probe order: the bucket itself, the four axis neighbours, then the diagonals
PROBE_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (0, 0), (1, 0), (0, 1), (-1, 0), (0, -1),
    (1, 1), (-1, 1), (1, -1), (-1, -1),
)

# Initial bucket target for a hash that grows with its contents
INITIAL_BUCKETS = 10

# A resizable hash grows once it holds more than this many cells per slot
LOAD_FACTOR = 3

# Growth multiplier applied to the cell count when resizing
GROWTH_FACTOR = 10

# Expected points per bucket when sizing a fixed hash
POINTS_PER_BUCKET = 10


class SpatialHash:
    """
    Approximate nearest-cell index over generator coordinates.

    Two flavours share this class:

    - resizable (no expected_count): starts small and rebuilds itself with
      roughly ten times the buckets whenever it holds more than three cells
      per table slot, giving amortized O(1) puts;
    - fixed (expected_count given): sized once for expected_count / 10
      buckets and never rebuilt.
    """

    def __init__(self, plane_size: float, expected_count: Optional[int] = None):
        """
        Initialize the hash.

        Args:
            plane_size: Edge length of the square region being hashed
            expected_count: Number of cells the hash will receive, or None
                for a hash that resizes itself as cells arrive
        """
        self.plane_size = plane_size
        self.resizable = expected_count is None
        self.misses = 0
        self.resizes = 0
        self._count = 0
        self._empty = True
        self._table: List[List[Optional[Cell]]] = []
        self.bucket_size = 1

        target = INITIAL_BUCKETS if self.resizable else expected_count // POINTS_PER_BUCKET
        self._build(target)

    @classmethod
    def fixed(cls, expected_count: int, plane_size: float) -> "SpatialHash":
        return cls(plane_size, expected_count=expected_count)

    @classmethod
    def growing(cls, plane_size: float) -> "SpatialHash":
        return cls(plane_size)

    @property
    def count(self) -> int:
        """Number of cells put so far, including ones that found their bucket taken."""
        return self._count

    @property
    def table_side(self) -> int:
        return len(self._table)

    @property
    def is_empty(self) -> bool:
        return self._empty

    def stored_cells(self) -> Iterator[Cell]:
        for column in self._table:
            for cell in column:
                if cell is not None:
                    yield cell

    def bucket_of(self, p: PointLike) -> Tuple[int, int]:
        """Table location for a point: floored coordinates divided by bucket size."""
        return (int(math.floor(p[0])) // self.bucket_size,
                int(math.floor(p[1])) // self.bucket_size)

    def put(self, cell: Cell) -> None:
        """Count a cell and store it if its bucket is free."""
        self._count += 1
        if self.resizable and self._count > LOAD_FACTOR * self.table_side ** 2:
            self._rebuild(self._count * GROWTH_FACTOR)
        self._place(cell)

    def guess_closest(self, p: PointLike) -> Optional[Cell]:
        """
        Guess a cell close to a point.

        Args:
            p: Query point

        Returns:
            First occupied bucket's cell in probe order, or None. A None after
            at least one cell has been stored counts as a miss.
        """
        if self._empty:
            return None

        i, j = self.bucket_of(p)
        for di, dj in PROBE_OFFSETS:
            cell = self._slot(i + di, j + dj)
            if cell is not None:
                return cell

        self.misses += 1
        return None

    def _slot(self, i: int, j: int) -> Optional[Cell]:
        side = self.table_side
        if 0 <= i < side and 0 <= j < side:
            return self._table[i][j]
        return None

    def _place(self, cell: Cell) -> None:
        i, j = self.bucket_of(cell.generator)
        side = self.table_side
        if not (0 <= i < side and 0 <= j < side):
            logger.debug("Cell outside hashed plane", cell=cell.id, bucket=(i, j))
            return
        if self._table[i][j] is None:
            self._table[i][j] = cell
            self._empty = False

    def _build(self, target_buckets: int) -> None:
        """Allocate an empty table for roughly target_buckets buckets."""
        buckets = max(1, math.isqrt(max(target_buckets, 0)))
        self.bucket_size = max(1, math.ceil(self.plane_size / buckets))
        self._table = [[None] * (buckets + 1) for _ in range(buckets + 1)]

    def _rebuild(self, target_buckets: int) -> None:
        stored = list(self.stored_cells())
        old_side = self.table_side
        self._build(target_buckets)
        for cell in stored:
            self._place(cell)
        self.resizes += 1
        logger.debug("Spatial hash resized",
                     cells=self._count, old_side=old_side,
                     new_side=self.table_side, bucket_size=self.bucket_size)
