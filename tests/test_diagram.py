"""Tests for incremental diagram construction."""

import numpy as np
import pytest
from shapely.geometry import Polygon, box

from py_voronoi.core.diagram import (
    Diagram,
    InsertStatus,
    _CellSplit,
)
from py_voronoi.core.geometry import Point, dist_squared
from py_voronoi.core.point_sources import random_points


def snapshot(diagram):
    """Border lists of every cell, keyed by id."""
    return {cell.id: list(cell.borders) for cell in diagram.cells()}


def clipped_area(diagram, cell):
    plane = box(0.0, 0.0, diagram.size(), diagram.size())
    return Polygon(cell.vertices()).intersection(plane).area


@pytest.fixture
def blank_diagram():
    return Diagram(100.0)


@pytest.fixture
def square_diagram():
    """Four generators at the centres of the plane's quadrants."""
    diagram = Diagram(100.0)
    for p in [(25, 25), (75, 25), (75, 75), (25, 75)]:
        assert diagram.insert(p)
    return diagram


@pytest.fixture(scope="module")
def random_diagram():
    return Diagram(100.0, points=random_points(200, 100.0, seed=42))


class TestSentinels:
    """Test the sentinel cells created with every diagram."""

    def test_blank_diagram_has_three_cells(self, blank_diagram):
        assert len(blank_diagram.cells()) == 3
        assert blank_diagram.real_cells() == []
        assert blank_diagram.generators().shape == (0, 2)

    def test_sentinels_enclose_plane(self, blank_diagram):
        for cell in blank_diagram.cells():
            assert not blank_diagram.boundary.contains(cell.generator)
            assert len(cell.borders) == 2

    def test_sentinel_graph_is_consistent(self, blank_diagram):
        assert blank_diagram.validate() == []

    def test_ids_are_per_diagram(self):
        first, second = Diagram(100.0), Diagram(50.0)
        assert [c.id for c in first.cells()] == [0, 1, 2]
        assert [c.id for c in second.cells()] == [0, 1, 2]

    def test_sentinels_persist(self, square_diagram):
        generators = [c.generator for c in Diagram(100.0).cells()]
        cells = square_diagram.cells()
        assert [c.id for c in cells[:3]] == [0, 1, 2]
        assert [c.generator for c in cells[:3]] == generators

    def test_bisector_bound_exceeds_plane(self, blank_diagram):
        bound = blank_diagram.bisector_bound
        assert bound.x_min == -1200.0
        assert bound.y_max == 1300.0


class TestInsertion:
    """Test single insertions."""

    def test_single_point_and_duplicate(self, blank_diagram):
        assert blank_diagram.insert((50.0, 50.0))
        assert len(blank_diagram.cells()) == 4

        assert not blank_diagram.insert((50.0, 50.0))
        assert len(blank_diagram.cells()) == 4

    def test_duplicate_reports_existing_cell(self, blank_diagram):
        blank_diagram.insert((50.0, 50.0))
        result = blank_diagram.try_insert(Point(50.0, 50.0 + 1e-9))
        assert result.status is InsertStatus.DUPLICATE
        assert result.cell_id == 3
        assert not result
        stats = blank_diagram.stats
        assert stats.inserted == 1
        assert stats.duplicates == 1

    def test_duplicate_leaves_borders_untouched(self, square_diagram):
        before = snapshot(square_diagram)
        assert not square_diagram.insert((75, 25))
        assert snapshot(square_diagram) == before

    def test_sequential_ids(self, square_diagram):
        assert [c.id for c in square_diagram.cells()] == list(range(7))
        result = square_diagram.try_insert((10, 90))
        assert result.inserted
        assert result.cell_id == 7
        assert square_diagram.cell(7).generator == Point(10, 90)

    def test_unknown_cell_id(self, blank_diagram):
        with pytest.raises(IndexError):
            blank_diagram.cell(3)

    def test_new_cell_contains_its_generator(self, blank_diagram):
        blank_diagram.insert((20.0, 70.0))
        cell = blank_diagram.cell(3)
        assert cell.contains(cell.generator)
        assert len(cell.borders) == 3


class TestSquareLayout:
    """Four generators on the corners of a square share a single vertex."""

    def test_all_inserted(self, square_diagram):
        assert len(square_diagram.cells()) == 7
        assert square_diagram.stats.degenerate == 0

    def test_invariants_hold(self, square_diagram):
        assert square_diagram.validate() == []

    def test_quadrant_areas(self, square_diagram):
        for cell in square_diagram.real_cells():
            assert clipped_area(square_diagram, cell) == pytest.approx(2500.0)

    def test_shared_centre_vertex(self, square_diagram):
        for cell in square_diagram.real_cells():
            assert any(v.equals(Point(50, 50)) for v in cell.vertices())


class TestGrids:
    """Test grid layouts, which are full of cocircular generators."""

    @pytest.mark.parametrize("n", [2, 3])
    def test_grid(self, n):
        step = 100.0 / (n + 1)
        points = [(step * (i + 1), step * (j + 1)) for j in range(n) for i in range(n)]
        diagram = Diagram(100.0, points=points)

        assert len(diagram.real_cells()) == n * n
        assert diagram.validate() == []


class TestRandomDiagram:
    """Test a diagram built from seeded random points."""

    def test_invariants_hold(self, random_diagram):
        assert random_diagram.validate() == []

    def test_every_point_accounted_for(self, random_diagram):
        stats = random_diagram.stats
        assert stats.inserted + stats.duplicates + stats.degenerate == 200
        assert len(random_diagram.real_cells()) == stats.inserted

    def test_cells_tile_the_plane(self, random_diagram):
        total = sum(clipped_area(random_diagram, c) for c in random_diagram.real_cells())
        assert total == pytest.approx(100.0 * 100.0, rel=1e-6)

    def test_generators_array(self, random_diagram):
        generators = random_diagram.generators()
        assert generators.shape == (len(random_diagram.real_cells()), 2)
        assert np.all((generators >= 0) & (generators <= 100.0))

    def test_batch_uses_fixed_hash(self, random_diagram):
        assert not random_diagram.hash.resizable
        assert random_diagram.hash.resizes == 0

    def test_find_cell_matches_brute_force(self, random_diagram):
        generators = np.array([c.generator for c in random_diagram.cells()])
        for q in random_points(50, 100.0, seed=5):
            found = random_diagram.find_cell(q)
            expected = np.min(np.sum((generators - q) ** 2, axis=1))
            assert dist_squared(found.generator, Point(*q)) == pytest.approx(expected)


class TestClusteredGenerators:
    """Generators packed tightly relative to the plane size."""

    @pytest.fixture
    def triple(self):
        diagram = Diagram(600.0)
        for p in [(300.0, 300.0), (300.5, 300.2), (300.1, 300.9)]:
            assert diagram.insert(p)
        return diagram

    def test_invariants_hold(self, triple):
        assert triple.validate() == []

    def test_shared_vertices_are_identical(self, triple):
        """Both sides of every border end at the very same coordinates."""
        cells = triple.cells()
        for cell in cells:
            for border in cell.borders:
                mirrors = [b for b in cells[border.neighbor].borders if b.neighbor == cell.id]
                assert any(b.start == border.end and b.end == border.start for b in mirrors)

    def test_dense_cluster(self):
        points = np.random.default_rng(8).normal(300.0, 0.5, size=(500, 2))
        diagram = Diagram(600.0, points=points)

        stats = diagram.stats
        assert stats.inserted + stats.duplicates + stats.degenerate == 500
        assert stats.inserted > 450
        assert diagram.validate() == []


class TestRollback:
    """Test that rejected insertions leave the diagram untouched."""

    @pytest.fixture
    def diagram(self):
        diagram = Diagram(100.0)
        diagram.insert_many([(30, 40), (70, 60), (60, 20)])
        return diagram

    def test_wrong_intersections(self, diagram, monkeypatch):
        real_split = diagram._split_cell
        calls = []

        def failing_split(cell, v, new_id, anchors):
            calls.append(cell.id)
            if len(calls) == 2:
                return _CellSplit(None, None, None, 3)
            return real_split(cell, v, new_id, anchors)

        before = snapshot(diagram)
        monkeypatch.setattr(diagram, "_split_cell", failing_split)
        result = diagram.try_insert((50, 50))

        assert result.status is InsertStatus.WRONG_INTERSECTIONS
        assert result.intersections == 3
        assert snapshot(diagram) == before
        assert len(diagram) == 6
        assert diagram.stats.degenerate == 1

    def test_missed_border(self, diagram, monkeypatch):
        real_split = diagram._split_cell
        visited = []

        def looping_split(cell, v, new_id, anchors):
            if cell.id in visited:
                return _CellSplit(list(cell.borders), None, None, 2)
            visited.append(cell.id)
            split = real_split(cell, v, new_id, anchors)
            if len(visited) == 2:
                # Send the walk back into the cell just split
                return split._replace(next_id=cell.id)
            return split

        before = snapshot(diagram)
        monkeypatch.setattr(diagram, "_split_cell", looping_split)
        result = diagram.try_insert((50, 50))

        assert result.status is InsertStatus.MISSED_BORDER
        assert snapshot(diagram) == before
        assert diagram.validate() == []

    def test_ids_only_consumed_on_commit(self, diagram, monkeypatch):
        monkeypatch.setattr(diagram, "_split_cell",
                            lambda cell, v, new_id, anchors: _CellSplit(None, None, None, 1))
        assert not diagram.insert((50, 50))
        monkeypatch.undo()

        result = diagram.try_insert((50, 50))
        assert result.inserted
        assert result.cell_id == 6
        assert diagram.validate() == []

    def test_point_beyond_bisector_bound(self, diagram):
        """A generator far outside the plane cannot be cut into any cell."""
        before = snapshot(diagram)
        result = diagram.try_insert((5000.0, 5000.0))

        assert result.status is InsertStatus.WRONG_INTERSECTIONS
        assert result.intersections == 0
        assert snapshot(diagram) == before
        assert len(diagram) == 6
        assert diagram.stats.degenerate == 1
        assert diagram.insert((50, 50))
        assert diagram.validate() == []


class TestConstruction:
    """Test the ways of building a diagram."""

    def test_numpy_input(self):
        diagram = Diagram(100.0, points=np.array([[10.0, 10.0], [90.0, 90.0]]))
        assert len(diagram) == 5
        np.testing.assert_allclose(diagram.generators(), [[10.0, 10.0], [90.0, 90.0]])

    def test_from_points(self):
        diagram = Diagram.from_points([(10, 20), (10, 20), (80, 30)], 100.0)
        assert len(diagram.real_cells()) == 2
        assert diagram.stats.duplicates == 1

    def test_size_hint_selects_fixed_hash(self):
        assert not Diagram(100.0, hash_size_hint=500).hash.resizable
        assert Diagram(100.0).hash.resizable

    def test_growing_hash_resizes(self, blank_diagram):
        blank_diagram.insert_many(random_points(100, 100.0, seed=1))
        assert blank_diagram.hash.resizes >= 1
        assert blank_diagram.validate() == []

    def test_search_steps_counted(self, square_diagram):
        steps = square_diagram.stats.search_steps
        square_diagram.find_cell((10, 10))
        assert square_diagram.stats.search_steps > steps

    def test_stats_is_a_snapshot(self, square_diagram):
        """Reading stats never changes the diagram's own counters."""
        stats = square_diagram.stats
        stats.inserted = 99
        assert square_diagram.stats.inserted == 4

        square_diagram.hash.guess_closest((-500.0, -500.0))
        assert stats.hash_misses == square_diagram.hash.misses - 1
        assert square_diagram.stats.hash_misses == square_diagram.hash.misses
