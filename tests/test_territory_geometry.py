"""
Unit tests for the territory geometry engine.

Tests cover:
- Closed-loop detection
- Captured area
- Largest-loop search
- Territory union (overlapping, disjoint, invalid input)
- Pairwise merge
- Per-owner territory sets
"""

import pytest

from turf_core.domain import TerritoryGeometryEngine, TerritoryGeometryConfig, create_default_engine
from turf_core.localization import polygon_area
from turf_core.proto import TerritoryPolygon

from conftest import at, square_ring, square_walk, straight_line


@pytest.fixture
def engine() -> TerritoryGeometryEngine:
    return create_default_engine()


def ccw_square_walk(side_m, points_per_side):
    """Walk east, north, west, south back toward the start (not closed)."""
    corners = [(0, 0), (0, side_m), (side_m, side_m), (side_m, 0)]
    points = []
    for i, start in enumerate(corners):
        end = corners[(i + 1) % 4]
        for step in range(points_per_side):
            t = step / points_per_side
            points.append(at(start[0] + (end[0] - start[0]) * t,
                             start[1] + (end[1] - start[1]) * t))
    return points


class TestClosedLoop:
    """Tests for is_closed_loop."""

    def test_three_points_first_equals_last(self, engine):
        assert engine.is_closed_loop([at(0, 0), at(30, 30), at(0, 0)])

    def test_straight_line_is_open(self, engine):
        assert not engine.is_closed_loop(straight_line(100, 10))

    def test_fewer_than_three_points(self, engine):
        assert not engine.is_closed_loop([])
        assert not engine.is_closed_loop([at(0, 0), at(0, 0)])

    def test_closure_threshold_inclusive(self, engine):
        path = [at(0, 0), at(200, 0), at(200, 200), at(49.9, 0)]
        assert engine.is_closed_loop(path)
        path[-1] = at(51, 0)
        assert not engine.is_closed_loop(path)


class TestCapturedArea:
    """Tests for captured_area."""

    def test_square_100m(self, engine, square_100m):
        """Perfect 100 m square captures ~10,000 m²."""
        assert engine.captured_area(square_100m) == pytest.approx(10000.0, rel=0.05)

    def test_closes_ring_when_needed(self, engine):
        """Walk ending 10 m from the start is closed before measuring."""
        walk = square_walk(100.0, 10)
        assert engine.captured_area(walk) == pytest.approx(10000.0, rel=0.05)

    def test_open_path_has_no_area(self, engine):
        assert engine.captured_area(square_ring(100.0, closed=False)) == 0.0

    def test_degenerate(self, engine):
        assert engine.captured_area([at(0, 0), at(0, 0)]) == 0.0


class TestFindLargestLoop:
    """Tests for find_largest_loop."""

    def test_too_few_points(self, engine):
        assert engine.find_largest_loop(square_walk(50.0, 2)) is None

    def test_straight_line_has_no_loop(self, engine):
        assert engine.find_largest_loop(straight_line(50, 10)) is None

    def test_single_lap_then_tail(self, engine, fresh_metrics):
        """One lap of a 50 m square followed by a straight tail."""
        lap = ccw_square_walk(50.0, 25)
        tail = [at(-40 * k, 0) for k in range(1, 11)]

        loop = engine.find_largest_loop(lap + tail)

        assert loop is not None
        assert polygon_area(loop) == pytest.approx(2500.0, rel=0.03)
        assert not any(p in tail for p in loop)
        assert fresh_metrics.get_counter('loops_found') == 1

    def test_double_lap_then_tail(self, engine):
        """
        Two laps (200 points) of a 50 m square, then a straight tail.

        The second lap is not folded into the loop, so the loop encloses the
        square once; the tail is never part of it.
        """
        lap = ccw_square_walk(50.0, 25)
        tail = [at(-40 * k, 0) for k in range(1, 11)]
        path = lap + lap + tail
        assert len(lap + lap) == 200

        loop = engine.find_largest_loop(path)

        assert loop is not None
        assert polygon_area(loop) == pytest.approx(2500.0, rel=0.03)
        assert not any(p in tail for p in loop)

    def test_second_return_not_a_candidate(self):
        """Only the first return to a start point closes a loop from it."""
        lap = ccw_square_walk(50.0, 25)
        path = lap + lap + lap

        loop = create_default_engine().find_largest_loop(path)

        assert loop is not None
        assert len(loop) < 2 * len(lap)
        assert polygon_area(loop) == pytest.approx(2500.0, rel=0.03)

    def test_index_gap_boundary(self):
        """A return four points later is too soon; five points later closes."""
        engine = TerritoryGeometryEngine(TerritoryGeometryConfig(
            loop_search_threshold_m=5.0, min_loop_search_points=5))

        four_steps = [at(0, 0), at(0, 20), at(20, 20), at(20, 0), at(1, 0), at(-40, 0)]
        five_steps = [at(0, 0), at(0, 10), at(0, 20), at(20, 20), at(20, 0), at(1, 0)]

        assert engine.find_largest_loop(four_steps) is None
        loop = engine.find_largest_loop(five_steps)
        assert loop == five_steps
        assert polygon_area(loop) > 100.0

    def test_equal_areas_keep_first_found(self, engine):
        """
        Ending anywhere along the closing side gives the same area; the
        earliest end point within range wins.
        """
        lap = ccw_square_walk(50.0, 7)  # last side at north 28.6, 21.4, 14.3, 7.1
        loop = engine.find_largest_loop(lap)

        assert loop is not None
        assert loop == lap[:25]
        assert polygon_area(lap[:26]) == polygon_area(loop)

    def test_noise_floor(self):
        """Loops under the area floor are ignored."""
        engine = TerritoryGeometryEngine(TerritoryGeometryConfig(min_loop_area_m2=5000.0))
        assert engine.find_largest_loop(ccw_square_walk(50.0, 25)) is None

    def test_custom_threshold(self, engine):
        """Closure must be strictly under the threshold."""
        walk = ccw_square_walk(50.0, 5)  # 10 m spacing, last point 10 m from start
        assert engine.find_largest_loop(walk, threshold_m=9.0) is None
        assert engine.find_largest_loop(walk, threshold_m=11.0) is not None


class TestUnifyTerritories:
    """Tests for unify_territories."""

    def test_overlapping_squares_merge(self, engine):
        """Union area is below the sum and above either input."""
        a = square_ring(100.0)
        b = square_ring(100.0, origin=at(50, 50))

        merged = engine.unify_territories([a, b])

        assert len(merged) == 1
        area = polygon_area(merged[0])
        assert area < polygon_area(a) + polygon_area(b)
        assert area > max(polygon_area(a), polygon_area(b))
        assert area == pytest.approx(17500.0, rel=0.05)
        assert merged[0][0] == merged[0][-1]

    def test_disjoint_squares_stay_separate(self, engine):
        a = square_ring(50.0)
        b = square_ring(50.0, origin=at(500, 500))

        merged = engine.unify_territories([a, b])

        assert len(merged) == 2
        areas = sorted(polygon_area(r) for r in merged)
        assert areas[0] == pytest.approx(2500.0, rel=0.05)
        assert areas[1] == pytest.approx(2500.0, rel=0.05)

    def test_contained_square_absorbed(self, engine):
        outer = square_ring(200.0)
        inner = square_ring(50.0, origin=at(50, 50))

        merged = engine.unify_territories([outer, inner])

        assert len(merged) == 1
        assert polygon_area(merged[0]) == pytest.approx(polygon_area(outer), rel=1e-6)

    def test_unclosed_ring_accepted(self, engine):
        merged = engine.unify_territories([square_ring(100.0, closed=False)])
        assert len(merged) == 1
        assert merged[0][0] == merged[0][-1]

    def test_invalid_rings_skipped(self, engine, fresh_metrics):
        """Bow-tie and degenerate rings are skipped; the rest still unify."""
        bowtie = [at(0, 0), at(100, 100), at(100, 0), at(0, 100), at(0, 0)]
        degenerate = [at(0, 0), at(10, 10), at(0, 0)]
        flat = [at(0, 0), at(10, 0), at(20, 0)]
        good = square_ring(100.0, origin=at(500, 0))

        merged = engine.unify_territories([bowtie, degenerate, flat, good])

        assert len(merged) == 1
        assert polygon_area(merged[0]) == pytest.approx(10000.0, rel=0.05)
        invalid = fresh_metrics.get_drop_count('invalid_polygon')
        degenerate_count = fresh_metrics.get_drop_count('degenerate_polygon')
        assert invalid >= 1
        assert degenerate_count >= 1
        assert invalid + degenerate_count == 3

    def test_empty_input(self, engine):
        assert engine.unify_territories([]) == []
        assert engine.unify_territories([[at(0, 0)]]) == []


class TestMergeIfOverlapping:
    """Tests for merge_if_overlapping."""

    def test_overlapping(self, engine):
        a = square_ring(100.0)
        b = square_ring(100.0, origin=at(0, 50))

        merged = engine.merge_if_overlapping(a, b)

        assert merged is not None
        assert polygon_area(merged) == pytest.approx(15000.0, rel=0.05)

    def test_disjoint(self, engine):
        a = square_ring(50.0)
        b = square_ring(50.0, origin=at(200, 200))
        assert engine.merge_if_overlapping(a, b) is None

    def test_too_few_points(self, engine):
        assert engine.merge_if_overlapping(square_ring(50.0), [at(0, 0), at(10, 10)]) is None
        assert engine.merge_if_overlapping([], square_ring(50.0)) is None

    def test_touching_at_a_corner(self, engine):
        """Union of corner-touching squares is not a single polygon."""
        a = square_ring(100.0)
        b = square_ring(100.0, origin=at(100, 100))
        assert engine.merge_if_overlapping(a, b) is None


class TestTerritorySet:
    """Tests for per-owner unions."""

    def test_unify_per_owner(self, engine):
        rings = {
            'alice': [square_ring(100.0), square_ring(100.0, origin=at(50, 0))],
            'bob': [square_ring(100.0), square_ring(50.0, origin=at(1000, 0))],
            'carol': [[at(0, 0), at(1, 1)]],
        }

        territory_set = engine.unify_territory_set(rings)

        assert territory_set.owners == ['alice', 'bob']
        assert len(territory_set.territories_for('alice')) == 1
        assert len(territory_set.territories_for('bob')) == 2
        assert len(territory_set) == 3
        assert territory_set.total_area_m2('alice') == pytest.approx(15000.0, rel=0.05)
        assert all(t.owner_id == 'bob' for t in territory_set.territories_for('bob'))
        assert territory_set.territories_for('carol') == []

    def test_owners_are_not_merged_together(self, engine):
        """Overlapping territories of different owners stay separate."""
        rings = {'alice': [square_ring(100.0)], 'bob': [square_ring(100.0, origin=at(50, 50))]}
        territory_set = engine.unify_territory_set(rings)
        assert len(territory_set) == 2


class TestTerritoryPolygon:
    """Tests for the territory polygon schema."""

    def test_open_ring_closed_and_measured(self):
        polygon = TerritoryPolygon(ring=square_ring(100.0, closed=False), owner_id='alice')

        assert polygon.ring[0] == polygon.ring[-1]
        assert polygon.vertex_count == 4
        assert polygon.area_m2() == pytest.approx(10000.0, rel=0.05)
        assert polygon.to_dict()['area_m2'] == polygon.area_m2()
