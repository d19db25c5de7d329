"""Tests for radius filtering and grid downsampling."""

import random

import pytest

from forest_finder.distance import distance_meters
from forest_finder.models import Coordinate, FeatureMatch, FeatureRecord
from forest_finder.search import (
    adaptive_cell_size,
    downsample,
    filter_within_radius,
    grid_cell_key,
    grid_cell_size,
    run_search,
    sort_by_distance,
    tiered_cell_size,
)

ORIGIN = Coordinate(35.0, 139.0)


def _random_records(count: int, seed: int = 1, spread: float = 0.1) -> list[FeatureRecord]:
    rng = random.Random(seed)
    return [
        FeatureRecord(
            id=f"r-{n}",
            coordinate=Coordinate(
                ORIGIN.latitude + rng.uniform(-spread, spread),
                ORIGIN.longitude + rng.uniform(-spread, spread),
            ),
        )
        for n in range(count)
    ]


def _matches(records, origin=ORIGIN, radius=1e9):
    return filter_within_radius(records, origin, radius)


class TestFilterWithinRadius:
    def test_scenario_three_records(self, scenario_records):
        matches = filter_within_radius(scenario_records, ORIGIN, 2000)
        assert sorted(m.id for m in matches) == ["near", "origin"]

    def test_every_match_within_radius(self):
        records = _random_records(2000)
        for radius in (500, 2500, 8000):
            for m in filter_within_radius(records, ORIGIN, radius):
                assert m.distance_meters <= radius

    def test_complete_before_downsampling(self):
        """Every record within the radius appears in the match set."""
        records = _random_records(2000, seed=3)
        radius = 5000
        expected = {r.id for r in records if distance_meters(ORIGIN, r.coordinate) <= radius}
        assert {m.id for m in filter_within_radius(records, ORIGIN, radius)} == expected

    def test_boundary_is_inclusive(self, scenario_records):
        near = scenario_records[1]
        exact = distance_meters(ORIGIN, near.coordinate)
        matches = filter_within_radius([near], ORIGIN, exact)
        assert [m.id for m in matches] == ["near"]

    def test_distance_annotated(self, scenario_records):
        matches = {m.id: m for m in filter_within_radius(scenario_records, ORIGIN, 2000)}
        assert matches["origin"].distance_meters == pytest.approx(0.0, abs=1e-6)
        assert 1400 < matches["near"].distance_meters < 1500

    def test_carries_record_fields(self, scenario_records):
        match = filter_within_radius(scenario_records, ORIGIN, 10)[0]
        assert match.name == "Origin Wood"
        assert match.coordinate == ORIGIN


class TestSortByDistance:
    def test_ties_broken_by_id(self):
        a = FeatureMatch(id="b", coordinate=ORIGIN, distance_meters=10.0)
        b = FeatureMatch(id="a", coordinate=ORIGIN, distance_meters=10.0)
        c = FeatureMatch(id="c", coordinate=ORIGIN, distance_meters=5.0)
        assert [m.id for m in sort_by_distance([a, b, c])] == ["c", "a", "b"]


class TestCellSize:
    def test_adaptive_formula(self):
        expected = 2 * (5000 / 111000) / (200**0.5)
        assert adaptive_cell_size(5000, 200) == pytest.approx(expected)

    def test_adaptive_floor_at_small_radius(self):
        assert adaptive_cell_size(100, 200) == pytest.approx(0.001)

    def test_tiered_bands(self):
        assert tiered_cell_size(150_000) == 0.1
        assert tiered_cell_size(60_000) == 0.05
        assert tiered_cell_size(50_000) == 0.01
        assert tiered_cell_size(5_000) == 0.01

    def test_grid_cell_size_dispatch(self):
        assert grid_cell_size(60_000, 200, "tiered") == 0.05
        assert grid_cell_size(5000, 200, "adaptive") == adaptive_cell_size(5000, 200)

    def test_unknown_scheme(self):
        with pytest.raises(ValueError, match="Unknown grid scheme"):
            grid_cell_size(5000, 200, "hexagonal")

    def test_grid_cell_key_floors_negative_coordinates(self):
        assert grid_cell_key(Coordinate(-0.5, -0.5), 1.0) == (-1, -1)
        assert grid_cell_key(Coordinate(35.05, 139.05), 0.1) == (350, 1390)


class TestDownsample:
    def test_noop_below_limit(self, scenario_records):
        matches = list(reversed(_matches(scenario_records)))
        result = downsample(matches, limit=10, radius_meters=200_000)
        assert [m.id for m in result] == ["origin", "near", "far"]

    def test_exactly_at_limit_is_noop(self, grid_records):
        matches = _matches(grid_records[:50])
        assert len(downsample(matches, limit=50, radius_meters=5000)) == 50

    def test_500_matches_capped_with_nearest(self, grid_records):
        matches = filter_within_radius(grid_records, ORIGIN, 5000)
        assert len(matches) == 500
        true_nearest = min(matches, key=lambda m: m.distance_meters)

        result = downsample(matches, limit=200, radius_meters=5000)

        assert len(result) <= 200
        assert true_nearest.id in {m.id for m in result}
        assert result[0].id == "g-12-10"

    def test_result_sorted_ascending(self, grid_records):
        result = downsample(_matches(grid_records), limit=200, radius_meters=5000)
        distances = [m.distance_meters for m in result]
        assert distances == sorted(distances)

    def test_one_match_per_cell(self, grid_records):
        cell = 0.01
        result = downsample(_matches(grid_records), limit=200, radius_meters=5000, cell_size_deg=cell)
        keys = [grid_cell_key(m.coordinate, cell) for m in result]
        assert len(keys) == len(set(keys))

    @pytest.mark.parametrize("scheme", ["adaptive", "tiered"])
    @pytest.mark.parametrize("limit", [1, 2, 5, 50, 199])
    def test_cap_and_nearest_hold_for_any_limit(self, scheme, limit):
        matches = _matches(_random_records(800, seed=limit, spread=0.05))
        true_nearest = min(matches, key=lambda m: (m.distance_meters, m.id))

        result = downsample(matches, limit=limit, radius_meters=6000, scheme=scheme)

        assert len(result) <= limit
        assert true_nearest.id in {m.id for m in result}

    @pytest.mark.parametrize("cell", [1e-6, 0.005, 1.0])
    def test_nearest_survives_any_cell_size(self, grid_records, cell):
        """The nearest match is kept whether cells are tiny, medium or huge."""
        origin = Coordinate(35.0031, 139.0047)
        matches = filter_within_radius(grid_records, origin, 5000)
        true_nearest = min(matches, key=lambda m: (m.distance_meters, m.id))

        for limit in (1, 3, 40):
            result = downsample(matches, limit=limit, radius_meters=5000, cell_size_deg=cell)
            assert result[0].id == true_nearest.id
            assert len(result) <= limit

    def test_spreads_results_beyond_dense_cluster(self):
        """A dense nearby cluster must not crowd out sparse outliers."""
        cluster = [
            FeatureRecord(
                id=f"c-{k}",
                coordinate=Coordinate(35.001 + (k % 20) * 0.00001, 139.001 + (k // 20) * 0.00001),
            )
            for k in range(300)
        ]
        outlier_points = [
            (35.03, 139.0),
            (34.97, 139.0),
            (35.0, 139.035),
            (35.0, 138.965),
            (35.025, 139.03),
            (35.025, 138.97),
            (34.975, 139.03),
            (34.975, 138.97),
        ]
        outliers = [
            FeatureRecord(id=f"o-{n}", coordinate=Coordinate(lat, lon))
            for n, (lat, lon) in enumerate(outlier_points)
        ]
        matches = filter_within_radius(cluster + outliers, ORIGIN, 5000)
        assert len(matches) == 308

        result = downsample(matches, limit=50, radius_meters=5000)
        ids = {m.id for m in result}

        assert {o.id for o in outliers} <= ids
        assert len(ids - {o.id for o in outliers}) <= 4

    def test_invalid_limit(self, scenario_records):
        with pytest.raises(ValueError):
            downsample(_matches(scenario_records), limit=0, radius_meters=5000)


class TestRunSearch:
    def test_scenario_three_records(self, scenario_records):
        result = run_search(scenario_records, ORIGIN, 2000, 200)

        assert result.ids() == ["origin", "near"]
        assert result.nearest.id == "origin"
        assert result.nearest.distance_meters == pytest.approx(0.0, abs=1e-6)
        assert result.search_radius_meters == 2000

    def test_nearest_is_first_match(self, grid_records):
        result = run_search(grid_records, Coordinate(35.011, 139.007), 5000, 100)
        assert result.nearest is result.matches[0]

    def test_no_matches(self, scenario_records):
        result = run_search(scenario_records, Coordinate(-35.0, -139.0), 1000, 200)
        assert result.matches == ()
        assert result.nearest is None
        assert result.search_radius_meters == 1000

    def test_idempotent(self, grid_records):
        first = run_search(grid_records, Coordinate(35.003, 138.996), 3000, 40)
        second = run_search(grid_records, Coordinate(35.003, 138.996), 3000, 40)
        assert first == second
        assert first.ids() == second.ids()

    def test_negative_radius(self, scenario_records):
        with pytest.raises(ValueError, match="radius"):
            run_search(scenario_records, ORIGIN, -1, 200)

    def test_zero_limit(self, scenario_records):
        with pytest.raises(ValueError, match="limit"):
            run_search(scenario_records, ORIGIN, 2000, 0)
