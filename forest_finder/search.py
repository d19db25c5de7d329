"""Radius filtering and grid-based downsampling of forest matches.

Search is a plain linear scan over the in-memory dataset (on the order of
10^5 records), so no spatial index is built. When more matches fall inside
the radius than the caller wants, the matches are binned into a lat/lon grid
and the closest match per cell is kept, which spreads the result across the
search area instead of returning one dense cluster.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Literal

from .constants import (
    GRID_TIER_FALLBACK_DEG,
    GRID_TIERS,
    METERS_PER_DEGREE,
    MIN_CELL_SIZE_DEG,
)
from .distance import distance_meters
from .models import Coordinate, FeatureMatch, FeatureRecord, SearchResult

GridScheme = Literal["adaptive", "tiered"]


def filter_within_radius(
    records: Iterable[FeatureRecord],
    origin: Coordinate,
    radius_meters: float,
) -> list[FeatureMatch]:
    """Return every record within radius_meters of origin, in dataset order."""
    matches: list[FeatureMatch] = []
    for record in records:
        dist = distance_meters(origin, record.coordinate)
        if dist <= radius_meters:
            matches.append(FeatureMatch.from_record(record, dist))
    return matches


def _by_distance(match: FeatureMatch) -> tuple[float, str]:
    # id breaks ties so repeated searches order identically
    return (match.distance_meters, match.id)


def sort_by_distance(matches: Iterable[FeatureMatch]) -> list[FeatureMatch]:
    return sorted(matches, key=_by_distance)


def adaptive_cell_size(radius_meters: float, limit: int) -> float:
    """Cell size so that roughly `limit` cells span the search diameter squared."""
    radius_deg = radius_meters / METERS_PER_DEGREE
    return max(MIN_CELL_SIZE_DEG, 2 * radius_deg / math.sqrt(limit))


def tiered_cell_size(radius_meters: float) -> float:
    """Coarser cells for larger radii."""
    for threshold, cell_size in GRID_TIERS:
        if radius_meters > threshold:
            return cell_size
    return GRID_TIER_FALLBACK_DEG


def grid_cell_size(radius_meters: float, limit: int, scheme: GridScheme = "adaptive") -> float:
    if scheme == "tiered":
        return tiered_cell_size(radius_meters)
    if scheme == "adaptive":
        return adaptive_cell_size(radius_meters, limit)
    raise ValueError(f"Unknown grid scheme: {scheme!r}")


def grid_cell_key(coordinate: Coordinate, cell_size_deg: float) -> tuple[int, int]:
    return (
        math.floor(coordinate.latitude / cell_size_deg),
        math.floor(coordinate.longitude / cell_size_deg),
    )


def downsample(
    matches: Sequence[FeatureMatch],
    limit: int,
    radius_meters: float,
    cell_size_deg: float | None = None,
    scheme: GridScheme = "adaptive",
) -> list[FeatureMatch]:
    """Reduce matches to at most `limit` geographically spread entries.

    The true nearest match is always part of the result.

    Args:
        matches: Matches in any order.
        limit: Maximum number of matches to return (>= 1).
        radius_meters: Search radius, used to size the grid cells.
        cell_size_deg: Explicit cell size; overrides the scheme.
        scheme: "adaptive" (derived from radius and limit) or "tiered"
            (fixed bands by radius).

    Returns:
        Matches sorted by ascending distance.
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    ordered = sort_by_distance(matches)
    if len(ordered) <= limit:
        return ordered

    cell_size = cell_size_deg if cell_size_deg else grid_cell_size(radius_meters, limit, scheme)

    # ordered is ascending, so the first match seen in a cell is its closest.
    # The overall nearest claims its cell first and sorts first among the
    # representatives, so truncation to limit >= 1 always keeps it.
    cells: dict[tuple[int, int], FeatureMatch] = {}
    for match in ordered:
        key = grid_cell_key(match.coordinate, cell_size)
        if key not in cells:
            cells[key] = match

    return sort_by_distance(cells.values())[:limit]


def run_search(
    records: Iterable[FeatureRecord],
    origin: Coordinate,
    radius_meters: float,
    limit: int,
    scheme: GridScheme = "adaptive",
    cell_size_deg: float | None = None,
) -> SearchResult:
    """Filter records by radius, downsample if needed, and build the result."""
    if radius_meters < 0:
        raise ValueError(f"radius_meters must not be negative, got {radius_meters}")
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    in_radius = filter_within_radius(records, origin, radius_meters)
    selected = downsample(in_radius, limit, radius_meters, cell_size_deg, scheme)
    return SearchResult.from_matches(selected, radius_meters)
