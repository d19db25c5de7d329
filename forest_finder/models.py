"""Data models for forest records and search results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class FeatureRecord:
    """One geotagged forest area from the dataset."""

    id: str
    coordinate: Coordinate
    name: str | None = None
    address: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "center": self.coordinate.to_dict(),
        }


@dataclass(frozen=True)
class FeatureMatch:
    """A forest record annotated with its distance from the query point."""

    id: str
    coordinate: Coordinate
    distance_meters: float
    name: str | None = None
    address: str | None = None

    @classmethod
    def from_record(cls, record: FeatureRecord, distance_meters: float) -> FeatureMatch:
        return cls(
            id=record.id,
            coordinate=record.coordinate,
            distance_meters=distance_meters,
            name=record.name,
            address=record.address,
        )

    def with_address(self, address: str) -> FeatureMatch:
        return replace(self, address=address)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "center": self.coordinate.to_dict(),
            "distance_meters": round(self.distance_meters, 1),
        }


@dataclass(frozen=True)
class SearchResult:
    """Outcome of one search: matches ordered by distance plus the nearest one.

    If ``matches`` is non-empty, ``nearest`` is ``matches[0]``.
    """

    matches: tuple[FeatureMatch, ...]
    nearest: FeatureMatch | None
    search_radius_meters: float

    @classmethod
    def empty(cls, search_radius_meters: float) -> SearchResult:
        return cls(matches=(), nearest=None, search_radius_meters=search_radius_meters)

    @classmethod
    def from_matches(cls, matches, search_radius_meters: float) -> SearchResult:
        """Build a result from matches already sorted by ascending distance."""
        matches = tuple(matches)
        return cls(
            matches=matches,
            nearest=matches[0] if matches else None,
            search_radius_meters=search_radius_meters,
        )

    def __len__(self) -> int:
        return len(self.matches)

    def ids(self) -> list[str]:
        return [m.id for m in self.matches]

    def missing_addresses(self) -> list[FeatureMatch]:
        """Matches that still have no address."""
        return [m for m in self.matches if not m.address]

    def with_addresses(self, addresses: Mapping[str, str]) -> SearchResult:
        """Return a copy with addresses filled in for matches lacking one.

        Order and the nearest match are preserved; empty addresses are ignored.
        """
        if not addresses:
            return self
        updated = []
        for match in self.matches:
            address = addresses.get(match.id)
            if address and not match.address:
                match = match.with_address(address)
            updated.append(match)
        return SearchResult.from_matches(updated, self.search_radius_meters)

    def to_dict(self) -> dict:
        return {
            "forests": [m.to_dict() for m in self.matches],
            "nearest": self.nearest.to_dict() if self.nearest else None,
            "search_radius_meters": self.search_radius_meters,
            "result_count": len(self.matches),
        }
