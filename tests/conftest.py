"""Shared fixtures for Forest Finder tests."""

import os
import threading
import time
from pathlib import Path

import pytest

# Set env vars BEFORE importing any forest_finder modules
# Explicit test values so .env doesn't override them (load_dotenv won't override existing)
_FIXTURES = Path(__file__).parent / "fixtures"
os.environ["FOREST_DATA_FILE"] = str(_FIXTURES / "forests.json")
os.environ["FOREST_MUNICIPALITY_FILE"] = str(_FIXTURES / "municipality-map.json")
os.environ["ADDRESS_LOOKUP_ENABLED"] = "false"  # never hit the network from tests
os.environ["TRACING_ENABLED"] = "false"

# Now import and initialize the server (safe because env vars are set)
from forest_finder import initialize  # noqa: E402

initialize()

from forest_finder.exceptions import LookupFailed  # noqa: E402
from forest_finder.geocode import AddressResolver, cache_key  # noqa: E402
from forest_finder.models import Coordinate, FeatureRecord  # noqa: E402
from forest_finder.municipalities import MunicipalityTable  # noqa: E402


class FakeGeocoder:
    """Stand-in for the GSI reverse geocoder that records every call.

    Returns {"muniCd": "13113", "lv01Nm": "地点<lat>"} unless a response or
    failure is registered for the rounded coordinate.
    """

    def __init__(self, delay: float = 0.0, gate: threading.Event | None = None):
        self.delay = delay
        self.gate = gate
        self.calls: list[tuple[float, float]] = []
        self.events: list[tuple[str, float]] = []
        self.responses: dict[str, dict] = {}
        self.failures: set[str] = set()
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def respond(self, latitude: float, longitude: float, muni_code: str, locality: str) -> None:
        self.responses[cache_key(latitude, longitude)] = {"muniCd": muni_code, "lv01Nm": locality}

    def fail(self, latitude: float, longitude: float) -> None:
        self.failures.add(cache_key(latitude, longitude))

    def lookup(self, latitude: float, longitude: float) -> dict:
        with self._lock:
            self.calls.append((latitude, longitude))
            self.events.append(("start", latitude))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5)
            if self.delay:
                time.sleep(self.delay)
            key = cache_key(latitude, longitude)
            if key in self.failures:
                raise LookupFailed(latitude, longitude, "simulated failure")
            return self.responses.get(key, {"muniCd": "13113", "lv01Nm": f"地点{latitude:.4f}"})
        finally:
            with self._lock:
                self.in_flight -= 1
                self.events.append(("end", latitude))


@pytest.fixture
def fixtures_dir():
    return _FIXTURES


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def municipalities():
    return MunicipalityTable.load(_FIXTURES / "municipality-map.json")


@pytest.fixture
def resolver(fake_geocoder, municipalities):
    return AddressResolver(fake_geocoder, municipalities)


@pytest.fixture
def scenario_records():
    """Three forests: one at the origin, one ~1.4 km away, one ~140 km away."""
    return [
        FeatureRecord(id="origin", coordinate=Coordinate(35.00, 139.00), name="Origin Wood"),
        FeatureRecord(id="near", coordinate=Coordinate(35.01, 139.01)),
        FeatureRecord(id="far", coordinate=Coordinate(36.00, 140.00), name="Far Forest"),
    ]


@pytest.fixture
def grid_records():
    """500 forests on a 25 x 20 grid (0.002 deg spacing) centred on (35, 139).

    Every record lies within 5 km of the centre; "g-12-10" sits exactly on it.
    """
    records = []
    for i in range(25):
        for j in range(20):
            records.append(
                FeatureRecord(
                    id=f"g-{i}-{j}",
                    coordinate=Coordinate(35.0 + (i - 12) * 0.002, 139.0 + (j - 10) * 0.002),
                )
            )
    return records


@pytest.fixture
def geocoder_factory():
    """Build FakeGeocoders with a delay or gate for concurrency tests."""
    return FakeGeocoder
