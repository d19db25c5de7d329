"""ForestFinder: the search service object owning the dataset and address cache."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .config import Settings
from .constants import DEFAULT_LIMIT, DEFAULT_MIN_DISTANCE_CHANGE_METERS, DEFAULT_RADIUS_METERS
from .exceptions import DataUnavailable
from .geocode import AddressResolver, GsiReverseGeocoder
from .models import Coordinate, FeatureRecord, SearchResult
from .municipalities import MunicipalityTable
from .search import GridScheme, run_search
from .session import SearchSession
from .store import DatasetStore
from .telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()


class ForestFinder:
    """Nearest-forest search over an in-memory dataset.

    Owns its DatasetStore and (optionally) an AddressResolver, so separate
    instances never share state.
    """

    def __init__(
        self,
        store: DatasetStore,
        resolver: AddressResolver | None = None,
        radius_meters: float = DEFAULT_RADIUS_METERS,
        limit: int = DEFAULT_LIMIT,
        grid_scheme: GridScheme = "adaptive",
        min_distance_change_meters: float = DEFAULT_MIN_DISTANCE_CHANGE_METERS,
    ):
        self.store = store
        self.resolver = resolver
        self.radius_meters = radius_meters
        self.limit = limit
        self.grid_scheme = grid_scheme
        self.min_distance_change_meters = min_distance_change_meters

    @classmethod
    def from_records(cls, records: Iterable, **kwargs) -> ForestFinder:
        """Build a finder around injected records (already loaded)."""
        return cls(DatasetStore.from_records(records), **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> ForestFinder:
        """Wire the dataset, GSI geocoder and municipality table from settings."""
        resolver = None
        if settings.address_lookup_enabled:
            municipalities = (
                MunicipalityTable.load(settings.municipality_file)
                if settings.municipality_file
                else MunicipalityTable()
            )
            geocoder = GsiReverseGeocoder(
                url=settings.geocoder_url, timeout=settings.geocoder_timeout
            )
            resolver = AddressResolver(
                geocoder, municipalities, batch_size=settings.address_batch_size
            )

        return cls(
            DatasetStore(settings.data_file),
            resolver=resolver,
            radius_meters=settings.radius_meters,
            limit=settings.limit,
            grid_scheme=settings.grid_scheme,
            min_distance_change_meters=settings.min_distance_change_meters,
        )

    # ── Dataset ───────────────────────────────────────────────────

    def load(self) -> tuple[FeatureRecord, ...]:
        """Load the dataset (once). Raises DataUnavailable on failure."""
        return self.store.load()

    def try_load(self) -> bool:
        """Load the dataset, logging instead of raising when it is unavailable."""
        try:
            self.store.load()
        except DataUnavailable as e:
            logger.warning(f"Forest dataset unavailable; searches will return no results: {e}")
            return False
        return True

    def is_loaded(self) -> bool:
        return self.store.is_loaded()

    def count(self) -> int:
        return self.store.count()

    def get(self, forest_id: str) -> FeatureRecord | None:
        return self.store.get(forest_id)

    # ── Search ────────────────────────────────────────────────────

    def search(
        self,
        latitude: float,
        longitude: float,
        radius_meters: float | None = None,
        limit: int | None = None,
    ) -> SearchResult:
        """Find forests within `radius_meters`, capped at `limit` spread results.

        Returns an empty result (radius echoed, no nearest) while the dataset
        is not loaded. Addresses already in the cache are filled in; nothing
        here waits on the network.
        """
        radius = self.radius_meters if radius_meters is None else radius_meters
        cap = self.limit if limit is None else limit

        if not self.store.is_loaded():
            return SearchResult.empty(radius)

        origin = Coordinate(latitude, longitude)
        with tracer.start_as_current_span("search.run") as span:
            span.set_attribute("search.radius_meters", radius)
            span.set_attribute("search.limit", cap)
            result = run_search(self.store.records, origin, radius, cap, scheme=self.grid_scheme)
            span.set_attribute("search.result_count", len(result))

        if self.resolver is not None:
            result = self.resolver.apply_cached(result)
        return result

    def enrich(self, result: SearchResult) -> SearchResult:
        """Resolve missing addresses for `result` (blocking)."""
        if self.resolver is None:
            return result
        return self.resolver.enrich(result)

    def resolve_address(self, latitude: float, longitude: float) -> str | None:
        """Reverse geocode one point; None when address lookup is disabled."""
        if self.resolver is None:
            return None
        point = Coordinate(latitude, longitude)
        return self.resolver.resolve(point.latitude, point.longitude)

    def session(
        self,
        radius_meters: float | None = None,
        limit: int | None = None,
        min_distance_change_meters: float | None = None,
        resolve_addresses: bool = True,
    ) -> SearchSession:
        """Create an independent movement-gated search session."""
        return SearchSession(
            self,
            radius_meters=self.radius_meters if radius_meters is None else radius_meters,
            limit=self.limit if limit is None else limit,
            min_distance_change_meters=(
                self.min_distance_change_meters
                if min_distance_change_meters is None
                else min_distance_change_meters
            ),
            resolve_addresses=resolve_addresses,
        )
