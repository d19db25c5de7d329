"""Best-effort address enrichment via the GSI reverse geocoder.

Addresses are cached per coordinate rounded to 4 decimals (~11 m). A failed
lookup caches an empty string so the same coordinate is not retried for the
lifetime of the resolver. Lookups run in fixed-width batches: each batch is
submitted to a thread pool and awaited as a unit before the next batch
starts, which caps the number of requests in flight against the service.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

import requests

from .constants import (
    ADDRESS_BATCH_SIZE,
    ADDRESS_CACHE_PRECISION,
    GSI_REVERSE_GEOCODER_URL,
    GSI_TIMEOUT_SECONDS,
    USER_AGENT,
)
from .exceptions import LookupFailed
from .models import Coordinate, SearchResult
from .municipalities import MunicipalityTable
from .telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()

# GSI uses a full-width dash when a point has no sub-municipal locality
_NO_LOCALITY = {"－", "-"}


class ReverseGeocoder(Protocol):
    def lookup(self, latitude: float, longitude: float) -> dict[str, str]:
        """Return {"muniCd": ..., "lv01Nm": ...}; raise LookupFailed on failure."""
        ...


class GsiReverseGeocoder:
    """Client for the GSI (Geospatial Information Authority of Japan) API."""

    def __init__(
        self,
        url: str = GSI_REVERSE_GEOCODER_URL,
        timeout: float = GSI_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    def lookup(self, latitude: float, longitude: float) -> dict[str, str]:
        try:
            response = self._session.get(
                self.url,
                params={"lat": latitude, "lon": longitude},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise LookupFailed(latitude, longitude, str(e)) from e
        except ValueError as e:
            raise LookupFailed(latitude, longitude, f"invalid JSON response ({e})") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, dict):
            return {"muniCd": "", "lv01Nm": ""}

        locality = str(results.get("lv01Nm") or "")
        return {
            "muniCd": str(results.get("muniCd") or ""),
            "lv01Nm": "" if locality in _NO_LOCALITY else locality,
        }

    def close(self) -> None:
        self._session.close()


def cache_key(latitude: float, longitude: float) -> str:
    """Cache key for a coordinate, rounded to ~11 m."""
    p = ADDRESS_CACHE_PRECISION
    return f"{latitude:.{p}f},{longitude:.{p}f}"


class AddressResolver:
    """Cached, batched reverse geocoding of forest coordinates."""

    def __init__(
        self,
        geocoder: ReverseGeocoder,
        municipalities: MunicipalityTable | None = None,
        batch_size: int = ADDRESS_BATCH_SIZE,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self._geocoder = geocoder
        self._municipalities = municipalities or MunicipalityTable()
        self.batch_size = batch_size
        # Shared across batches; single-key assignment is atomic and every
        # writer stores the same value for a given key.
        self._cache: dict[str, str] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def cached(self, latitude: float, longitude: float) -> str | None:
        """Return the cached address ("" = looked up, nothing found) or None."""
        return self._cache.get(cache_key(latitude, longitude))

    def resolve(self, latitude: float, longitude: float) -> str:
        """Resolve one coordinate to "prefecture+municipality+locality"."""
        key = cache_key(latitude, longitude)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        return self._lookup(key, latitude, longitude)

    def resolve_many(self, coordinates: Mapping[str, Coordinate]) -> dict[str, str]:
        """Resolve addresses for many ids at once.

        Args:
            coordinates: Mapping of forest id -> coordinate.

        Returns:
            Mapping of forest id -> address (possibly "").
        """
        results: dict[str, str] = {}
        pending: dict[str, Coordinate] = {}
        ids_by_key: dict[str, list[str]] = {}

        for forest_id, coordinate in coordinates.items():
            key = cache_key(coordinate.latitude, coordinate.longitude)
            cached = self._cache.get(key)
            if cached is not None:
                results[forest_id] = cached
                continue
            pending.setdefault(key, coordinate)
            ids_by_key.setdefault(key, []).append(forest_id)

        if not pending:
            return results

        keys = list(pending)
        with tracer.start_as_current_span("address.resolve") as span:
            span.set_attribute("address.pending", len(keys))
            span.set_attribute("address.batch_size", self.batch_size)
            with ThreadPoolExecutor(
                max_workers=self.batch_size, thread_name_prefix="address-lookup"
            ) as executor:
                for start in range(0, len(keys), self.batch_size):
                    batch = keys[start : start + self.batch_size]
                    addresses = list(
                        executor.map(
                            lambda k: self._lookup(k, pending[k].latitude, pending[k].longitude),
                            batch,
                        )
                    )
                    for key, address in zip(batch, addresses):
                        for forest_id in ids_by_key[key]:
                            results[forest_id] = address

        resolved = sum(1 for k in keys if self._cache.get(k))
        logger.info(f"Resolved {resolved}/{len(keys)} forest addresses")
        return results

    def pending(self, result: SearchResult) -> dict[str, Coordinate]:
        """Coordinates of matches with no address and no cache entry."""
        return {
            m.id: m.coordinate
            for m in result.missing_addresses()
            if self.cached(m.coordinate.latitude, m.coordinate.longitude) is None
        }

    def apply_cached(self, result: SearchResult) -> SearchResult:
        """Fill addresses that are already cached; never calls the geocoder."""
        addresses = {}
        for match in result.missing_addresses():
            cached = self.cached(match.coordinate.latitude, match.coordinate.longitude)
            if cached:
                addresses[match.id] = cached
        return result.with_addresses(addresses)

    def enrich(self, result: SearchResult) -> SearchResult:
        """Resolve every missing address in `result` and return the updated copy."""
        missing = {m.id: m.coordinate for m in result.missing_addresses()}
        if not missing:
            return result
        return result.with_addresses(self.resolve_many(missing))

    def _lookup(self, key: str, latitude: float, longitude: float) -> str:
        try:
            data = self._geocoder.lookup(latitude, longitude)
        except LookupFailed as e:
            logger.debug(f"Address lookup failed, caching empty result: {e}")
            address = ""
        else:
            muni_code = data.get("muniCd") or ""
            locality = data.get("lv01Nm") or ""
            address = self._municipalities.name_for(muni_code) + locality
        self._cache[key] = address
        return address
