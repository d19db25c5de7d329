"""Movement-gated search sessions.

A session follows one user's position stream. The first position triggers a
search; later positions only trigger a new search once the user has moved at
least `min_distance_change_meters` from where the last search ran. Missing
addresses are resolved on a background thread and the updated result is
republished to listeners, unless a newer search has replaced it meanwhile.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Literal

from .distance import distance_meters
from .models import Coordinate, SearchResult

if TYPE_CHECKING:
    from .service import ForestFinder

logger = logging.getLogger(__name__)

SessionState = Literal["idle", "searching"]
ResultListener = Callable[[SearchResult], None]


def needs_search(
    last_search_position: Coordinate | None,
    position: Coordinate,
    min_distance_change_meters: float,
) -> bool:
    """True if `position` is far enough from the last search position."""
    if last_search_position is None:
        return True
    return distance_meters(last_search_position, position) >= min_distance_change_meters


class SearchSession:
    """Search state for one position stream.

    Sessions are independent of each other; one session must not be shared
    by unrelated position streams.
    """

    def __init__(
        self,
        finder: ForestFinder,
        radius_meters: float,
        limit: int,
        min_distance_change_meters: float,
        resolve_addresses: bool = True,
    ):
        self._finder = finder
        self.radius_meters = radius_meters
        self.limit = limit
        self.min_distance_change_meters = min_distance_change_meters
        self.resolve_addresses = resolve_addresses

        self._lock = threading.Lock()
        self._publish_lock = threading.RLock()
        self._state: SessionState = "idle"
        self._last_result: SearchResult | None = None
        self._last_position: Coordinate | None = None
        self._last_search_position: Coordinate | None = None
        self._generation = 0
        self._worker: threading.Thread | None = None
        self._listeners: list[ResultListener] = []
        self.search_count = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_result(self) -> SearchResult | None:
        return self._last_result

    @property
    def last_position(self) -> Coordinate | None:
        return self._last_position

    @property
    def last_search_position(self) -> Coordinate | None:
        return self._last_search_position

    def add_listener(self, listener: ResultListener) -> None:
        """Register a callback for every new or address-enriched result."""
        self._listeners.append(listener)

    def update_position(self, latitude: float, longitude: float) -> SearchResult | None:
        """Feed a new position; search only if the user moved far enough.

        Returns the current result, which is the previous one when the
        movement was below the threshold.
        """
        position = Coordinate(latitude, longitude)
        with self._lock:
            self._last_position = position
            if not needs_search(
                self._last_search_position, position, self.min_distance_change_meters
            ):
                return self._last_result
            result, generation = self._search(position)
        self._publish(result, generation)
        self._start_address_worker(generation, result)
        return result

    def refresh(self) -> SearchResult | None:
        """Force a search at the last known position regardless of movement."""
        with self._lock:
            self._last_search_position = None
            if self._last_position is None:
                return None
            result, generation = self._search(self._last_position)
        self._publish(result, generation)
        self._start_address_worker(generation, result)
        return result

    def wait_for_addresses(self, timeout: float | None = None) -> bool:
        """Block until pending address resolution finishes.

        Returns False if the worker is still running after `timeout`.
        """
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def _search(self, position: Coordinate) -> tuple[SearchResult, int | None]:
        # Caller holds self._lock. Generation is None when no search ran.
        if not self._finder.is_loaded():
            # Leave the search position unset so the first update after the
            # dataset loads searches immediately
            logger.debug("Dataset not loaded; returning empty result")
            self._last_result = SearchResult.empty(self.radius_meters)
            return self._last_result, None

        self._state = "searching"
        try:
            result = self._finder.search(
                position.latitude, position.longitude, self.radius_meters, self.limit
            )
        finally:
            self._state = "idle"

        self.search_count += 1
        self._generation += 1
        self._last_result = result
        self._last_search_position = position
        return result, self._generation

    def _start_address_worker(self, generation: int | None, result: SearchResult) -> None:
        # Called after the plain result is published; the enriched copy
        # reaches listeners second
        resolver = self._finder.resolver
        if generation is None or not self.resolve_addresses or resolver is None:
            return
        if not resolver.pending(result):
            return
        with self._lock:
            if generation != self._generation:
                return
            self._worker = threading.Thread(
                target=self._address_worker,
                args=(generation, result),
                name=f"address-resolver-{generation}",
                daemon=True,
            )
            self._worker.start()

    def _address_worker(self, generation: int, result: SearchResult) -> None:
        enriched = self._finder.enrich(result)
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding addresses for superseded search #{generation}")
                return
            self._last_result = enriched
        self._publish(enriched, generation)

    def _publish(self, result: SearchResult, generation: int | None) -> None:
        # Listeners see results in generation order; a result overtaken by a
        # newer search before it could be published is dropped.
        with self._publish_lock:
            if generation is not None and generation != self._generation:
                logger.debug(f"Skipping publish of superseded search #{generation}")
                return
            for listener in list(self._listeners):
                listener(result)
