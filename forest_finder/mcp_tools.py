"""MCP tool definitions for the Forest Finder server."""

from typing import Literal

from .queries import (
    _format_distance,
    _get_dataset_status,
    _get_forest,
    _get_session_result,
    _refresh_search,
    _resolve_address,
    _search_nearby_forests,
    _update_position,
)


def register_tools(mcp):
    """Register all MCP tools with the server."""

    # ============== SEARCH TOOLS (1) ==============

    @mcp.tool()
    def search_nearby_forests(
        latitude: float,
        longitude: float,
        radius_meters: float | None = None,
        limit: int | None = None,
        resolve_addresses: bool = False,
        display_mode: Literal["distance", "walking"] = "distance",
    ) -> dict:
        """
        Find forests around a point, nearest first.

        When more forests fall inside the radius than `limit`, the result is
        thinned out on a lat/lon grid so it covers the whole search area.
        The single nearest forest is always included.

        Args:
            latitude: Latitude in decimal degrees (-90 to 90)
            longitude: Longitude in decimal degrees (-180 to 180)
            radius_meters: Search radius (default 5000)
            limit: Maximum number of forests returned (default 200)
            resolve_addresses: Wait for reverse geocoding of missing addresses
            display_mode: "distance" (e.g. "1.2km") or "walking" (e.g. "徒歩15分")

        Returns:
            Dictionary with forests, nearest, search_radius_meters, and result_count
        """
        return _search_nearby_forests(
            latitude, longitude, radius_meters, limit, resolve_addresses, display_mode
        )

    # ============== SESSION TOOLS (3) ==============

    @mcp.tool()
    def update_position(
        session_id: str,
        latitude: float,
        longitude: float,
        display_mode: Literal["distance", "walking"] = "distance",
    ) -> dict:
        """
        Report a new position for a tracking session.

        A new search only runs on the first position or after the user moved
        at least the configured threshold (default 50 m) from the last search
        position; otherwise the previous result is returned unchanged.
        Missing addresses are resolved in the background; call
        get_session_result() later to pick them up.

        Args:
            session_id: Any stable identifier for the position stream
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees
            display_mode: "distance" or "walking"

        Returns:
            Dictionary with searched flag, last_search_position, addresses_pending and result
        """
        return _update_position(session_id, latitude, longitude, display_mode)

    @mcp.tool()
    def refresh_search(
        session_id: str,
        display_mode: Literal["distance", "walking"] = "distance",
    ) -> dict:
        """
        Force a session to search again at its last reported position.

        Args:
            session_id: Session identifier used with update_position()
            display_mode: "distance" or "walking"

        Returns:
            Same shape as update_position()
        """
        return _refresh_search(session_id, display_mode)

    @mcp.tool()
    def get_session_result(
        session_id: str,
        display_mode: Literal["distance", "walking"] = "distance",
    ) -> dict:
        """
        Get the latest result of a session, including addresses resolved since.

        Args:
            session_id: Session identifier used with update_position()
            display_mode: "distance" or "walking"

        Returns:
            Same shape as update_position(); result is None before the first position
        """
        return _get_session_result(session_id, display_mode)

    # ============== LOOKUP TOOLS (4) ==============

    @mcp.tool()
    def get_dataset_status() -> dict:
        """
        Get the state of the forest dataset and address cache.

        Use this to check whether the dataset finished loading before searching.

        Returns:
            Dictionary with loaded flag, record count, defaults and cache size
        """
        return _get_dataset_status()

    @mcp.tool()
    def get_forest(forest_id: str) -> dict | None:
        """
        Get a forest record by ID.

        Args:
            forest_id: Dataset ID of the forest

        Returns:
            Forest record with name, address and center, or None if not found
        """
        return _get_forest(forest_id)

    @mcp.tool()
    def resolve_address(latitude: float, longitude: float) -> dict:
        """
        Reverse geocode a point to a Japanese address (prefecture + city + locality).

        Results are cached per ~11 m; failed lookups are cached as "no address".

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees

        Returns:
            Dictionary with latitude, longitude and address (None if not found)
        """
        return _resolve_address(latitude, longitude)

    @mcp.tool()
    def format_distance(
        meters: float,
        display_mode: Literal["distance", "walking"] = "distance",
    ) -> dict:
        """
        Format a distance for display.

        Args:
            meters: Distance in meters
            display_mode: "distance" ("850m", "1.2km") or "walking" ("徒歩11分", at 80 m/min)

        Returns:
            Dictionary with meters and text
        """
        return _format_distance(meters, display_mode)
