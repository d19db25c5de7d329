"""Query functions behind the MCP tools. All of them return plain dicts."""

from __future__ import annotations

from . import state
from .distance import DisplayMode, format_by_mode
from .models import SearchResult


def _match_dict(match, mode: DisplayMode) -> dict:
    data = match.to_dict()
    data["distance_text"] = format_by_mode(match.distance_meters, mode)
    return data


def _result_dict(result: SearchResult, mode: DisplayMode = "distance") -> dict:
    return {
        "forests": [_match_dict(m, mode) for m in result.matches],
        "nearest": _match_dict(result.nearest, mode) if result.nearest else None,
        "search_radius_meters": result.search_radius_meters,
        "result_count": len(result),
    }


def _search_nearby_forests(
    latitude: float,
    longitude: float,
    radius_meters: float | None = None,
    limit: int | None = None,
    resolve_addresses: bool = False,
    display_mode: DisplayMode = "distance",
) -> dict:
    """Search around a point; optionally wait for address enrichment."""
    finder = state.get_finder()
    try:
        result = finder.search(latitude, longitude, radius_meters, limit)
    except ValueError as e:
        return {"error": str(e), "forests": [], "nearest": None}

    if resolve_addresses:
        result = finder.enrich(result)

    response = _result_dict(result, display_mode)
    response["dataset_loaded"] = finder.is_loaded()
    if not finder.is_loaded():
        response["note"] = "Forest dataset is not loaded; no results available."
    return response


def _update_position(
    session_id: str,
    latitude: float,
    longitude: float,
    display_mode: DisplayMode = "distance",
) -> dict:
    """Feed a position into a session; re-search only after enough movement."""
    session = state.get_session(session_id)
    before = session.search_count
    try:
        result = session.update_position(latitude, longitude)
    except ValueError as e:
        return {"error": str(e), "session_id": session_id, "searched": False}

    return _session_response(session_id, session, result, session.search_count > before, display_mode)


def _refresh_search(session_id: str, display_mode: DisplayMode = "distance") -> dict:
    """Force a session to search again at its last known position."""
    session = state.get_session(session_id)
    before = session.search_count
    result = session.refresh()
    if result is None:
        return {
            "error": "No position received yet for this session",
            "session_id": session_id,
            "searched": False,
        }
    return _session_response(session_id, session, result, session.search_count > before, display_mode)


def _get_session_result(session_id: str, display_mode: DisplayMode = "distance") -> dict:
    """Latest result of a session, including addresses resolved since."""
    session = state.get_session(session_id)
    return _session_response(session_id, session, session.last_result, False, display_mode)


def _session_response(session_id, session, result, searched: bool, display_mode: DisplayMode) -> dict:
    last = session.last_search_position
    return {
        "session_id": session_id,
        "searched": searched,
        "search_count": session.search_count,
        "last_search_position": last.to_dict() if last else None,
        "addresses_pending": not session.wait_for_addresses(timeout=0),
        "result": _result_dict(result, display_mode) if result is not None else None,
    }


def _get_dataset_status() -> dict:
    finder = state.get_finder()
    resolver = finder.resolver
    return {
        "loaded": finder.is_loaded(),
        "count": finder.count(),
        "data_file": str(finder.store.path) if finder.store.path else None,
        "grid_scheme": finder.grid_scheme,
        "default_radius_meters": finder.radius_meters,
        "default_limit": finder.limit,
        "address_lookup_enabled": resolver is not None,
        "address_cache_size": resolver.cache_size if resolver is not None else 0,
        "active_sessions": len(state.sessions),
    }


def _get_forest(forest_id: str) -> dict | None:
    record = state.get_finder().get(forest_id)
    return record.to_dict() if record else None


def _resolve_address(latitude: float, longitude: float) -> dict:
    finder = state.get_finder()
    try:
        address = finder.resolve_address(latitude, longitude)
    except ValueError as e:
        return {"error": str(e)}
    if address is None:
        return {"error": "Address lookup not enabled. Set ADDRESS_LOOKUP_ENABLED=true"}
    return {
        "latitude": latitude,
        "longitude": longitude,
        "address": address or None,
    }


def _format_distance(meters: float, display_mode: DisplayMode = "distance") -> dict:
    return {"meters": meters, "text": format_by_mode(meters, display_mode)}
