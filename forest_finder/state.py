"""Process-wide state for the MCP server: the configured finder and its sessions.

The search engine itself (ForestFinder) holds no global state; this module
only keeps the one instance the server talks to.
"""

from __future__ import annotations

import threading

from .config import Settings, load_settings
from .service import ForestFinder
from .session import SearchSession

# Configuration (set by configure() at startup)
SETTINGS: Settings | None = None

# Server-wide finder and per-client sessions
finder: ForestFinder | None = None
sessions: dict[str, SearchSession] = {}
_sessions_lock = threading.Lock()


def configure() -> Settings:
    """Read settings from the environment and build the server's finder."""
    global SETTINGS, finder
    SETTINGS = load_settings()
    finder = ForestFinder.from_settings(SETTINGS)
    with _sessions_lock:
        sessions.clear()
    return SETTINGS


def use_finder(new_finder: ForestFinder) -> None:
    """Install an already-built finder (embedding and tests)."""
    global finder
    finder = new_finder
    with _sessions_lock:
        sessions.clear()


def get_finder() -> ForestFinder:
    if finder is None:
        configure()
    return finder


def get_session(session_id: str) -> SearchSession:
    """Return the session for `session_id`, creating it on first use."""
    current = get_finder()
    with _sessions_lock:
        session = sessions.get(session_id)
        if session is None:
            session = current.session()
            sessions[session_id] = session
        return session


def drop_session(session_id: str) -> bool:
    with _sessions_lock:
        return sessions.pop(session_id, None) is not None
