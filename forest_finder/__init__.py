"""Forest Finder Server - FastMCP server for finding the nearest forest.

Searches an in-memory dataset of geotagged forest areas (~125,000 records)
around a position, returns a bounded, geographically spread result plus the
single nearest forest, and fills in addresses via the GSI reverse geocoder.

Usage:
    forest-finder --data-file /path/to/forests.json
    FOREST_DATA_FILE=/path/to/forests.json python -m forest_finder
"""

from fastmcp import FastMCP

from . import state
from .exceptions import DataUnavailable, ForestFinderError, LookupFailed
from .mcp_resources import register_resources
from .mcp_tools import register_tools
from .models import Coordinate, FeatureMatch, FeatureRecord, SearchResult
from .service import ForestFinder
from .telemetry import initialize_tracing

# Initialize tracing FIRST (before creating server)
# This is a no-op if TRACING_ENABLED is not set to 'true'
initialize_tracing()

# Initialize FastMCP server
mcp = FastMCP("Forest Finder")

# Register tools and resources
register_tools(mcp)
register_resources(mcp)

_initialized = False


def initialize():
    """Initialize the server: configure from env vars and load the dataset.

    A dataset that fails to load is logged and searches return empty
    results. Safe to call multiple times.
    """
    global _initialized
    if _initialized:
        return
    state.configure()
    state.get_finder().try_load()
    _initialized = True


__all__ = [
    "mcp",
    "initialize",
    "ForestFinder",
    "Coordinate",
    "FeatureRecord",
    "FeatureMatch",
    "SearchResult",
    "ForestFinderError",
    "DataUnavailable",
    "LookupFailed",
]
