"""MCP resource definitions for the Forest Finder server."""

from .queries import _get_dataset_status, _get_forest


def register_resources(mcp):
    """Register all MCP resources with the server."""

    @mcp.resource("forest://forest/{id}")
    def resource_forest(id: str) -> str:
        """Get forest record by ID."""
        forest = _get_forest(id)
        if forest:
            return str(forest)
        return f"Forest {id} not found"

    @mcp.resource("forest://status")
    def resource_status() -> str:
        """Get dataset status."""
        status = _get_dataset_status()
        return "\n".join(f"{key}: {value}" for key, value in status.items())
