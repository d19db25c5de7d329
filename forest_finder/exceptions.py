"""Custom exception hierarchy for forest_finder."""


class ForestFinderError(Exception):
    """Base exception for all forest_finder errors."""


class DataUnavailable(ForestFinderError):
    """The forest dataset (or a lookup table) is missing or malformed."""

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Data unavailable at {path}: {detail}")


class LookupFailed(ForestFinderError):
    """Reverse geocoding failed for a single coordinate."""

    def __init__(self, latitude: float, longitude: float, detail: str):
        self.latitude = latitude
        self.longitude = longitude
        self.detail = detail
        super().__init__(f"Address lookup failed for ({latitude}, {longitude}): {detail}")
