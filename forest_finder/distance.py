"""Great-circle distance and human-readable distance formatting."""

from __future__ import annotations

import math
from typing import Literal

from haversine import Unit, haversine

from .constants import EARTH_RADIUS_METERS, WALKING_METERS_PER_MINUTE
from .models import Coordinate

DisplayMode = Literal["distance", "walking"]


def _as_point(point: Coordinate | tuple[float, float]) -> tuple[float, float]:
    if isinstance(point, Coordinate):
        return point.as_tuple()
    return (float(point[0]), float(point[1]))


def distance_meters(
    a: Coordinate | tuple[float, float],
    b: Coordinate | tuple[float, float],
) -> float:
    """Haversine distance in meters between two (lat, lon) points.

    haversine returns the central angle when asked for radians, which is
    scaled by a 6,371,000 m mean Earth radius.
    """
    return haversine(_as_point(a), _as_point(b), unit=Unit.RADIANS) * EARTH_RADIUS_METERS


def format_distance(meters: float) -> str:
    """Format as meters below 1 km, otherwise kilometers with one decimal."""
    if meters < 1000:
        return f"{math.floor(meters + 0.5)}m"
    return f"{meters / 1000:.1f}km"


def format_walking_time(meters: float) -> str:
    """Format a distance as walking time at 80 m per minute."""
    minutes = math.ceil(meters / WALKING_METERS_PER_MINUTE)
    if minutes < 60:
        return f"徒歩{minutes}分"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"徒歩{hours}時間"
    return f"徒歩{hours}時間{mins}分"


def format_by_mode(meters: float, mode: DisplayMode = "distance") -> str:
    """Return distance or walking-time text depending on the display mode."""
    if mode == "walking":
        return format_walking_time(meters)
    return format_distance(meters)
