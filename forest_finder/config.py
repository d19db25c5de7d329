"""Configuration from environment variables (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .constants import (
    ADDRESS_BATCH_SIZE,
    DEFAULT_LIMIT,
    DEFAULT_MIN_DISTANCE_CHANGE_METERS,
    DEFAULT_RADIUS_METERS,
    GRID_SCHEMES,
    GSI_REVERSE_GEOCODER_URL,
    GSI_TIMEOUT_SECONDS,
)


@dataclass(frozen=True)
class Settings:
    data_file: Path | None = None
    municipality_file: Path | None = None
    radius_meters: float = DEFAULT_RADIUS_METERS
    limit: int = DEFAULT_LIMIT
    min_distance_change_meters: float = DEFAULT_MIN_DISTANCE_CHANGE_METERS
    grid_scheme: str = "adaptive"
    address_lookup_enabled: bool = True
    address_batch_size: int = ADDRESS_BATCH_SIZE
    geocoder_url: str = GSI_REVERSE_GEOCODER_URL
    geocoder_timeout: float = GSI_TIMEOUT_SECONDS


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if not raw:
        return None
    return Path(raw).expanduser().resolve()


def is_address_lookup_enabled() -> bool:
    """Check if reverse geocoding is enabled via environment variable."""
    return os.getenv("ADDRESS_LOOKUP_ENABLED", "true").lower() == "true"


def resolve_data_path() -> Path:
    """Get the dataset path from the FOREST_DATA_FILE env var.

    Existence is not checked here; a missing file surfaces as
    DataUnavailable when the dataset is loaded.

    Raises:
        FileNotFoundError: If FOREST_DATA_FILE is not set.
    """
    path = _env_path("FOREST_DATA_FILE")
    if path is None:
        raise FileNotFoundError(
            "FOREST_DATA_FILE environment variable not set.\n"
            "Set it to the path of your forest dataset (.json or .csv):\n"
            "  export FOREST_DATA_FILE=/path/to/forests.json\n"
            "Or use the --data-file CLI argument:\n"
            "  forest-finder --data-file /path/to/forests.json"
        )
    return path


def load_settings(require_data_file: bool = True) -> Settings:
    """Build Settings from the environment.

    Loads .env first; load_dotenv() does NOT override existing env vars.
    """
    load_dotenv()

    grid_scheme = os.getenv("FOREST_GRID_SCHEME", "adaptive").lower()
    if grid_scheme not in GRID_SCHEMES:
        raise ValueError(f"FOREST_GRID_SCHEME must be one of {GRID_SCHEMES}, got {grid_scheme!r}")

    return Settings(
        data_file=resolve_data_path() if require_data_file else _env_path("FOREST_DATA_FILE"),
        municipality_file=_env_path("FOREST_MUNICIPALITY_FILE"),
        radius_meters=_env_float("FOREST_SEARCH_RADIUS_M", DEFAULT_RADIUS_METERS),
        limit=_env_int("FOREST_SEARCH_LIMIT", DEFAULT_LIMIT),
        min_distance_change_meters=_env_float(
            "FOREST_MIN_DISTANCE_CHANGE_M", DEFAULT_MIN_DISTANCE_CHANGE_METERS
        ),
        grid_scheme=grid_scheme,
        address_lookup_enabled=is_address_lookup_enabled(),
        address_batch_size=_env_int("ADDRESS_BATCH_SIZE", ADDRESS_BATCH_SIZE),
        geocoder_url=os.getenv("GSI_REVERSE_GEOCODER_URL", GSI_REVERSE_GEOCODER_URL),
        geocoder_timeout=_env_float("GSI_TIMEOUT_SECONDS", GSI_TIMEOUT_SECONDS),
    )
