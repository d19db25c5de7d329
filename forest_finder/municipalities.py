"""Municipality code table: 5-digit muniCd -> prefecture + municipality name.

The table is generated from the code4fukui/localgovjp dataset (CC0) and
saved as a flat JSON object. It is loaded once and never modified.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

import requests

from .constants import LOCALGOVJP_URL, USER_AGENT
from .exceptions import DataUnavailable

logger = logging.getLogger(__name__)


class MunicipalityTable:
    """Immutable lookup of municipality display names by code."""

    def __init__(self, mapping: Mapping[str, str] | None = None):
        self._names = MappingProxyType(dict(mapping or {}))

    @classmethod
    def load(cls, path: str | Path) -> MunicipalityTable:
        """Load a table from a JSON file.

        A missing file yields an empty table, so addresses fall back to the
        locality name only.
        """
        path = Path(path).expanduser()
        if not path.is_file():
            logger.warning(f"Municipality table not found at {path}; addresses will lack city names")
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DataUnavailable(str(path), f"unreadable municipality table ({e})") from e

        if not isinstance(data, dict):
            raise DataUnavailable(str(path), "expected a JSON object of code -> name")

        table = cls({str(code): str(name) for code, name in data.items()})
        logger.info(f"Loaded {len(table)} municipality names from {path}")
        return table

    def name_for(self, code: str | None) -> str:
        """Return the display name for `code`, or "" when unknown."""
        if not code:
            return ""
        return self._names.get(code, "")

    def as_dict(self) -> dict[str, str]:
        return dict(self._names)

    def save(self, path: str | Path) -> Path:
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.as_dict(), f, ensure_ascii=False)
        return path

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, code: object) -> bool:
        return code in self._names


def build_municipality_map(items: Iterable[Mapping]) -> MunicipalityTable:
    """Build a table from localgovjp entries.

    The first five digits of ``lgcode`` are the muniCd returned by the GSI
    reverse geocoder. Names are prefecture + city with whitespace removed.
    """
    names: dict[str, str] = {}
    for item in items:
        lgcode = str(item.get("lgcode") or "")
        if len(lgcode) < 5:
            continue
        pref = item.get("pref") or ""
        city = "".join((item.get("city") or "").split())
        full_name = pref + city
        if full_name:
            names[lgcode[:5]] = full_name
    return MunicipalityTable(names)


def fetch_municipality_map(url: str = LOCALGOVJP_URL, timeout: float = 30.0) -> MunicipalityTable:
    """Download localgovjp and build the municipality table from it."""
    response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    logger.info(f"Fetched {len(data)} local government entries from {url}")
    return build_municipality_map(data)
