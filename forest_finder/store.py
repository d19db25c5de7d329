"""In-memory forest dataset, loaded once and cached for the process lifetime."""

from __future__ import annotations

import csv
import json
import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path

from .exceptions import DataUnavailable
from .models import Coordinate, FeatureRecord
from .telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()


def _optional_text(value) -> str | None:
    """Empty strings in the dataset mean "absent"."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_record(raw) -> FeatureRecord | None:
    """Convert one raw dataset entry to a FeatureRecord.

    Returns None for malformed entries (no id, missing or unparseable
    coordinate, coordinate out of range).
    """
    if isinstance(raw, FeatureRecord):
        return raw
    if not isinstance(raw, Mapping):
        return None

    record_id = _optional_text(raw.get("id"))
    if record_id is None:
        return None

    try:
        coordinate = Coordinate(float(raw["latitude"]), float(raw["longitude"]))
    except (KeyError, TypeError, ValueError):
        return None

    return FeatureRecord(
        id=record_id,
        coordinate=coordinate,
        name=_optional_text(raw.get("name")),
        address=_optional_text(raw.get("address")),
    )


def _build_records(raw_records: Iterable) -> tuple[FeatureRecord, ...]:
    records: list[FeatureRecord] = []
    seen: set[str] = set()
    skipped = 0
    for index, raw in enumerate(raw_records):
        record = parse_record(raw)
        if record is None:
            skipped += 1
            logger.debug(f"Skipping malformed forest record at index {index}: {raw!r}")
            continue
        if record.id in seen:
            skipped += 1
            logger.debug(f"Skipping duplicate forest id '{record.id}' at index {index}")
            continue
        seen.add(record.id)
        records.append(record)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed or duplicate forest records")
    return tuple(records)


def _read_json(path: Path) -> list:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DataUnavailable(str(path), f"invalid JSON ({e})") from e
    if not isinstance(data, list):
        raise DataUnavailable(str(path), "expected a JSON array of forest records")
    return data


def _read_csv(path: Path) -> list[dict]:
    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or "id" not in reader.fieldnames:
            raise DataUnavailable(str(path), "CSV header must include an 'id' column")
        return list(reader)


class DatasetStore:
    """Immutable collection of forest records with a one-time, coalesced load.

    Concurrent calls to load() before the first load finishes wait on the
    same lock and receive the cached records; only one read happens.
    """

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path).expanduser() if path is not None else None
        self._records: tuple[FeatureRecord, ...] | None = None
        self._by_id: dict[str, FeatureRecord] = {}
        self._lock = threading.Lock()
        self.load_count = 0

    @classmethod
    def from_records(cls, records: Iterable) -> DatasetStore:
        """Create an already-loaded store from records or plain dicts."""
        store = cls()
        store._set_records(_build_records(records))
        return store

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def records(self) -> tuple[FeatureRecord, ...]:
        return self._records or ()

    def is_loaded(self) -> bool:
        return self._records is not None

    def count(self) -> int:
        return len(self._records) if self._records is not None else 0

    def get(self, record_id: str) -> FeatureRecord | None:
        return self._by_id.get(record_id)

    def load(self) -> tuple[FeatureRecord, ...]:
        """Load the dataset on first call; return the cached records afterwards.

        Raises:
            DataUnavailable: If the backing file is missing or malformed.
                The store stays unloaded.
        """
        if self._records is not None:
            return self._records
        with self._lock:
            if self._records is not None:
                return self._records
            self._set_records(self._read())
            return self._records

    def reload(self) -> tuple[FeatureRecord, ...]:
        """Drop the cached records and read the backing file again."""
        with self._lock:
            self._records = None
            self._by_id = {}
            self._set_records(self._read())
            return self._records

    def _set_records(self, records: tuple[FeatureRecord, ...]) -> None:
        self._by_id = {r.id: r for r in records}
        self._records = records

    def _read(self) -> tuple[FeatureRecord, ...]:
        if self._path is None:
            raise DataUnavailable("<none>", "no dataset path configured")

        with tracer.start_as_current_span("dataset.load") as span:
            span.set_attribute("dataset.path", str(self._path))
            if not self._path.is_file():
                raise DataUnavailable(str(self._path), "file not found")

            try:
                if self._path.suffix.lower() == ".csv":
                    raw_records = _read_csv(self._path)
                else:
                    raw_records = _read_json(self._path)
            except (OSError, UnicodeDecodeError, csv.Error) as e:
                raise DataUnavailable(str(self._path), str(e)) from e

            records = _build_records(raw_records)
            self.load_count += 1
            span.set_attribute("dataset.count", len(records))

        logger.info(f"Loaded {len(records)} forest records from {self._path}")
        return records
