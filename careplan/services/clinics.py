"""Static clinic directory behind the clinic-locator map."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from careplan.config import settings
from careplan.exceptions import ClinicDataError

logger = logging.getLogger("careplan.clinics")

_CORE_KEYS = ("OBJECTID", "NAME", "LAT", "LON")


@dataclass(frozen=True)
class Clinic:
    object_id: int
    name: str
    lat: float
    lon: float
    attributes: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Clinic:
        missing = [k for k in _CORE_KEYS if k not in record]
        if missing:
            raise ClinicDataError(f"Clinic record missing {', '.join(missing)}: {record!r}")
        try:
            return cls(
                object_id=int(record["OBJECTID"]),
                name=str(record["NAME"]),
                lat=float(record["LAT"]),
                lon=float(record["LON"]),
                attributes={k: v for k, v in record.items() if k not in _CORE_KEYS},
            )
        except (TypeError, ValueError) as exc:
            raise ClinicDataError(f"Bad clinic record {record!r}: {exc}") from exc

    def matches(self, keyword: str | None) -> bool:
        """Case-insensitive substring match over the name and text attributes."""
        if not keyword:
            return True
        needle = keyword.strip().lower()
        haystack = [self.name] + [
            v for v in self.attributes.values() if isinstance(v, str)
        ]
        return any(needle in text.lower() for text in haystack)

    def to_dict(self) -> dict[str, Any]:
        return {
            "object_id": self.object_id,
            "name": self.name,
            "lat": self.lat,
            "lon": self.lon,
            "attributes": dict(self.attributes),
        }


def load_clinics(path: str | Path) -> list[Clinic]:
    try:
        with open(path, encoding="utf-8") as fh:
            records = json.load(fh)
    except OSError as exc:
        raise ClinicDataError(f"Cannot read clinic data {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ClinicDataError(f"Invalid JSON in clinic data {path}: {exc}") from exc

    if not isinstance(records, list):
        raise ClinicDataError(f"Clinic data {path} must be a JSON list")
    for record in records:
        if not isinstance(record, dict):
            raise ClinicDataError(f"Clinic entry must be an object, got {record!r}")
    return [Clinic.from_record(r) for r in records]


class ClinicDirectory:
    """Load-once list of clinics, kept in file order."""

    def __init__(self, path: str | Path):
        self._path = path
        # None until loaded.
        self._cache: tuple[Clinic, ...] | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._cache is not None

    def all(self) -> tuple[Clinic, ...]:
        cached = self._cache
        if cached is not None:
            return cached
        with self._lock:
            cached = self._cache
            if cached is None:
                cached = tuple(load_clinics(self._path))
                self._cache = cached
                logger.info("Loaded %d clinics from %s", len(cached), self._path)
            return cached

    def search(
        self, specialty: str | None = None, limit: int | None = None
    ) -> list[Clinic]:
        found = [c for c in self.all() if c.matches(specialty)]
        if limit is not None:
            found = found[:limit]
        return found

    def reset(self) -> None:
        with self._lock:
            self._cache = None


clinic_directory = ClinicDirectory(settings.clinics_data_path)
