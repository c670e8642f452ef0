"""Age-group reference risk table, parsed from CSV once per process."""

from __future__ import annotations

import logging
import math
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import pandas as pd

from careplan.config import settings
from careplan.exceptions import DataLoadError
from careplan.services.metrics import metrics

logger = logging.getLogger("careplan.reference_data")

# Only these rows take part in the nearest-age-group search.
ELIGIBLE_YEAR = 2019
ELIGIBLE_CATEGORY = "Age groups with 65+"

REQUIRED_COLUMNS = ("Grouping category", "Group", "Percentage", "Year")

_LEADING_INT = re.compile(r"^\s*(\d+)")

# Row errors quoted in a DataLoadError message; the rest are counted.
_MAX_REPORTED_ERRORS = 5


@dataclass(frozen=True)
class ReferenceRow:
    """One published risk percentage for an age bracket.

    ``percentage`` and ``year`` are None when the source value did not parse
    (suppressed cells such as ``*``, ranges such as ``2019-2020``).
    """

    grouping_category: str
    group: str
    percentage: float | None
    year: int | None
    outcome: str = ""

    @property
    def lower_age(self) -> int | None:
        """Leading age bound of ``group`` ("45-64" -> 45, "65+" -> 65)."""
        match = _LEADING_INT.match(self.group)
        if match is None:
            return None
        return int(match.group(1))


def parse_reference_csv(source: str | Path) -> list[ReferenceRow]:
    """Parse the reference CSV with header-based column mapping.

    Rows with too many or too few fields fail the whole parse. A
    non-integer ``Year`` or non-numeric ``Percentage`` only keeps that row
    out of :func:`filter_eligible`.
    """
    try:
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="error",
            encoding="utf-8-sig",
        )
    except (OSError, UnicodeDecodeError) as exc:
        raise DataLoadError(f"Cannot read reference data {source}: {exc}") from exc
    except pd.errors.EmptyDataError as exc:
        raise DataLoadError(f"Reference data {source} is empty") from exc
    except pd.errors.ParserError as exc:
        raise DataLoadError(f"Malformed reference data {source}: {exc}") from exc

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataLoadError(
            f"Reference data {source} is missing columns: {', '.join(missing)}"
        )

    # Short rows are padded with NaN even with keep_default_na=False.
    short_rows = df.index[df.isna().any(axis=1)]
    if len(short_rows):
        errors = [f"line {idx + 2}: too few fields" for idx in short_rows]
        shown = "; ".join(errors[:_MAX_REPORTED_ERRORS])
        extra = len(errors) - _MAX_REPORTED_ERRORS
        if extra > 0:
            shown += f"; and {extra} more"
        raise DataLoadError(f"{len(errors)} row error(s) in {source}: {shown}")

    years = pd.to_numeric(df["Year"].str.strip(), errors="coerce")
    percentages = pd.to_numeric(df["Percentage"].str.strip(), errors="coerce")

    has_outcome = "Outcome" in df.columns
    rows = []
    for idx in df.index:
        row = ReferenceRow(
            grouping_category=df.at[idx, "Grouping category"],
            group=df.at[idx, "Group"],
            percentage=_as_percentage(percentages[idx]),
            year=_as_year(years[idx]),
            outcome=df.at[idx, "Outcome"] if has_outcome else "",
        )
        rows.append(row)

    unparsed = sum(1 for r in rows if r.year is None or r.percentage is None)
    if unparsed:
        logger.warning(
            "%d reference row(s) in %s have a non-integer Year or non-numeric "
            "Percentage and are never eligible",
            unparsed,
            source,
        )
    return rows


def _as_year(value: float) -> int | None:
    if pd.isna(value) or not math.isfinite(value) or not float(value).is_integer():
        return None
    return int(value)


def _as_percentage(value: float) -> float | None:
    if pd.isna(value) or not math.isfinite(value):
        return None
    return float(value)


def filter_eligible(rows: Iterable[ReferenceRow]) -> list[ReferenceRow]:
    """Rows for the fixed year and grouping category, in dataset order.

    Rows whose percentage did not parse are skipped.
    """
    return [
        r
        for r in rows
        if r.year == ELIGIBLE_YEAR
        and r.grouping_category == ELIGIBLE_CATEGORY
        and r.percentage is not None
    ]


class ReferenceTable:
    """Load-once cache of :class:`ReferenceRow` for one CSV source.

    The first caller parses under ``_lock``; callers arriving meanwhile wait
    for that load and then reuse its rows. A failed parse leaves the table
    empty and unloaded, so the next call tries again. A file that parses to
    zero rows still counts as loaded.

    ``_cache`` is the only shared state: None until loaded, then the row
    tuple. Readers take one reference to it, so ``reset()`` never hands a
    concurrent reader a loaded-but-empty table.
    """

    def __init__(self, source: str | Path):
        self._source = source
        self._cache: tuple[ReferenceRow, ...] | None = None
        self._lock = threading.Lock()
        self.load_count = 0

    @property
    def source(self) -> str | Path:
        return self._source

    @property
    def loaded(self) -> bool:
        return self._cache is not None

    @property
    def rows(self) -> tuple[ReferenceRow, ...]:
        return self._cache or ()

    def ensure_loaded(self, timeout: float | None = None) -> tuple[ReferenceRow, ...]:
        """Return the cached rows, parsing the source on first use.

        *timeout* bounds how long a caller waits for an in-flight load.
        """
        cached = self._cache
        if cached is not None:
            return cached

        acquired = self._lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise DataLoadError(
                f"Timed out after {timeout}s waiting for reference data load"
            )
        try:
            cached = self._cache
            if cached is None:
                cached = self._load()
            return cached
        finally:
            self._lock.release()

    def eligible_rows(self, timeout: float | None = None) -> list[ReferenceRow]:
        return filter_eligible(self.ensure_loaded(timeout))

    def reset(self) -> None:
        """Drop the cached rows so the next call re-reads the source."""
        with self._lock:
            self._cache = None

    def _load(self) -> tuple[ReferenceRow, ...]:
        """Parse the source into the cache; caller holds ``_lock``."""
        logger.info("Loading reference data from %s", self._source)
        try:
            rows = tuple(parse_reference_csv(self._source))
        except DataLoadError as exc:
            metrics.inc_reference_load(False)
            logger.error("Reference data load failed: %s", exc.detail)
            raise

        self._cache = rows
        self.load_count += 1
        metrics.inc_reference_load(True)
        logger.info(
            "Loaded %d reference rows (%d eligible)",
            len(rows),
            len(filter_eligible(rows)),
        )
        return rows


reference_table = ReferenceTable(settings.reference_data_path)
