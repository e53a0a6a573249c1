"""CSV input utilities for flat measurement files.

Expected columns (header row required, extra columns are ignored):
  - id: integer trajectory id
  - time: Unix epoch seconds
  - latitude/longitude: decimal degrees
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from cotraj.aggregate import group_measurements
from cotraj.geo import validate_coordinates
from cotraj.models import Measurement, Position, Trajectory

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "time", "latitude", "longitude")


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _parse_row(row: dict[str, str]) -> tuple[int, Measurement]:
    lat = _parse_float(row["latitude"])
    lon = _parse_float(row["longitude"])
    validate_coordinates(lat, lon)
    return _parse_int(row["id"]), Measurement(time=_parse_int(row["time"]), position=Position(latitude=lat, longitude=lon))


def _check_header(fieldnames: Sequence[str] | None) -> None:
    missing = [f for f in REQUIRED_FIELDS if f not in (fieldnames or ())]
    if missing:
        raise KeyError(f"CSV is missing required columns {missing}. Actual columns: {list(fieldnames or ())}")


def _iter_rows(reader: csv.DictReader) -> Iterator[tuple[int, Measurement] | None]:
    """Parse every row, yielding ``None`` for rows that cannot be used."""

    if reader.fieldnames is None:
        return
    _check_header(reader.fieldnames)
    for row in reader:
        try:
            yield _parse_row(row)
        except (ValueError, TypeError, AttributeError):
            # broken or empty rows are skipped
            yield None


def iter_records(csv_path: str | Path) -> Iterator[tuple[int, Measurement]]:
    """Yield ``(id, measurement)`` records from a CSV file.

    Rows that cannot be parsed, or whose coordinates are out of range, are skipped.

    Raises:
        KeyError: If a required column is missing.
    """

    p = Path(csv_path)
    with p.open("r", encoding="utf-8", newline="") as f:
        for record in _iter_rows(csv.DictReader(f)):
            if record is not None:
                yield record


def load_records(csv_path: str | Path) -> tuple[list[tuple[int, Measurement]], CsvSummary]:
    """Load all records into memory.

    Returns:
        (records, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[tuple[int, Measurement]] = []

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for record in _iter_rows(reader):
            rows_total += 1
            if record is not None:
                parsed.append(record)
        fieldnames: Sequence[str] = reader.fieldnames or ()

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("Skipped %s CSV rows that could not be parsed", summary.rows_skipped)
    return parsed, summary


def load_population(csv_path: str | Path) -> tuple[list[Trajectory], CsvSummary]:
    """Load a CSV file as a co-trajectory: one time-sorted trajectory per id."""

    records, summary = load_records(csv_path)
    return group_measurements(records), summary


def write_population_csv(population: Iterable[Trajectory], out_path: str | Path) -> None:
    """Write trajectories back out in the flat ``id,time,latitude,longitude`` format."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=list(REQUIRED_FIELDS))
        w.writeheader()
        for t in population:
            for m in t.measurements:
                w.writerow(
                    {
                        "id": t.id,
                        "time": m.time,
                        "latitude": m.position.latitude,
                        "longitude": m.position.longitude,
                    }
                )
