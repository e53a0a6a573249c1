"""Time parsing and formatting utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Iterable

from zoneinfo import ZoneInfo

from cotraj.errors import InvalidDateError
from cotraj.models import SECONDS_PER_DAY


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create tzinfo from an IANA timezone name.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    if tz_name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"Invalid timezone: {tz_name!r}, e.g. UTC or Europe/Stockholm") from exc


def dt_from_epoch_s(epoch_s: int, tz_name: str = "UTC") -> datetime:
    """Convert epoch seconds to a timezone-aware datetime."""

    return datetime.fromtimestamp(epoch_s, tz=tzinfo_from_name(tz_name))


def parse_date(text: str) -> int:
    """Parse a ``yyyy-MM-dd`` date to the epoch seconds of its UTC midnight.

    Args:
        text: Date string, e.g. "2024-03-01".

    Returns:
        Epoch seconds at 00:00:00 UTC of that day.

    Raises:
        InvalidDateError: If the string cannot be parsed.
    """

    try:
        d = datetime.strptime(text.strip(), "%Y-%m-%d")
    except (ValueError, AttributeError) as exc:
        raise InvalidDateError(f"Cannot parse date {text!r}, expected yyyy-MM-dd") from exc
    return int(d.replace(tzinfo=UTC).timestamp())


def day_start(epoch_s: int) -> int:
    """Return the UTC midnight of the day containing ``epoch_s``."""

    return epoch_s - epoch_s % SECONDS_PER_DAY


def format_day(day_start_s: int) -> str:
    """Format a UTC day start as ``yyyy-MM-dd``."""

    return dt_from_epoch_s(day_start_s).strftime("%Y-%m-%d")


@dataclass(frozen=True, slots=True)
class DeltaStats:
    """Sampling interval stats (seconds)."""

    count: int
    min_s: float
    median_s: float
    p95_s: float
    max_s: float


def delta_stats(deltas_s: Iterable[float]) -> DeltaStats | None:
    """Compute basic sampling-interval statistics.

    Args:
        deltas_s: Non-negative gaps between consecutive samples, in seconds.

    Returns:
        DeltaStats or None if there are no gaps.
    """

    deltas = sorted(float(d) for d in deltas_s if d >= 0)
    if not deltas:
        return None
    n = len(deltas)
    median = deltas[n // 2] if n % 2 == 1 else 0.5 * (deltas[n // 2 - 1] + deltas[n // 2])
    p95 = deltas[int(0.95 * (n - 1))]
    return DeltaStats(
        count=n,
        min_s=deltas[0],
        median_s=median,
        p95_s=p95,
        max_s=deltas[-1],
    )
