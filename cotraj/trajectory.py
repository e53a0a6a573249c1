"""Operations on a single trajectory: sorting, discretizing, filtering, splitting."""

from __future__ import annotations

from cotraj.mapmatch import MapMatcher, match_trajectory
from cotraj.models import (
    SECONDS_PER_DAY,
    Measurement,
    MeasurementPartition,
    Position,
    Trajectory,
    TrajectoryPartition,
)
from cotraj.partition import (
    check_space_resolution,
    partition_measurement,
    partition_spatial,
    unpartition_measurement,
)
from cotraj.timeutils import day_start, parse_date


def normalize(t: Trajectory) -> Trajectory:
    """Sort measurements by time. Ties keep their original order."""

    return Trajectory(id=t.id, measurements=tuple(sorted(t.measurements, key=lambda m: m.time)))


def normalize_partition(tp: TrajectoryPartition) -> TrajectoryPartition:
    """Sort partitioned measurements by time bucket. Ties keep their original order."""

    return TrajectoryPartition(id=tp.id, partitions=tuple(sorted(tp.partitions, key=lambda mp: mp.time)))


def partition(t: Trajectory, time_resolution: int, space_resolution: float) -> TrajectoryPartition:
    """Discretize every measurement. Length and order are preserved."""

    return TrajectoryPartition(
        id=t.id,
        partitions=tuple(partition_measurement(m, time_resolution, space_resolution) for m in t.measurements),
    )


def partition_distinct(t: Trajectory, time_resolution: int, space_resolution: float) -> TrajectoryPartition:
    """Discretize and keep only the first measurement of each run of equal time buckets.

    The comparison is between neighbours in the input, so a bucket that
    reappears after a different one is kept again.
    """

    mps = partition(t, time_resolution, space_resolution).partitions
    if not mps:
        return TrajectoryPartition(id=t.id, partitions=())
    kept = [mps[0]]
    kept.extend(cur for prev, cur in zip(mps, mps[1:]) if prev.time != cur.time)
    return TrajectoryPartition(id=t.id, partitions=tuple(kept))


def unpartition(tp: TrajectoryPartition, time_resolution: int, space_resolution: float) -> Trajectory:
    """Rebuild a trajectory from bucket start times and cell corners."""

    return Trajectory(
        id=tp.id,
        measurements=tuple(unpartition_measurement(mp, time_resolution, space_resolution) for mp in tp.partitions),
    )


def locate(t: Trajectory, space_resolution: float) -> tuple[MeasurementPartition, ...]:
    """Discretize positions only, keeping the raw measurement times."""

    delta = check_space_resolution(space_resolution)
    return tuple(MeasurementPartition(time=m.time, location=partition_spatial(m.position, delta)) for m in t.measurements)


def filter_date(t: Trajectory, date: str) -> Trajectory:
    """Keep only the measurements on the given UTC date.

    Args:
        t: Trajectory with Unix-time measurements.
        date: Date as ``yyyy-MM-dd``.

    Raises:
        InvalidDateError: If the date cannot be parsed.
    """

    start = parse_date(date)
    end = start + SECONDS_PER_DAY
    return Trajectory(id=t.id, measurements=tuple(m for m in t.measurements if start <= m.time < end))


def filter_box(t: Trajectory, box: tuple[Position, Position]) -> Trajectory:
    """Keep only the measurements inside the box spanned by two corners."""

    return Trajectory(id=t.id, measurements=tuple(m for m in t.measurements if m.position.is_in_box(box)))


def split_by_date(t: Trajectory) -> list[tuple[int, Trajectory]]:
    """Split a trajectory into one trajectory per UTC day.

    Returns:
        ``(day_start, trajectory)`` pairs. Every trajectory keeps the original
        id and the original order of its measurements. The order of the pairs
        carries no meaning.
    """

    days: dict[int, list[Measurement]] = {}
    for m in t.measurements:
        days.setdefault(day_start(m.time), []).append(m)
    return [(day, Trajectory(id=t.id, measurements=tuple(ms))) for day, ms in days.items()]


def map_match(t: Trajectory, matcher: MapMatcher) -> Trajectory:
    """Return the map matched version of a trajectory.

    Measurement times become ``0, 1, 2, ...``. If matching fails for any reason
    the result has the same id and no measurements; use
    ``mapmatch.match_trajectory`` to find out why.
    """

    return match_trajectory(t, matcher).trajectory
