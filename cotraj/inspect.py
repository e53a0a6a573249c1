"""Inspect a loaded co-trajectory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from cotraj.models import Trajectory
from cotraj.timeutils import DeltaStats, day_start, delta_stats


@dataclass(frozen=True, slots=True)
class PopulationSummary:
    """High-level summary of a population of trajectories."""

    trajectories: int
    measurements: int
    empty_trajectories: int
    min_time: int | None
    max_time: int | None
    days: int
    delta: DeltaStats | None
    min_lat: float | None
    max_lat: float | None
    min_lon: float | None
    max_lon: float | None


def inspect_population(population: Sequence[Trajectory]) -> PopulationSummary:
    """Summarize already-loaded, time-sorted trajectories.

    Sampling intervals are pooled over all trajectories; gaps are only taken
    between consecutive measurements of the same trajectory.
    """

    measurements = [m for t in population for m in t.measurements]
    empty = sum(1 for t in population if not t.measurements)
    if not measurements:
        return PopulationSummary(
            trajectories=len(population),
            measurements=0,
            empty_trajectories=empty,
            min_time=None,
            max_time=None,
            days=0,
            delta=None,
            min_lat=None,
            max_lat=None,
            min_lon=None,
            max_lon=None,
        )

    gaps = [b.time - a.time for t in population for a, b in zip(t.measurements, t.measurements[1:])]
    times = [m.time for m in measurements]
    lats = [m.position.latitude for m in measurements]
    lons = [m.position.longitude for m in measurements]
    return PopulationSummary(
        trajectories=len(population),
        measurements=len(measurements),
        empty_trajectories=empty,
        min_time=min(times),
        max_time=max(times),
        days=len({day_start(t) for t in times}),
        delta=delta_stats(gaps),
        min_lat=min(lats),
        max_lat=max(lats),
        min_lon=min(lons),
        max_lon=max(lons),
    )
