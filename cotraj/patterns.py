"""Movement patterns of a single discretized trajectory.

All functions here assume their input is sorted by time. They make a single
pass, look at nothing but the current element and the tracked state, and are
therefore safe to run on any number of trajectories in parallel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from cotraj.models import (
    DwellTimes,
    JumpChain,
    MeasurementPartition,
    SpatialPartition,
    Trajectory,
    TrajectoryPartition,
    Transition,
)
from cotraj.trajectory import locate


def jumpchain(locations: Sequence[SpatialPartition]) -> list[SpatialPartition]:
    """Return the chain of locations with consecutive duplicates removed.

    Each element is compared with its predecessor in the input, so
    ``[A, A, B, A]`` becomes ``[A, B, A]``.
    """

    if not locations:
        return []
    chain = [locations[0]]
    chain.extend(b for a, b in zip(locations, locations[1:]) if a != b)
    return chain


@dataclass(slots=True)
class DwellTracker:
    """Two-state machine that turns a stream of cells into moves.

    States:
        idle: nothing observed yet (``location is None``).
        tracking: the entity has been in ``location`` since ``since``.

    Observing the tracked location again keeps ``since`` at the first arrival.
    Observing a different location emits a Transition whose dwell is the time
    elapsed since that first arrival, then tracks the new location.
    """

    location: SpatialPartition | None = None
    since: int = 0

    def observe(self, mp: MeasurementPartition) -> Transition | None:
        if self.location is None:
            self.location, self.since = mp.location, mp.time
            return None
        if mp.location == self.location:
            return None
        move = Transition(origin=self.location, destination=mp.location, dwell=mp.time - self.since)
        self.location, self.since = mp.location, mp.time
        return move


def iter_transitions(measurement_partitions: Iterable[MeasurementPartition]) -> Iterator[Transition]:
    tracker = DwellTracker()
    for mp in measurement_partitions:
        move = tracker.observe(mp)
        if move is not None:
            yield move


def transitions(measurement_partitions: Iterable[MeasurementPartition]) -> list[Transition]:
    """Return every move with the time spent in the origin cell before it."""

    return list(iter_transitions(measurement_partitions))


def jumpchain_times(measurement_partitions: Iterable[MeasurementPartition]) -> list[int]:
    """Return the dwell time of each move; equal to ``[t.dwell for t in transitions(...)]``."""

    return [move.dwell for move in iter_transitions(measurement_partitions)]


def trajectory_jumpchain(t: Trajectory, space_resolution: float) -> JumpChain:
    return JumpChain(id=t.id, locations=tuple(jumpchain([mp.location for mp in locate(t, space_resolution)])))


def trajectory_jumpchain_times(t: Trajectory, space_resolution: float) -> DwellTimes:
    """Dwell times on raw measurement times, discretizing space only."""

    return DwellTimes(id=t.id, durations=tuple(jumpchain_times(locate(t, space_resolution))))


def trajectory_transitions(t: Trajectory, space_resolution: float) -> tuple[int, tuple[Transition, ...]]:
    return t.id, tuple(transitions(locate(t, space_resolution)))


def partition_jumpchain(tp: TrajectoryPartition) -> JumpChain:
    return JumpChain(id=tp.id, locations=tuple(jumpchain([mp.location for mp in tp.partitions])))


def partition_jumpchain_times(tp: TrajectoryPartition) -> DwellTimes:
    return DwellTimes(id=tp.id, durations=tuple(jumpchain_times(tp.partitions)))


def partition_transitions(tp: TrajectoryPartition) -> tuple[int, tuple[Transition, ...]]:
    return tp.id, tuple(transitions(tp.partitions))
