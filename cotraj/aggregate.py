"""Co-trajectory aggregation: statistics over a whole population of trajectories.

Every population-level function takes an ``ExecutionContext`` and a population
whose members are either raw ``Trajectory`` values (a spatial resolution is
then required) or already discretized ``TrajectoryPartition`` values.

Aggregates are built from per-chunk partials combined with associative and
commutative merges, so the result does not depend on how the population is
chunked or in which order workers finish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Iterable, Iterator, Mapping, Sequence, TypeVar

from cotraj.errors import InvalidResolutionError
from cotraj.execution import ExecutionContext
from cotraj.mapmatch import MapMatcher
from cotraj.models import (
    DwellTimes,
    JumpChain,
    Measurement,
    MeasurementPartition,
    SpatialPartition,
    Trajectory,
    TrajectoryPartition,
    TransitionStatistic,
)
from cotraj.partition import check_space_resolution
from cotraj.patterns import iter_transitions, jumpchain, jumpchain_times
from cotraj.trajectory import locate, map_match

logger = logging.getLogger(__name__)

Member = Trajectory | TrajectoryPartition
V = TypeVar("V", Measurement, MeasurementPartition)


def _group(records: Iterable[tuple[int, V]]) -> dict[int, tuple[V, ...]]:
    groups: dict[int, dict[V, None]] = {}
    for traj_id, value in records:
        # dict keys give set semantics with insertion order, so the sort below stays stable
        groups.setdefault(traj_id, {})[value] = None
    return {traj_id: tuple(sorted(values, key=lambda v: v.time)) for traj_id, values in groups.items()}


def group_measurements(records: Iterable[tuple[int, Measurement]]) -> list[Trajectory]:
    """Assemble a co-trajectory from flat ``(id, measurement)`` records.

    Exact duplicate measurements of the same id are dropped, and each
    trajectory is sorted by time.
    """

    return [Trajectory(id=i, measurements=ms) for i, ms in _group(records).items()]


def group_partitions(records: Iterable[tuple[int, MeasurementPartition]]) -> list[TrajectoryPartition]:
    """Assemble a discretized co-trajectory from flat ``(id, partition)`` records."""

    return [TrajectoryPartition(id=i, partitions=mps) for i, mps in _group(records).items()]


def _resolve(space_resolution: float | None, population: Sequence[Member]) -> float | None:
    if space_resolution is not None:
        return check_space_resolution(space_resolution)
    if any(isinstance(m, Trajectory) for m in population):
        raise InvalidResolutionError("A spatial resolution is required to aggregate raw trajectories")
    return None


def _partitions_of(member: Member, space_resolution: float | None) -> tuple[MeasurementPartition, ...]:
    if isinstance(member, TrajectoryPartition):
        return member.partitions
    if space_resolution is None:
        raise InvalidResolutionError("A spatial resolution is required to discretize raw trajectories")
    return locate(member, space_resolution)


@dataclass(frozen=True, slots=True)
class TransitionTally:
    """Running totals for one (origin, destination) pair."""

    count: int = 0
    total_dwell: int = 0

    def merge(self, other: TransitionTally) -> TransitionTally:
        return TransitionTally(count=self.count + other.count, total_dwell=self.total_dwell + other.total_dwell)


@dataclass(frozen=True, slots=True)
class TransitionTable:
    """Partial transition statistics; merge tables from any subsets, divide at the end."""

    tallies: Mapping[tuple[SpatialPartition, SpatialPartition], TransitionTally] = field(default_factory=dict)

    def merge(self, other: TransitionTable) -> TransitionTable:
        merged = dict(self.tallies)
        for key, tally in other.tallies.items():
            merged[key] = merged[key].merge(tally) if key in merged else tally
        return TransitionTable(tallies=merged)

    def statistics(self) -> list[TransitionStatistic]:
        """Return one statistic per pair, sorted by (origin, destination)."""

        return [
            TransitionStatistic(
                origin=origin,
                destination=destination,
                count=tally.count,
                mean_dwell=tally.total_dwell / tally.count,
            )
            for (origin, destination), tally in sorted(self.tallies.items())
        ]


def transition_table(population: Iterable[Member], space_resolution: float | None = None) -> TransitionTable:
    """Tally the transitions of every trajectory in ``population``."""

    tallies: dict[tuple[SpatialPartition, SpatialPartition], TransitionTally] = {}
    for member in population:
        for move in iter_transitions(_partitions_of(member, space_resolution)):
            key = (move.origin, move.destination)
            prev = tallies.get(key, TransitionTally())
            tallies[key] = TransitionTally(count=prev.count + 1, total_dwell=prev.total_dwell + move.dwell)
    return TransitionTable(tallies=tallies)


def transition_statistics(
    ctx: ExecutionContext,
    population: Sequence[Member],
    space_resolution: float | None = None,
) -> list[TransitionStatistic]:
    """Count every (origin, destination) move in the population and average its dwell time.

    Args:
        ctx: Execution context.
        population: Trajectories or partitioned trajectories, each sorted by time.
        space_resolution: Cell side for raw trajectories; ignored for partitioned ones.

    Returns:
        One TransitionStatistic per observed pair, sorted by (origin, destination).

    Raises:
        InvalidResolutionError: If the resolution is invalid, or missing while raw
            trajectories are present.
    """

    delta = _resolve(space_resolution, population)
    table = ctx.reduce_chunks(
        partial(transition_table, space_resolution=delta),
        population,
        merge=TransitionTable.merge,
        initial=TransitionTable(),
    )
    logger.info("Aggregated %s distinct transitions from %s trajectories", len(table.tallies), len(population))
    return table.statistics()


def merge_statistics(
    a: Iterable[TransitionStatistic],
    b: Iterable[TransitionStatistic],
) -> list[TransitionStatistic]:
    """Combine statistics computed on two disjoint populations.

    Counts are summed and mean dwell times are averaged weighted by count.
    """

    totals: dict[tuple[SpatialPartition, SpatialPartition], tuple[int, float]] = {}
    for stat in (*a, *b):
        key = (stat.origin, stat.destination)
        count, dwell = totals.get(key, (0, 0.0))
        totals[key] = (count + stat.count, dwell + stat.mean_dwell * stat.count)
    return [
        TransitionStatistic(origin=origin, destination=destination, count=count, mean_dwell=dwell / count)
        for (origin, destination), (count, dwell) in sorted(totals.items())
    ]


@dataclass(frozen=True, slots=True)
class GlobalPartitionIndex:
    """Dense numbering ``0..n-1`` of the distinct cells seen in a population."""

    ids: Mapping[SpatialPartition, int]
    partitions: tuple[SpatialPartition, ...]

    @classmethod
    def from_partitions(cls, partitions: Iterable[SpatialPartition]) -> GlobalPartitionIndex:
        ordered = tuple(sorted(set(partitions)))
        return cls(ids={p: i for i, p in enumerate(ordered)}, partitions=ordered)

    def __len__(self) -> int:
        return len(self.partitions)

    def __contains__(self, partition: object) -> bool:
        return partition in self.ids

    def __iter__(self) -> Iterator[tuple[SpatialPartition, int]]:
        return iter((p, i) for i, p in enumerate(self.partitions))

    def id_of(self, partition: SpatialPartition) -> int:
        return self.ids[partition]

    def partition_of(self, partition_id: int) -> SpatialPartition:
        if not 0 <= partition_id < len(self.partitions):
            raise KeyError(partition_id)
        return self.partitions[partition_id]


def distinct_partitions(population: Iterable[Member], space_resolution: float | None = None) -> frozenset[SpatialPartition]:
    return frozenset(mp.location for member in population for mp in _partitions_of(member, space_resolution))


def enumerate_partitions(
    ctx: ExecutionContext,
    population: Sequence[Member],
    space_resolution: float | None = None,
) -> GlobalPartitionIndex:
    """Number every distinct cell visited anywhere in the population.

    Ids are dense and unique; which cell gets which id carries no meaning.
    """

    delta = _resolve(space_resolution, population)
    cells = ctx.reduce_chunks(
        partial(distinct_partitions, space_resolution=delta),
        population,
        merge=frozenset.union,
        initial=frozenset(),
    )
    return GlobalPartitionIndex.from_partitions(cells)


def _jumpchains_chunk(chunk: list[Member], space_resolution: float | None) -> list[JumpChain]:
    return [
        JumpChain(id=m.id, locations=tuple(jumpchain([mp.location for mp in _partitions_of(m, space_resolution)])))
        for m in chunk
    ]


def _jumpchain_times_chunk(chunk: list[Member], space_resolution: float | None) -> list[DwellTimes]:
    return [DwellTimes(id=m.id, durations=tuple(jumpchain_times(_partitions_of(m, space_resolution)))) for m in chunk]


def jumpchains(
    ctx: ExecutionContext,
    population: Sequence[Member],
    space_resolution: float | None = None,
) -> list[JumpChain]:
    """Jump chain of every trajectory, in population order."""

    delta = _resolve(space_resolution, population)
    parts = ctx.map_chunks(partial(_jumpchains_chunk, space_resolution=delta), population)
    return [jc for part in parts for jc in part]


def jumpchain_times_all(
    ctx: ExecutionContext,
    population: Sequence[Member],
    space_resolution: float | None = None,
) -> list[DwellTimes]:
    """Dwell times of every trajectory, in population order."""

    delta = _resolve(space_resolution, population)
    parts = ctx.map_chunks(partial(_jumpchain_times_chunk, space_resolution=delta), population)
    return [dt for part in parts for dt in part]


def _map_match_chunk(chunk: list[Trajectory], matcher: MapMatcher) -> list[Trajectory]:
    return [map_match(t, matcher) for t in chunk]


def map_match_all(ctx: ExecutionContext, population: Sequence[Trajectory], matcher: MapMatcher) -> list[Trajectory]:
    """Map match every trajectory; failed ones come back empty. Population order is kept."""

    parts = ctx.map_chunks(partial(_map_match_chunk, matcher=matcher), population)
    matched = [t for part in parts for t in part]
    empty = sum(1 for src, t in zip(population, matched) if src.measurements and not t.measurements)
    if empty:
        logger.warning("Map matching produced no path for %s of %s trajectories", empty, len(matched))
    return matched
