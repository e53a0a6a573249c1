"""Data models for measurements, trajectories and their discretized forms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, TypeAlias

from cotraj.geo import is_in_box


@dataclass(frozen=True, slots=True)
class Position:
    """A latitude/longitude pair in decimal degrees.

    Range checks happen at the ingestion boundary (see ``geo.validate_coordinates``),
    not here: a cell corner produced by unpartitioning may sit just past the range.
    """

    latitude: float
    longitude: float

    def is_in_box(self, box: tuple[Position, Position]) -> bool:
        """Check whether the position lies inside the closed box spanned by two corners."""

        a, b = box
        return is_in_box(self.latitude, self.longitude, a.latitude, a.longitude, b.latitude, b.longitude)


@dataclass(frozen=True, slots=True)
class Measurement:
    """A single fix of one entity.

    Attributes:
        time: Unix epoch seconds.
        position: Where the entity was at ``time``.
    """

    time: int
    position: Position


@dataclass(frozen=True, slots=True)
class Trajectory:
    """All measurements of one entity.

    Most operations assume the measurements are sorted by time; use
    ``trajectory.normalize`` to make sure that is the case.
    """

    id: int
    measurements: tuple[Measurement, ...] = ()


@dataclass(frozen=True, slots=True, order=True)
class SpatialPartition:
    """A grid cell: ``x = floor(lon / delta)``, ``y = floor(lat / delta)``."""

    x: int
    y: int


# Bucket start time in epoch seconds, ``floor(t / tau) * tau``.
TimePartition: TypeAlias = int


@dataclass(frozen=True, slots=True)
class MeasurementPartition:
    """The discretized analogue of a Measurement."""

    time: TimePartition
    location: SpatialPartition


@dataclass(frozen=True, slots=True)
class TrajectoryPartition:
    """A trajectory whose measurements have been discretized."""

    id: int
    partitions: tuple[MeasurementPartition, ...] = ()


@dataclass(frozen=True, slots=True)
class JumpChain:
    """Visited cells of one trajectory with consecutive duplicates collapsed."""

    id: int
    locations: tuple[SpatialPartition, ...]


@dataclass(frozen=True, slots=True)
class DwellTimes:
    """Seconds spent in each cell before moving on, one entry per move."""

    id: int
    durations: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class Transition:
    """One observed move from ``origin`` to ``destination``.

    ``dwell`` is the time spent in ``origin`` (since first arriving there) before the move.
    """

    origin: SpatialPartition
    destination: SpatialPartition
    dwell: int


@dataclass(frozen=True, slots=True)
class TransitionStatistic:
    """Population-level aggregate of all moves between two cells."""

    origin: SpatialPartition
    destination: SpatialPartition
    count: int
    mean_dwell: float


SECONDS_PER_DAY: Final[int] = 24 * 60 * 60
DEFAULT_TIME_RESOLUTION_S: Final[int] = 60
DEFAULT_SPACE_RESOLUTION: Final[float] = 0.01
