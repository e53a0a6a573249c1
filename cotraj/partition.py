"""Spatial and temporal discretization, and the inverse maps back."""

from __future__ import annotations

import math

from cotraj.errors import InvalidResolutionError
from cotraj.models import (
    Measurement,
    MeasurementPartition,
    Position,
    SpatialPartition,
    TimePartition,
)


def check_space_resolution(delta: float) -> float:
    """Return ``delta`` if it is a usable cell side, raise otherwise."""

    if isinstance(delta, bool) or not (isinstance(delta, (int, float)) and math.isfinite(delta) and delta > 0):
        raise InvalidResolutionError(f"Spatial resolution must be a positive finite number, got {delta!r}")
    return float(delta)


def check_time_resolution(tau: int) -> int:
    """Return ``tau`` if it is a usable bucket width in seconds, raise otherwise."""

    if isinstance(tau, bool) or not isinstance(tau, int) or tau <= 0:
        raise InvalidResolutionError(f"Time resolution must be a positive integer of seconds, got {tau!r}")
    return tau


def _cell_index(value: float, delta: float) -> int:
    """Index of the half-open cell ``[c*delta, (c+1)*delta)`` containing ``value``.

    Cell boundaries are the float products ``c * delta`` that ``unpartition_spatial``
    produces, so the raw ``floor`` is nudged by one cell where rounding in the
    division disagrees with them.
    """

    c = math.floor(value / delta)
    if c * delta > value:
        c -= 1
    elif (c + 1) * delta <= value:
        c += 1
    return c


def partition_spatial(p: Position, delta: float) -> SpatialPartition:
    """Map a position onto its grid cell.

    Args:
        p: Position to discretize.
        delta: Cell side, in degrees (or whatever unit the coordinates use).

    Returns:
        The cell ``(floor(lon / delta), floor(lat / delta))``.

    Raises:
        InvalidResolutionError: If ``delta`` is not positive.
    """

    delta = check_space_resolution(delta)
    return SpatialPartition(x=_cell_index(p.longitude, delta), y=_cell_index(p.latitude, delta))


def unpartition_spatial(c: SpatialPartition, delta: float) -> Position:
    """Return the lower-left corner of a cell.

    ``partition_spatial(unpartition_spatial(c, delta), delta) == c`` holds for every delta > 0.
    """

    delta = check_space_resolution(delta)
    return Position(latitude=c.y * delta, longitude=c.x * delta)


def partition_time(t: int, tau: int) -> TimePartition:
    """Return the start of the ``tau``-second bucket containing ``t``."""

    tau = check_time_resolution(tau)
    return (t // tau) * tau


def unpartition_time(bucket: TimePartition, tau: int) -> int:
    """Return a representative time for a bucket, which is its start."""

    check_time_resolution(tau)
    return bucket


def partition_measurement(m: Measurement, tau: int, delta: float) -> MeasurementPartition:
    return MeasurementPartition(time=partition_time(m.time, tau), location=partition_spatial(m.position, delta))


def unpartition_measurement(mp: MeasurementPartition, tau: int, delta: float) -> Measurement:
    return Measurement(time=unpartition_time(mp.time, tau), position=unpartition_spatial(mp.location, delta))


def is_in_box(p: Position, box: tuple[Position, Position]) -> bool:
    """True iff ``p`` is inside the closed rectangle spanned by the two corners of ``box``."""

    return p.is_in_box(box)
