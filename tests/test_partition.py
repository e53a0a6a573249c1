from __future__ import annotations

import random

import pytest

from cotraj.errors import InvalidResolutionError
from cotraj.models import Measurement, MeasurementPartition, Position, SpatialPartition
from cotraj.partition import (
    is_in_box,
    partition_measurement,
    partition_spatial,
    partition_time,
    unpartition_measurement,
    unpartition_spatial,
    unpartition_time,
)


def test_partition_spatial_uses_floor_of_longitude_and_latitude() -> None:
    assert partition_spatial(Position(latitude=0.5, longitude=1.5), 1.0) == SpatialPartition(x=1, y=0)
    assert partition_spatial(Position(latitude=-0.5, longitude=-1.5), 1.0) == SpatialPartition(x=-2, y=-1)
    assert partition_spatial(Position(latitude=59.3293, longitude=18.0686), 0.01) == SpatialPartition(x=1806, y=5932)


def test_cells_are_half_open() -> None:
    assert partition_spatial(Position(latitude=2.0, longitude=2.0), 1.0) == SpatialPartition(x=2, y=2)
    assert partition_spatial(Position(latitude=1.999999, longitude=1.999999), 1.0) == SpatialPartition(x=1, y=1)


def test_unpartition_spatial_returns_lower_left_corner() -> None:
    assert unpartition_spatial(SpatialPartition(x=3, y=-2), 0.5) == Position(latitude=-1.0, longitude=1.5)


@pytest.mark.parametrize("delta", [1.0, 0.5, 0.3, 0.7, 0.1, 0.01, 0.001, 1e-5, 2.5, 45.0])
def test_round_trip_is_exact(delta: float) -> None:
    rng = random.Random(7)
    for _ in range(500):
        p = Position(latitude=rng.uniform(-90.0, 90.0), longitude=rng.uniform(-180.0, 180.0))
        cell = partition_spatial(p, delta)
        assert partition_spatial(unpartition_spatial(cell, delta), delta) == cell


@pytest.mark.parametrize("delta", [0.1, 0.7, 0.01])
def test_round_trip_from_cell_indices(delta: float) -> None:
    for x in range(-50, 51):
        cell = SpatialPartition(x=x, y=-x)
        assert partition_spatial(unpartition_spatial(cell, delta), delta) == cell


@pytest.mark.parametrize("delta", [0.0, -1.0, float("nan"), float("inf"), True])
def test_invalid_spatial_resolution_is_rejected(delta: float) -> None:
    with pytest.raises(InvalidResolutionError, match="Spatial resolution"):
        partition_spatial(Position(latitude=0.0, longitude=0.0), delta)
    with pytest.raises(ValueError):
        unpartition_spatial(SpatialPartition(x=0, y=0), delta)


def test_partition_time_returns_bucket_start() -> None:
    assert partition_time(125, 60) == 120
    assert partition_time(120, 60) == 120
    assert partition_time(0, 60) == 0
    assert partition_time(-1, 60) == -60
    assert unpartition_time(120, 60) == 120


@pytest.mark.parametrize("tau", [0, -60])
def test_invalid_time_resolution_is_rejected(tau: int) -> None:
    with pytest.raises(InvalidResolutionError, match="Time resolution"):
        partition_time(100, tau)


def test_measurement_round_trip() -> None:
    m = Measurement(time=3661, position=Position(latitude=10.25, longitude=20.75))
    mp = partition_measurement(m, 60, 0.5)
    assert mp == MeasurementPartition(time=3660, location=SpatialPartition(x=41, y=20))
    assert unpartition_measurement(mp, 60, 0.5) == Measurement(time=3660, position=Position(10.0, 20.5))


def test_is_in_box_accepts_corners_in_any_order() -> None:
    inside = Position(latitude=5.0, longitude=5.0)
    outside = Position(latitude=15.0, longitude=15.0)
    for box in [
        (Position(0.0, 0.0), Position(10.0, 10.0)),
        (Position(10.0, 10.0), Position(0.0, 0.0)),
        (Position(0.0, 10.0), Position(10.0, 0.0)),
    ]:
        assert is_in_box(inside, box)
        assert not is_in_box(outside, box)


def test_is_in_box_is_closed() -> None:
    box = (Position(0.0, 0.0), Position(10.0, 10.0))
    assert is_in_box(Position(0.0, 10.0), box)
    assert not is_in_box(Position(-0.000001, 5.0), box)
