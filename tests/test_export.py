from __future__ import annotations

import csv
import json
from pathlib import Path

from cotraj.aggregate import GlobalPartitionIndex
from cotraj.export import (
    lonlat_pairs,
    to_lonlat_json,
    write_jumpchains_csv,
    write_lonlat_json,
    write_partition_index_csv,
    write_transition_statistics_csv,
)
from cotraj.models import JumpChain, Measurement, Position, SpatialPartition, Trajectory, TransitionStatistic


def _traj() -> Trajectory:
    return Trajectory(
        id=12,
        measurements=(Measurement(0, Position(59.33, 18.06)), Measurement(10, Position(59.34, 18.07))),
    )


def test_lonlat_pairs_put_longitude_first() -> None:
    assert lonlat_pairs(_traj()) == [(18.06, 59.33), (18.07, 59.34)]


def test_to_lonlat_json_document() -> None:
    doc = json.loads(to_lonlat_json(_traj()))
    assert doc == {"id": 12, "type": "LineString", "coordinates": [[18.06, 59.33], [18.07, 59.34]]}


def test_write_lonlat_json_writes_one_file_per_trajectory(tmp_path: Path) -> None:
    written = write_lonlat_json([_traj(), Trajectory(id=3)], tmp_path / "json")
    assert [p.name for p in written] == ["12.json", "3.json"]
    assert json.loads(written[1].read_text(encoding="utf-8"))["coordinates"] == []


def test_write_transition_statistics_csv(tmp_path: Path) -> None:
    stats = [TransitionStatistic(SpatialPartition(1, 2), SpatialPartition(3, 4), count=5, mean_dwell=12.5)]
    out = tmp_path / "transitions.csv"
    write_transition_statistics_csv(stats, out, space_resolution=0.5)
    with out.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert rows == [
        {
            "from_x": "1",
            "from_y": "2",
            "to_x": "3",
            "to_y": "4",
            "count": "5",
            "mean_dwell_seconds": "12.500",
            "from_lat": "1.0",
            "from_lon": "0.5",
            "to_lat": "2.0",
            "to_lon": "1.5",
        }
    ]


def test_write_partition_index_and_jumpchains_csv(tmp_path: Path) -> None:
    index = GlobalPartitionIndex.from_partitions([SpatialPartition(1, 0), SpatialPartition(0, 5)])
    write_partition_index_csv(index, tmp_path / "partitions.csv")
    lines = (tmp_path / "partitions.csv").read_text(encoding="utf-8").splitlines()
    assert lines == ["partition_id,x,y", "0,0,5", "1,1,0"]

    chains = [JumpChain(id=1, locations=(SpatialPartition(0, 0), SpatialPartition(-1, 2)))]
    write_jumpchains_csv(chains, tmp_path / "jc.csv")
    lines = (tmp_path / "jc.csv").read_text(encoding="utf-8").splitlines()
    assert lines == ["id,length,jumpchain", "1,2,0:0;-1:2"]
