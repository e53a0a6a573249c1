from __future__ import annotations

from pathlib import Path

import pytest

from cotraj.csv_io import iter_records, load_population, load_records, write_population_csv
from cotraj.models import Measurement, Position, Trajectory


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_records_skips_broken_and_out_of_range_rows(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "t.csv",
        "id,time,latitude,longitude,extra\n"
        "1,100,59.33,18.06,x\n"
        "1,abc,59.33,18.06,x\n"
        "2,50,95.0,18.06,x\n"
        "2,60,,18.06,x\n"
        "2,70,10.5,-20.25,x\n",
    )
    records, summary = load_records(p)
    assert records == [
        (1, Measurement(100, Position(59.33, 18.06))),
        (2, Measurement(70, Position(10.5, -20.25))),
    ]
    assert (summary.rows_total, summary.rows_parsed, summary.rows_skipped) == (5, 2, 3)
    assert list(summary.fieldnames) == ["id", "time", "latitude", "longitude", "extra"]
    assert list(iter_records(p)) == records


def test_missing_column_is_reported(tmp_path: Path) -> None:
    p = _write(tmp_path / "t.csv", "id,time,lat,lon\n1,100,59.33,18.06\n")
    with pytest.raises(KeyError, match="latitude"):
        load_records(p)
    with pytest.raises(KeyError, match="longitude"):
        list(iter_records(p))


def test_empty_file_loads_nothing(tmp_path: Path) -> None:
    p = _write(tmp_path / "t.csv", "")
    records, summary = load_records(p)
    assert records == []
    assert summary.rows_total == 0
    assert list(iter_records(p)) == []


def test_missing_column_is_reported_before_any_row(tmp_path: Path) -> None:
    p = _write(tmp_path / "t.csv", "id,time,latitude\n")
    with pytest.raises(KeyError, match="longitude"):
        load_records(p)


def test_load_population_groups_by_id_and_sorts(tmp_path: Path) -> None:
    p = _write(
        tmp_path / "t.csv",
        "id,time,latitude,longitude\n"
        "2,300,1.0,1.0\n"
        "1,200,0.0,1.0\n"
        "1,100,0.0,0.0\n"
        "1,100,0.0,0.0\n",
    )
    population, _ = load_population(p)
    assert population == [
        Trajectory(id=2, measurements=(Measurement(300, Position(1.0, 1.0)),)),
        Trajectory(id=1, measurements=(Measurement(100, Position(0.0, 0.0)), Measurement(200, Position(0.0, 1.0)))),
    ]


def test_write_population_csv_round_trips(tmp_path: Path) -> None:
    population = [
        Trajectory(id=1, measurements=(Measurement(0, Position(1.5, 2.5)), Measurement(1, Position(1.75, 2.25)))),
        Trajectory(id=4, measurements=()),
    ]
    out = tmp_path / "out.csv"
    write_population_csv(population, out)
    loaded, summary = load_population(out)
    assert loaded == population[:1]
    assert summary.rows_skipped == 0
