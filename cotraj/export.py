"""Export of trajectories and aggregates for visualization and spreadsheets."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable, Sequence

from cotraj.aggregate import GlobalPartitionIndex
from cotraj.models import JumpChain, Trajectory, TransitionStatistic
from cotraj.partition import unpartition_spatial


def lonlat_pairs(t: Trajectory) -> list[tuple[float, float]]:
    """Return the trajectory as ``(longitude, latitude)`` pairs, in order."""

    return [(m.position.longitude, m.position.latitude) for m in t.measurements]


def to_lonlat_json(t: Trajectory) -> str:
    """Serialize one trajectory as a pretty-printed GeoJSON-style LineString document."""

    payload = {
        "id": t.id,
        "type": "LineString",
        "coordinates": [[lon, lat] for lon, lat in lonlat_pairs(t)],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def write_lonlat_json(trajectories: Iterable[Trajectory], out_dir: str | Path) -> list[Path]:
    """Write one ``<id>.json`` document per trajectory into ``out_dir``."""

    d = Path(out_dir)
    d.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for t in trajectories:
        p = d / f"{t.id}.json"
        p.write_text(to_lonlat_json(t), encoding="utf-8")
        written.append(p)
    return written


def write_transition_statistics_csv(
    stats: Sequence[TransitionStatistic],
    out_path: str | Path,
    space_resolution: float | None = None,
) -> None:
    """Write transition statistics to CSV.

    If ``space_resolution`` is given, the lower-left corners of both cells are
    written too, so the file can be plotted without knowing the grid.
    """

    fieldnames = ["from_x", "from_y", "to_x", "to_y", "count", "mean_dwell_seconds"]
    if space_resolution is not None:
        fieldnames += ["from_lat", "from_lon", "to_lat", "to_lon"]

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for s in stats:
            row: dict[str, object] = {
                "from_x": s.origin.x,
                "from_y": s.origin.y,
                "to_x": s.destination.x,
                "to_y": s.destination.y,
                "count": s.count,
                "mean_dwell_seconds": f"{s.mean_dwell:.3f}",
            }
            if space_resolution is not None:
                origin = unpartition_spatial(s.origin, space_resolution)
                destination = unpartition_spatial(s.destination, space_resolution)
                row |= {
                    "from_lat": origin.latitude,
                    "from_lon": origin.longitude,
                    "to_lat": destination.latitude,
                    "to_lon": destination.longitude,
                }
            w.writerow(row)


def write_partition_index_csv(index: GlobalPartitionIndex, out_path: str | Path) -> None:
    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["partition_id", "x", "y"])
        for cell, cell_id in index:
            w.writerow([cell_id, cell.x, cell.y])


def write_jumpchains_csv(chains: Iterable[JumpChain], out_path: str | Path) -> None:
    """Write one row per trajectory; the chain is a ``;``-separated list of ``x:y`` cells."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["id", "length", "jumpchain"])
        for jc in chains:
            w.writerow([jc.id, len(jc.locations), ";".join(f"{c.x}:{c.y}" for c in jc.locations)])
