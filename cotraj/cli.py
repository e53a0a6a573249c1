"""Command-line interface for cotraj.

Run:
    python -m cotraj inspect --csv trajectories.csv
    python -m cotraj transitions --csv trajectories.csv --space-resolution 0.01 --out transitions.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from dataclasses import asdict
from typing import Sequence

from cotraj.aggregate import (
    Member,
    enumerate_partitions,
    jumpchain_times_all,
    jumpchains,
    map_match_all,
    transition_statistics,
)
from cotraj.csv_io import load_population, write_population_csv
from cotraj.errors import CotrajError
from cotraj.execution import EXECUTOR_KINDS, ExecutionConfig, ExecutionContext
from cotraj.export import (
    write_jumpchains_csv,
    write_lonlat_json,
    write_partition_index_csv,
    write_transition_statistics_csv,
)
from cotraj.inspect import inspect_population
from cotraj.mapmatch import OsrmConfig, OsrmMapMatcher
from cotraj.models import DEFAULT_SPACE_RESOLUTION, Position, Trajectory
from cotraj.timeutils import dt_from_epoch_s, format_day
from cotraj.trajectory import filter_box, filter_date, normalize, partition_distinct, split_by_date

logger = logging.getLogger(__name__)

_DEFAULT_OSRM = OsrmConfig()


def _load_filtered(args: argparse.Namespace) -> list[Trajectory]:
    population, summary = load_population(args.csv)
    logger.info(
        "Loaded %s trajectories from %s (%s rows parsed, %s skipped)",
        len(population),
        args.csv,
        summary.rows_parsed,
        summary.rows_skipped,
    )
    if args.date is not None:
        population = [filter_date(t, args.date) for t in population]
    if args.box is not None:
        lat_a, lon_a, lat_b, lon_b = args.box
        box = (Position(lat_a, lon_a), Position(lat_b, lon_b))
        population = [filter_box(t, box) for t in population]
    return [t for t in population if t.measurements]


def _discretized(args: argparse.Namespace, population: list[Trajectory]) -> Sequence[Member]:
    """Bucket time too when --time-resolution is given; otherwise keep raw times."""

    if args.time_resolution is None:
        return population
    return [partition_distinct(normalize(t), args.time_resolution, args.space_resolution) for t in population]


def _context(args: argparse.Namespace) -> ExecutionContext:
    return ExecutionContext(
        ExecutionConfig(workers=args.workers, executor=args.executor, chunk_size=args.chunk_size)
    )


def _cmd_inspect(args: argparse.Namespace) -> int:
    population = _load_filtered(args)
    res = inspect_population(population)

    print("### Population")
    print(f"trajectories={res.trajectories}, measurements={res.measurements}, days={res.days}")
    print()

    if res.min_time is not None and res.max_time is not None:
        print("### Time range (UTC)")
        start = dt_from_epoch_s(res.min_time)
        end = dt_from_epoch_s(res.max_time)
        print(f"start={start.isoformat(sep=' ')}, end={end.isoformat(sep=' ')}")
        print()

    if res.delta is not None:
        print("### Sampling interval (seconds)")
        print(
            f"count={res.delta.count}, min={res.delta.min_s:.3f}, median={res.delta.median_s:.3f}, "
            f"p95={res.delta.p95_s:.3f}, max={res.delta.max_s:.3f}"
        )
        print()

    print("### Bounding box")
    print(f"lat=[{res.min_lat}, {res.max_lat}], lon=[{res.min_lon}, {res.max_lon}]")
    print()

    if args.json:
        print(json.dumps(asdict(res), ensure_ascii=False, indent=2))
    return 0


def _cmd_jumpchains(args: argparse.Namespace) -> int:
    population = _discretized(args, _load_filtered(args))
    with _context(args) as ctx:
        chains = jumpchains(ctx, population, args.space_resolution)
        times = jumpchain_times_all(ctx, population, args.space_resolution)
    write_jumpchains_csv(chains, args.out)
    moves = sum(len(dt.durations) for dt in times)
    print(f"jumpchains={len(chains)}, moves={moves}")
    print(f"Written: {args.out}")
    return 0


def _cmd_transitions(args: argparse.Namespace) -> int:
    population = _discretized(args, _load_filtered(args))
    with _context(args) as ctx:
        stats = transition_statistics(ctx, population, args.space_resolution)
    write_transition_statistics_csv(stats, args.out, space_resolution=args.space_resolution)
    total = sum(s.count for s in stats)
    print(f"distinct transitions={len(stats)}, observed moves={total}")
    print(f"Written: {args.out}")
    return 0


def _cmd_partitions(args: argparse.Namespace) -> int:
    population = _discretized(args, _load_filtered(args))
    with _context(args) as ctx:
        index = enumerate_partitions(ctx, population, args.space_resolution)
    write_partition_index_csv(index, args.out)
    print(f"distinct partitions={len(index)}")
    print(f"Written: {args.out}")
    return 0


def _cmd_split_days(args: argparse.Namespace) -> int:
    population = _load_filtered(args)
    per_day: Counter[int] = Counter()
    points: Counter[int] = Counter()
    for t in population:
        for day, sub in split_by_date(t):
            per_day[day] += 1
            points[day] += len(sub.measurements)
    for day in sorted(per_day):
        print(f"{format_day(day)}  trajectories={per_day[day]}  measurements={points[day]}")
    return 0


def _cmd_export_json(args: argparse.Namespace) -> int:
    population = _load_filtered(args)
    if args.id is not None:
        wanted = set(args.id)
        population = [t for t in population if t.id in wanted]
    written = write_lonlat_json(population, args.out_dir)
    print(f"Written {len(written)} documents to {args.out_dir}")
    return 0


def _cmd_map_match(args: argparse.Namespace) -> int:
    population = _load_filtered(args)
    matcher = OsrmMapMatcher(
        OsrmConfig(
            base_url=args.osrm_url,
            profile=args.profile,
            timeout_seconds=args.timeout_seconds,
            radius_m=args.radius_m,
            user_agent=args.user_agent,
        )
    )
    with _context(args) as ctx:
        matched = map_match_all(ctx, population, matcher)
    write_population_csv(matched, args.out)
    ok = sum(1 for t in matched if t.measurements)
    print(f"matched={ok}/{len(matched)}")
    print(f"Written: {args.out}")
    return 0


def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--csv", type=str, default="trajectories.csv", help="Input CSV (id,time,latitude,longitude)")
    p.add_argument("--date", type=str, default=None, help="Keep only this UTC day, yyyy-MM-dd")
    p.add_argument(
        "--box",
        type=float,
        nargs=4,
        default=None,
        metavar=("LAT_A", "LON_A", "LAT_B", "LON_B"),
        help="Keep only measurements inside the box spanned by two corners (any order)",
    )


def _add_execution_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--workers", type=int, default=1, help="Worker count (>1 enables parallel execution)")
    p.add_argument(
        "--executor",
        type=str,
        default="thread",
        choices=list(EXECUTOR_KINDS),
        help="Executor: thread (default, suits map matching) / process (CPU-bound aggregation)",
    )
    p.add_argument("--chunk-size", type=int, default=256, help="Trajectories per unit of work")


def _add_resolution_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--space-resolution",
        type=float,
        default=DEFAULT_SPACE_RESOLUTION,
        help="Grid cell side in degrees (0.01 is roughly 1 km of latitude)",
    )
    p.add_argument(
        "--time-resolution",
        type=int,
        default=None,
        help="Time bucket in seconds. If set, only the first fix per bucket is kept and dwell "
        "times use bucket starts; if unset, raw times are used",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="cotraj")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostics on stderr",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ins = sub.add_parser("inspect", help="Summarize a trajectory CSV (counts, time range, sampling)")
    _add_input_args(p_ins)
    p_ins.add_argument("--json", action="store_true", help="Also print the summary as JSON")
    p_ins.set_defaults(func=_cmd_inspect)

    p_jc = sub.add_parser("jumpchains", help="Export the jump chain of every trajectory")
    _add_input_args(p_jc)
    _add_resolution_args(p_jc)
    _add_execution_args(p_jc)
    p_jc.add_argument("--out", type=str, default="jumpchains.csv", help="Output CSV path")
    p_jc.set_defaults(func=_cmd_jumpchains)

    p_tr = sub.add_parser("transitions", help="Aggregate cell-to-cell transition counts and mean dwell")
    _add_input_args(p_tr)
    _add_resolution_args(p_tr)
    _add_execution_args(p_tr)
    p_tr.add_argument("--out", type=str, default="transitions.csv", help="Output CSV path")
    p_tr.set_defaults(func=_cmd_transitions)

    p_pt = sub.add_parser("partitions", help="Number every distinct grid cell in the population")
    _add_input_args(p_pt)
    _add_resolution_args(p_pt)
    _add_execution_args(p_pt)
    p_pt.add_argument("--out", type=str, default="partitions.csv", help="Output CSV path")
    p_pt.set_defaults(func=_cmd_partitions)

    p_sd = sub.add_parser("split-days", help="Count trajectories and measurements per UTC day")
    _add_input_args(p_sd)
    p_sd.set_defaults(func=_cmd_split_days)

    p_ej = sub.add_parser("export-json", help="Write one lon/lat JSON document per trajectory")
    _add_input_args(p_ej)
    p_ej.add_argument("--out-dir", type=str, default="json", help="Output directory")
    p_ej.add_argument("--id", type=int, nargs="*", default=None, help="Only export these trajectory ids")
    p_ej.set_defaults(func=_cmd_export_json)

    p_mm = sub.add_parser("map-match", help="Snap trajectories onto the road network via an OSRM service")
    _add_input_args(p_mm)
    _add_execution_args(p_mm)
    p_mm.add_argument("--out", type=str, default="matched.csv", help="Output CSV path")
    p_mm.add_argument("--osrm-url", type=str, default=_DEFAULT_OSRM.base_url, help="OSRM match endpoint, without profile")
    p_mm.add_argument("--profile", type=str, default=_DEFAULT_OSRM.profile, help="OSRM profile, e.g. driving/foot")
    p_mm.add_argument("--timeout-seconds", type=float, default=20.0, help="Per-request timeout (seconds)")
    p_mm.add_argument("--radius-m", type=float, default=None, help="Search radius per fix (meters)")
    p_mm.add_argument(
        "--user-agent",
        type=str,
        default=_DEFAULT_OSRM.user_agent,
        help="HTTP User-Agent (set your own to avoid being blocked by public services)",
    )
    p_mm.set_defaults(func=_cmd_map_match)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    try:
        return int(args.func(args))
    except (CotrajError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
