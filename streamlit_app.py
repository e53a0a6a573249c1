from __future__ import annotations

from pathlib import Path

import streamlit as st

from cotraj.aggregate import enumerate_partitions, jumpchains, transition_statistics
from cotraj.csv_io import load_population
from cotraj.execution import ExecutionConfig, ExecutionContext
from cotraj.export import lonlat_pairs
from cotraj.models import DEFAULT_SPACE_RESOLUTION, Position, Trajectory, TransitionStatistic
from cotraj.partition import unpartition_spatial
from cotraj.timeutils import format_day
from cotraj.trajectory import filter_box, filter_date, normalize, partition_distinct, split_by_date


def _hhmmss(seconds: float) -> str:
    s = int(round(max(0.0, seconds)))
    h = s // 3600
    m = (s % 3600) // 60
    sec = s % 60
    return f"{h:02d}:{m:02d}:{sec:02d}"


@st.cache_data(show_spinner=False)
def _load_population(csv_path: str, mtime: float) -> list[Trajectory]:
    _ = mtime  # part of cache key so updated files reload automatically
    population, _summary = load_population(csv_path)
    return population


def _stat_rows(stats: list[TransitionStatistic], space_resolution: float) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = []
    for s in stats:
        origin = unpartition_spatial(s.origin, space_resolution)
        destination = unpartition_spatial(s.destination, space_resolution)
        rows.append(
            {
                "from": f"{s.origin.x}:{s.origin.y}",
                "to": f"{s.destination.x}:{s.destination.y}",
                "count": s.count,
                "mean_dwell": _hhmmss(s.mean_dwell),
                "mean_dwell_seconds": round(s.mean_dwell, 3),
                "from_lat": origin.latitude,
                "from_lon": origin.longitude,
                "to_lat": destination.latitude,
                "to_lon": destination.longitude,
            }
        )
    rows.sort(key=lambda r: int(r["count"]), reverse=True)
    return rows


def main() -> None:
    st.set_page_config(page_title="Co-trajectory transitions", layout="wide")
    st.title("Co-trajectory: cell-to-cell transitions and dwell times")

    with st.sidebar:
        st.subheader("Data")
        csv_path = st.text_input("Trajectory CSV (id,time,latitude,longitude)", value="trajectories.csv")
        day = st.text_input("Only this UTC day (yyyy-MM-dd, optional)", value="")

        st.subheader("Discretization")
        space_resolution = st.number_input(
            "Cell side (degrees)", value=DEFAULT_SPACE_RESOLUTION, min_value=0.0001, step=0.001, format="%.4f"
        )
        use_time = st.checkbox("Bucket time as well", value=False)
        time_resolution = st.number_input("Time bucket (seconds)", value=60, min_value=1, step=30, disabled=not use_time)

        with st.expander("Bounding box (optional)", expanded=False):
            use_box = st.checkbox("Filter by box", value=False)
            lat_a = st.number_input("Corner A latitude", value=0.0, format="%.6f")
            lon_a = st.number_input("Corner A longitude", value=0.0, format="%.6f")
            lat_b = st.number_input("Corner B latitude", value=0.0, format="%.6f")
            lon_b = st.number_input("Corner B longitude", value=0.0, format="%.6f")

        with st.expander("Execution", expanded=False):
            workers = st.number_input("Workers", value=1, min_value=1, step=1)

    p = Path(csv_path)
    if not p.exists():
        st.error(f"File not found: {csv_path!r}. Generate one with scripts/generate_sample_trajectories_csv.py.")
        return

    try:
        population = _load_population(csv_path, p.stat().st_mtime)
        if day.strip():
            population = [filter_date(t, day) for t in population]
        if use_box:
            box = (Position(float(lat_a), float(lon_a)), Position(float(lat_b), float(lon_b)))
            population = [filter_box(t, box) for t in population]
    except Exception as exc:
        st.exception(exc)
        return

    population = [t for t in population if t.measurements]
    if not population:
        st.warning("No measurements left after filtering.")
        return

    members = population
    if use_time:
        members = [partition_distinct(normalize(t), int(time_resolution), float(space_resolution)) for t in population]

    with st.spinner("Aggregating ..."):
        with ExecutionContext(ExecutionConfig(workers=int(workers))) as ctx:
            stats = transition_statistics(ctx, members, float(space_resolution))
            index = enumerate_partitions(ctx, members, float(space_resolution))
            chains = jumpchains(ctx, members, float(space_resolution))

    st.subheader("Summary")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Trajectories", str(len(population)))
    c2.metric("Distinct cells", str(len(index)))
    c3.metric("Distinct transitions", str(len(stats)))
    c4.metric("Observed moves", str(sum(s.count for s in stats)))

    st.subheader("Visited cells")
    cells = [unpartition_spatial(cell, float(space_resolution)) for cell, _ in index]
    st.map([{"lat": c.latitude, "lon": c.longitude} for c in cells], size=20)

    st.subheader("Transitions (by count)")
    st.dataframe(_stat_rows(stats, float(space_resolution)), use_container_width=True, height=420)

    with st.expander("Trajectories per day", expanded=False):
        per_day: dict[int, int] = {}
        for t in population:
            for d, _sub in split_by_date(t):
                per_day[d] = per_day.get(d, 0) + 1
        st.dataframe(
            [{"date": format_day(d), "trajectories": n} for d, n in sorted(per_day.items())],
            use_container_width=True,
        )

    with st.expander("Single trajectory", expanded=False):
        ids = [t.id for t in population]
        chosen = st.selectbox("Trajectory id", ids)
        traj = next(t for t in population if t.id == chosen)
        chain = next(jc for jc in chains if jc.id == chosen)
        st.write(f"measurements={len(traj.measurements)}, jump chain length={len(chain.locations)}")
        st.map([{"lat": lat, "lon": lon} for lon, lat in lonlat_pairs(traj)], size=5)

    st.caption(
        "Cells are floor(lon/delta), floor(lat/delta); a cell is drawn at its lower-left corner. "
        "Dwell time counts from the first arrival in a cell until the first fix in the next cell."
    )


if __name__ == "__main__":
    main()
