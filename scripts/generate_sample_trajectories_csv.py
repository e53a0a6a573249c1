from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Place:
    name: str
    lat: float
    lon: float


def generate_records(
    *,
    entities: int,
    fixes: int,
    seed: int,
    start: datetime,
    places: list[Place],
) -> list[dict[str, str]]:
    """Generate fake id,time,latitude,longitude rows: entities hop between places and linger."""

    rng = random.Random(seed)
    start_s = int(start.replace(tzinfo=UTC).timestamp())

    out: list[dict[str, str]] = []
    for entity_id in range(1, entities + 1):
        t = start_s + rng.randint(0, 3600)
        place = rng.choice(places)
        for _ in range(fixes):
            # Mostly stay around the current place, sometimes move on
            if rng.random() < 0.1:
                place = rng.choice(places)

            lat = place.lat + rng.uniform(-0.002, 0.002)
            lon = place.lon + rng.uniform(-0.002, 0.002)

            # Time step: usually 1-10 minutes, sometimes a long gap
            if rng.random() < 0.05:
                t += rng.randint(1800, 5400)
            else:
                t += rng.randint(60, 600)

            out.append(
                {
                    "id": str(entity_id),
                    "time": str(t),
                    "latitude": f"{lat:.7f}",
                    "longitude": f"{lon:.7f}",
                }
            )

    # Real exports are not grouped by entity
    out.sort(key=lambda r: int(r["time"]))
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake trajectory CSV for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/trajectories.csv", help="Output CSV path")
    p.add_argument("--entities", type=int, default=50, help="Number of moving entities")
    p.add_argument("--fixes", type=int, default=200, help="Fixes per entity")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--start", type=str, default="2024-03-01 06:00:00", help="Start time (UTC)")
    args = p.parse_args()

    places = [
        Place("central_station", 59.3300, 18.0586),
        Place("university", 59.3650, 18.0560),
        Place("harbour", 59.3170, 18.1020),
        Place("airport", 59.6498, 17.9238),
        Place("suburb", 59.2930, 17.9950),
    ]

    rows = generate_records(
        entities=args.entities,
        fixes=args.fixes,
        seed=args.seed,
        start=datetime.fromisoformat(args.start),
        places=places,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["id", "time", "latitude", "longitude"])
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {out_path} (rows={len(rows)}, entities={args.entities}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
