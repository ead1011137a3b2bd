# main.py
# Entry point: replays location samples through a NavigationSession.
# In production, replace the replay loop with your real GPS source.
#
#   python -m navigation.guidance.main --route route.json
#   python -m navigation.guidance.main --waypoints 39.9241,32.8454 39.9210,32.8530
#
# Samples come from --samples (JSON list of {"lat", "lon", "course", "timestamp"})
# or are generated along the route polyline.

import argparse
import asyncio
import json
import logging
from typing import List, Optional

from .geo_utils import coord_distance
from .models import Coord, LocationSample, Route, RouteProgress
from .nav_config import NavConfig
from .navigator import NavigationSession


def parse_coord(text: str) -> Coord:
    parts = text.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected 'lat,lon', got: {text!r}")
    return Coord(float(parts[0]), float(parts[1]))


def load_samples(path: str) -> List[LocationSample]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [
        LocationSample(
            coord=Coord(float(s["lat"]), float(s["lon"])),
            course=float(s.get("course", -1.0)),
            timestamp=float(s.get("timestamp", i)),
        )
        for i, s in enumerate(data)
    ]


def samples_along(route: Route, spacing_m: float) -> List[LocationSample]:
    """Evenly spaced samples along the route polyline, one per second."""
    coords = route.coordinates
    samples: List[LocationSample] = []
    if not coords:
        return samples

    samples.append(LocationSample(coords[0], timestamp=0.0))
    carried = 0.0
    for a, b in zip(coords, coords[1:]):
        seg = coord_distance(a, b)
        pos = spacing_m - carried
        while seg > 0 and pos <= seg:
            t = pos / seg
            c = Coord(a.lat + (b.lat - a.lat) * t, a.lon + (b.lon - a.lon) * t)
            samples.append(LocationSample(c, timestamp=float(len(samples))))
            pos += spacing_m
        carried = (carried + seg) % spacing_m
    samples.append(LocationSample(coords[-1], timestamp=float(len(samples))))
    return samples


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Route guidance simulator")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--route", help="Route JSON file (Route.to_dict() format)")
    source.add_argument("--waypoints", nargs="+", type=parse_coord,
                        help="Two or more 'lat,lon' pairs routed through OSRM")
    parser.add_argument("--samples", help="Location samples JSON file")
    parser.add_argument("--spacing", type=float, default=15.0,
                        help="Generated sample spacing in metres (default: 15)")
    parser.add_argument("--osrm-url", default=NavConfig.directions_base_url,
                        help="OSRM base URL")
    parser.add_argument("--profile", default=NavConfig.directions_profile,
                        help="OSRM profile (driving, walking, cycling)")
    parser.add_argument("--interval", type=float, default=0.05,
                        help="Delay between samples in seconds (default: 0.05)")
    parser.add_argument("--log-level", default="INFO")
    return parser


async def run(args: argparse.Namespace) -> None:
    config = NavConfig(directions_base_url=args.osrm_url, directions_profile=args.profile)
    session = NavigationSession(config=config)

    def on_alert(progress: RouteProgress) -> None:
        step = progress.upcoming_step or progress.current_step
        print(f"  [{progress.alert_level.name}] {step.instruction}")

    def on_reroute(progress: RouteProgress) -> None:
        print(f"  ↻  Rerouted: {progress.distance_remaining:.0f} m remaining.")

    def on_failed(error: Exception) -> None:
        print(f"  ⚠  Reroute failed ({error}); continuing on the current route.")

    session.events.alert_level_changed.subscribe(on_alert)
    session.events.reroute_applied.subscribe(on_reroute)
    session.events.reroute_failed.subscribe(on_failed)

    if args.route:
        with open(args.route, "r", encoding="utf-8") as f:
            progress = session.load_route(Route.from_dict(json.load(f)))
    else:
        progress = await session.start_navigation(args.waypoints)

    samples = load_samples(args.samples) if args.samples else samples_along(
        progress.route, args.spacing
    )

    print("\n--- GPS Loop Active ---")
    last: Optional[RouteProgress] = progress
    for sample in samples:
        last = session.update(sample)
        if last is not None and last.arrived:
            print("  ✓  Destination reached. Navigation ended.")
            break
        await asyncio.sleep(args.interval)

    session.stop_navigation()
    print("\n--- Session complete ---")
    if last is not None:
        print(f"    Remaining: {last.distance_remaining:.0f} m, {last.duration_remaining:.0f} s")


def main() -> None:
    args = build_parser().parse_args()

    # Logging setup: configure once here, all modules inherit
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
