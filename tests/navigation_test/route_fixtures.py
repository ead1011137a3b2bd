"""Route builders shared by the guidance tests.

All routes run due north from ORIGIN, so distances along them are plain
metre offsets.
"""

import asyncio
import math
from typing import List, Sequence

from navigation.guidance.geo_utils import EARTH_RADIUS_M
from navigation.guidance.models import Coord, ManeuverType, Route, RouteLeg, RouteStep, Waypoint

ORIGIN = Coord(39.92409, 32.845382)
SPEED_MS = 10.0
M_PER_DEG_LAT = math.radians(1.0) * EARTH_RADIUS_M


def offset(base: Coord, north_m: float = 0.0, east_m: float = 0.0) -> Coord:
    """Coordinate north_m / east_m metres away from base."""
    m_per_deg_lon = M_PER_DEG_LAT * math.cos(math.radians(base.lat))
    return Coord(base.lat + north_m / M_PER_DEG_LAT, base.lon + east_m / m_per_deg_lon)


def straight_leg(start: Coord, distance: float, turns: int = 1) -> RouteLeg:
    """depart → `turns` evenly spaced turns → arrive, heading north."""
    segments = turns + 1
    seg = distance / segments
    steps: List[RouteStep] = []
    for i in range(segments):
        here = offset(start, seg * i)
        there = offset(start, seg * (i + 1))
        steps.append(RouteStep(
            maneuver_type=ManeuverType.DEPART if i == 0 else ManeuverType.TURN,
            maneuver_location=here,
            distance=seg,
            expected_travel_time=seg / SPEED_MS,
            instruction="Head north" if i == 0 else f"Turn {i}",
            geometry=(here, there),
        ))
    end = offset(start, distance)
    steps.append(RouteStep(
        maneuver_type=ManeuverType.ARRIVE,
        maneuver_location=end,
        distance=0.0,
        expected_travel_time=0.0,
        instruction="You have arrived",
        geometry=(end,),
    ))
    return RouteLeg(
        steps=tuple(steps),
        distance=distance,
        expected_travel_time=distance / SPEED_MS,
        destination=Waypoint(coord=end),
    )


def multi_leg_route(distances: Sequence[float], start: Coord = ORIGIN, turns: int = 1) -> Route:
    legs = []
    waypoints = [Waypoint(coord=start)]
    here = start
    for distance in distances:
        leg = straight_leg(here, distance, turns=turns)
        legs.append(leg)
        here = leg.steps[-1].maneuver_location
        waypoints.append(Waypoint(coord=here))
    return Route(legs=tuple(legs), waypoints=tuple(waypoints))


class ControlledDirections:
    """
    Directions double whose responses are released by the test.

    With stubborn=True the fake ignores cancellation and still delivers its
    result, like an HTTP stack that cannot abort a response already in flight.
    """

    def __init__(self, stubborn: bool = False) -> None:
        self.stubborn = stubborn
        self.calls = []

    async def calculate(self, waypoints):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((list(waypoints), future))
        if not self.stubborn:
            return await future
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            return await future


async def settle(rounds: int = 5) -> None:
    """Let pending tasks and their done-callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
