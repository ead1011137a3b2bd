# models.py
# Shared data structures and enums used across all modules.
# Every object here is an immutable snapshot: routes and progress are replaced,
# never edited in place.

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# Coordinates / waypoints
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate."""
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @staticmethod
    def from_dict(d: dict) -> "Coord":
        return Coord(float(d["lat"]), float(d["lon"]))


@dataclass(frozen=True)
class Waypoint:
    """A coordinate sent to the directions service, optionally with a heading."""
    coord: Coord
    heading: Optional[float] = None            # degrees clockwise from north
    heading_accuracy: Optional[float] = None   # +/- degrees
    name: Optional[str] = None


@dataclass(frozen=True)
class LocationSample:
    """One position fix from the GPS or the simulator."""
    coord: Coord
    course: float = -1.0       # -1 when the heading is unknown
    timestamp: float = 0.0

    @property
    def has_course(self) -> bool:
        return self.course >= 0


# ---------------------------------------------------------------------------
# Route structure
# ---------------------------------------------------------------------------

class ManeuverType(Enum):
    DEPART       = "depart"
    ARRIVE       = "arrive"
    TURN         = "turn"
    CONTINUE     = "continue"
    NEW_NAME     = "new name"
    MERGE        = "merge"
    ON_RAMP      = "on ramp"
    OFF_RAMP     = "off ramp"
    FORK         = "fork"
    END_OF_ROAD  = "end of road"
    ROUNDABOUT   = "roundabout"
    ROTARY       = "rotary"
    NOTIFICATION = "notification"

    @staticmethod
    def parse(value: Optional[str]) -> "ManeuverType":
        """Wire value → enum. Missing or unknown types count as a plain turn."""
        try:
            return ManeuverType(value)
        except ValueError:
            return ManeuverType.TURN


@dataclass(frozen=True)
class RouteStep:
    """A single maneuver instruction in a route."""
    maneuver_type: ManeuverType
    maneuver_location: Coord
    distance: float                      # metres
    expected_travel_time: float          # seconds
    instruction: str = ""
    name: Optional[str] = None
    geometry: Tuple[Coord, ...] = ()

    def to_dict(self) -> dict:
        return {
            "maneuver_type": self.maneuver_type.value,
            "maneuver_location": self.maneuver_location.to_dict(),
            "distance": self.distance,
            "expected_travel_time": self.expected_travel_time,
            "instruction": self.instruction,
            "name": self.name,
            "geometry": [c.to_dict() for c in self.geometry],
        }

    @staticmethod
    def from_dict(d: dict) -> "RouteStep":
        return RouteStep(
            maneuver_type=ManeuverType.parse(d.get("maneuver_type")),
            maneuver_location=Coord.from_dict(d["maneuver_location"]),
            distance=float(d["distance"]),
            expected_travel_time=float(d["expected_travel_time"]),
            instruction=d.get("instruction", ""),
            name=d.get("name"),
            geometry=tuple(Coord.from_dict(c) for c in d.get("geometry", [])),
        )


@dataclass(frozen=True)
class RouteLeg:
    """
    Ordered steps between two waypoints.

    main_maneuver_locations is filled in by the consolidator and marks where
    the original leg boundaries were, so a later reroute can rebuild the
    remaining waypoint chain.
    """
    steps: Tuple[RouteStep, ...]
    distance: float
    expected_travel_time: float
    destination: Optional[Waypoint] = None
    main_maneuver_locations: Tuple[Coord, ...] = ()

    def to_dict(self) -> dict:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "distance": self.distance,
            "expected_travel_time": self.expected_travel_time,
            "destination": _waypoint_to_dict(self.destination) if self.destination else None,
            "main_maneuver_locations": [c.to_dict() for c in self.main_maneuver_locations],
        }

    @staticmethod
    def from_dict(d: dict) -> "RouteLeg":
        dest = d.get("destination")
        return RouteLeg(
            steps=tuple(RouteStep.from_dict(s) for s in d["steps"]),
            distance=float(d["distance"]),
            expected_travel_time=float(d["expected_travel_time"]),
            destination=_waypoint_from_dict(dest) if dest else None,
            main_maneuver_locations=tuple(
                Coord.from_dict(c) for c in d.get("main_maneuver_locations", [])
            ),
        )


@dataclass(frozen=True)
class Route:
    """Ordered legs plus the waypoints that were used to request them."""
    legs: Tuple[RouteLeg, ...]
    waypoints: Tuple[Waypoint, ...] = ()

    @property
    def distance(self) -> float:
        return sum(leg.distance for leg in self.legs)

    @property
    def expected_travel_time(self) -> float:
        return sum(leg.expected_travel_time for leg in self.legs)

    @property
    def coordinates(self) -> List[Coord]:
        """Full route polyline; maneuver locations stand in for missing geometry."""
        coords: List[Coord] = []
        for leg in self.legs:
            for step in leg.steps:
                points = step.geometry or (step.maneuver_location,)
                for c in points:
                    if not coords or coords[-1] != c:
                        coords.append(c)
        return coords

    def to_dict(self) -> dict:
        return {
            "legs": [leg.to_dict() for leg in self.legs],
            "waypoints": [_waypoint_to_dict(w) for w in self.waypoints],
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            legs=tuple(RouteLeg.from_dict(leg) for leg in d["legs"]),
            waypoints=tuple(_waypoint_from_dict(w) for w in d.get("waypoints", [])),
        )


def _waypoint_to_dict(w: Waypoint) -> dict:
    return {
        "location": w.coord.to_dict(),
        "heading": w.heading,
        "heading_accuracy": w.heading_accuracy,
        "name": w.name,
    }


def _waypoint_from_dict(d: dict) -> Waypoint:
    return Waypoint(
        coord=Coord.from_dict(d["location"]),
        heading=d.get("heading"),
        heading_accuracy=d.get("heading_accuracy"),
        name=d.get("name"),
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class AlertLevel(IntEnum):
    """Proximity-to-maneuver classification. Ordered, so max() escalates."""
    NONE   = 0
    LOW    = 1
    MEDIUM = 2
    HIGH   = 3
    ARRIVE = 4


@dataclass(frozen=True)
class RouteProgress:
    """Snapshot of where the user is on the active route."""
    route: Route
    leg_index: int = 0
    step_index: int = 0
    alert_level: AlertLevel = AlertLevel.NONE
    distance_to_maneuver: Optional[float] = None   # metres
    distance_remaining: float = 0.0                # metres
    duration_remaining: float = 0.0                # seconds
    arrived: bool = False
    sample: Optional[LocationSample] = field(default=None, compare=False)

    @property
    def current_leg(self) -> RouteLeg:
        return self.route.legs[self.leg_index]

    @property
    def current_step(self) -> RouteStep:
        return self.current_leg.steps[self.step_index]

    @property
    def upcoming_step(self) -> Optional[RouteStep]:
        steps = self.current_leg.steps
        if self.step_index + 1 < len(steps):
            return steps[self.step_index + 1]
        return None

    @property
    def is_final_step(self) -> bool:
        """True while the upcoming maneuver is the last one of the leg."""
        return self.step_index + 2 >= len(self.current_leg.steps)
