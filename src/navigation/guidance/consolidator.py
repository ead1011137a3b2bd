# consolidator.py
# Collapses a multi-leg route into a single leg.
# Intermediate "arrive"/"depart" instructions are dropped and the original leg
# boundaries are kept as main_maneuver_locations for later reroutes.

import logging
from dataclasses import replace
from typing import List

from .errors import RouteStructureError
from .models import Coord, ManeuverType, Route, RouteLeg, RouteStep

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _check_structure(route: Route) -> None:
    if not route.legs:
        raise RouteStructureError("Route has no legs.")
    for index, leg in enumerate(route.legs):
        if not leg.steps:
            raise RouteStructureError(f"Leg {index} has no steps.")


def _without(steps, *excluded: ManeuverType) -> List[RouteStep]:
    return [s for s in steps if s.maneuver_type not in excluded]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def consolidate(route: Route, user_position: Coord) -> Route:
    """
    Merge every leg of route into one leg.

    Args:
        route:         Route as returned by the directions service.
        user_position: Reroute origin, or the original departure point.

    Returns:
        A new single-leg Route. A single-leg input comes back unchanged apart
        from its one maneuver anchor (the last step's maneuver location).

    Raises:
        RouteStructureError: the route has no legs, a leg has no steps, or a
            leg holds nothing but the depart/arrive steps dropped from it.
    """
    _check_structure(route)

    if len(route.legs) == 1:
        leg = route.legs[0]
        anchored = replace(leg, main_maneuver_locations=(leg.steps[-1].maneuver_location,))
        return replace(route, legs=(anchored,))

    last_index = len(route.legs) - 1
    anchors: List[Coord] = [user_position]
    steps: List[RouteStep] = []

    for index, leg in enumerate(route.legs):
        if index == 0:
            kept = _without(leg.steps, ManeuverType.ARRIVE)
            anchor = leg.steps[0].maneuver_location
        elif index == last_index:
            kept = _without(leg.steps, ManeuverType.DEPART)
            anchor = leg.steps[-1].maneuver_location
        else:
            kept = _without(leg.steps, ManeuverType.ARRIVE, ManeuverType.DEPART)
            anchor = kept[0].maneuver_location if kept else None

        if not kept:
            raise RouteStructureError(f"Leg {index} has no steps besides depart/arrive.")
        anchors.append(anchor)
        steps.extend(kept)

    merged = RouteLeg(
        steps=tuple(steps),
        distance=sum(leg.distance for leg in route.legs),
        expected_travel_time=sum(leg.expected_travel_time for leg in route.legs),
        destination=route.legs[-1].destination,
        main_maneuver_locations=tuple(anchors),
    )

    waypoints = route.waypoints
    if len(waypoints) >= 2:
        waypoints = (waypoints[0], waypoints[-1])

    logger.debug(
        f"Consolidated {len(route.legs)} legs into one: "
        f"{len(steps)} steps, {merged.distance:.0f} m, {len(anchors)} anchors."
    )
    return Route(legs=(merged,), waypoints=waypoints)
