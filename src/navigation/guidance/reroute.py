# reroute.py
# Decides when to ask the directions service for a new route and applies the
# answer. Only the newest request may replace the active route.

import asyncio
import functools
import logging
from enum import Enum
from typing import List, Optional, Sequence

from .consolidator import consolidate
from .directions import DirectionsService
from .errors import DirectionsError, InvalidDestinationError, RouteStructureError
from .events import NavigationEvents
from .geo_utils import coord_distance
from .models import Coord, LocationSample, Route, RouteProgress, Waypoint
from .nav_config import NavConfig
from .route_tracker import ProgressTracker

logger = logging.getLogger(__name__)


class RerouteState(Enum):
    IDLE       = "idle"
    REQUESTING = "requesting"
    APPLYING   = "applying"


class RerouteCoordinator:
    """
    Issues and resolves route recalculation requests.

    Every request gets a sequence token. A completion is applied only if its
    token is still the current one, so a slow response can never overwrite the
    result of a newer request, whether or not the transport honoured the
    cancellation of the older one.

    All methods must be called from the event loop thread; completions are
    delivered there as task done-callbacks.

    Args:
        tracker: ProgressTracker owning the active route.
        service: Directions backend (e.g. OSRMDirectionsService).
        events:  Channels used for reroute_applied / reroute_failed.
        config:  NavConfig for hysteresis distance and heading tolerance.
    """

    def __init__(
        self,
        tracker: ProgressTracker,
        service: DirectionsService,
        events: NavigationEvents,
        config: Optional[NavConfig] = None,
    ) -> None:
        self.config = config or NavConfig()
        self.events = events
        self._tracker = tracker
        self._service = service
        self._state = RerouteState.IDLE
        self._token = 0
        self._task: Optional[asyncio.Future] = None
        self._last_reroute_location: Optional[Coord] = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> RerouteState:
        return self._state

    @property
    def token(self) -> int:
        return self._token

    @property
    def pending(self) -> Optional[asyncio.Future]:
        """The in-flight request, if any."""
        return self._task

    @property
    def last_reroute_location(self) -> Optional[Coord]:
        return self._last_reroute_location

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def handle_off_route(self, sample: LocationSample) -> bool:
        """
        Trigger A: the tracker reported the sample as off the route.

        Returns:
            True if a recalculation request was issued, False if suppressed.
        """
        progress = self._tracker.progress
        if progress is None:
            logger.debug("Off-route ignored: no active route.")
            return False

        if self._last_reroute_location is not None:
            moved = coord_distance(sample.coord, self._last_reroute_location)
            if moved < self.config.reroute_min_distance_m:
                logger.debug(f"Reroute suppressed: only {moved:.0f} m from the last one.")
                return False

        first = Waypoint(coord=sample.coord)
        if sample.has_course:
            first = Waypoint(
                coord=sample.coord,
                heading=sample.course,
                heading_accuracy=self.config.reroute_heading_accuracy_deg,
            )
        waypoints = [first] + [Waypoint(coord=c) for c in _remaining_anchors(progress)]

        logger.info(f"Off route at {sample.coord}; rerouting via {len(waypoints) - 1} anchors.")
        self._issue(waypoints, origin=sample.coord)
        self._last_reroute_location = sample.coord
        return True

    def new_destination(self, coordinates: Sequence[Coord]) -> None:
        """
        Trigger B: replace the route with one through the given coordinates.

        Ignores hysteresis and supersedes any in-flight request.

        Raises:
            InvalidDestinationError: fewer than two coordinates.
        """
        if len(coordinates) < 2:
            raise InvalidDestinationError(
                f"A destination change needs at least two coordinates, got {len(coordinates)}."
            )
        logger.info(f"New destination requested through {len(coordinates)} coordinates.")
        self._issue([Waypoint(coord=c) for c in coordinates], origin=coordinates[0])

    def close(self) -> None:
        """Cancel any in-flight request and ignore its eventual response."""
        self._cancel_in_flight()
        self._token += 1
        self._state = RerouteState.IDLE

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    def _issue(self, waypoints: List[Waypoint], origin: Coord) -> int:
        # Nothing changes until the request is actually scheduled
        loop = asyncio.get_running_loop()
        token = self._token + 1
        task = asyncio.ensure_future(self._service.calculate(waypoints), loop=loop)
        task.add_done_callback(functools.partial(self._on_complete, token, origin))

        self._cancel_in_flight()
        self._token = token
        self._state = RerouteState.REQUESTING
        self._task = task
        logger.debug(f"Reroute request #{token} issued with {len(waypoints)} waypoints.")
        return token

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            # Best effort: the transport may still deliver, the token check covers it
            self._task.cancel()
        self._task = None

    def _on_complete(self, token: int, origin: Coord, task: asyncio.Future) -> None:
        if token != self._token:
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"Stale reroute #{token} failed: {task.exception()}")
            logger.debug(f"Discarding stale reroute response #{token} (current #{self._token}).")
            return

        self._task = None
        if task.cancelled():
            self._state = RerouteState.IDLE
            return

        error = task.exception()
        if error is not None:
            self._fail(error)
            return

        routes = task.result()
        if not routes:
            self._fail(DirectionsError("Directions service returned no routes."))
            return
        self._apply(token, routes[0], origin)

    def _apply(self, token: int, route: Route, origin: Coord) -> None:
        self._state = RerouteState.APPLYING
        try:
            progress: RouteProgress = self._tracker.load_route(consolidate(route, origin))
        except RouteStructureError as e:
            logger.error(f"Directions service returned a malformed route: {e}")
            self._fail(e)
            return

        logger.info(
            f"Reroute #{token} applied: {progress.current_leg.distance:.0f} m, "
            f"{len(progress.current_leg.steps)} steps."
        )
        self.events.reroute_applied.emit(progress)
        if self._token == token:
            self._state = RerouteState.IDLE

    def _fail(self, error: BaseException) -> None:
        self._state = RerouteState.IDLE
        logger.warning(f"Reroute failed, keeping the current route: {error}")
        self.events.reroute_failed.emit(error)


def _remaining_anchors(progress: RouteProgress) -> List[Coord]:
    """
    Leg boundaries a reroute must pass through, destination last.

    After a multi-leg consolidation the first anchor is the old origin and is
    replaced by the current location; a single-leg route only carries its
    destination.
    """
    anchors = list(progress.current_leg.main_maneuver_locations)
    if not anchors:
        raise RouteStructureError("Active route has no maneuver anchors; consolidate it first.")
    if len(anchors) == 1:
        return anchors
    return anchors[1:]
