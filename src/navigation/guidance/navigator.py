# navigator.py
# Public entry point for the guidance core.
# Owns no business logic; it wires the specialist modules together.

import logging
from typing import Optional, Sequence

from .consolidator import consolidate
from .directions import DirectionsService, OSRMDirectionsService
from .errors import DirectionsError, InvalidDestinationError
from .events import NavigationEvents
from .models import Coord, LocationSample, Route, RouteProgress, Waypoint
from .nav_config import NavConfig
from .reroute import RerouteCoordinator, RerouteState
from .route_tracker import ProgressTracker

logger = logging.getLogger(__name__)


class NavigationSession:
    """
    High-level navigation facade.

    Typical lifecycle:
        session = NavigationSession(OSRMDirectionsService(config), config)
        session.events.alert_level_changed.subscribe(on_alert)
        await session.start_navigation([origin, stop, destination])

        # GPS loop (inside the event loop):
        progress = session.update(LocationSample(coord, course, timestamp))

    Args:
        service: Directions backend; defaults to OSRMDirectionsService(config).
        config:  Optional NavConfig; defaults to NavConfig().
    """

    def __init__(
        self,
        service: Optional[DirectionsService] = None,
        config: Optional[NavConfig] = None,
    ) -> None:
        self.config = config or NavConfig()
        self.events = NavigationEvents()
        self._service = service or OSRMDirectionsService(self.config)

        # Specialist modules
        self._tracker = ProgressTracker(self.events, self.config)
        self._coordinator = RerouteCoordinator(
            self._tracker, self._service, self.events, self.config
        )
        self.events.off_route.subscribe(self._coordinator.handle_off_route)

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def load_route(self, route: Route, origin: Optional[Coord] = None) -> RouteProgress:
        """
        Consolidate an already calculated route and begin tracking it.

        Args:
            route:  Route from the directions service, any number of legs.
            origin: Departure point; defaults to the first step's maneuver.
        """
        if origin is None and route.legs and route.legs[0].steps:
            origin = route.legs[0].steps[0].maneuver_location
        consolidated = consolidate(route, origin)
        progress = self._tracker.load_route(consolidated)
        logger.info(
            f"Route ready: {len(route.legs)} legs merged, "
            f"{len(consolidated.legs[0].steps)} steps, {consolidated.distance:.0f} m."
        )
        return progress

    async def start_navigation(self, coordinates: Sequence[Coord]) -> RouteProgress:
        """
        Calculate a route through the coordinates and begin tracking.

        Unlike a reroute, a failure here is raised: there is no route to fall
        back on yet.

        Raises:
            InvalidDestinationError: fewer than two coordinates.
            DirectionsError: the service failed or found no route.
        """
        if len(coordinates) < 2:
            raise InvalidDestinationError(
                f"At least two coordinates are required to start navigation, got {len(coordinates)}."
            )
        logger.info(f"Calculating route: {coordinates[0]} → {coordinates[-1]}")
        routes = await self._service.calculate([Waypoint(coord=c) for c in coordinates])
        if not routes:
            raise DirectionsError("No route found between these points.")
        return self.load_route(routes[0], origin=coordinates[0])

    def new_destination(self, coordinates: Sequence[Coord]) -> None:
        """Reroute through a fresh coordinate chain (see RerouteCoordinator)."""
        self._coordinator.new_destination(coordinates)

    def stop_navigation(self) -> None:
        """Forcibly end the current navigation session."""
        self._coordinator.close()
        self._tracker.stop()
        logger.info("Navigation stopped by user.")

    # ------------------------------------------------------------------
    # Location update: call this on every position fix
    # ------------------------------------------------------------------

    def update(self, sample: LocationSample) -> Optional[RouteProgress]:
        """
        Process a new location sample.

        Must run inside the event loop, since an off-route sample may start a
        recalculation request.
        """
        return self._tracker.update(sample)

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def progress(self) -> Optional[RouteProgress]:
        return self._tracker.progress

    @property
    def is_active(self) -> bool:
        return self._tracker.is_active

    @property
    def reroute_state(self) -> RerouteState:
        return self._coordinator.state

    @property
    def coordinator(self) -> RerouteCoordinator:
        return self._coordinator
