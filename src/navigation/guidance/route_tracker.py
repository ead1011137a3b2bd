# route_tracker.py
# State machine that tracks a user's position against the active route.
# Call load_route() once per route, then update() on every location sample.

import logging
from dataclasses import replace
from typing import Optional, Sequence

from .errors import RouteStructureError
from .events import NavigationEvents
from .geo_utils import coord_distance, distance_to_path, remaining_along_path
from .models import AlertLevel, Coord, LocationSample, Route, RouteLeg, RouteProgress
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class ProgressTracker:
    """
    Stateful progress tracker for a single navigation session.

    Every update produces a fresh RouteProgress snapshot; the previous one is
    never modified, so subscribers can keep a reference safely.

    Usage:
        tracker = ProgressTracker(events, config)
        tracker.load_route(consolidated_route)

        # Inside GPS loop:
        progress = tracker.update(sample)
    """

    def __init__(self, events: NavigationEvents, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self.events = events
        self._progress: Optional[RouteProgress] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def load_route(self, route: Route) -> RouteProgress:
        """
        Start tracking a consolidated route from its first step.

        Raises:
            RouteStructureError: route is not a single leg with steps.
        """
        if len(route.legs) != 1:
            raise RouteStructureError(
                f"Expected a consolidated single-leg route, got {len(route.legs)} legs."
            )
        leg = route.legs[0]
        if not leg.steps:
            raise RouteStructureError("Route leg has no steps.")

        self._progress = RouteProgress(
            route=route,
            distance_remaining=leg.distance,
            duration_remaining=leg.expected_travel_time,
        )
        logger.info(f"Tracking route: {len(leg.steps)} steps, {leg.distance:.0f} m.")
        return self._progress

    def stop(self) -> None:
        """Forcibly end tracking."""
        self._progress = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._progress is not None and not self._progress.arrived

    @property
    def progress(self) -> Optional[RouteProgress]:
        return self._progress

    # ------------------------------------------------------------------
    # Core method: call on every location sample
    # ------------------------------------------------------------------

    def update(self, sample: LocationSample) -> Optional[RouteProgress]:
        """
        Compare a location sample to the active route.

        Args:
            sample: Current position fix.

        Returns:
            The new RouteProgress snapshot, or None when no route is loaded.
        """
        previous = self._progress
        if previous is None:
            logger.debug("Sample ignored: no active route.")
            return None

        if previous.arrived:
            self._progress = replace(previous, sample=sample)
            self.events.progress_changed.emit(self._progress)
            return self._progress

        leg = previous.current_leg
        step_index = previous.step_index

        # 1. Off-route: keep the cursor where it is and let the coordinator decide
        off_by = distance_to_path(sample.coord, _step_path(leg, step_index))
        if off_by > self.config.off_route_threshold_m:
            logger.debug(f"Off route by {off_by:.0f} m on step {step_index}.")
            self._progress = self._snapshot(previous, step_index, previous.alert_level, sample)
            self.events.off_route.emit(sample)
            self.events.progress_changed.emit(self._progress)
            return self._progress

        # 2. Advance past every maneuver the sample has reached
        level = previous.alert_level
        arrived = False
        last_index = len(leg.steps) - 1
        while True:
            distance = coord_distance(sample.coord, _target(leg, step_index).maneuver_location)
            # Overshooting the maneuver without entering its zone still completes the step
            left = min(distance, remaining_along_path(sample.coord, _step_path(leg, step_index)))
            if step_index + 1 >= last_index:
                arrived = left <= self.config.arrival_threshold_m
                break
            if left > self.config.maneuver_zone_radius_m:
                break
            step_index += 1
            level = AlertLevel.NONE

        # 3. Alert level only rises within a step
        if arrived:
            step_index = last_index
            level = AlertLevel.ARRIVE
        else:
            level = max(level, self._classify(distance))

        current = self._snapshot(previous, step_index, level, sample, arrived=arrived)
        self._progress = current

        if current.alert_level != previous.alert_level:
            logger.info(
                f"Alert level {previous.alert_level.name} → {current.alert_level.name} "
                f"(step {current.step_index}, {current.distance_to_maneuver:.0f} m)."
            )
            self.events.alert_level_changed.emit(current)
        if arrived:
            logger.info("Destination reached.")
            self.events.arrived.emit(current)
        self.events.progress_changed.emit(current)
        return current

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _classify(self, distance: float) -> AlertLevel:
        if distance <= self.config.high_alert_distance_m:
            return AlertLevel.HIGH
        if distance <= self.config.medium_alert_distance_m:
            return AlertLevel.MEDIUM
        if distance <= self.config.low_alert_distance_m:
            return AlertLevel.LOW
        return AlertLevel.NONE

    def _snapshot(
        self,
        previous: RouteProgress,
        step_index: int,
        level: AlertLevel,
        sample: LocationSample,
        arrived: bool = False,
    ) -> RouteProgress:
        leg = previous.current_leg
        if arrived:
            return replace(
                previous,
                step_index=step_index,
                alert_level=level,
                distance_to_maneuver=0.0,
                distance_remaining=0.0,
                duration_remaining=0.0,
                arrived=True,
                sample=sample,
            )

        distance = coord_distance(sample.coord, _target(leg, step_index).maneuver_location)
        later = leg.steps[step_index + 1:]
        current_step = leg.steps[step_index]
        fraction = min(1.0, distance / current_step.distance) if current_step.distance > 0 else 0.0

        return replace(
            previous,
            step_index=step_index,
            alert_level=level,
            distance_to_maneuver=distance,
            distance_remaining=distance + sum(s.distance for s in later),
            duration_remaining=(
                current_step.expected_travel_time * fraction
                + sum(s.expected_travel_time for s in later)
            ),
            sample=sample,
        )


def _target(leg: RouteLeg, step_index: int):
    """The maneuver the user is heading towards while on step_index."""
    return leg.steps[min(step_index + 1, len(leg.steps) - 1)]


def _step_path(leg: RouteLeg, step_index: int) -> Sequence[Coord]:
    """
    Expected path while on step_index, always ending at the upcoming maneuver.

    Consolidation drops the depart step of each later leg along with its
    geometry, so the previous step's line is bridged to the next maneuver.
    """
    step = leg.steps[step_index]
    path = list(step.geometry) or [step.maneuver_location]
    if step_index + 1 < len(leg.steps):
        upcoming = leg.steps[step_index + 1].maneuver_location
        if path[-1] != upcoming:
            path.append(upcoming)
    return path
