# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

REROUTE_MIN_DISTANCE_M: float = 50.0        # hysteresis between off-route triggers
REROUTE_HEADING_ACCURACY_DEG: float = 90.0  # tolerance sent with the first waypoint


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Progress tracking
    maneuver_zone_radius_m: float = 20.0    # inside this the step counts as travelled
    off_route_threshold_m: float = 50.0     # distance from the step path → off-route
    arrival_threshold_m: float = 20.0       # distance to final maneuver → arrived

    # Alert levels (distance to upcoming maneuver, descending)
    low_alert_distance_m: float = 500.0
    medium_alert_distance_m: float = 200.0
    high_alert_distance_m: float = 50.0

    # Rerouting
    reroute_min_distance_m: float = REROUTE_MIN_DISTANCE_M
    reroute_heading_accuracy_deg: float = REROUTE_HEADING_ACCURACY_DEG

    # Directions service (OSRM)
    directions_base_url: str = "https://router.project-osrm.org"
    directions_profile: str = "driving"
    directions_timeout_s: float = 10.0
    directions_max_retries: int = 2
    directions_backoff_s: float = 1.0      # doubled after every failed attempt

    def __post_init__(self) -> None:
        if not (
            self.low_alert_distance_m
            >= self.medium_alert_distance_m
            >= self.high_alert_distance_m
            > 0
        ):
            raise ValueError(
                "Alert distances must descend: low >= medium >= high > 0 "
                f"(got {self.low_alert_distance_m}, {self.medium_alert_distance_m}, "
                f"{self.high_alert_distance_m})"
            )
