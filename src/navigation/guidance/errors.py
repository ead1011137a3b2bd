# errors.py
# Exception taxonomy for the guidance core.
#
#   precondition violations  → RouteStructureError, InvalidDestinationError
#                              (raised straight to the caller)
#   external failures        → DirectionsError
#                              (absorbed by RerouteCoordinator, reported as an event)

from typing import Optional


class NavigationError(Exception):
    """Base exception for the guidance package."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class RouteStructureError(NavigationError, ValueError):
    """Route is missing legs or steps it must have."""

    def __init__(self, message: str = "Malformed route"):
        super().__init__(message)


class InvalidDestinationError(NavigationError, ValueError):
    """Destination change needs at least two coordinates."""

    def __init__(self, message: str = "At least two coordinates are required"):
        super().__init__(message)


class DirectionsError(NavigationError):
    """Directions service failed or returned no usable route."""

    def __init__(self, message: str = "Directions service unavailable",
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
