# events.py
# Explicit publish/subscribe channels for navigation events.
# Subscribers register and unregister themselves; nothing is dispatched globally.

import logging
from typing import Callable, Generic, List, TypeVar

from .models import LocationSample, RouteProgress

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """
    A single typed event stream.

    Usage:
        channel.subscribe(on_progress)
        channel.emit(progress)
        channel.unsubscribe(on_progress)
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, payload: T) -> None:
        """
        Deliver payload to every subscriber in registration order.

        A failing subscriber is logged and skipped so one broken consumer
        cannot interrupt live navigation.
        """
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on '{self.name}'")


class NavigationEvents:
    """All outbound channels of a navigation session."""

    def __init__(self) -> None:
        self.progress_changed: EventChannel[RouteProgress] = EventChannel("progress_changed")
        self.alert_level_changed: EventChannel[RouteProgress] = EventChannel("alert_level_changed")
        self.off_route: EventChannel[LocationSample] = EventChannel("off_route")
        self.arrived: EventChannel[RouteProgress] = EventChannel("arrived")
        self.reroute_applied: EventChannel[RouteProgress] = EventChannel("reroute_applied")
        self.reroute_failed: EventChannel[Exception] = EventChannel("reroute_failed")
