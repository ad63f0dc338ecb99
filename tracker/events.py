import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'EXPENSE_ADDED', 'EXPENSE_DELETED', 'NOTIFY',
    'Event', 'EventBus', 'Notification', 'notify', 'collect_notifications',
]

log = logging.getLogger(__name__)

EXPENSE_ADDED = "EXPENSE_ADDED"
EXPENSE_DELETED = "EXPENSE_DELETED"
NOTIFY = "NOTIFY"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


class Notification(NamedTuple):
    level: str   # "success" | "error"
    message: str


Handler = Callable[[Event, dict], dict]


class EventBus:
    """Synchronous publish/subscribe, one instance per user session."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        log.debug("publish %s to %d handler(s)", name, len(self._subscribers[name]))

        results = []
        for handler in list(self._subscribers[name]):
            result = handler(event, payload)
            results.append(result if result is not None else {})
        return results


def notify(bus: EventBus, level: str, message: str) -> Notification:
    note = Notification(level, message)
    if level == "error":
        log.warning("user notification: %s", message)
    bus.publish(NOTIFY, {"notification": note})
    return note


def collect_notifications(bus: EventBus) -> List[Notification]:
    """Subscribe a collector; the returned list fills as notifications arrive."""
    collected: List[Notification] = []

    def _collect(event: Event, payload: dict) -> dict:
        collected.append(payload["notification"])
        return {}

    bus.subscribe(NOTIFY, _collect)
    return collected
