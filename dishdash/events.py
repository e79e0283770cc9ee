import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'event_bus', 'RECORD_SAVED', 'RECORD_DELETED', 'ACTION_FAILED', 'VALIDATION_FAILED',
    'Event', 'EventBus', 'register_default_handlers',
]

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.setdefault(name, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in self._subscribers[name]]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


RECORD_SAVED = "RECORD_SAVED"
RECORD_DELETED = "RECORD_DELETED"
ACTION_FAILED = "ACTION_FAILED"
VALIDATION_FAILED = "VALIDATION_FAILED"

event_bus = EventBus()


def saved_notice_handler(event: Event, payload: dict) -> dict:
    label = payload.get("label", "Record")
    verb = "updated" if payload.get("updated") else "saved"
    return {"notice": "success", "message": f"{label} {verb} successfully"}


def deleted_notice_handler(event: Event, payload: dict) -> dict:
    return {"notice": "success", "message": f"{payload.get('label', 'Record')} deleted"}


def failure_notice_handler(event: Event, payload: dict) -> dict:
    action = payload.get("action", "complete the action")
    return {"notice": "error", "message": f"Failed to {action}: {payload.get('error', 'unknown error')}"}


def validation_notice_handler(event: Event, payload: dict) -> dict:
    return {"notice": "warning", "message": payload.get("message", "Please fill all fields correctly")}


def log_handler(event: Event, payload: dict) -> dict:
    level = logging.ERROR if event.name == ACTION_FAILED else logging.INFO
    logger.log(level, "%s %s", event.name, payload)
    return {}


def register_default_handlers(bus: EventBus = event_bus) -> EventBus:
    bus.subscribe(RECORD_SAVED, saved_notice_handler)
    bus.subscribe(RECORD_DELETED, deleted_notice_handler)
    bus.subscribe(ACTION_FAILED, failure_notice_handler)
    bus.subscribe(VALIDATION_FAILED, validation_notice_handler)
    for name in (RECORD_SAVED, RECORD_DELETED, ACTION_FAILED):
        bus.subscribe(name, log_handler)
    return bus


register_default_handlers()
