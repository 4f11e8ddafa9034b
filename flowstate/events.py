import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = ['STORE_CHANGED', 'Event', 'EventBus', 'persist_handler', 'invalidate_handler']

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    """Synchronous publish/subscribe; handlers run in subscription order."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = list(self._subscribers.get(name, ()))
        if not handlers:
            return []
        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in handlers]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)


STORE_CHANGED = "STORE_CHANGED"


def persist_handler(storage) -> Handler:
    """Save every published snapshot; failures are logged, never raised."""
    def _persist(event: Event, payload: dict) -> dict:
        snapshot = payload.get("snapshot")
        if snapshot is None:
            return {}
        try:
            storage.save(snapshot)
        except OSError:
            logger.exception("Failed to persist snapshot after %s", payload.get("action"))
            return {"persisted": False}
        return {"persisted": True}

    return _persist


def invalidate_handler(clear: Callable[[], None]) -> Handler:
    def _invalidate(event: Event, payload: dict) -> dict:
        clear()
        return {"invalidated": True}

    return _invalidate
