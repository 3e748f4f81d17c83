"""Domain events emitted by version lifecycle transitions.

Events are published after the transition's transaction commits, so a
subscriber never sees an event for a rolled-back change. Each event is
logged, kept in a bounded in-process buffer of recent events, and handed
to any registered subscribers.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List

logger = logging.getLogger(__name__)

DRAFT_CREATED = "version.draft_created"
VERSION_PUBLISHED = "version.published"
VERSION_ARCHIVED = "version.archived"
DRAFT_DISCARDED = "version.discarded"
VERSION_RESTORED = "version.restored"

EVENT_TYPES = frozenset({DRAFT_CREATED, VERSION_PUBLISHED, VERSION_ARCHIVED, DRAFT_DISCARDED, VERSION_RESTORED})

Event = Dict[str, Any]
Subscriber = Callable[[Event], None]

EVENT_BUFFER_SIZE = 500

# Oldest events are dropped once the buffer is full
EVENT_BUFFER: Deque[Event] = deque(maxlen=EVENT_BUFFER_SIZE)
_SUBSCRIBERS: List[Subscriber] = []


def subscribe(handler: Subscriber) -> Callable[[], None]:
    """Register ``handler`` for every published event; return an unsubscribe callable."""
    _SUBSCRIBERS.append(handler)

    def _unsubscribe() -> None:
        if handler in _SUBSCRIBERS:
            _SUBSCRIBERS.remove(handler)

    return _unsubscribe


def publish(event_type: str, payload: Dict[str, Any]) -> Event:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"unknown event type: {event_type}")
    event: Event = {
        "type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "payload": dict(payload),
    }
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append(event)
    for handler in list(_SUBSCRIBERS):
        try:
            handler(event)
        except Exception:
            # Subscribers run after commit; their failures are only logged
            logger.error("event_subscriber_failed type=%s handler=%r", event_type, handler, exc_info=True)
    return event


def get_buffered_events(clear: bool = True) -> List[Event]:
    """Return buffered events in publish order; optionally clear the buffer."""
    buffered = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return buffered


__all__ = [
    "DRAFT_CREATED",
    "VERSION_PUBLISHED",
    "VERSION_ARCHIVED",
    "DRAFT_DISCARDED",
    "VERSION_RESTORED",
    "EVENT_TYPES",
    "EVENT_BUFFER",
    "EVENT_BUFFER_SIZE",
    "publish",
    "subscribe",
    "get_buffered_events",
]
