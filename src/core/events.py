"""In-process publish/subscribe channel for invitation lifecycle events."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Callable

logger = logging.getLogger(__name__)


class InvitationEventType(str, Enum):
    """Kinds of invitation events."""

    CREATED = "created"
    CANCELLED = "cancelled"
    ACCEPTED = "accepted"
    ACCEPTANCE_FAILED = "acceptance_failed"
    NOTIFICATION_FAILED = "notification_failed"


@dataclass(frozen=True)
class InvitationEvent:
    """Something happened to an invitation."""

    type: InvitationEventType
    company_id: str | None = None
    invitation_id: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[InvitationEvent], None]


class InvitationEventBus:
    """Thread-safe fan-out of invitation events to subscribers.

    A failing subscriber is logged and skipped; it never prevents delivery
    to the others or propagates into the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event: InvitationEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        logger.debug("Publishing %s event to %d subscribers", event.type.value, len(subscribers))
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Invitation event subscriber failed for %s", event.type.value)

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


# Global singleton instance
_invitation_events: InvitationEventBus | None = None


def get_invitation_events() -> InvitationEventBus:
    """Get or create the global invitation event bus."""
    global _invitation_events
    if _invitation_events is None:
        _invitation_events = InvitationEventBus()
    return _invitation_events


def shutdown_invitation_events() -> None:
    """Drop all subscribers. Call at app shutdown."""
    global _invitation_events
    if _invitation_events:
        _invitation_events.clear()
        _invitation_events = None
