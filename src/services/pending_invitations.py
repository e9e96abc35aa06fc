"""Cached pending-invitation counts, kept fresh by invitation events."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from src.core.events import InvitationEvent, InvitationEventBus
from src.core.store import StoreResult
from src.services.invitation_service import InvitationService

logger = logging.getLogger(__name__)


@dataclass
class CountEntry:
    """A cached count with expiration."""

    value: int
    expires_at: float

    def is_expired(self) -> bool:
        return time.time() > self.expires_at


class PendingInvitationCounter:
    """Per-company pending counts for the header badge.

    Entries are dropped whenever an event names their company; events with
    no company (a cancellation by ID) drop everything. The TTL bounds
    staleness from writes made outside this process.
    """

    def __init__(
        self,
        invitation_service: InvitationService | None = None,
        ttl_seconds: int = 60,
    ) -> None:
        self._invitation_service = invitation_service
        self.ttl_seconds = ttl_seconds
        self._counts: dict[str, CountEntry] = {}
        self._lock = Lock()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def invitation_service(self) -> InvitationService:
        if self._invitation_service is None:
            self._invitation_service = InvitationService()
        return self._invitation_service

    def attach(self, events: InvitationEventBus) -> None:
        """Start listening to ``events``."""
        if self._unsubscribe is None:
            self._unsubscribe = events.subscribe(self.handle)
            logger.info("Pending invitation counter subscribed to invitation events")

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def handle(self, event: InvitationEvent) -> None:
        """Invalidate the counts an event may have changed."""
        with self._lock:
            if event.company_id is None:
                self._counts.clear()
            else:
                self._counts.pop(event.company_id, None)

    def peek(self, company_id: str) -> int | None:
        """Cached count, or None if absent or stale."""
        with self._lock:
            entry = self._counts.get(str(company_id))
            if entry is None or entry.is_expired():
                return None
            return entry.value

    async def get(self, company_id: str) -> StoreResult[int]:
        """Pending count for a company, from cache when fresh."""
        cached = self.peek(company_id)
        if cached is not None:
            return StoreResult.success(cached)

        result = await self.invitation_service.count_pending(company_id)
        if result.ok:
            with self._lock:
                self._counts[str(company_id)] = CountEntry(
                    value=result.data, expires_at=time.time() + self.ttl_seconds
                )
        return result


# Global singleton instance
_pending_counter: PendingInvitationCounter | None = None


def get_pending_invitation_counter() -> PendingInvitationCounter:
    """Get or create the global pending-invitation counter."""
    global _pending_counter
    if _pending_counter is None:
        _pending_counter = PendingInvitationCounter()
    return _pending_counter


def shutdown_pending_invitation_counter() -> None:
    global _pending_counter
    if _pending_counter:
        _pending_counter.detach()
        _pending_counter = None
