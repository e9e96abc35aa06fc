"""Unit tests for the invitation event bus and the pending-invitation counter."""

from unittest.mock import patch

import pytest

from src.core.events import (
    InvitationEvent,
    InvitationEventBus,
    InvitationEventType,
    get_invitation_events,
    shutdown_invitation_events,
)
from src.core.store import StoreError, StoreErrorKind
from src.services.invitation_service import INVITATIONS_TABLE
from src.services.pending_invitations import (
    PendingInvitationCounter,
    get_pending_invitation_counter,
    shutdown_pending_invitation_counter,
)

COMPANY_ID = "770e8400-e29b-41d4-a716-446655440000"
OTHER_COMPANY_ID = "990e8400-e29b-41d4-a716-446655440000"


class TestInvitationEventBus:
    """Tests for InvitationEventBus."""

    def test_delivers_to_all_subscribers(self) -> None:
        bus = InvitationEventBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)
        event = InvitationEvent(type=InvitationEventType.CREATED, company_id=COMPANY_ID)

        bus.publish(event)

        assert first == [event]
        assert second == [event]

    def test_unsubscribe_stops_delivery(self) -> None:
        bus = InvitationEventBus()
        received = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        bus.publish(InvitationEvent(type=InvitationEventType.CANCELLED))

        assert received == []
        assert bus.subscriber_count == 0

    def test_failing_subscriber_does_not_block_others(self) -> None:
        bus = InvitationEventBus()
        received = []

        def broken(event: InvitationEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        bus.publish(InvitationEvent(type=InvitationEventType.ACCEPTED, company_id=COMPANY_ID))

        assert len(received) == 1

    def test_singleton_lifecycle(self) -> None:
        shutdown_invitation_events()
        bus = get_invitation_events()
        bus.subscribe(lambda event: None)

        assert get_invitation_events() is bus

        shutdown_invitation_events()

        assert bus.subscriber_count == 0
        assert get_invitation_events() is not bus
        shutdown_invitation_events()


class TestInvitationServiceEvents:
    """Tests for the events InvitationService publishes."""

    @pytest.mark.asyncio
    async def test_create_publishes_created(self, invitation_service, events) -> None:
        received = []
        events.subscribe(received.append)

        result = await invitation_service.create_invitation(company_id=COMPANY_ID, invited_email="bob@co.com")

        assert [e.type for e in received] == [InvitationEventType.CREATED]
        assert received[0].invitation_id == str(result.data["id"])
        assert received[0].company_id == COMPANY_ID

    @pytest.mark.asyncio
    async def test_failed_create_publishes_nothing(self, invitation_service, events, memory_store) -> None:
        memory_store.fail("insert", INVITATIONS_TABLE, StoreError(kind=StoreErrorKind.TRANSPORT, message="down"))
        received = []
        events.subscribe(received.append)

        await invitation_service.create_invitation(company_id=COMPANY_ID, invited_email="bob@co.com")

        assert received == []


class TestPendingInvitationCounter:
    """Tests for PendingInvitationCounter."""

    @pytest.mark.asyncio
    async def test_counts_and_caches(self, invitation_service, memory_store) -> None:
        await invitation_service.create_invitation(company_id=COMPANY_ID, invited_email="a@co.com")
        counter = PendingInvitationCounter(invitation_service=invitation_service)

        first = await counter.get(COMPANY_ID)
        memory_store.calls.clear()
        second = await counter.get(COMPANY_ID)

        assert first.data == 1
        assert second.data == 1
        assert memory_store.calls == []

    @pytest.mark.asyncio
    async def test_created_event_invalidates_company(self, invitation_service, events) -> None:
        counter = PendingInvitationCounter(invitation_service=invitation_service)
        counter.attach(events)
        assert (await counter.get(COMPANY_ID)).data == 0

        await invitation_service.create_invitation(company_id=COMPANY_ID, invited_email="a@co.com")

        assert counter.peek(COMPANY_ID) is None
        assert (await counter.get(COMPANY_ID)).data == 1

    @pytest.mark.asyncio
    async def test_cancel_without_company_clears_everything(self, invitation_service, events) -> None:
        created = await invitation_service.create_invitation(company_id=COMPANY_ID, invited_email="a@co.com")
        counter = PendingInvitationCounter(invitation_service=invitation_service)
        counter.attach(events)
        await counter.get(COMPANY_ID)
        await counter.get(OTHER_COMPANY_ID)

        await invitation_service.cancel_invitation(created.data["id"])

        assert counter.peek(COMPANY_ID) is None
        assert counter.peek(OTHER_COMPANY_ID) is None
        assert (await counter.get(COMPANY_ID)).data == 0

    @pytest.mark.asyncio
    async def test_event_for_other_company_keeps_entry(self, invitation_service, events) -> None:
        counter = PendingInvitationCounter(invitation_service=invitation_service)
        counter.attach(events)
        await counter.get(COMPANY_ID)

        events.publish(InvitationEvent(type=InvitationEventType.CREATED, company_id=OTHER_COMPANY_ID))

        assert counter.peek(COMPANY_ID) == 0

    @pytest.mark.asyncio
    async def test_stale_entry_is_refetched(self, invitation_service) -> None:
        counter = PendingInvitationCounter(invitation_service=invitation_service, ttl_seconds=60)
        await counter.get(COMPANY_ID)

        with patch("src.services.pending_invitations.time.time", return_value=10**12):
            assert counter.peek(COMPANY_ID) is None

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, invitation_service, memory_store) -> None:
        memory_store.fail("select", INVITATIONS_TABLE, StoreError(kind=StoreErrorKind.TRANSPORT, message="down"))
        counter = PendingInvitationCounter(invitation_service=invitation_service)

        result = await counter.get(COMPANY_ID)

        assert result.error.message == "down"
        assert counter.peek(COMPANY_ID) is None

    def test_detach_stops_invalidation(self, events) -> None:
        counter = PendingInvitationCounter()
        counter.attach(events)
        counter.attach(events)
        assert events.subscriber_count == 1

        counter.detach()

        assert events.subscriber_count == 0

    def test_singleton_lifecycle(self) -> None:
        shutdown_pending_invitation_counter()
        counter = get_pending_invitation_counter()

        assert get_pending_invitation_counter() is counter

        shutdown_pending_invitation_counter()
        assert get_pending_invitation_counter() is not counter
        shutdown_pending_invitation_counter()
