"""Invitation business logic service."""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from src.core.config import get_settings
from src.core.events import InvitationEvent, InvitationEventBus, InvitationEventType, get_invitation_events
from src.core.store import Store, StoreError, StoreErrorKind, StoreResult, SupabaseStore
from src.core.tokens import generate_invitation_token, is_valid_invitation_token
from src.models.invitation import InvitationRole, InvitationStatus
from src.services.email_service import EmailService, InvitationEmail

logger = logging.getLogger(__name__)

INVITATIONS_TABLE = "company_invitations"
WITH_COMPANY = "*, companies(*)"
NOT_FOUND_OR_EXPIRED = "Invitation not found or has expired"


class InvitationState(str, Enum):
    """Why an invitation row is or is not usable for joining."""

    VALID = "valid"
    EXPIRED = "expired"
    ACCEPTED = "accepted"


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a PostgREST timestamp into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_invitation_expired(invitation: dict[str, Any], now: datetime | None = None) -> bool:
    """True when ``expires_at`` lies in the past."""
    now = now or datetime.now(timezone.utc)
    return parse_timestamp(invitation["expires_at"]) < now


def classify_invitation(invitation: dict[str, Any], now: datetime | None = None) -> InvitationState:
    """Classify a raw invitation row from its own fields."""
    if invitation.get("status") == InvitationStatus.ACCEPTED.value:
        return InvitationState.ACCEPTED
    if invitation.get("status") == InvitationStatus.EXPIRED.value or is_invitation_expired(invitation, now):
        return InvitationState.EXPIRED
    return InvitationState.VALID


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_matches(user_email: str | None, invited_email: str | None) -> bool:
    """Case-insensitive comparison of the viewer's email with the invited one."""
    if not user_email or not invited_email:
        return False
    return normalize_email(user_email) == normalize_email(invited_email)


class InvitationService:
    """Service owning the company_invitations table."""

    def __init__(
        self,
        store: Store | None = None,
        email_service: EmailService | None = None,
        events: InvitationEventBus | None = None,
    ) -> None:
        """Initialize invitation service with the Supabase-backed store."""
        self.store = store or SupabaseStore()
        self.email_service = email_service or EmailService()
        self.events = events or get_invitation_events()
        self.settings = get_settings()

    async def create_invitation(
        self,
        company_id: str,
        invited_email: str,
        role: InvitationRole = InvitationRole.MEMBER,
        message: str | None = None,
        expires_in_days: int | None = None,
        company_name: str | None = None,
        inviter_name: str | None = None,
        invited_by: str | None = None,
    ) -> StoreResult[dict[str, Any]]:
        """Create a pending invitation and, when possible, email it.

        The email is only attempted when both ``company_name`` and
        ``inviter_name`` are given. Its failure is logged and published but
        never fails or rolls back the invitation.

        Args:
            company_id: The company's ID.
            invited_email: Address to invite; trimmed and lowercased.
            role: Role granted on acceptance.
            message: Optional personal message.
            expires_in_days: Lifetime in days (defaults to the configured 7).
            company_name: Company name for the email.
            inviter_name: Inviter's display name for the email.
            invited_by: Profile ID of the inviter, if known.

        Returns:
            StoreResult: The inserted invitation row or the store error.
        """
        if expires_in_days is None:
            expires_in_days = self.settings.invitation_default_expiry_days

        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(days=expires_in_days)

        invitation_data: dict[str, Any] = {
            "company_id": str(company_id),
            "invited_email": normalize_email(invited_email),
            "role": InvitationRole(role).value,
            "invitation_token": generate_invitation_token(),
            "status": InvitationStatus.PENDING.value,
            "created_at": now.isoformat(),
            "expires_at": expires_at.isoformat(),
        }
        if message is not None:
            invitation_data["message"] = message
        if invited_by is not None:
            invitation_data["invited_by"] = str(invited_by)

        result = self.store.insert(INVITATIONS_TABLE, invitation_data)
        if not result.ok:
            logger.error("Failed to create invitation for company %s: %s", company_id, result.error.message)
            return result

        invitation = result.data
        logger.info("Created invitation %s for company %s", invitation["id"], company_id)
        self.events.publish(
            InvitationEvent(
                type=InvitationEventType.CREATED,
                company_id=str(company_id),
                invitation_id=str(invitation["id"]),
            )
        )

        if company_name and inviter_name:
            await self.notify_invitation(invitation, company_name, inviter_name)

        return result

    async def notify_invitation(
        self,
        invitation: dict[str, Any],
        company_name: str,
        inviter_name: str,
    ) -> bool:
        """Best-effort invitation email. Returns whether it was accepted for delivery."""
        payload = InvitationEmail(
            to=invitation["invited_email"],
            company_name=company_name,
            inviter_name=inviter_name,
            invitation_url=self.generate_invitation_url(invitation["invitation_token"]),
            role=invitation["role"],
            message=invitation.get("message"),
            expires_at=str(invitation["expires_at"]),
        )
        outcome = await self.email_service.send_invitation_email(payload)
        if outcome.get("success"):
            return True

        logger.warning(
            "Invitation %s created but email to %s failed: %s",
            invitation["id"],
            payload.to,
            outcome.get("error"),
        )
        self.events.publish(
            InvitationEvent(
                type=InvitationEventType.NOTIFICATION_FAILED,
                company_id=str(invitation["company_id"]),
                invitation_id=str(invitation["id"]),
                detail={"error": outcome.get("error")},
            )
        )
        return False

    async def lookup_by_token(self, token: str) -> StoreResult[dict[str, Any]]:
        """Fetch an invitation (with its company) by token, whatever its status."""
        if not is_valid_invitation_token(token):
            return StoreResult.failure(StoreError.not_found(NOT_FOUND_OR_EXPIRED))

        result = self.store.select_one(
            INVITATIONS_TABLE, {"invitation_token": token}, columns=WITH_COMPANY
        )
        if result.error and result.error.kind == StoreErrorKind.NOT_FOUND:
            return StoreResult.failure(StoreError.not_found(NOT_FOUND_OR_EXPIRED))
        return result

    async def get_by_token(self, token: str) -> StoreResult[dict[str, Any]]:
        """Fetch a pending, unexpired invitation by token.

        Malformed, unknown, expired and already accepted tokens all come
        back as an error whose ``is_not_found`` is true; ``kind`` is
        ``EXPIRED`` for the expired case.
        """
        result = await self.lookup_by_token(token)
        if not result.ok:
            return result

        state = classify_invitation(result.data)
        if state == InvitationState.EXPIRED:
            return StoreResult.failure(StoreError.expired(NOT_FOUND_OR_EXPIRED))
        if state != InvitationState.VALID:
            return StoreResult.failure(StoreError.not_found(NOT_FOUND_OR_EXPIRED))
        return result

    async def get_invitation(self, invitation_id: str) -> StoreResult[dict[str, Any]]:
        """Get an invitation by ID, whatever its status."""
        return self.store.select_one(INVITATIONS_TABLE, {"id": str(invitation_id)})

    async def get_company_invitations(self, company_id: str) -> StoreResult[list[dict[str, Any]]]:
        """All invitations of a company regardless of status, newest first."""
        return self.store.select_many(
            INVITATIONS_TABLE,
            {"company_id": str(company_id)},
            order_by="created_at",
            desc=True,
        )

    async def get_invitations_by_email(self, email: str) -> StoreResult[list[dict[str, Any]]]:
        """All invitations addressed to ``email``, with their company, newest first."""
        return self.store.select_many(
            INVITATIONS_TABLE,
            {"invited_email": normalize_email(email)},
            order_by="created_at",
            desc=True,
            columns=WITH_COMPANY,
        )

    async def count_pending(self, company_id: str) -> StoreResult[int]:
        """Number of pending, unexpired invitations for a company."""
        result = self.store.select_many(
            INVITATIONS_TABLE,
            {"company_id": str(company_id), "status": InvitationStatus.PENDING.value},
            columns="id, status, expires_at",
        )
        if not result.ok:
            return result
        now = datetime.now(timezone.utc)
        return StoreResult.success(sum(1 for row in result.data if not is_invitation_expired(row, now)))

    async def accept_invitation(
        self,
        invitation_id: str,
        accepted_by: str,
        message: str | None = None,
    ) -> StoreResult[dict[str, Any]]:
        """Mark an invitation accepted.

        No status or expiry check happens here; callers validate through
        ``get_by_token`` first. Accepting twice leaves it accepted.
        """
        update_data: dict[str, Any] = {
            "status": InvitationStatus.ACCEPTED.value,
            "accepted_at": datetime.now(timezone.utc).isoformat(),
            "accepted_by": str(accepted_by),
        }
        if message is not None:
            update_data["message"] = message

        return self.store.update(INVITATIONS_TABLE, {"id": str(invitation_id)}, update_data)

    async def cancel_invitation(
        self,
        invitation_id: str,
        company_id: str | None = None,
    ) -> StoreResult[None]:
        """Hard-delete an invitation. Existing memberships are untouched."""
        result = self.store.delete(INVITATIONS_TABLE, {"id": str(invitation_id)})
        if result.ok:
            logger.info("Cancelled invitation %s", invitation_id)
            self.events.publish(
                InvitationEvent(
                    type=InvitationEventType.CANCELLED,
                    company_id=str(company_id) if company_id else None,
                    invitation_id=str(invitation_id),
                )
            )
        return result

    async def update_invitation_message(
        self,
        invitation_id: str,
        message: str,
    ) -> StoreResult[dict[str, Any]]:
        """Replace the personal message on an invitation."""
        return self.store.update(INVITATIONS_TABLE, {"id": str(invitation_id)}, {"message": message})

    async def cleanup_expired_invitations(self) -> StoreResult[Any]:
        """Run the server-side batch that moves overdue rows to ``expired``."""
        result = self.store.rpc("expire_old_invitations")
        if result.ok:
            logger.info("Expired overdue invitations: %s", result.data)
        return result

    def generate_invitation_url(self, token: str, base_url: str | None = None) -> str:
        """Join link for a token, e.g. ``https://app.example.com/join?token=...``."""
        base = (base_url or self.settings.frontend_url).rstrip("/")
        return f"{base}/join?token={token}"
