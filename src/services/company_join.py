"""Joining a company through an invitation.

The join is two-phase. Phase 1 writes the membership and is authoritative:
if it fails the join fails. Phase 2 marks the invitation accepted and is
informational: a failure is logged and published as ``ACCEPTANCE_FAILED``
for later reconciliation, and the join still succeeds.
"""

import asyncio
import logging
from typing import Any

from src.core.config import get_settings
from src.core.events import InvitationEvent, InvitationEventBus, InvitationEventType, get_invitation_events
from src.schemas.auth import IdentityUser
from src.services.company_service import CompanyService
from src.services.identity_service import IdentityService
from src.services.invitation_service import InvitationService, email_matches, is_invitation_expired
from src.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

USER_NOT_AUTHENTICATED = "User not authenticated"
PROFILE_UNAVAILABLE = "Failed to create or retrieve user profile"
VERIFICATION_FAILED = "Company membership creation verification failed"


class JoinError(Exception):
    """A join attempt failed before the membership was in place."""


class CompanyJoinFlow:
    """Join state for one viewer and one invitation.

    ``join_company()`` never raises; a failed attempt leaves its message in
    ``error`` and can be retried. ``on_change()`` is the auto-accept
    effect: call it whenever ``invitation``, ``is_authenticated`` or
    ``user_email`` may have changed.
    """

    def __init__(
        self,
        invitation: dict[str, Any] | None,
        is_authenticated: bool,
        user_email: str | None,
        identity: IdentityService | None = None,
        access_token: str | None = None,
        invitation_service: InvitationService | None = None,
        profile_service: ProfileService | None = None,
        company_service: CompanyService | None = None,
        events: InvitationEventBus | None = None,
    ) -> None:
        self.invitation = invitation
        self.is_authenticated = is_authenticated
        self.user_email = user_email

        self.identity = identity or IdentityService()
        self.access_token = access_token
        self.invitation_service = invitation_service or InvitationService()
        self.profile_service = profile_service or ProfileService()
        self.company_service = company_service or CompanyService()
        self.events = events or get_invitation_events()
        self.settings = get_settings()

        self.is_joining = False
        self.error: str | None = None
        self.has_auto_accepted = False
        self.is_auto_accepting = False
        self.joined = False
        self.redirect_to: str | None = None

    async def refresh_auth(self) -> IdentityUser | None:
        """Re-query the identity provider for the current user."""
        return await self.identity.get_current_user(self.access_token)

    async def join_company(self) -> None:
        """Make the current user a member of the invitation's company."""
        if not self.invitation or not self.is_authenticated:
            logger.info(
                "join_company: missing invitation or not authenticated (invitation=%s, authenticated=%s)",
                bool(self.invitation),
                self.is_authenticated,
            )
            return

        invitation = self.invitation
        self.is_joining = True
        self.error = None

        try:
            profile_id = await self._resolve_profile_id(invitation)
            await self._write_membership(invitation, profile_id)
            await self._mark_accepted(invitation, profile_id)
        except JoinError as e:
            logger.warning("Joining company %s failed: %s", invitation["company_id"], str(e))
            self.error = str(e)
        else:
            self.events.publish(
                InvitationEvent(
                    type=InvitationEventType.ACCEPTED,
                    company_id=str(invitation["company_id"]),
                    invitation_id=str(invitation["id"]),
                    detail={"profile_id": profile_id},
                )
            )
            self.joined = True
            self.redirect_to = self.settings.join_success_redirect
        finally:
            self.is_joining = False

    async def _resolve_profile_id(self, invitation: dict[str, Any]) -> str:
        user = await self.identity.get_current_user(self.access_token)
        if not user:
            raise JoinError(USER_NOT_AUTHENTICATED)

        result = await self.profile_service.ensure_profile(
            user.id, user.email or invitation["invited_email"]
        )
        if not result.ok:
            raise JoinError(result.error.message)
        if not result.data or not result.data.get("id"):
            raise JoinError(PROFILE_UNAVAILABLE)
        return str(result.data["id"])

    async def _write_membership(self, invitation: dict[str, Any], profile_id: str) -> None:
        company_id = invitation["company_id"]
        result = await self.company_service.upsert_membership(
            company_id, profile_id, invitation["role"]
        )
        if not result.ok:
            logger.error(
                "Company membership creation failed for company %s: %s",
                company_id,
                result.error.message,
            )
            raise JoinError(result.error.message)

        if self.settings.join_verify_membership:
            verify = await self.company_service.get_membership(company_id, profile_id)
            if not verify.ok:
                logger.error("Failed to verify company membership: %s", verify.error.message)
                raise JoinError(VERIFICATION_FAILED)

    async def _mark_accepted(self, invitation: dict[str, Any], profile_id: str) -> None:
        result = await self.invitation_service.accept_invitation(invitation["id"], profile_id)
        if result.ok:
            return

        logger.error(
            "Membership created but accepting invitation %s failed: %s",
            invitation["id"],
            result.error.message,
        )
        self.events.publish(
            InvitationEvent(
                type=InvitationEventType.ACCEPTANCE_FAILED,
                company_id=str(invitation["company_id"]),
                invitation_id=str(invitation["id"]),
                detail={"profile_id": profile_id, "error": result.error.message},
            )
        )

    def should_auto_accept(self) -> bool:
        """True when the auto-accept effect would fire right now."""
        if not self.invitation or not self.is_authenticated:
            return False
        if self.has_auto_accepted or self.is_auto_accepting or self.is_joining:
            return False
        if is_invitation_expired(self.invitation):
            return False
        return email_matches(self.user_email, self.invitation["invited_email"])

    def on_change(
        self,
        invitation: dict[str, Any] | None = None,
        is_authenticated: bool | None = None,
        user_email: str | None = None,
    ) -> asyncio.Task | None:
        """Take new inputs and start the auto-accept join if it applies.

        The guard flags flip before the join is scheduled, so repeated calls
        while it is in flight never start a second one. Must be called from
        a running event loop.
        """
        if invitation is not None:
            self.invitation = invitation
        if is_authenticated is not None:
            self.is_authenticated = is_authenticated
        if user_email is not None:
            self.user_email = user_email

        if not self.should_auto_accept():
            return None

        logger.info("Auto-accepting invitation %s for %s", self.invitation["id"], self.user_email)
        self.is_auto_accepting = True
        self.has_auto_accepted = True
        return asyncio.get_running_loop().create_task(self._auto_accept())

    async def _auto_accept(self) -> None:
        try:
            await self.join_company()
        finally:
            self.is_auto_accepting = False

    async def sync(self) -> bool:
        """Run the auto-accept effect to completion. Returns whether it fired."""
        task = self.on_change()
        if task is None:
            return False
        await task
        return True
