"""Resolution of an invitation token into the invitation and its company."""

import logging
from typing import Any

from src.core.store import StoreErrorKind
from src.core.tokens import is_valid_invitation_token
from src.services.company_service import CompanyService
from src.services.invitation_service import (
    NOT_FOUND_OR_EXPIRED,
    InvitationService,
    InvitationState,
    classify_invitation,
    is_invitation_expired,
)

logger = logging.getLogger(__name__)

NO_TOKEN = "No invitation token provided"
INVALID_TOKEN_FORMAT = "Invalid invitation token format"
ALREADY_ACCEPTED = "This invitation has already been accepted"
MISSING_COMPANY = "Invalid invitation - missing company information"
COMPANY_LOAD_FAILED = "Failed to load company information"
COMPANY_NOT_FOUND = "Company not found"
LOAD_FAILED = "Failed to load invitation. Please check the link and try again."


class InvitationResolver:
    """Holds the lookup state for one invitation token.

    Starts out loading. After ``refresh()`` either ``error`` is set or both
    ``invitation`` and ``company`` are. Expired invitations resolve without
    an error so the caller can show why the link is unusable; ``is_expired``
    tells them apart.
    """

    def __init__(
        self,
        token: str | None,
        invitation_service: InvitationService | None = None,
        company_service: CompanyService | None = None,
    ) -> None:
        self.token = token
        self.invitation_service = invitation_service or InvitationService()
        self.company_service = company_service or CompanyService()

        self.invitation: dict[str, Any] | None = None
        self.company: dict[str, Any] | None = None
        self.is_loading = True
        self.error: str | None = None

    @property
    def is_expired(self) -> bool:
        """Evaluated against the clock on every access, never re-fetched."""
        if self.invitation is None:
            return False
        return is_invitation_expired(self.invitation)

    async def refresh(self) -> None:
        """Re-run the whole resolution."""
        self.is_loading = True
        self.error = None
        self.invitation = None
        self.company = None
        try:
            await self._resolve()
        finally:
            self.is_loading = False

    async def _resolve(self) -> None:
        if not self.token:
            self.error = NO_TOKEN
            return

        if not is_valid_invitation_token(self.token):
            self.error = INVALID_TOKEN_FORMAT
            return

        result = await self.invitation_service.lookup_by_token(self.token)
        if not result.ok:
            logger.info("Invitation lookup failed: %s", result.error.message)
            if result.error.kind == StoreErrorKind.NOT_FOUND:
                self.error = NOT_FOUND_OR_EXPIRED
            else:
                self.error = result.error.message or LOAD_FAILED
            return

        invitation = result.data
        if not invitation:
            self.error = LOAD_FAILED
            return

        if classify_invitation(invitation) == InvitationState.ACCEPTED:
            self.error = ALREADY_ACCEPTED
            return

        self.invitation = invitation

        company_id = invitation.get("company_id")
        if not company_id:
            self.error = MISSING_COMPANY
            return

        company_result = await self.company_service.get_company(company_id)
        if not company_result.ok:
            if company_result.error.kind == StoreErrorKind.NOT_FOUND:
                self.error = COMPANY_NOT_FOUND
            else:
                logger.error(
                    "Error loading company %s: %s", company_id, company_result.error.message
                )
                self.error = COMPANY_LOAD_FAILED
            return

        self.company = company_result.data
