"""Invitation model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID

from src.models.company import Company


class InvitationStatus(str, Enum):
    """Invitation status values matching database enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class InvitationRole(str, Enum):
    """Roles an invitation can grant. Ownership is never handed out this way."""

    MEMBER = "member"
    ADMIN = "admin"


class CompanyInvitation(TypedDict):
    """company_invitations table row representation.

    An offer for one email address to join one company with one role.
    """

    id: UUID
    company_id: UUID
    invited_email: str
    invited_by: UUID | None
    role: InvitationRole
    message: str | None
    invitation_token: str
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    accepted_at: datetime | None
    accepted_by: UUID | None


class CompanyInvitationWithCompany(CompanyInvitation, total=False):
    """Invitation row with the embedded ``companies`` relation."""

    companies: Company | None


class CompanyInvitationCreate(TypedDict, total=False):
    """Data required to insert an invitation."""

    company_id: UUID
    invited_email: str
    invited_by: UUID | None
    role: InvitationRole
    message: str | None
    invitation_token: str
    status: InvitationStatus
    expires_at: datetime
