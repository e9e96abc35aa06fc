"""Invitation Pydantic schemas for API request/response models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.models.invitation import InvitationRole, InvitationStatus
from src.schemas.company import CompanyResponse


class InvitationCreate(BaseModel):
    """Schema for creating an invitation."""

    model_config = ConfigDict(from_attributes=True)

    email: EmailStr = Field(..., description="Email address to invite")
    role: InvitationRole = Field(default=InvitationRole.MEMBER, description="Role granted on acceptance")
    message: str | None = Field(default=None, max_length=1000, description="Optional personal message")
    expires_in_days: int | None = Field(
        default=None, ge=1, description="Days until the invitation expires; the configured default when omitted"
    )


class InvitationMessageUpdate(BaseModel):
    """Schema for editing an invitation's personal message."""

    message: str = Field(..., max_length=1000, description="New personal message")


class InvitationResponse(BaseModel):
    """Schema for invitation API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Invitation unique identifier")
    company_id: UUID = Field(description="Company being invited to")
    invited_email: str = Field(description="Invited email address (normalized)")
    role: InvitationRole = Field(description="Role granted on acceptance")
    message: str | None = Field(default=None, description="Personal message from the inviter")
    invitation_token: str = Field(description="Bearer token carried by the join link")
    status: InvitationStatus = Field(description="Current invitation status")
    expires_at: datetime = Field(description="Invitation expiration timestamp")
    created_at: datetime = Field(description="Invitation creation timestamp")
    accepted_at: datetime | None = Field(default=None, description="When invitation was accepted")
    accepted_by: UUID | None = Field(default=None, description="Profile that accepted the invitation")


class InvitationWithCompany(InvitationResponse):
    """Invitation response with company details."""

    company: CompanyResponse | None = Field(default=None, description="The inviting company")

    @classmethod
    def from_row(cls, row: dict) -> "InvitationWithCompany":
        """Build from a row carrying the embedded ``companies`` relation."""
        data = {k: v for k, v in row.items() if k != "companies"}
        company = row.get("companies")
        return cls(**data, company=CompanyResponse(**company) if company else None)


class PendingInvitationCount(BaseModel):
    """Pending invitation count for a company."""

    company_id: UUID = Field(description="Company ID")
    pending: int = Field(description="Number of pending, unexpired invitations")


class ExpireInvitationsResponse(BaseModel):
    """Result of the expiry sweep."""

    expired: int | None = Field(default=None, description="Rows moved to expired, if reported")
