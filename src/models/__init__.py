"""Database model type definitions."""

from src.models.company import Company, CompanyMember, MembershipRole
from src.models.invitation import (
    CompanyInvitation,
    CompanyInvitationWithCompany,
    InvitationRole,
    InvitationStatus,
)
from src.models.profile import UserProfile, UserRole

__all__ = [
    "Company",
    "CompanyMember",
    "MembershipRole",
    "CompanyInvitation",
    "CompanyInvitationWithCompany",
    "InvitationRole",
    "InvitationStatus",
    "UserProfile",
    "UserRole",
]
