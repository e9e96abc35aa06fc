"""Company model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class MembershipRole(str, Enum):
    """Role of a profile inside a company."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Company(TypedDict, total=False):
    """Company table row representation."""

    id: UUID
    name: str
    description: str | None
    industry: str | None
    website: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CompanyMember(TypedDict):
    """company_members table row representation.

    At most one row exists per (company_id, user_id); ``user_id`` is the
    user profile id, not the auth identity id.
    """

    id: UUID
    company_id: UUID
    user_id: UUID
    role: MembershipRole
    is_active: bool
    joined_at: datetime


class CompanyMemberUpsert(TypedDict):
    """Data written when a profile joins a company."""

    company_id: UUID
    user_id: UUID
    role: MembershipRole
    is_active: bool
    joined_at: datetime
