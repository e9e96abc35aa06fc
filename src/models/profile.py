"""Profile model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict
from uuid import UUID


class UserRole(str, Enum):
    """Global application role."""

    USER = "user"
    OWNER = "owner"


class UserProfile(TypedDict):
    """user_profiles table row representation.

    Exactly one profile exists per auth identity (``user_id``). The profile
    ``id`` is what company memberships reference.
    """

    id: UUID
    user_id: UUID
    email: str
    role: UserRole
    first_name: str | None
    last_name: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserProfileUpsert(TypedDict, total=False):
    """Minimal profile written when none exists yet."""

    user_id: UUID
    email: str
    role: UserRole
    is_active: bool
