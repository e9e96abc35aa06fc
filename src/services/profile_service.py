"""Profile business logic service."""

import logging
from typing import Any

from src.core.store import Store, StoreErrorKind, StoreResult, SupabaseStore
from src.models.profile import UserRole

logger = logging.getLogger(__name__)

PROFILES_TABLE = "user_profiles"


def profile_display_name(profile: dict[str, Any]) -> str:
    """First and last name when present, otherwise the email."""
    name = " ".join(
        part for part in (profile.get("first_name"), profile.get("last_name")) if part
    )
    return name or profile.get("email") or "A team member"


class ProfileService:
    """Service for managing user profiles."""

    def __init__(self, store: Store | None = None) -> None:
        """Initialize profile service with the Supabase-backed store."""
        self.store = store or SupabaseStore()

    async def get_profile(self, user_id: str) -> StoreResult[dict[str, Any]]:
        """Get a profile by auth user ID."""
        return self.store.select_one(PROFILES_TABLE, {"user_id": str(user_id)})

    async def ensure_profile(self, user_id: str, email: str) -> StoreResult[dict[str, Any]]:
        """Return the profile for ``user_id``, creating a minimal one if needed.

        Creation is an insert that does nothing on a ``user_id`` conflict, so
        a profile written concurrently by the sign-up trigger is never
        duplicated or overwritten.

        Args:
            user_id: The auth user ID.
            email: Email to store if the profile has to be created.

        Returns:
            StoreResult: The existing or newly created profile.
        """
        minimal_profile = {
            "user_id": str(user_id),
            "email": email,
            "role": UserRole.USER.value,
            "is_active": True,
        }

        result = self.store.upsert(
            PROFILES_TABLE, minimal_profile, ["user_id"], ignore_duplicates=True
        )
        if result.ok:
            logger.info("Created user profile %s for user %s", result.data["id"], user_id)
            return result

        if result.error.kind != StoreErrorKind.NOT_FOUND:
            logger.error("Failed to ensure profile for user %s: %s", user_id, result.error.message)
            return result

        # Nothing written: the profile already existed
        return await self.get_profile(user_id)
