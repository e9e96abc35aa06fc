"""Company and membership business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.store import Store, StoreResult, SupabaseStore
from src.models.company import MembershipRole

logger = logging.getLogger(__name__)

COMPANIES_TABLE = "companies"
MEMBERS_TABLE = "company_members"
MEMBERSHIP_KEY = ("company_id", "user_id")
MANAGER_ROLES = frozenset({MembershipRole.OWNER.value, MembershipRole.ADMIN.value})
ROLE_RANK = {MembershipRole.MEMBER.value: 0, MembershipRole.ADMIN.value: 1, MembershipRole.OWNER.value: 2}


class CompanyService:
    """Service for reading companies and writing memberships."""

    def __init__(self, store: Store | None = None) -> None:
        """Initialize company service with the Supabase-backed store."""
        self.store = store or SupabaseStore()

    async def get_company(self, company_id: str) -> StoreResult[dict[str, Any]]:
        """Get a company by ID."""
        return self.store.select_one(COMPANIES_TABLE, {"id": str(company_id)})

    async def get_membership(self, company_id: str, profile_id: str) -> StoreResult[dict[str, Any]]:
        """Get the membership row of a profile in a company."""
        return self.store.select_one(
            MEMBERS_TABLE, {"company_id": str(company_id), "user_id": str(profile_id)}
        )

    async def get_member_role(self, company_id: str, profile_id: str) -> str | None:
        """The profile's active role in the company, or None."""
        result = await self.get_membership(company_id, profile_id)
        if not result.ok or not result.data.get("is_active", True):
            return None
        return result.data["role"]

    async def is_manager(self, company_id: str, profile_id: str) -> bool:
        """Owners and admins manage invitations."""
        return await self.get_member_role(company_id, profile_id) in MANAGER_ROLES

    async def manages_any_company(self, profile_id: str) -> bool:
        """True when the profile is an active owner or admin somewhere."""
        result = self.store.select_many(MEMBERS_TABLE, {"user_id": str(profile_id)})
        if not result.ok:
            return False
        return any(
            row.get("role") in MANAGER_ROLES and row.get("is_active", True) for row in result.data
        )

    async def upsert_membership(
        self,
        company_id: str,
        profile_id: str,
        role: MembershipRole | str,
    ) -> StoreResult[dict[str, Any]]:
        """Create or update the membership keyed on (company_id, user_id).

        An active membership is never lowered: an owner who accepts a member
        invitation stays owner and the existing row is returned unchanged.

        Args:
            company_id: The company's ID.
            profile_id: The member's profile ID.
            role: Role granted by the invitation.

        Returns:
            StoreResult: The membership row as it now stands.
        """
        role = MembershipRole(role).value

        existing = await self.get_membership(company_id, profile_id)
        if not existing.ok and not existing.error.is_not_found:
            return existing
        if existing.ok and existing.data.get("is_active", True):
            current = existing.data.get("role")
            if ROLE_RANK.get(current, -1) >= ROLE_RANK[role]:
                logger.info(
                    "Profile %s already %s of company %s; keeping role over %s",
                    profile_id,
                    current,
                    company_id,
                    role,
                )
                return existing

        record = {
            "company_id": str(company_id),
            "user_id": str(profile_id),
            "role": role,
            "is_active": True,
            "joined_at": datetime.now(timezone.utc).isoformat(),
        }
        result = self.store.upsert(MEMBERS_TABLE, record, MEMBERSHIP_KEY)
        if result.ok:
            logger.info(
                "Profile %s is now %s of company %s", profile_id, record["role"], company_id
            )
        return result
