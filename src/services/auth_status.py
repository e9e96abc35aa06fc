"""Authentication status of the viewer, as reported by the identity provider."""

import logging

from src.schemas.auth import IdentityUser
from src.services.identity_service import IdentityService

logger = logging.getLogger(__name__)


class AuthStatus:
    """Whether the bearer of ``access_token`` is signed in, and as whom."""

    def __init__(self, identity: IdentityService, access_token: str | None) -> None:
        self.identity = identity
        self.access_token = access_token
        self.user: IdentityUser | None = None
        self.is_authenticated = False
        self.user_email: str | None = None

    async def refresh(self) -> IdentityUser | None:
        """Re-query the provider and update the status from its answer."""
        self.user = await self.identity.get_current_user(self.access_token)
        if self.user:
            logger.debug("Auth status: user %s authenticated", self.user.id)
            self.is_authenticated = True
            self.user_email = self.user.email or None
        else:
            self.is_authenticated = False
            self.user_email = None
        return self.user
