"""Identity provider access through Supabase Auth."""

import logging
from typing import Any, Callable

from supabase import Client
from supabase_auth.errors import AuthError as SupabaseAuthError

from src.api.middleware.error_handler import AuthenticationError, ValidationError
from src.core.supabase import create_auth_client
from src.core.tokens import is_valid_invitation_token
from src.schemas.auth import IdentityUser

logger = logging.getLogger(__name__)


def resolve_post_auth_redirect(token: str | None, redirect: str | None) -> str | None:
    """Where to send the viewer after sign-in or sign-up.

    Only same-site paths are honoured. Without one, a carried invitation
    token leads back to the join page.
    """
    if redirect and redirect.startswith("/") and not redirect.startswith("//"):
        return redirect
    if token and is_valid_invitation_token(token):
        return f"/join?token={token}"
    return None


class IdentityService:
    """Sign-up, sign-in, sign-out and current-user lookups.

    Uses an isolated auth client per instance so session state never leaks
    into the shared database client.
    """

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or create_auth_client()

    async def get_current_user(self, access_token: str | None) -> IdentityUser | None:
        """Ask the provider who owns ``access_token``; None when nobody does."""
        if not access_token:
            return None

        try:
            response = self.client.auth.get_user(access_token)
        except SupabaseAuthError as e:
            logger.info("Identity lookup rejected: %s", str(e))
            return None

        if not response or not response.user:
            return None
        return IdentityUser(id=str(response.user.id), email=response.user.email)

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        email_redirect_to: str | None = None,
    ) -> dict[str, Any]:
        """Create an account.

        Raises:
            ValidationError: If the provider refuses the sign-up.
        """
        options: dict[str, Any] = {}
        if metadata:
            options["data"] = metadata
        if email_redirect_to:
            options["email_redirect_to"] = email_redirect_to

        try:
            response = self.client.auth.sign_up(
                {"email": email, "password": password, "options": options}
            )
        except SupabaseAuthError as e:
            error_msg = str(e)
            logger.error("Signup failed: %s", error_msg)
            if "already registered" in error_msg.lower() or "already exists" in error_msg.lower():
                raise ValidationError("An account with this email already exists") from e
            raise ValidationError(f"Signup failed: {error_msg}") from e

        if not response.user:
            raise ValidationError("Failed to create user account")

        logger.info("User signed up: %s", response.user.id)
        return {
            "user_id": str(response.user.id),
            "email": response.user.email or email,
            "email_sent": response.session is None,
        }

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        """Exchange credentials for a session.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except SupabaseAuthError as e:
            error_msg = str(e)
            logger.warning("Login failed: %s", error_msg)
            if "email not confirmed" in error_msg.lower():
                raise AuthenticationError("Please verify your email before logging in") from e
            raise AuthenticationError("Invalid email or password") from e

        if not response.user or not response.session:
            raise AuthenticationError("Login failed: No session created")

        logger.info("User logged in: %s", response.user.id)
        return {
            "access_token": response.session.access_token,
            "refresh_token": response.session.refresh_token,
            "user_id": str(response.user.id),
            "email": response.user.email or email,
            "expires_in": response.session.expires_in or 3600,
        }

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind ``access_token``."""
        try:
            self.client.auth.admin.sign_out(access_token)
        except SupabaseAuthError as e:
            # Session already gone; nothing left to revoke
            logger.info("Sign-out for stale session: %s", str(e))
            return
        logger.info("User logged out")

    async def update_user(self, user_id: str, attributes: dict[str, Any]) -> IdentityUser:
        """Change email or password of an identity.

        Raises:
            ValidationError: If the provider rejects the change.
        """
        try:
            response = self.client.auth.admin.update_user_by_id(user_id, attributes)
        except SupabaseAuthError as e:
            logger.error("Updating user %s failed: %s", user_id, str(e))
            raise ValidationError(f"Failed to update user: {e}") from e

        return IdentityUser(id=str(response.user.id), email=response.user.email)

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> Callable[[], None]:
        """Subscribe to the provider's auth events; returns an unsubscribe function."""
        subscription = self.client.auth.on_auth_state_change(callback)
        return subscription.unsubscribe
