"""Authentication schemas for JWT tokens and user context."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token.

    Populated by the auth middleware from the validated JWT. ``access_token``
    is kept so the identity provider can be re-queried for this viewer.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'authenticated')")
    access_token: str | None = Field(default=None, description="Raw bearer token", repr=False)


class TokenPayload(BaseModel):
    """JWT token payload structure for Supabase tokens."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")

    @property
    def expiration_datetime(self) -> datetime:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp)

    def to_user_context(self, access_token: str | None = None) -> UserContext:
        """Convert token payload to UserContext.

        Args:
            access_token: The raw token the payload was decoded from.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
            access_token=access_token,
        )


class IdentityUser(BaseModel):
    """The identity provider's view of the current user."""

    id: str = Field(description="Auth identity ID")
    email: str | None = Field(default=None, description="Auth identity email")


class SignupRequest(BaseModel):
    """Request schema for user signup.

    ``token`` and ``redirect`` are carried through from the join page so the
    viewer can be returned to the invitation afterwards.
    """

    model_config = ConfigDict(from_attributes=True)

    email: str = Field(..., description="User's email address", min_length=3, max_length=255)
    password: str = Field(..., description="User's password", min_length=8, max_length=100)
    first_name: str | None = Field(default=None, description="First name", max_length=255)
    last_name: str | None = Field(default=None, description="Last name", max_length=255)
    token: str | None = Field(default=None, description="Invitation token being carried through")
    redirect: str | None = Field(default=None, description="Path to return to after signup")


class SignupResponse(BaseModel):
    """Response schema for user signup."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Newly created user ID")
    email: str = Field(description="User's email address")
    message: str = Field(description="Success message")
    email_sent: bool = Field(description="Whether verification email was sent")
    redirect_to: str | None = Field(default=None, description="Where the client should go next")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    model_config = ConfigDict(from_attributes=True)

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")
    token: str | None = Field(default=None, description="Invitation token being carried through")
    redirect: str | None = Field(default=None, description="Path to return to after login")


class LoginResponse(BaseModel):
    """Response schema for user login."""

    model_config = ConfigDict(from_attributes=True)

    access_token: str = Field(description="JWT access token")
    refresh_token: str | None = Field(default=None, description="Refresh token if available")
    user_id: str = Field(description="User ID")
    email: str = Field(description="User's email address")
    expires_in: int = Field(description="Token expiration time in seconds")
    redirect_to: str | None = Field(default=None, description="Where the client should go next")


class LogoutResponse(BaseModel):
    """Response schema for logout."""

    message: str = Field(description="Status message")


class UpdateUserRequest(BaseModel):
    """Request schema for updating the auth identity."""

    email: str | None = Field(default=None, description="New email address", max_length=255)
    password: str | None = Field(default=None, description="New password", min_length=8, max_length=100)


class AuthenticatedResponse(BaseModel):
    """Response for the authenticated health check."""

    authenticated: bool = Field(description="Whether the request was authenticated")
    user_id: str = Field(description="Authenticated user's ID")
    email: str | None = Field(default=None, description="Authenticated user's email")
    role: str | None = Field(default=None, description="Authenticated user's role")
