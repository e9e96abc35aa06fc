"""Unit tests for IdentityService."""

from unittest.mock import MagicMock

import pytest
from supabase_auth.errors import AuthError as SupabaseAuthError

from src.api.middleware.error_handler import AuthenticationError, ValidationError
from src.services.identity_service import IdentityService, resolve_post_auth_redirect

USER_ID = "550e8400-e29b-41d4-a716-446655440000"
TOKEN = "ab" * 32


@pytest.fixture
def auth_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(auth_client: MagicMock) -> IdentityService:
    return IdentityService(client=auth_client)


def provider_user(email: str | None = "bob@co.com") -> MagicMock:
    user = MagicMock()
    user.id = USER_ID
    user.email = email
    return user


class TestResolvePostAuthRedirect:
    """Tests for resolve_post_auth_redirect."""

    @pytest.mark.parametrize(
        ("token", "redirect", "expected"),
        [
            (TOKEN, f"/join?token={TOKEN}", f"/join?token={TOKEN}"),
            (TOKEN, None, f"/join?token={TOKEN}"),
            (TOKEN, "https://evil.example.com", f"/join?token={TOKEN}"),
            (TOKEN, "//evil.example.com", f"/join?token={TOKEN}"),
            (None, "/dashboard", "/dashboard"),
            ("not-a-token", None, None),
            (None, None, None),
        ],
    )
    def test_redirects(self, token: str | None, redirect: str | None, expected: str | None) -> None:
        assert resolve_post_auth_redirect(token, redirect) == expected


class TestGetCurrentUser:
    """Tests for get_current_user."""

    @pytest.mark.asyncio
    async def test_returns_user(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.get_user.return_value = MagicMock(user=provider_user())

        user = await service.get_current_user("jwt-token")

        assert user.id == USER_ID
        assert user.email == "bob@co.com"
        auth_client.auth.get_user.assert_called_once_with("jwt-token")

    @pytest.mark.asyncio
    async def test_no_token_skips_provider(self, service: IdentityService, auth_client: MagicMock) -> None:
        assert await service.get_current_user(None) is None
        auth_client.auth.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_token_is_anonymous(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.get_user.side_effect = SupabaseAuthError("invalid JWT", None)

        assert await service.get_current_user("expired-token") is None

    @pytest.mark.asyncio
    async def test_empty_response_is_anonymous(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.get_user.return_value = None

        assert await service.get_current_user("jwt-token") is None


class TestSignUp:
    """Tests for sign_up."""

    @pytest.mark.asyncio
    async def test_passes_metadata_and_redirect(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.sign_up.return_value = MagicMock(user=provider_user(), session=None)

        result = await service.sign_up(
            "bob@co.com",
            "password123",
            metadata={"first_name": "Bob"},
            email_redirect_to="https://app.example.com/join?token=x",
        )

        assert result == {"user_id": USER_ID, "email": "bob@co.com", "email_sent": True}
        credentials = auth_client.auth.sign_up.call_args[0][0]
        assert credentials["options"] == {
            "data": {"first_name": "Bob"},
            "email_redirect_to": "https://app.example.com/join?token=x",
        }

    @pytest.mark.asyncio
    async def test_existing_account(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.sign_up.side_effect = SupabaseAuthError("User already registered", None)

        with pytest.raises(ValidationError, match="already exists"):
            await service.sign_up("bob@co.com", "password123")

    @pytest.mark.asyncio
    async def test_no_user_created(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.sign_up.return_value = MagicMock(user=None, session=None)

        with pytest.raises(ValidationError, match="Failed to create user account"):
            await service.sign_up("bob@co.com", "password123")


class TestSignIn:
    """Tests for sign_in_with_password."""

    @pytest.mark.asyncio
    async def test_returns_session(self, service: IdentityService, auth_client: MagicMock) -> None:
        session = MagicMock(access_token="access", refresh_token="refresh", expires_in=3600)
        auth_client.auth.sign_in_with_password.return_value = MagicMock(user=provider_user(), session=session)

        result = await service.sign_in_with_password("bob@co.com", "password123")

        assert result["access_token"] == "access"
        assert result["refresh_token"] == "refresh"
        assert result["user_id"] == USER_ID

    @pytest.mark.asyncio
    async def test_wrong_password(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.sign_in_with_password.side_effect = SupabaseAuthError("Invalid login credentials", None)

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await service.sign_in_with_password("bob@co.com", "wrong")

    @pytest.mark.asyncio
    async def test_unconfirmed_email(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.sign_in_with_password.side_effect = SupabaseAuthError("Email not confirmed", None)

        with pytest.raises(AuthenticationError, match="verify your email"):
            await service.sign_in_with_password("bob@co.com", "password123")


class TestSessionManagement:
    """Tests for sign_out, update_user and on_auth_state_change."""

    @pytest.mark.asyncio
    async def test_sign_out_stale_session_is_quiet(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.admin.sign_out.side_effect = SupabaseAuthError("session not found", None)

        await service.sign_out("jwt-token")

        auth_client.auth.admin.sign_out.assert_called_once_with("jwt-token")

    @pytest.mark.asyncio
    async def test_update_user(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.admin.update_user_by_id.return_value = MagicMock(user=provider_user("new@co.com"))

        user = await service.update_user(USER_ID, {"email": "new@co.com"})

        assert user.email == "new@co.com"
        auth_client.auth.admin.update_user_by_id.assert_called_once_with(USER_ID, {"email": "new@co.com"})

    @pytest.mark.asyncio
    async def test_update_user_rejected(self, service: IdentityService, auth_client: MagicMock) -> None:
        auth_client.auth.admin.update_user_by_id.side_effect = SupabaseAuthError("weak password", None)

        with pytest.raises(ValidationError):
            await service.update_user(USER_ID, {"password": "x"})

    def test_on_auth_state_change_returns_unsubscribe(
        self, service: IdentityService, auth_client: MagicMock
    ) -> None:
        subscription = MagicMock()
        auth_client.auth.on_auth_state_change.return_value = subscription
        callback = MagicMock()

        unsubscribe = service.on_auth_state_change(callback)
        unsubscribe()

        auth_client.auth.on_auth_state_change.assert_called_once_with(callback)
        subscription.unsubscribe.assert_called_once()
