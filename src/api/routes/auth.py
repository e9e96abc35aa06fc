"""Authentication API routes."""

from fastapi import APIRouter, HTTPException, status

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import ValidationError
from src.core.config import get_settings
from src.schemas.auth import (
    IdentityUser,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    SignupRequest,
    SignupResponse,
    UpdateUserRequest,
)
from src.services.identity_service import IdentityService, resolve_post_auth_redirect

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up new user",
    description="Create a new user account. An invitation token may be carried through the sign-up.",
)
async def signup(data: SignupRequest) -> SignupResponse:
    """Sign up a new user with email and password.

    When the viewer arrived from a join link, ``token``/``redirect`` are
    echoed back as ``redirect_to`` (and used as the confirmation-email
    landing page) so they end up on the invitation again.

    Args:
        data: Signup request with email, password and optional names.

    Returns:
        SignupResponse: User ID, email, and verification email status.

    Raises:
        HTTPException: 400 if signup fails (e.g., email already exists).
    """
    service = IdentityService()
    redirect_to = resolve_post_auth_redirect(data.token, data.redirect)

    metadata = {
        key: value
        for key, value in (("first_name", data.first_name), ("last_name", data.last_name))
        if value
    }
    email_redirect_to = None
    if redirect_to:
        email_redirect_to = f"{get_settings().frontend_url.rstrip('/')}{redirect_to}"

    try:
        result = await service.sign_up(
            email=data.email,
            password=data.password,
            metadata=metadata or None,
            email_redirect_to=email_redirect_to,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    message = (
        "Please check your email to verify your account"
        if result["email_sent"]
        else "Account created"
    )
    return SignupResponse(**result, message=message, redirect_to=redirect_to)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login user",
    description="Authenticate user with email and password. Returns JWT access token.",
)
async def login(data: LoginRequest) -> LoginResponse:
    """Login user with email and password.

    Raises:
        AuthenticationError: 401 if the credentials are rejected.
    """
    service = IdentityService()
    result = await service.sign_in_with_password(email=data.email, password=data.password)
    return LoginResponse(**result, redirect_to=resolve_post_auth_redirect(data.token, data.redirect))


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Logout user",
    description="Revoke the current session.",
)
async def logout(user: CurrentUser) -> LogoutResponse:
    service = IdentityService()
    if user.access_token:
        await service.sign_out(user.access_token)
    return LogoutResponse(message="Logged out successfully")


@router.get(
    "/me",
    summary="Get current user",
    description="Get the authenticated user's information from JWT token.",
)
async def get_current_user_info(user: CurrentUser) -> dict[str, str | None]:
    """Return the user information carried by the JWT."""
    return {
        "user_id": str(user.user_id),
        "email": user.email,
        "role": user.role,
    }


@router.patch(
    "/me",
    response_model=IdentityUser,
    summary="Update current user",
    description="Change the authenticated user's email or password.",
)
async def update_current_user(data: UpdateUserRequest, user: CurrentUser) -> IdentityUser:
    """Update the auth identity of the current user.

    Raises:
        HTTPException: 400 if nothing to change or the provider rejects it.
    """
    attributes = data.model_dump(exclude_none=True)
    if not attributes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No changes provided",
        )

    service = IdentityService()
    try:
        return await service.update_user(str(user.user_id), attributes)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
