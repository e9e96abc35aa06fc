"""Join link API routes."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from src.api.deps import CurrentUser, OptionalUser
from src.api.middleware.error_handler import AuthorizationError, NotFoundError, ValidationError
from src.core.store import get_store
from src.schemas.join import JoinPageState, JoinResult, RefreshAuthResponse
from src.services.auth_status import AuthStatus
from src.services.company_join import CompanyJoinFlow
from src.services.company_service import CompanyService
from src.services.identity_service import IdentityService
from src.services.invitation_resolver import INVALID_TOKEN_FORMAT, NO_TOKEN, InvitationResolver
from src.services.invitation_service import NOT_FOUND_OR_EXPIRED, InvitationService, email_matches
from src.services.join_page import build_join_page_state
from src.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/join", tags=["join"])

EMAIL_MISMATCH = "This invitation was sent to a different email address"


@router.get(
    "",
    response_model=JoinPageState,
    summary="Open a join link",
    description=(
        "Resolves the invitation token and the viewer's auth status and returns the join page state. "
        "When the signed-in viewer's email matches the invitation, the company is joined automatically."
    ),
)
async def open_join_link(
    user: OptionalUser,
    token: str | None = Query(default=None, description="Invitation token from the join link"),
) -> JoinPageState:
    """Evaluate the join page for this viewer.

    Args:
        user: The viewer, if a bearer token was sent.
        token: The 64-character invitation token.

    Returns:
        JoinPageState: Which panel to show and with what data.
    """
    store = get_store()
    invitation_service = InvitationService(store=store)
    company_service = CompanyService(store=store)
    identity = IdentityService()
    access_token = user.access_token if user else None

    auth = AuthStatus(identity, access_token)
    await auth.refresh()

    resolver = InvitationResolver(token, invitation_service, company_service)
    await resolver.refresh()

    flow = CompanyJoinFlow(
        resolver.invitation,
        auth.is_authenticated,
        auth.user_email,
        identity=identity,
        access_token=access_token,
        invitation_service=invitation_service,
        profile_service=ProfileService(store=store),
        company_service=company_service,
    )
    if resolver.error is None:
        await flow.sync()

    return build_join_page_state(resolver, auth, flow)


@router.post(
    "",
    response_model=JoinResult,
    summary="Join company",
    description="Explicitly accept the invitation and join its company as the signed-in user.",
)
async def join_company(
    user: CurrentUser,
    token: str | None = Query(default=None, description="Invitation token from the join link"),
) -> JoinResult:
    """Join the company behind an invitation token.

    Raises:
        ValidationError: 422 if the token is missing or malformed.
        NotFoundError: 404 if the invitation is unknown, used or expired.
        AuthorizationError: 403 if the invitation is for another email.
        HTTPException: 400 with the join error if the membership was not written.
    """
    store = get_store()
    invitation_service = InvitationService(store=store)
    company_service = CompanyService(store=store)

    resolver = InvitationResolver(token, invitation_service, company_service)
    await resolver.refresh()

    if resolver.error in (NO_TOKEN, INVALID_TOKEN_FORMAT):
        raise ValidationError(resolver.error)
    if resolver.error or resolver.invitation is None:
        raise NotFoundError(resolver.error or NOT_FOUND_OR_EXPIRED)
    if resolver.is_expired:
        raise NotFoundError(NOT_FOUND_OR_EXPIRED)

    invitation = resolver.invitation
    if not email_matches(user.email, invitation["invited_email"]):
        raise AuthorizationError(EMAIL_MISMATCH)

    flow = CompanyJoinFlow(
        invitation,
        True,
        user.email,
        identity=IdentityService(),
        access_token=user.access_token,
        invitation_service=invitation_service,
        profile_service=ProfileService(store=store),
        company_service=company_service,
    )
    await flow.join_company()

    if flow.error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=flow.error)

    return JoinResult(
        joined=flow.joined,
        company_id=invitation["company_id"],
        role=invitation["role"],
        redirect_to=flow.redirect_to,
    )


@router.post(
    "/refresh-auth",
    response_model=RefreshAuthResponse,
    summary="Refresh auth state",
    description="Re-query the identity provider for the current user.",
)
async def refresh_auth(user: OptionalUser) -> RefreshAuthResponse:
    auth = AuthStatus(IdentityService(), user.access_token if user else None)
    current = await auth.refresh()
    return RefreshAuthResponse(
        is_authenticated=auth.is_authenticated,
        user_id=current.id if current else None,
        email=auth.user_email,
    )
