"""Invitation API routes: the viewer's invitations and per-invitation management."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Response, status

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import raise_for_store_error
from src.schemas.invitation import (
    ExpireInvitationsResponse,
    InvitationMessageUpdate,
    InvitationResponse,
    InvitationWithCompany,
)
from src.services.company_service import CompanyService
from src.services.invitation_service import InvitationService
from src.services.profile_service import ProfileService

router = APIRouter(prefix="/invitations", tags=["invitations"])


async def _get_managed_invitation(invitation_id: UUID, user: CurrentUser) -> dict:
    """Load an invitation the user may manage, or raise 404/403."""
    result = await InvitationService().get_invitation(str(invitation_id))
    if not result.ok:
        raise_for_store_error(result.error, "Invitation not found")
    invitation = result.data

    profile = await ProfileService().ensure_profile(str(user.user_id), user.email or "")
    if not profile.ok:
        raise_for_store_error(profile.error, "User profile not found")

    if not await CompanyService().is_manager(invitation["company_id"], profile.data["id"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only company owners and admins can manage invitations",
        )
    return invitation


@router.get(
    "",
    response_model=list[InvitationWithCompany],
    summary="List my invitations",
    description="Returns every invitation addressed to the authenticated user's email.",
)
async def list_my_invitations(user: CurrentUser) -> list[InvitationWithCompany]:
    """List the invitations sent to the current user's email, newest first."""
    if not user.email:
        return []

    result = await InvitationService().get_invitations_by_email(user.email)
    if not result.ok:
        raise_for_store_error(result.error)
    return [InvitationWithCompany.from_row(inv) for inv in result.data]


@router.patch(
    "/{invitation_id}/message",
    response_model=InvitationResponse,
    summary="Edit invitation message",
    description="Replace the personal message. Owner or admin of the company only.",
)
async def update_invitation_message(
    invitation_id: UUID,
    data: InvitationMessageUpdate,
    user: CurrentUser,
) -> InvitationResponse:
    await _get_managed_invitation(invitation_id, user)

    result = await InvitationService().update_invitation_message(str(invitation_id), data.message)
    if not result.ok:
        raise_for_store_error(result.error, "Invitation not found")
    return InvitationResponse(**result.data)


@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel invitation",
    description="Deletes the invitation. Memberships already created are kept.",
)
async def cancel_invitation(invitation_id: UUID, user: CurrentUser) -> Response:
    """Cancel an invitation.

    Raises:
        HTTPException: 403 if not an owner or admin, 404 if not found.
    """
    invitation = await _get_managed_invitation(invitation_id, user)

    result = await InvitationService().cancel_invitation(
        str(invitation_id), company_id=invitation["company_id"]
    )
    if not result.ok:
        raise_for_store_error(result.error, "Invitation not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/expire",
    response_model=ExpireInvitationsResponse,
    summary="Expire overdue invitations",
    description="Moves every pending invitation past its expiry to the expired status. Company owners and admins only.",
)
async def expire_invitations(user: CurrentUser) -> ExpireInvitationsResponse:
    profile = await ProfileService().ensure_profile(str(user.user_id), user.email or "")
    if not profile.ok:
        raise_for_store_error(profile.error, "User profile not found")

    if not await CompanyService().manages_any_company(profile.data["id"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only company owners and admins can expire invitations",
        )

    result = await InvitationService().cleanup_expired_invitations()
    if not result.ok:
        raise_for_store_error(result.error)
    expired = result.data if isinstance(result.data, int) else None
    return ExpireInvitationsResponse(expired=expired)
