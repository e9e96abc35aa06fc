"""Company API routes: company details and invitation management."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import ValidationError, raise_for_store_error
from src.core.config import get_settings
from src.schemas.company import CompanyResponse
from src.schemas.invitation import InvitationCreate, InvitationResponse, PendingInvitationCount
from src.services.company_service import CompanyService
from src.services.invitation_service import InvitationService
from src.services.pending_invitations import get_pending_invitation_counter
from src.services.profile_service import ProfileService, profile_display_name

router = APIRouter(prefix="/companies", tags=["companies"])


async def _get_user_profile(user: CurrentUser) -> dict:
    """Get the profile of a user, creating it if needed."""
    service = ProfileService()
    result = await service.ensure_profile(str(user.user_id), user.email or "")
    if not result.ok:
        raise_for_store_error(result.error, "User profile not found")
    return result.data


async def _check_member_access(company_id: UUID, profile_id: str) -> None:
    """Check if user is an active member of the company."""
    service = CompanyService()
    if await service.get_member_role(str(company_id), profile_id) is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this company",
        )


async def _check_manager_access(company_id: UUID, profile_id: str) -> None:
    """Check if user is an owner or admin of the company."""
    service = CompanyService()
    if not await service.is_manager(str(company_id), profile_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only company owners and admins can manage invitations",
        )


@router.get(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Get company",
    description="Returns a company the authenticated user belongs to.",
)
async def get_company(company_id: UUID, user: CurrentUser) -> CompanyResponse:
    profile = await _get_user_profile(user)
    await _check_member_access(company_id, profile["id"])

    result = await CompanyService().get_company(str(company_id))
    if not result.ok:
        raise_for_store_error(result.error, "Company not found")
    return CompanyResponse(**result.data)


@router.post(
    "/{company_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a user",
    description="Creates an invitation and emails the join link. Owner or admin only.",
)
async def create_invitation(
    company_id: UUID,
    data: InvitationCreate,
    user: CurrentUser,
) -> InvitationResponse:
    """Create an invitation to join the company.

    The email is best-effort: the invitation is returned even when sending
    it fails.

    Args:
        company_id: The company's UUID.
        data: Invitee email, role, optional message and lifetime.
        user: The authenticated user context.

    Returns:
        InvitationResponse: The created invitation.

    Raises:
        HTTPException: 403 if not an owner or admin.
        ValidationError: 422 if the lifetime is outside the configured bounds.
    """
    settings = get_settings()
    if data.expires_in_days is not None and not (
        settings.invitation_min_expiry_days <= data.expires_in_days <= settings.invitation_max_expiry_days
    ):
        raise ValidationError(
            f"expires_in_days must be between {settings.invitation_min_expiry_days} "
            f"and {settings.invitation_max_expiry_days}"
        )

    profile = await _get_user_profile(user)
    await _check_manager_access(company_id, profile["id"])

    company = await CompanyService().get_company(str(company_id))
    if not company.ok:
        raise_for_store_error(company.error, "Company not found")

    service = InvitationService()
    result = await service.create_invitation(
        company_id=str(company_id),
        invited_email=data.email,
        role=data.role,
        message=data.message,
        expires_in_days=data.expires_in_days,
        company_name=company.data["name"],
        inviter_name=profile_display_name(profile),
        invited_by=profile["id"],
    )
    if not result.ok:
        raise_for_store_error(result.error)
    return InvitationResponse(**result.data)


@router.get(
    "/{company_id}/invitations",
    response_model=list[InvitationResponse],
    summary="List company invitations",
    description="All invitations of the company, newest first. Owner or admin only.",
)
async def list_invitations(company_id: UUID, user: CurrentUser) -> list[InvitationResponse]:
    profile = await _get_user_profile(user)
    await _check_manager_access(company_id, profile["id"])

    result = await InvitationService().get_company_invitations(str(company_id))
    if not result.ok:
        raise_for_store_error(result.error)
    return [InvitationResponse(**inv) for inv in result.data]


@router.get(
    "/{company_id}/invitations/pending-count",
    response_model=PendingInvitationCount,
    summary="Pending invitation count",
    description="Number of pending, unexpired invitations. Owner or admin only.",
)
async def pending_invitation_count(company_id: UUID, user: CurrentUser) -> PendingInvitationCount:
    profile = await _get_user_profile(user)
    await _check_manager_access(company_id, profile["id"])

    result = await get_pending_invitation_counter().get(str(company_id))
    if not result.ok:
        raise_for_store_error(result.error)
    return PendingInvitationCount(company_id=company_id, pending=result.data)
