"""Join page Pydantic schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.company import MembershipRole
from src.schemas.company import CompanyResponse
from src.schemas.invitation import InvitationResponse


class JoinView(str, Enum):
    """Which panel the join page shows. Evaluated in this order."""

    LOADING = "loading"
    ERROR = "error"
    EXPIRED = "expired"
    SIGN_IN_REQUIRED = "sign_in_required"
    EMAIL_MISMATCH = "email_mismatch"
    JOINED = "joined"
    READY = "ready"


class JoinAction(str, Enum):
    """Actions the join page offers in a given view."""

    GO_HOME = "go_home"
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"
    JOIN = "join"
    REFRESH_AUTH = "refresh_auth"


class JoinPageState(BaseModel):
    """Serializable view-state of the join page."""

    model_config = ConfigDict(from_attributes=True)

    view: JoinView = Field(description="Panel to render")
    actions: list[JoinAction] = Field(default_factory=list, description="Actions offered in this view")
    token: str | None = Field(default=None, description="Invitation token from the URL")
    invitation: InvitationResponse | None = Field(default=None, description="Resolved invitation")
    company: CompanyResponse | None = Field(default=None, description="Inviting company")
    error: str | None = Field(default=None, description="Resolution error shown on the error panel")
    join_error: str | None = Field(default=None, description="Join failure shown above the join button")
    is_authenticated: bool = Field(default=False, description="Whether the viewer is signed in")
    user_email: str | None = Field(default=None, description="Viewer's email address")
    is_expired: bool = Field(default=False, description="Whether the invitation has expired")
    is_joining: bool = Field(default=False, description="Whether a join is in flight")
    join_disabled: bool = Field(default=False, description="Whether the join button is disabled")
    has_auto_accepted: bool = Field(default=False, description="Whether auto-accept has fired")
    is_auto_accepting: bool = Field(default=False, description="Whether auto-accept is in flight")
    sign_in_url: str | None = Field(default=None, description="Sign-in link carrying the token")
    sign_up_url: str | None = Field(default=None, description="Sign-up link carrying the token")
    redirect_to: str | None = Field(default=None, description="Where to navigate after joining")


class JoinResult(BaseModel):
    """Outcome of an explicit join."""

    joined: bool = Field(description="Whether the membership was written")
    company_id: UUID = Field(description="Company joined")
    role: MembershipRole = Field(description="Role granted")
    redirect_to: str = Field(description="Where to navigate next")


class RefreshAuthResponse(BaseModel):
    """Identity as currently seen by the identity provider."""

    is_authenticated: bool = Field(description="Whether a current user exists")
    user_id: str | None = Field(default=None, description="Auth identity ID")
    email: str | None = Field(default=None, description="Auth identity email")
