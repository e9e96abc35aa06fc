"""Join page view-state.

Derives what the join page shows from the resolver, the viewer's auth
status and the join flow. Branches are checked in priority order and the
first match wins.
"""

from typing import Any
from urllib.parse import quote

from src.schemas.company import CompanyResponse
from src.schemas.invitation import InvitationResponse
from src.schemas.join import JoinAction, JoinPageState, JoinView
from src.services.auth_status import AuthStatus
from src.services.company_join import CompanyJoinFlow
from src.services.invitation_resolver import InvitationResolver
from src.services.invitation_service import email_matches


def auth_redirect_url(path: str, invitation: dict[str, Any]) -> str:
    """Sign-in or sign-up link that pre-fills the invited email and returns to the invitation."""
    token = invitation["invitation_token"]
    email = quote(invitation["invited_email"], safe="")
    return f"{path}?token={token}&email={email}&redirect=/join?token={token}"


def build_join_page_state(
    resolver: InvitationResolver,
    auth: AuthStatus,
    flow: CompanyJoinFlow,
) -> JoinPageState:
    """Compute the join page for the current state of its three inputs."""
    invitation = resolver.invitation
    company = resolver.company
    is_expired = resolver.is_expired

    state: dict[str, Any] = {
        "token": resolver.token,
        "is_authenticated": auth.is_authenticated,
        "user_email": auth.user_email,
        "is_expired": is_expired,
        "is_joining": flow.is_joining,
        "join_disabled": flow.is_joining,
        "has_auto_accepted": flow.has_auto_accepted,
        "is_auto_accepting": flow.is_auto_accepting,
        "join_error": flow.error,
        "redirect_to": flow.redirect_to,
    }

    if resolver.is_loading:
        return JoinPageState(view=JoinView.LOADING, **state)

    if resolver.error or invitation is None or company is None:
        return JoinPageState(
            view=JoinView.ERROR,
            actions=[JoinAction.GO_HOME],
            error=resolver.error,
            **state,
        )

    state["invitation"] = InvitationResponse(**invitation)
    state["company"] = CompanyResponse(**company)

    if is_expired:
        return JoinPageState(view=JoinView.EXPIRED, actions=[JoinAction.GO_HOME], **state)

    if not auth.is_authenticated:
        return JoinPageState(
            view=JoinView.SIGN_IN_REQUIRED,
            actions=[JoinAction.SIGN_IN, JoinAction.SIGN_UP, JoinAction.REFRESH_AUTH, JoinAction.GO_HOME],
            sign_in_url=auth_redirect_url("/signin", invitation),
            sign_up_url=auth_redirect_url("/signup", invitation),
            **state,
        )

    if not email_matches(auth.user_email, invitation["invited_email"]):
        return JoinPageState(view=JoinView.EMAIL_MISMATCH, actions=[JoinAction.GO_HOME], **state)

    # A failed auto-accept falls through to the join button so it can be retried
    if flow.is_auto_accepting or (flow.has_auto_accepted and not flow.error):
        return JoinPageState(view=JoinView.JOINED, **state)

    return JoinPageState(
        view=JoinView.READY,
        actions=[JoinAction.JOIN, JoinAction.REFRESH_AUTH, JoinAction.GO_HOME],
        **state,
    )
