"""Email service using Resend for transactional emails."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Any

import resend

from src.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvitationEmail:
    """Everything needed to tell someone they were invited."""

    to: str
    company_name: str
    inviter_name: str
    invitation_url: str
    role: str
    expires_at: str
    message: str | None = None


def format_expiry(expires_at: str) -> str:
    """Render an ISO timestamp as e.g. 'Monday, January 1, 2024'."""
    value = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    return f"{value:%A, %B} {value.day}, {value.year}"


def render_invitation_html(data: InvitationEmail) -> str:
    """HTML body of the invitation email."""
    company = escape(data.company_name)
    inviter = escape(data.inviter_name)
    role = escape(data.role)
    url = escape(data.invitation_url, quote=True)

    message_block = ""
    if data.message:
        message_block = f"""
    <div style="background: #e0f2fe; padding: 15px; border-radius: 6px; margin: 20px 0; text-align: left;">
        <p style="margin: 0; font-style: italic; color: #0277bd;">"{escape(data.message)}"</p>
    </div>"""

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>You're invited to join {company}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #f8f9fa; padding: 30px; border-radius: 8px; text-align: center;">
        <h1 style="color: #2563eb; margin-bottom: 20px;">You're Invited!</h1>
        <h2 style="color: #1f2937; margin-bottom: 15px;">Join {company}</h2>
        <p style="font-size: 16px; margin-bottom: 20px;">
            <strong>{inviter}</strong> has invited you to join <strong>{company}</strong> as a <strong>{role}</strong>.
        </p>{message_block}
        <div style="margin: 30px 0;">
            <a href="{url}" style="background: #2563eb; color: white; padding: 15px 30px; text-decoration: none; border-radius: 6px; font-weight: bold; display: inline-block;">
                Accept Invitation
            </a>
        </div>
        <p style="color: #6b7280; font-size: 14px; margin-top: 30px;">
            <strong>Important:</strong> This invitation expires on {format_expiry(data.expires_at)}.
        </p>
        <p style="color: #6b7280; font-size: 14px;">
            If you have any questions, please contact {inviter} directly.
        </p>
    </div>
    <div style="text-align: center; margin-top: 30px; color: #6b7280; font-size: 12px;">
        <p>This invitation was sent by {company}</p>
        <p>If you didn't expect this invitation, you can safely ignore this email.</p>
    </div>
</body>
</html>
"""


def render_invitation_text(data: InvitationEmail) -> str:
    """Plain-text body of the invitation email."""
    lines = [
        f"You're Invited to Join {data.company_name}",
        "",
        f"{data.inviter_name} has invited you to join {data.company_name} as a {data.role}.",
        "",
    ]
    if data.message:
        lines += [f'Personal message: "{data.message}"', ""]
    lines += [
        "To accept this invitation, open the following link:",
        data.invitation_url,
        "",
        f"Important: This invitation expires on {format_expiry(data.expires_at)}.",
        "",
        f"If you have any questions, please contact {data.inviter_name} directly.",
        "",
        "---",
        f"This invitation was sent by {data.company_name}",
        "If you didn't expect this invitation, you can safely ignore this email.",
    ]
    return "\n".join(lines)


class EmailService:
    """Service for sending transactional emails via Resend.

    Without a Resend API key the service only logs what it would have sent
    and reports success.
    """

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = settings.email_delivery_enabled
        self.from_email = settings.email_from_address
        self.timeout = settings.email_send_timeout_seconds

    async def send_invitation_email(self, data: InvitationEmail) -> dict[str, Any]:
        """Send a company invitation email.

        Never raises; failures come back as ``{"success": False, "error": ...}``.

        Args:
            data: Recipient, company, inviter, link, role, message and expiry.

        Returns:
            dict: ``success`` flag plus ``email_id`` or ``error``.
        """
        if not self.enabled:
            logger.info(
                "Email delivery disabled; invitation for %s to %s (%s) expires %s",
                data.to,
                data.company_name,
                data.role,
                data.expires_at,
            )
            return {"success": True, "email_id": None}

        try:
            params = {
                "from": self.from_email,
                "to": [data.to],
                "subject": f"You're invited to join {data.company_name}",
                "html": render_invitation_html(data),
                "text": render_invitation_text(data),
            }
            response = await asyncio.wait_for(
                asyncio.to_thread(resend.Emails.send, params),
                timeout=self.timeout,
            )

            logger.info("Invitation email sent to %s, id: %s", data.to, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except asyncio.TimeoutError:
            logger.error("Invitation email to %s timed out after %.1fs", data.to, self.timeout)
            return {"success": False, "error": "Email send timed out"}

        except Exception as e:
            logger.error("Failed to send invitation email to %s: %s", data.to, str(e))
            return {"success": False, "error": str(e)}
