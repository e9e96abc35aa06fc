"""Invitation token generation and format checks."""

import re
import secrets

TOKEN_BYTES = 32
TOKEN_PATTERN = re.compile(r"[a-f0-9]{64}")


def generate_invitation_token() -> str:
    """Return 32 random bytes hex-encoded as a 64-character lowercase string."""
    return secrets.token_hex(TOKEN_BYTES)


def is_valid_invitation_token(token: object) -> bool:
    """Check that ``token`` is exactly 64 lowercase hex characters.

    Purely syntactic; storage is never consulted.
    """
    return isinstance(token, str) and TOKEN_PATTERN.fullmatch(token) is not None
