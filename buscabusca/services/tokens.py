"""Opaque token generation for sessions and password resets."""

import re
import secrets

TOKEN_BYTES = 32
TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def generate_token() -> str:
    """Return 32 random bytes rendered as 64 lowercase hex characters."""
    return secrets.token_hex(TOKEN_BYTES)


def is_well_formed(token: str | None) -> bool:
    """Check a presented token has the issued shape before hitting the database."""
    return bool(token) and TOKEN_PATTERN.match(token) is not None
