"""Authentication dependencies for FastAPI routes."""

import re
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from buscabusca.database import get_db
from buscabusca.services.auth import AuthFailure, get_auth_service

BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    email: str
    display_name: str | None


def get_bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get("Authorization", "")
    match = BEARER_PATTERN.match(header.strip())
    return match.group(1).strip() if match else None


def get_client_ip(request: Request) -> str | None:
    """Peer address of the request, for audit events."""
    return request.client.host if request.client else None


def require_bearer_token(request: Request) -> str:
    """Like get_bearer_token, but raises 401 when the header is missing."""
    token = get_bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Token not provided")
    return token


def get_current_user(
    token: str = Depends(require_bearer_token),
    db: Session = Depends(get_db),
) -> CurrentUser:
    """Validate the bearer token against the stored sessions. Raises 401 if invalid."""
    user = get_auth_service().validate_token(db, token)
    if user is None:
        raise HTTPException(status_code=401, detail=AuthFailure.INVALID_TOKEN.message)

    return CurrentUser(user_id=user.id, email=user.email, display_name=user.display_name)
