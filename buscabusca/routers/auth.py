"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from buscabusca.database import get_db
from buscabusca.dependencies import get_client_ip, require_bearer_token
from buscabusca.rate_limit import limiter
from buscabusca.schemas.auth import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    UserOut,
)
from buscabusca.services.auth import AuthFailure, AuthResult, SessionInfo, get_auth_service
from buscabusca.services.password_reset import get_password_reset_service

logger = logging.getLogger("buscabusca")

router = APIRouter(tags=["Authentication"])

EXPIRY_FORMAT = "%Y-%m-%d %H:%M:%S"


def _raise_for_failure(result: AuthResult) -> None:
    if not result.success:
        failure = result.failure or AuthFailure.INTERNAL
        raise HTTPException(status_code=failure.status_code, detail=failure.message)


def _session_response(session: SessionInfo) -> SessionResponse:
    return SessionResponse(
        token=session.token,
        expira_em=session.expires_at.strftime(EXPIRY_FORMAT),
        usuario=UserOut(id=session.user.id, email=session.user.email, nome=session.user.display_name),
    )


@router.post("/login", response_model=SessionResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> SessionResponse:
    """Authenticate and receive a bearer token valid for one hour."""
    result = get_auth_service().login(db, body.email, body.senha, ip=ip)
    _raise_for_failure(result)
    return _session_response(result.session)  # type: ignore[arg-type]


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(require_bearer_token),
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Invalidate the current bearer token."""
    result = get_auth_service().logout(db, token, ip=ip)
    _raise_for_failure(result)
    return MessageResponse(message="Logged out successfully")


@router.post("/register", response_model=SessionResponse, status_code=201)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> SessionResponse:
    """Register a new user account and log it in."""
    result = get_auth_service().register(db, body.nome, body.email, body.senha, ip=ip)
    _raise_for_failure(result)
    return _session_response(result.session)  # type: ignore[arg-type]


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> ForgotPasswordResponse:
    """Request a password reset token.

    No email is sent; the token is returned in the response. Unknown emails get
    the same response with a null token.
    """
    ticket = get_password_reset_service().request_reset(db, body.email, ip=ip)
    if not ticket.success:
        raise HTTPException(status_code=500, detail=AuthFailure.INTERNAL.message)

    return ForgotPasswordResponse(
        message="If the email is registered, a reset token has been generated",
        reset_token=ticket.token,
    )


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    ip: str | None = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Set a new password using a valid reset token."""
    result = get_password_reset_service().consume_reset(db, body.token, body.nova_senha, ip=ip)
    if result.failure is AuthFailure.INVALID_TOKEN:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    _raise_for_failure(result)
    return MessageResponse(message="Password reset successfully")
