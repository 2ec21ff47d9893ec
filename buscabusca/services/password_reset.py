"""Password reset token lifecycle."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from buscabusca.config import get_settings
from buscabusca.database import utcnow
from buscabusca.models.user import User
from buscabusca.services.audit import AuditEvent, AuditLog, get_audit_log
from buscabusca.services.auth import AuthFailure, AuthResult, run_audited
from buscabusca.services.passwords import PasswordHasher, get_password_hasher
from buscabusca.services.tokens import generate_token, is_well_formed


@dataclass
class ResetTicket:
    """Outcome of a reset request.

    ``token`` is None both for unknown emails and on failure; callers answer
    the same way in either case except for ``failure``.
    """

    token: str | None = None
    expires_at: datetime | None = None
    failure: AuthFailure | None = None

    @property
    def success(self) -> bool:
        return self.failure is None


class PasswordResetService:
    """Issues and consumes single-use password reset tokens.

    Delivering the token (email, SMS) is left to the caller. Consuming a token
    changes the password only; failed attempts and any active lock are kept.
    """

    def __init__(
        self,
        hasher: PasswordHasher | None = None,
        audit: AuditLog | None = None,
        clock: Callable[[], datetime] | None = None,
        reset_ttl: timedelta | None = None,
    ) -> None:
        self.hasher = hasher or get_password_hasher()
        self.audit = audit or get_audit_log()
        self.clock = clock or utcnow
        self.reset_ttl = reset_ttl or timedelta(minutes=get_settings().RESET_TOKEN_TTL_MINUTES)

    def request_reset(self, db: Session, email: str, ip: str | None = None) -> ResetTicket:
        """Generate a reset token for ``email``, replacing any previous one."""

        def work() -> tuple[ResetTicket, AuditEvent]:
            user = db.query(User).filter(User.email == email).with_for_update().first()
            if user is None:
                return ResetTicket(), AuditEvent("warning", "FORGOT_PASSWORD_EMAIL_NOT_FOUND", {"email": email})

            user.reset_token = generate_token()
            user.reset_token_expires_at = self.clock() + self.reset_ttl
            ticket = ResetTicket(token=user.reset_token, expires_at=user.reset_token_expires_at)
            return ticket, AuditEvent("info", "FORGOT_PASSWORD_TOKEN_GENERATED", {"email": email, "user_id": user.id})

        return run_audited(
            db,
            self.audit,
            work,
            "FORGOT_PASSWORD_EXCEPTION",
            {"email": email},
            lambda: ResetTicket(failure=AuthFailure.INTERNAL),
            ip=ip,
        )

    def consume_reset(self, db: Session, token: str, new_password: str, ip: str | None = None) -> AuthResult:
        """Set a new password using a valid reset token, then burn the token."""

        def work() -> tuple[AuthResult, AuditEvent]:
            user = None
            if is_well_formed(token):
                user = db.query(User).filter(User.reset_token == token).with_for_update().first()
            if user is None or user.reset_token_expires_at is None or user.reset_token_expires_at <= self.clock():
                return AuthResult.fail(AuthFailure.INVALID_TOKEN), AuditEvent("warning", "RESET_PASSWORD_INVALID_TOKEN")

            user.password_hash = self.hasher.hash(new_password)
            user.reset_token = None
            user.reset_token_expires_at = None
            return AuthResult.ok(), AuditEvent("info", "RESET_PASSWORD_SUCCESS", {"user_id": user.id})

        return run_audited(
            db,
            self.audit,
            work,
            "RESET_PASSWORD_EXCEPTION",
            {},
            lambda: AuthResult.fail(AuthFailure.INTERNAL),
            ip=ip,
        )


_password_reset_service: PasswordResetService | None = None


def get_password_reset_service() -> PasswordResetService:
    """Get singleton password reset service instance."""
    global _password_reset_service
    if _password_reset_service is None:
        _password_reset_service = PasswordResetService()
    return _password_reset_service
