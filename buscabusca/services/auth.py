"""Authentication service: login, logout, registration and session tokens."""

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from buscabusca.config import get_settings
from buscabusca.database import run_in_transaction, utcnow
from buscabusca.models.user import User
from buscabusca.services.audit import AuditEvent, AuditLog, get_audit_log
from buscabusca.services.lockout import LockoutPolicy, get_lockout_policy
from buscabusca.services.passwords import PasswordHasher, get_password_hasher
from buscabusca.services.tokens import generate_token, is_well_formed

T = TypeVar("T")


class AuthFailure(enum.Enum):
    """Failure kinds with their fixed user-facing message and HTTP status."""

    INVALID_CREDENTIALS = ("Invalid credentials", 401)
    ACCOUNT_LOCKED = ("Account temporarily locked. Try again in a few minutes.", 401)
    INVALID_TOKEN = ("Invalid or expired token", 401)
    EMAIL_TAKEN = ("This email is already registered", 400)
    INTERNAL = ("Internal error", 500)

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code


@dataclass
class UserProjection:
    """The only user fields ever handed back to callers."""

    id: int
    email: str
    display_name: str | None


@dataclass
class SessionInfo:
    token: str
    expires_at: datetime
    user: UserProjection


@dataclass
class AuthResult:
    """Result of an authentication operation."""

    success: bool
    failure: AuthFailure | None = None
    session: SessionInfo | None = None

    @property
    def error(self) -> str | None:
        return self.failure.message if self.failure else None

    @classmethod
    def ok(cls, session: SessionInfo | None = None) -> "AuthResult":
        return cls(success=True, session=session)

    @classmethod
    def fail(cls, failure: AuthFailure) -> "AuthResult":
        return cls(success=False, failure=failure)


def run_audited(
    db: Session,
    audit: AuditLog,
    work: Callable[[], tuple[T, AuditEvent]],
    error_event: str,
    context: dict[str, Any],
    on_error: Callable[[], T],
    ip: str | None = None,
) -> T:
    """Run ``work`` as one unit of work and log its audit event once it has committed.

    Storage and runtime errors are logged in full and turned into ``on_error()``.
    ``ip``, when known, is added to whichever event gets written.
    """
    if ip is not None:
        context = {**context, "ip": ip}
    try:
        result, event = run_in_transaction(db, work)
    except Exception as e:
        audit.error(error_event, {**context, "error": str(e)}, exc_info=True)
        return on_error()
    if ip is not None:
        event = AuditEvent(event.level, event.name, {**event.context, "ip": ip})
    audit.emit(event)
    return result


class AuthService:
    """Handles login with lockout, logout, registration and token validation."""

    def __init__(
        self,
        hasher: PasswordHasher | None = None,
        lockout: LockoutPolicy | None = None,
        audit: AuditLog | None = None,
        clock: Callable[[], datetime] | None = None,
        session_ttl: timedelta | None = None,
    ) -> None:
        self.hasher = hasher or get_password_hasher()
        self.lockout = lockout or get_lockout_policy()
        self.audit = audit or get_audit_log()
        self.clock = clock or utcnow
        self.session_ttl = session_ttl or timedelta(minutes=get_settings().SESSION_TOKEN_TTL_MINUTES)

    def login(self, db: Session, email: str, password: str, ip: str | None = None) -> AuthResult:
        """Authenticate by email and password and open a new session."""

        def work() -> tuple[AuthResult, AuditEvent]:
            now = self.clock()
            user = self._find_by_email(db, email, for_update=True)
            if user is None:
                # Same answer and same bcrypt cost as a wrong password so emails cannot be enumerated
                self.hasher.verify(password, self.hasher.dummy_hash)
                return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS), AuditEvent(
                    "warning", "LOGIN_USER_NOT_FOUND", {"email": email}
                )

            if self.lockout.is_locked(user, now):
                return AuthResult.fail(AuthFailure.ACCOUNT_LOCKED), AuditEvent(
                    "warning", "LOGIN_ACCOUNT_LOCKED", {"email": email, "user_id": user.id}
                )

            if not self.hasher.verify(password, user.password_hash):
                self.lockout.record_failure(user, now)
                context = {"email": email, "user_id": user.id, "failed_attempts": user.failed_attempts}
                name = "LOGIN_ACCOUNT_LOCKOUT" if self.lockout.just_locked(user, now) else "LOGIN_WRONG_PASSWORD"
                return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS), AuditEvent("warning", name, context)

            self.lockout.record_success(user)
            if self.hasher.needs_rehash(user.password_hash):
                user.password_hash = self.hasher.hash(password)
            session = self._issue_session(user, now)
            return AuthResult.ok(session), AuditEvent("info", "LOGIN_SUCCESS", {"email": email, "user_id": user.id})

        return run_audited(
            db,
            self.audit,
            work,
            "LOGIN_EXCEPTION",
            {"email": email},
            lambda: AuthResult.fail(AuthFailure.INTERNAL),
            ip=ip,
        )

    def logout(self, db: Session, token: str, ip: str | None = None) -> AuthResult:
        """Invalidate the session behind ``token``. No grace period."""

        def work() -> tuple[AuthResult, AuditEvent]:
            now = self.clock()
            user = self._find_by_session_token(db, token, for_update=True)
            if user is None or not self._session_active(user, now):
                return AuthResult.fail(AuthFailure.INVALID_TOKEN), AuditEvent("warning", "LOGOUT_INVALID_TOKEN")

            user.session_token = None
            user.session_token_expires_at = None
            return AuthResult.ok(), AuditEvent("info", "LOGOUT_SUCCESS", {"user_id": user.id})

        return run_audited(
            db, self.audit, work, "LOGOUT_EXCEPTION", {}, lambda: AuthResult.fail(AuthFailure.INTERNAL), ip=ip
        )

    def validate_token(self, db: Session, token: str) -> User | None:
        """Return the user owning an unexpired session token, or None.

        Expired tokens are left in place; they stop matching by comparison only.
        """
        try:
            user = self._find_by_session_token(db, token)
        except Exception as e:
            db.rollback()
            self.audit.error("VALIDATE_TOKEN_EXCEPTION", {"error": str(e)}, exc_info=True)
            return None

        if user is None or not self._session_active(user, self.clock()):
            return None
        return user

    def register(
        self, db: Session, display_name: str | None, email: str, password: str, ip: str | None = None
    ) -> AuthResult:
        """Create an account and open its first session."""

        def work() -> tuple[AuthResult, AuditEvent]:
            now = self.clock()
            taken = AuthResult.fail(AuthFailure.EMAIL_TAKEN), AuditEvent(
                "warning", "REGISTER_EMAIL_TAKEN", {"email": email}
            )
            if self._find_by_email(db, email) is not None:
                return taken

            user = User(
                email=email,
                display_name=display_name,
                password_hash=self.hasher.hash(password),
                failed_attempts=0,
            )
            db.add(user)
            try:
                db.flush()
            except IntegrityError:
                # Lost a race against a concurrent registration of the same email
                db.rollback()
                return taken

            session = self._issue_session(user, now)
            return AuthResult.ok(session), AuditEvent(
                "info", "REGISTER_SUCCESS", {"email": email, "user_id": user.id}
            )

        return run_audited(
            db,
            self.audit,
            work,
            "REGISTER_EXCEPTION",
            {"email": email},
            lambda: AuthResult.fail(AuthFailure.INTERNAL),
            ip=ip,
        )

    def _issue_session(self, user: User, now: datetime) -> SessionInfo:
        """Mint a session token, replacing whatever session the user had."""
        user.session_token = generate_token()
        user.session_token_expires_at = now + self.session_ttl
        return SessionInfo(
            token=user.session_token,
            expires_at=user.session_token_expires_at,
            user=UserProjection(id=user.id, email=user.email, display_name=user.display_name),
        )

    @staticmethod
    def _session_active(user: User, now: datetime) -> bool:
        return user.session_token_expires_at is not None and user.session_token_expires_at > now

    @staticmethod
    def _find_by_email(db: Session, email: str, for_update: bool = False) -> User | None:
        query = db.query(User).filter(User.email == email)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def _find_by_session_token(db: Session, token: str, for_update: bool = False) -> User | None:
        if not is_well_formed(token):
            return None
        query = db.query(User).filter(User.session_token == token)
        if for_update:
            query = query.with_for_update()
        return query.first()


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
