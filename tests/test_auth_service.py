"""Tests for the authentication service: login, lockout, sessions, registration."""

import logging
import re
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.orm import Session

from buscabusca.models.user import User
from buscabusca.services.auth import AuthFailure, AuthService
from buscabusca.services.passwords import PasswordHasher


def register(service: AuthService, db: Session, email: str = "ana@example.com", password: str = "password123"):
    result = service.register(db, "Ana", email, password)
    assert result.success
    return result


def load_user(db: Session, email: str = "ana@example.com") -> User:
    db.expire_all()
    return db.query(User).filter(User.email == email).one()


class TestLogin:
    """Tests for login outcomes."""

    def test_login_success(self, db_session: Session, auth_service: AuthService, clock):
        register(auth_service, db_session)
        result = auth_service.login(db_session, "ana@example.com", "password123")
        assert result.success
        assert result.failure is None
        assert re.fullmatch(r"[0-9a-f]{64}", result.session.token)
        assert result.session.expires_at == clock.now + timedelta(hours=1)
        assert result.session.user.email == "ana@example.com"
        assert result.session.user.display_name == "Ana"

    def test_projection_exposes_no_secrets(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        result = auth_service.login(db_session, "ana@example.com", "password123")
        assert set(vars(result.session.user)) == {"id", "email", "display_name"}

    def test_unknown_email_and_wrong_password_look_the_same(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        unknown = auth_service.login(db_session, "nobody@example.com", "password123")
        wrong = auth_service.login(db_session, "ana@example.com", "nope")
        assert unknown.failure is AuthFailure.INVALID_CREDENTIALS
        assert wrong.failure is AuthFailure.INVALID_CREDENTIALS
        assert unknown.error == wrong.error

    def test_unknown_email_still_runs_bcrypt(self, db_session: Session, auth_service: AuthService):
        """An unknown email pays the same hashing cost as a wrong password."""
        with patch.object(PasswordHasher, "verify", return_value=False) as verify:
            result = auth_service.login(db_session, "nobody@example.com", "password123")
        assert result.failure is AuthFailure.INVALID_CREDENTIALS
        verify.assert_called_once_with("password123", auth_service.hasher.dummy_hash)

    def test_client_ip_is_audited(self, db_session: Session, auth_service: AuthService, caplog):
        register(auth_service, db_session)
        with caplog.at_level(logging.INFO, logger="buscabusca.audit"):
            auth_service.login(db_session, "ana@example.com", "nope", ip="203.0.113.7")
            auth_service.login(db_session, "nobody@example.com", "nope", ip="203.0.113.8")
        messages = [r.getMessage() for r in caplog.records]
        assert any("[LOGIN_WRONG_PASSWORD]" in m and '"ip": "203.0.113.7"' in m for m in messages)
        assert any("[LOGIN_USER_NOT_FOUND]" in m and '"ip": "203.0.113.8"' in m for m in messages)

    def test_email_match_is_case_sensitive(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        result = auth_service.login(db_session, "ANA@example.com", "password123")
        assert result.failure is AuthFailure.INVALID_CREDENTIALS

    def test_each_login_issues_a_new_token(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        first = auth_service.login(db_session, "ana@example.com", "password123")
        second = auth_service.login(db_session, "ana@example.com", "password123")
        assert first.session.token != second.session.token

    def test_new_login_invalidates_previous_session(self, db_session: Session, auth_service: AuthService):
        """Only one active session per user."""
        register(auth_service, db_session)
        first = auth_service.login(db_session, "ana@example.com", "password123")
        second = auth_service.login(db_session, "ana@example.com", "password123")
        assert auth_service.validate_token(db_session, first.session.token) is None
        assert auth_service.validate_token(db_session, second.session.token) is not None

    def test_login_rehashes_outdated_hash(self, db_session: Session, clock):
        AuthService(hasher=PasswordHasher(rounds=4), clock=clock).register(
            db_session, "Ana", "ana@example.com", "password123"
        )
        stronger = AuthService(hasher=PasswordHasher(rounds=5), clock=clock)
        assert stronger.login(db_session, "ana@example.com", "password123").success
        user = load_user(db_session)
        assert user.password_hash.startswith("$2b$05$")
        assert stronger.hasher.verify("password123", user.password_hash)


class TestLockout:
    """Tests for brute-force lockout during login."""

    def test_wrong_password_increments_by_one(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        for expected in range(1, 5):
            auth_service.login(db_session, "ana@example.com", "wrong")
            user = load_user(db_session)
            assert user.failed_attempts == expected
            assert user.locked_until is None

    def test_fifth_failure_locks_account(self, db_session: Session, auth_service: AuthService, clock):
        register(auth_service, db_session)
        for _ in range(5):
            result = auth_service.login(db_session, "ana@example.com", "wrong")
            assert result.failure is AuthFailure.INVALID_CREDENTIALS

        user = load_user(db_session)
        assert user.failed_attempts == 5
        assert user.locked_until == clock.now + timedelta(minutes=15)

    def test_locked_account_rejects_correct_password(self, db_session: Session, auth_service: AuthService, clock):
        register(auth_service, db_session)
        for _ in range(5):
            auth_service.login(db_session, "ana@example.com", "wrong")

        clock.advance(minutes=14, seconds=59)
        result = auth_service.login(db_session, "ana@example.com", "password123")
        assert result.failure is AuthFailure.ACCOUNT_LOCKED
        assert result.session is None
        # Attempts while locked are not counted
        assert load_user(db_session).failed_attempts == 5

    def test_lock_message_does_not_leak_timer(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        for _ in range(5):
            auth_service.login(db_session, "ana@example.com", "wrong")
        result = auth_service.login(db_session, "ana@example.com", "password123")
        assert not re.search(r"\d", result.error)

    def test_login_allowed_after_lock_expires(self, db_session: Session, auth_service: AuthService, clock):
        register(auth_service, db_session)
        for _ in range(5):
            auth_service.login(db_session, "ana@example.com", "wrong")

        clock.advance(minutes=15)
        result = auth_service.login(db_session, "ana@example.com", "password123")
        assert result.success
        user = load_user(db_session)
        assert user.failed_attempts == 0
        assert user.locked_until is None

    def test_success_resets_counter(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        for _ in range(3):
            auth_service.login(db_session, "ana@example.com", "wrong")
        assert auth_service.login(db_session, "ana@example.com", "password123").success
        assert load_user(db_session).failed_attempts == 0

    def test_lockout_is_audited(self, db_session: Session, auth_service: AuthService, caplog):
        register(auth_service, db_session)
        with caplog.at_level(logging.INFO, logger="buscabusca.audit"):
            for _ in range(5):
                auth_service.login(db_session, "ana@example.com", "wrong")
            auth_service.login(db_session, "ana@example.com", "password123")
        assert caplog.text.count("[WARNING][LOGIN_WRONG_PASSWORD]") == 4
        assert "[WARNING][LOGIN_ACCOUNT_LOCKOUT]" in caplog.text
        assert "[WARNING][LOGIN_ACCOUNT_LOCKED]" in caplog.text
        assert "password123" not in caplog.text


class TestValidateToken:
    """Tests for token validation and expiry."""

    def test_valid_before_expiry(self, db_session: Session, auth_service: AuthService, clock):
        token = register(auth_service, db_session).session.token
        clock.advance(minutes=59, seconds=59)
        user = auth_service.validate_token(db_session, token)
        assert user is not None
        assert user.email == "ana@example.com"

    def test_rejected_at_expiry(self, db_session: Session, auth_service: AuthService, clock):
        token = register(auth_service, db_session).session.token
        clock.advance(hours=1)
        assert auth_service.validate_token(db_session, token) is None

    def test_expired_token_is_not_deleted(self, db_session: Session, auth_service: AuthService, clock):
        token = register(auth_service, db_session).session.token
        clock.advance(hours=2)
        auth_service.validate_token(db_session, token)
        assert load_user(db_session).session_token == token

    def test_unknown_token(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        assert auth_service.validate_token(db_session, "0" * 64) is None
        assert auth_service.validate_token(db_session, "not-a-token") is None
        assert auth_service.validate_token(db_session, "") is None

    def test_storage_error_yields_none(self, db_session: Session, auth_service: AuthService, caplog):
        token = register(auth_service, db_session).session.token
        with patch.object(db_session, "query", side_effect=RuntimeError("db down")):
            with caplog.at_level(logging.ERROR, logger="buscabusca.audit"):
                assert auth_service.validate_token(db_session, token) is None
        assert "VALIDATE_TOKEN_EXCEPTION" in caplog.text


class TestLogout:
    """Tests for logout."""

    def test_logout_invalidates_token(self, db_session: Session, auth_service: AuthService):
        token = register(auth_service, db_session).session.token
        assert auth_service.logout(db_session, token).success
        assert auth_service.validate_token(db_session, token) is None
        user = load_user(db_session)
        assert user.session_token is None
        assert user.session_token_expires_at is None

    def test_logout_twice_fails(self, db_session: Session, auth_service: AuthService):
        token = register(auth_service, db_session).session.token
        auth_service.logout(db_session, token)
        assert auth_service.logout(db_session, token).failure is AuthFailure.INVALID_TOKEN

    def test_logout_with_expired_token(self, db_session: Session, auth_service: AuthService, clock):
        token = register(auth_service, db_session).session.token
        clock.advance(hours=1)
        assert auth_service.logout(db_session, token).failure is AuthFailure.INVALID_TOKEN

    def test_logout_unknown_token(self, db_session: Session, auth_service: AuthService):
        assert auth_service.logout(db_session, "f" * 64).failure is AuthFailure.INVALID_TOKEN


class TestRegister:
    """Tests for registration."""

    def test_register_creates_user_and_session(self, db_session: Session, auth_service: AuthService):
        result = register(auth_service, db_session)
        user = load_user(db_session)
        assert user.failed_attempts == 0
        assert user.locked_until is None
        assert user.password_hash != "password123"
        assert user.session_token == result.session.token
        assert result.session.user.id == user.id

    def test_duplicate_email_rejected(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        result = auth_service.register(db_session, "Other", "ana@example.com", "password456")
        assert result.failure is AuthFailure.EMAIL_TAKEN
        assert result.failure.status_code == 400
        assert db_session.query(User).count() == 1

    def test_emails_differing_in_case_are_distinct(self, db_session: Session, auth_service: AuthService):
        register(auth_service, db_session)
        assert auth_service.register(db_session, "Ana 2", "Ana@example.com", "password456").success

    def test_register_then_login_round_trip(self, db_session: Session, auth_service: AuthService):
        registered = register(auth_service, db_session)
        logged_in = auth_service.login(db_session, "ana@example.com", "password123")
        assert logged_in.success
        assert logged_in.session.token != registered.session.token
        assert logged_in.session.user.id == registered.session.user.id

    def test_registration_token_valid_until_overwritten(self, db_session: Session, auth_service: AuthService):
        registered = register(auth_service, db_session)
        assert auth_service.validate_token(db_session, registered.session.token) is not None
        auth_service.login(db_session, "ana@example.com", "password123")
        assert auth_service.validate_token(db_session, registered.session.token) is None


class TestInternalErrors:
    """Tests for storage and runtime failures at the service boundary."""

    def test_login_storage_failure_is_internal(self, db_session: Session, auth_service: AuthService, caplog):
        register(auth_service, db_session)
        with patch.object(db_session, "commit", side_effect=RuntimeError("disk I/O error")):
            with caplog.at_level(logging.ERROR, logger="buscabusca.audit"):
                result = auth_service.login(db_session, "ana@example.com", "password123")
        assert result.failure is AuthFailure.INTERNAL
        assert result.error == "Internal error"
        assert "disk I/O error" not in result.error
        assert "[ERROR][LOGIN_EXCEPTION]" in caplog.text

    def test_failed_unit_of_work_is_rolled_back(self, db_session: Session, auth_service: AuthService):
        token = register(auth_service, db_session).session.token
        with patch.object(db_session, "commit", side_effect=RuntimeError("disk I/O error")):
            auth_service.login(db_session, "ana@example.com", "password123")
        # The session written by the failed login never landed
        assert load_user(db_session).session_token == token

    def test_register_storage_failure_is_internal(self, db_session: Session, auth_service: AuthService):
        with patch.object(db_session, "commit", side_effect=RuntimeError("disk I/O error")):
            result = auth_service.register(db_session, "Ana", "ana@example.com", "password123")
        assert result.failure is AuthFailure.INTERNAL
        assert db_session.query(User).count() == 0

    def test_logout_storage_failure_is_internal(self, db_session: Session, auth_service: AuthService):
        token = register(auth_service, db_session).session.token
        with patch.object(db_session, "commit", side_effect=RuntimeError("disk I/O error")):
            assert auth_service.logout(db_session, token).failure is AuthFailure.INTERNAL
        assert auth_service.validate_token(db_session, token) is not None
