"""Brute-force lockout policy.

The policy only looks at the user's counters and the time it is given, so it
can be exercised without a database. Callers own persistence.
"""

from datetime import datetime, timedelta

from buscabusca.config import get_settings
from buscabusca.models.user import User


class LockoutPolicy:
    """Fixed-threshold, fixed-duration account lockout."""

    def __init__(self, max_attempts: int = 5, lock_duration: timedelta = timedelta(minutes=15)) -> None:
        self.max_attempts = max_attempts
        self.lock_duration = lock_duration

    def is_locked(self, user: User, now: datetime) -> bool:
        """A lock is active only while ``locked_until`` is strictly in the future."""
        return user.locked_until is not None and user.locked_until > now

    def record_failure(self, user: User, now: datetime) -> User:
        """Count a wrong password and lock the account once the threshold is reached."""
        user.failed_attempts = (user.failed_attempts or 0) + 1
        if user.failed_attempts >= self.max_attempts:
            user.locked_until = now + self.lock_duration
        return user

    def record_success(self, user: User) -> User:
        user.failed_attempts = 0
        user.locked_until = None
        return user

    def just_locked(self, user: User, now: datetime) -> bool:
        """True when the last recorded failure is the one that set the lock."""
        return user.failed_attempts >= self.max_attempts and self.is_locked(user, now)


_lockout_policy: LockoutPolicy | None = None


def get_lockout_policy() -> LockoutPolicy:
    """Get singleton lockout policy instance."""
    global _lockout_policy
    if _lockout_policy is None:
        settings = get_settings()
        _lockout_policy = LockoutPolicy(
            max_attempts=settings.MAX_LOGIN_ATTEMPTS,
            lock_duration=timedelta(minutes=settings.LOCKOUT_MINUTES),
        )
    return _lockout_policy
