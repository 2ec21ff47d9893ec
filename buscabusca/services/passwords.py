"""Adaptive password hashing."""

from functools import cached_property

import bcrypt

from buscabusca.config import get_settings


class PasswordHasher:
    """bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    @cached_property
    def dummy_hash(self) -> str:
        """Hash of a throwaway secret. Logins for unknown emails verify against it."""
        return self.hash("buscabusca-no-such-user")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Malformed hashes never verify."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """True when the stored hash was produced with a different work factor."""
        # bcrypt hashes look like $2b$12$<salt+digest>
        parts = password_hash.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds


_password_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    """Get singleton password hasher instance."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)
    return _password_hasher
