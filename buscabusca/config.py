"""Configuration settings for BuscaBusca."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SENSITIVE_FIELDS = "senha,password,nova_senha,new_password,token,session_token,reset_token,secret"


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./buscabusca.db")
    TRANSACTION_RETRIES: int = int(os.getenv("TRANSACTION_RETRIES", "3"))

    # Tokens
    SESSION_TOKEN_TTL_MINUTES: int = int(os.getenv("SESSION_TOKEN_TTL_MINUTES", "60"))
    RESET_TOKEN_TTL_MINUTES: int = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "60"))

    # Lockout
    MAX_LOGIN_ATTEMPTS: int = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
    LOCKOUT_MINUTES: int = int(os.getenv("LOCKOUT_MINUTES", "15"))

    # Password hashing
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Logging
    LOG_SENSITIVE_FIELDS: str = os.getenv("LOG_SENSITIVE_FIELDS", DEFAULT_SENSITIVE_FIELDS)

    # HTTP
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "*")
    STATIC_DIR: str = os.getenv("STATIC_DIR", "public")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    @property
    def sensitive_fields(self) -> frozenset[str]:
        """Field names the audit log always redacts."""
        return frozenset(f.strip().lower() for f in self.LOG_SENSITIVE_FIELDS.split(",") if f.strip())

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.BCRYPT_ROUNDS < 10 and self.APP_ENV == "production":
            errors.append(f"BCRYPT_ROUNDS={self.BCRYPT_ROUNDS} is too low for production")
        if self.ALLOWED_ORIGINS.strip() == "*" and self.APP_ENV == "production":
            errors.append("ALLOWED_ORIGINS is '*' - any origin may call the API")
        if self.MAX_LOGIN_ATTEMPTS < 1:
            errors.append("MAX_LOGIN_ATTEMPTS must be at least 1 - lockout is effectively disabled")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
