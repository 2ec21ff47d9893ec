"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, Field, field_validator

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class _EmailBody(BaseModel):
    email: str = Field(min_length=1, max_length=256)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class LoginRequest(_EmailBody):
    senha: str = Field(min_length=1)


class RegisterRequest(_EmailBody):
    nome: str | None = Field(default=None, max_length=256)
    senha: str = Field(min_length=6)

    @field_validator("senha")
    @classmethod
    def senha_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class UserOut(BaseModel):
    id: int
    email: str
    nome: str | None


class SessionResponse(BaseModel):
    token: str
    expira_em: str
    usuario: UserOut


class ForgotPasswordRequest(_EmailBody):
    pass


class ForgotPasswordResponse(BaseModel):
    message: str
    reset_token: str | None


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    nova_senha: str = Field(min_length=6)

    @field_validator("nova_senha")
    @classmethod
    def nova_senha_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class MessageResponse(BaseModel):
    message: str
