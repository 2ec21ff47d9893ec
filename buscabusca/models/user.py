"""User model."""

from sqlalchemy import Column, DateTime, Integer, String

from buscabusca.database import Base, utcnow


class User(Base):
    """Application user and its credential state."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    display_name = Column(String(256), nullable=True)
    failed_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime, nullable=True)
    session_token = Column(String(64), nullable=True, unique=True, index=True)
    session_token_expires_at = Column(DateTime, nullable=True)
    reset_token = Column(String(64), nullable=True, unique=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        # Never render the hash or tokens
        return f"<User id={self.id} email={self.email!r}>"
