"""Database session management."""

import logging
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from buscabusca.config import get_settings

logger = logging.getLogger("buscabusca")

T = TypeVar("T")

settings = get_settings()
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    # bound values include password hashes and tokens; keep them out of error text
    hide_parameters=True,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables that do not exist yet."""
    # Import models so they register with Base.metadata
    from buscabusca.models.merchant import Merchant  # noqa: F401
    from buscabusca.models.user import User  # noqa: F401

    Base.metadata.create_all(bind=engine)


def run_in_transaction(db: Session, work: Callable[[], T], retries: int | None = None) -> T:
    """Run ``work`` and commit it as one unit of work.

    A concurrent writer that committed first makes the versioned UPDATE match
    no rows; the whole unit is then rolled back and re-run against fresh state.
    Any other error rolls back and propagates.
    """
    attempts = max(1, retries if retries is not None else settings.TRANSACTION_RETRIES)
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work()
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            if attempt >= attempts:
                raise
            logger.info("Concurrent update detected, retrying unit of work (%d/%d)", attempt, attempts)
        except Exception:
            db.rollback()
            raise
