"""Request-scoped database session dependency."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from portal.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield one session per request, rolling back whatever was left uncommitted."""

    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
