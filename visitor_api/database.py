# visitor_api/database.py

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .config import get_settings
from .errors import TransientError, ValidationError

SQLALCHEMY_DATABASE_URL = get_settings().database_url


def build_engine(url: str):
    """SQLite needs check_same_thread off because FastAPI serves sync routes from a threadpool."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    return create_engine(
        url,
        pool_recycle=3600,
        pool_pre_ping=True,
        connect_args={"connect_timeout": 10},
    )


engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    # models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def unit_of_work(db: Session):
    """Commit on success, roll back on any error.

    Unique-constraint violations become ``ValidationError``. Driver-level
    failures (lost connection, lock timeout) are re-raised as
    ``TransientError`` so callers can retry the whole operation.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        # lost a race on a unique column (guest_code, visitor_id, badge_number)
        db.rollback()
        raise ValidationError(f"Duplicate record: {exc.orig or exc}") from exc
    except (OperationalError, DBAPIError) as exc:
        db.rollback()
        raise TransientError(f"Datastore error: {exc.orig or exc}") from exc
    except Exception:
        db.rollback()
        raise


def get_db():
    """Dependency Injection: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
