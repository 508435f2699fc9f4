from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from contextlib import contextmanager
from functools import lru_cache, wraps
import logging

from core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./classroom_randomizer.db"
    log_level: str = "INFO"

    # Selection animation pacing
    selection_tick_interval_ms: int = 200
    selection_tick_count: int = 20
    selection_reveal_delay_ms: int = 300

    # Thread pool used to run blocking store calls off the event loop
    store_max_workers: int = 4

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite connections are shared between the request threads and the store's
# worker pool, so the same-thread check has to be disabled.
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: provide a database session

    The session is closed once the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(session_factory=None):
    """
    Open a session outside of a request (used by the async roster store)

    Usage:
        with session_scope() as db:
            ClassroomManager.list_classrooms(db)

    Commit/rollback stays with @transactional; this only guarantees close().
    """
    factory = session_factory or SessionLocal
    db = factory()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator: keep roster writes atomic

    Usage:
        @transactional
        def some_roster_logic(db: Session, ...):
            student = Student(...)
            db.add(student)
            # no manual commit, the decorator handles it

    On failure:
        - rollback, so no partial record is left behind
        - raw SQLAlchemy errors are re-raised as StoreUnavailable
        - roster exceptions are re-raised unchanged

    Note:
        - the first argument must be db: Session
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise StoreUnavailable(str(e)) from e
        except Exception as e:
            logger.warning(f"Transaction rolled back in {func.__name__}: {e}")
            db.rollback()
            raise

    return wrapper
