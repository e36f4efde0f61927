"""Database connection and session management."""
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def create_session_factory(database_url: str, echo: bool = False) -> sessionmaker:
    """Build an engine and a session factory bound to it."""
    url = make_url(database_url)
    # SQLite requires check_same_thread=False for FastAPI
    connect_args = {"check_same_thread": False} if url.get_backend_name() == "sqlite" else {}

    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(database_url, connect_args=connect_args, echo=echo)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(session_factory: sessionmaker) -> None:
    """Create all registered tables on the factory's engine."""
    # Import all models so they're registered with Base
    from community_portal import models  # noqa: F401

    Base.metadata.create_all(bind=session_factory.kw["bind"])


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager for a database session used outside of request handling."""
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
