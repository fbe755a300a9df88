"""
SQLite store for fintrack.

One engine per process, created lazily from ``FINTRACK_DB_PATH`` (or
``~/.fintrack/data.db``). Every unit of work runs inside ``db_session()``;
the batch committer opens one per chunk so each chunk commits on its own.
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fintrack.lib.config import APP_DIR, ENV_DB_PATH

Base = declarative_base()

DEFAULT_DB_PATH = APP_DIR / "data.db"

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker[Session]] = None


def resolve_db_path(db_path: Optional[Path] = None) -> Path:
    """Explicit path, then FINTRACK_DB_PATH, then ~/.fintrack/data.db."""
    if db_path is not None:
        return db_path
    env_db_path = os.environ.get(ENV_DB_PATH)
    return Path(env_db_path) if env_db_path else DEFAULT_DB_PATH


def _enable_foreign_keys(dbapi_conn: Any, connection_record: Any) -> None:
    # SQLite ships with FK enforcement off; transactions must reference a real account
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _register_models() -> None:
    # Table metadata is only known once the model modules are imported
    from fintrack.models import (  # noqa: F401
        Account,
        Category,
        ImportJob,
        ImportRowError,
        Price,
        Transaction,
    )


def get_engine(db_path: Optional[Path] = None) -> Engine:
    """
    Get or create the process-wide engine.

    Args:
        db_path: Database file; only used when the engine is first created

    Returns:
        SQLAlchemy Engine bound to the SQLite file
    """
    global _engine

    if _engine is None:
        path = resolve_db_path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        _engine = create_engine(
            f"sqlite:///{path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(_engine, "connect", _enable_foreign_keys)

    return _engine


def reset_engine() -> None:
    """Dispose the engine so the next call re-reads FINTRACK_DB_PATH (tests)."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionLocal = None


def get_session() -> Session:
    global _SessionLocal

    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())

    return _SessionLocal()


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    One transaction: commit when the block exits cleanly, roll back otherwise.

    Example:
        with db_session() as session:
            session.add(Account(user_id=user_id, name="Checking"))
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(db_path: Optional[Path] = None) -> None:
    """Create any missing tables; existing tables and rows are untouched."""
    engine = get_engine(db_path)
    _register_models()
    Base.metadata.create_all(bind=engine)


def reset_db(db_path: Optional[Path] = None) -> None:
    """
    Drop and recreate every table. **WARNING: This deletes all data!**

    Args:
        db_path: Database file (see ``resolve_db_path``)
    """
    engine = get_engine(db_path)
    _register_models()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def db_exists(db_path: Optional[Path] = None) -> bool:
    return resolve_db_path(db_path).exists()
