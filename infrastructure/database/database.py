import logging
import os
from pathlib import Path
from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def get_sqlite_path(db_url: str) -> str | None:
    """
    Extract file path from SQLite URL.
    Returns None if not a file-based SQLite database.
    """
    if not db_url.startswith("sqlite"):
        return None

    if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
        return None

    # sqlite:///relative/file.db or sqlite:////absolute/file.db
    db_path = db_url.replace("sqlite:///", "", 1)
    if db_url.startswith("sqlite:////"):
        db_path = "/" + db_path.lstrip("/")
    return db_path


def ensure_database_directory(db_url: str):
    """
    Ensure the SQLite database directory exists.
    Called during app startup, before tables are created.
    """
    db_path = get_sqlite_path(db_url)
    if not db_path:
        return  # Not a file-based SQLite database

    db_dir = os.path.dirname(db_path)
    if not db_dir:
        return

    try:
        Path(db_dir).mkdir(parents=True, exist_ok=True)
        if not os.access(db_dir, os.W_OK):
            logger.warning(f"Directory {db_dir} is not writable")
        logger.info(f"✓ Database directory ready: {db_dir}")
    except OSError as e:
        logger.error(f"Failed to create database directory {db_dir}: {e}")
        raise


def init_database_engine(db_url: str) -> Engine:
    """
    Initialize database engine with proper setup.
    Handles SQLite connection parameters and in-memory databases.
    """
    parsed = urlparse(db_url)

    if parsed.scheme == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": 30.0}
        if get_sqlite_path(db_url) is None:
            # In-memory: every session must share the one connection
            engine = create_engine(
                db_url, connect_args=connect_args, poolclass=StaticPool, echo=False
            )
        else:
            engine = create_engine(
                db_url,
                connect_args=connect_args,
                pool_pre_ping=True,
                pool_size=1,
                max_overflow=0,
                echo=False,
            )
    else:
        engine = create_engine(
            db_url,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            echo=False,
        )

    logger.info(f"✓ Database engine initialized: {parsed.scheme}://{parsed.netloc or 'localhost'}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def create_tables(engine: Engine):
    # Import models so they register on Base.metadata
    from infrastructure.database import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
