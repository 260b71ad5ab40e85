"""
Database configuration and session management.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings


def create_db_engine(url: str) -> Engine:
    """
    Create the SQLAlchemy engine for the configured backend.

    MySQL gets pool tuning and connect timeouts; SQLite is opened so the
    connection can be shared with FastAPI's threadpool.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False}
        )

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=10,
        max_overflow=20,
        connect_args={
            "connect_timeout": 10,
            "read_timeout": 30,
            "write_timeout": 30
        }
    )


engine = create_db_engine(settings.DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db():
    """Create tables that do not exist yet."""
    # Register the models on Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


# Dependency to get database session
def get_db():
    """
    Database session dependency for FastAPI.
    Yields a session and closes it after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
