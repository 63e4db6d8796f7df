"""Database engine and session factory construction"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from loan_underwriting.config import settings
from loan_underwriting.infrastructure.database.models import Base


def create_engine_from_settings(database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across the pool
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create tables; migrations are owned by the surrounding application"""
    Base.metadata.create_all(bind=engine)
