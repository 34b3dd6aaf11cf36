"""
Database engine/session configuration.
Uses SQLAlchemy; PostgreSQL in deployments, SQLite in tests.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


# PUBLIC_INTERFACE
def build_engine(database_url: str):
    """
    Creates an engine for the given URL.
    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True, pool_recycle=3600)


# PUBLIC_INTERFACE
def build_session_factory(engine):
    """
    Returns a session factory bound to the engine.
    """
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# PUBLIC_INTERFACE
def create_tables(engine):
    """
    Creates all tables that do not exist yet. Deployments use Alembic;
    this is for SQLite and local runs.
    """
    Base.metadata.create_all(bind=engine)
