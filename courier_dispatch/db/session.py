"""Session Factory — builds a sync engine and sessionmaker for a database URL.

Invariants:
    - Tables are created on first use (create_all is idempotent)
    - SQLite in-memory URLs share one connection (StaticPool) so every session
      sees the same database

Design Decisions:
    - Separate from infrastructure/sql_store.py: tests and seed scripts need a
      raw session factory without the repository layer
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from courier_dispatch.db.base import Base
import courier_dispatch.models  # noqa: F401  (register tables on Base.metadata)


def create_db_engine(database_url: str) -> Engine:
    """Create an engine and make sure all tables exist."""
    kwargs: dict = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_recycle"] = 3600
    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)
