"""SQLAlchemy engine helpers for the ``sql`` record store backend."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# ``Base`` is the parent class for the two return tables in models/returns.py.
Base = declarative_base()


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite connections may be shared across threads.

    An in-memory SQLite URL gets a single shared connection, otherwise each
    new connection would see an empty database.
    """

    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if url in {"sqlite://", "sqlite:///:memory:"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
