from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from token_prices.db_base import Base


def _is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def build_engine(url: str) -> Engine:
    # sqlite needs check_same_thread for FastAPI sync access + scheduler thread
    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if _is_sqlite_memory(url):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool

    return create_engine(url, future=True, connect_args=connect_args, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # import here so the row model is registered on Base.metadata
    from token_prices.repositories.sql_token_price_repository import TokenPriceRow  # noqa: F401

    Base.metadata.create_all(engine)


def check_database(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
