from __future__ import annotations

import pytest

from token_prices.db import build_engine, build_session_factory, init_db
from token_prices.repositories.sql_token_price_repository import SqlTokenPriceRepository


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def sql_repo(session_factory) -> SqlTokenPriceRepository:
    return SqlTokenPriceRepository(session_factory=session_factory)
