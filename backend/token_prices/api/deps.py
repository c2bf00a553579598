from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.engine import Engine

from token_prices.db import build_engine, build_session_factory
from token_prices.jobs.price_sync_job import PriceSyncJob
from token_prices.logging_setup import CorrelationLogger, request_logger
from token_prices.providers.fallback_price_provider import FallbackPriceProvider
from token_prices.providers.price_feed_provider import PriceFeedProvider
from token_prices.repositories.sql_token_price_repository import SqlTokenPriceRepository
from token_prices.repositories.token_price_repository import TokenPriceRepository
from token_prices.services.price_sync_service import FallbackPrices, PriceFeed, PriceSyncService
from token_prices.services.token_price_service import TokenPriceService
from token_prices.settings import Settings


@dataclass
class Container:
    settings: Settings
    engine: Engine
    repository: TokenPriceRepository
    token_prices: TokenPriceService
    price_sync: PriceSyncService
    sync_job: PriceSyncJob


def build_container(
    settings: Settings,
    *,
    feed: PriceFeed | None = None,
    fallback: FallbackPrices | None = None,
) -> Container:
    engine = build_engine(settings.database_url)
    repo = SqlTokenPriceRepository(session_factory=build_session_factory(engine))

    if feed is None:
        feed = PriceFeedProvider(url=settings.price_feed_url, timeout_sec=settings.feed_timeout_sec)
    if fallback is None:
        fallback = FallbackPriceProvider()

    price_sync = PriceSyncService(repository=repo, feed=feed, fallback=fallback)
    return Container(
        settings=settings,
        engine=engine,
        repository=repo,
        token_prices=TokenPriceService(repository=repo),
        price_sync=price_sync,
        sync_job=PriceSyncJob(sync_service=price_sync, interval_ms=settings.price_sync_interval_ms),
    )


def new_correlation_id(request: Request) -> str:
    return (
        request.headers.get("x-correlation-id")
        or request.headers.get("x-request-id")
        or str(uuid.uuid4())
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_token_price_service(request: Request) -> TokenPriceService:
    return get_container(request).token_prices


def get_price_sync_service(request: Request) -> PriceSyncService:
    return get_container(request).price_sync


def get_correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or new_correlation_id(request)


def get_request_logger(request: Request) -> CorrelationLogger:
    return request_logger(get_correlation_id(request))
