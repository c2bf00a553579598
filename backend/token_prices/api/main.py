from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from token_prices.api.deps import Container, build_container, get_correlation_id, new_correlation_id
from token_prices.api.routes.exchange_rate import router as exchange_rate_router
from token_prices.api.routes.health import router as health_router
from token_prices.api.routes.token_prices import router as token_prices_router
from token_prices.db import init_db
from token_prices.domain.errors import PersistenceFailure
from token_prices.logging_setup import configure_logging, request_logger
from token_prices.settings import get_settings


log = logging.getLogger(__name__)


def create_app(container: Container | None = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        c = container
        if c is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            c = build_container(settings)
        app.state.container = c

        # fail fast: unreachable db or a failed first sync aborts startup
        init_db(c.engine)
        c.price_sync.initial_sync()
        if c.settings.price_sync_enabled:
            c.sync_job.start()
        log.info("token prices api ready")

        try:
            yield
        finally:
            c.sync_job.stop()
            c.engine.dispose()
            log.info("token prices api stopped")

    app = FastAPI(title="Token Prices API", version="0.1.0", lifespan=lifespan)
    app.state.started_at = time.monotonic()

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        cid = new_correlation_id(request)
        request.state.correlation_id = cid
        rlog = request_logger(cid)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Correlation-ID"] = cid
        rlog.info("%s %s -> %d (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(PersistenceFailure)
    async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
        cid = get_correlation_id(request)
        request_logger(cid).error("storage error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content={"detail": "price storage unavailable", "correlation_id": cid},
        )

    app.include_router(health_router)
    app.include_router(token_prices_router)
    app.include_router(exchange_rate_router)
    return app


app = create_app()
