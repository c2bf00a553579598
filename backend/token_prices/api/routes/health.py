from __future__ import annotations

import datetime as dt
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from token_prices.api.deps import Container, get_container
from token_prices.api.schemas.health import HealthOut, ReadinessOut
from token_prices.db import check_database


router = APIRouter(prefix="/health", tags=["health"])


def _uptime(request: Request) -> int:
    started = getattr(request.app.state, "started_at", None) or time.monotonic()
    return int(time.monotonic() - started)


@router.get("", response_model=HealthOut)
def liveness(request: Request) -> HealthOut:
    return HealthOut(status="ok", timestamp=dt.datetime.now(dt.timezone.utc), uptime=_uptime(request))


@router.get("/ready", response_model=ReadinessOut)
def readiness(request: Request, container: Container = Depends(get_container)):
    db_ok = check_database(container.engine)
    sync = container.price_sync.get_last_sync_status()

    body = ReadinessOut(
        status="ok" if db_ok else "error",
        timestamp=dt.datetime.now(dt.timezone.utc),
        uptime=_uptime(request),
        database="connected" if db_ok else "disconnected",
        sync_status=sync.status,
        last_price_sync=sync.time,
    )
    return JSONResponse(status_code=200 if db_ok else 503, content=body.model_dump(mode="json"))
