from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field


class HealthOut(BaseModel):
    status: Literal["ok", "error"]
    timestamp: dt.datetime
    uptime: int = Field(ge=0)


class ReadinessOut(HealthOut):
    database: Literal["connected", "disconnected"]
    sync_status: Literal["pending", "success", "failed"]
    last_price_sync: dt.datetime | None = None
