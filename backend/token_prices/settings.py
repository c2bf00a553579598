from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping


DEFAULT_PRICE_FEED_URL = "https://interview.switcheo.com/prices.json"

_ENV_PREFIX = "TOKEN_PRICES_"


@dataclass(frozen=True)
class Settings:
    database_url: str
    price_feed_url: str = DEFAULT_PRICE_FEED_URL
    price_sync_interval_ms: int = 30_000
    price_sync_enabled: bool = True
    feed_timeout_sec: float = 10.0
    log_level: str = "INFO"
    port: int = 3000


def _env(env: Mapping[str, str], name: str) -> str | None:
    raw = env.get(_ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _env(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{_ENV_PREFIX}{name} must be > 0, got {value}")
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _env(env, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{name} must be a number, got {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{_ENV_PREFIX}{name} must be > 0, got {raw!r}")
    return value


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _env(env, name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    if env is None:
        env = os.environ

    db_url = _env(env, "DATABASE_URL")
    if db_url is None:
        raise RuntimeError(f"{_ENV_PREFIX}DATABASE_URL is required.")

    return Settings(
        database_url=db_url,
        price_feed_url=_env(env, "PRICE_FEED_URL") or DEFAULT_PRICE_FEED_URL,
        price_sync_interval_ms=_positive_int(env, "SYNC_INTERVAL_MS", 30_000),
        price_sync_enabled=_flag(env, "SYNC_ENABLED", True),
        feed_timeout_sec=_positive_float(env, "FEED_TIMEOUT_SEC", 10.0),
        log_level=(_env(env, "LOG_LEVEL") or "INFO").upper(),
        port=_positive_int(env, "PORT", 3000),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
