from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Literal, Protocol

from token_prices.domain.errors import SyncFailure
from token_prices.domain.token_price import ExternalPrice, PriceSource, utcnow
from token_prices.engine.price_dedup import normalize_prices
from token_prices.repositories.token_price_repository import TokenPriceRepository


log = logging.getLogger(__name__)

FEED_RETRIES = 3
FEED_RETRY_DELAY_MS = 1000

SyncOutcome = Literal["pending", "success", "failed"]


class PriceFeed(Protocol):
    def fetch(self, *, retries: int = ..., delay_ms: int = ...) -> list[ExternalPrice]: ...


class FallbackPrices(Protocol):
    def load(self) -> list[ExternalPrice]: ...


@dataclass(frozen=True)
class SyncStatus:
    time: dt.datetime | None
    status: SyncOutcome


class PriceSyncService:
    """
    Keeps the price store in line with the remote feed.

    sync_prices() tries the feed first (3 attempts, linear backoff from 1s).
    Any failure on that path, fetch or write, switches to the bundled
    fallback list. Only when the fallback write fails too does the sync
    fail, with SyncFailure.
    """

    def __init__(
        self,
        *,
        repository: TokenPriceRepository,
        feed: PriceFeed,
        fallback: FallbackPrices,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._feed = feed
        self._fallback = fallback
        self._clock = clock

        self._lock = threading.Lock()
        self._status = SyncStatus(time=None, status="pending")

    def get_last_sync_status(self) -> SyncStatus:
        return self._status

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    def initial_sync(self) -> None:
        existing = self._repo.count()
        if existing > 0:
            log.info("database already has price data (%d records), skipping initial sync", existing)
            return

        log.info("database empty, performing initial sync")
        self.sync_prices()

    def sync_prices(self) -> None:
        with self._lock:
            self._sync_locked()

    def sync_if_idle(self) -> bool:
        if not self._lock.acquire(blocking=False):
            log.warning("price sync already in progress, skipping this run")
            return False
        try:
            self._sync_locked()
        finally:
            self._lock.release()
        return True

    def _sync_locked(self) -> None:
        log.info("price sync started")

        try:
            count = self._sync_from_feed()
        except Exception as e:
            log.warning("external price feed failed, attempting fallback: %s", e)
        else:
            self._status = SyncStatus(time=self._clock(), status="success")
            log.info("price sync completed", extra={"count": count, "source": PriceSource.EXTERNAL_API.value})
            return

        try:
            count = self._sync_from_fallback()
        except Exception as fallback_error:
            self._status = SyncStatus(time=self._status.time, status="failed")
            log.error("price sync failed: %s", fallback_error)
            raise SyncFailure(f"external and fallback price sync both failed: {fallback_error}") from fallback_error

        self._status = SyncStatus(time=self._clock(), status="success")
        log.info("price sync completed", extra={"count": count, "source": PriceSource.FALLBACK.value})

    def _sync_from_feed(self) -> int:
        entries = self._feed.fetch(retries=FEED_RETRIES, delay_ms=FEED_RETRY_DELAY_MS)
        drafts = normalize_prices(entries, PriceSource.EXTERNAL_API)
        return self._repo.upsert_many(drafts)

    def _sync_from_fallback(self) -> int:
        drafts = normalize_prices(self._fallback.load(), PriceSource.FALLBACK)
        count = self._repo.upsert_many(drafts)
        log.info("fallback data loaded (%d prices)", count)
        return count
