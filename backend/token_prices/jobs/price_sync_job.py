from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from token_prices.services.price_sync_service import PriceSyncService


log = logging.getLogger(__name__)

_MINUTE_MS = 60_000
_HOUR_MS = 3_600_000


@dataclass(frozen=True)
class SyncTrigger:
    expression: str     # cron form, 6 fields when seconds are used
    period_sec: float


def sync_trigger_for(interval_ms: int) -> SyncTrigger:
    if interval_ms < _MINUTE_MS:
        seconds = max(1, interval_ms // 1000)
        return SyncTrigger(expression=f"*/{seconds} * * * * *", period_sec=float(seconds))

    if interval_ms < _HOUR_MS:
        minutes = interval_ms // _MINUTE_MS
        return SyncTrigger(expression=f"*/{minutes} * * * *", period_sec=float(minutes * 60))

    # hourly and longer intervals collapse to once a minute
    return SyncTrigger(expression="* * * * *", period_sec=60.0)


class PriceSyncJob:
    """Fires PriceSyncService.sync_if_idle on a background thread every trigger period."""

    def __init__(self, *, sync_service: PriceSyncService, interval_ms: int) -> None:
        self._sync = sync_service
        self.interval_ms = interval_ms
        self.trigger = sync_trigger_for(interval_ms)

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> bool:
        try:
            return self._sync.sync_if_idle()
        except Exception:
            log.exception("price sync job failed")
            return False

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.trigger.period_sec):
            self.run_once()

    def start(self) -> None:
        if self.is_running:
            return

        if self.interval_ms >= _HOUR_MS:
            log.warning(
                "sync interval %dms is an hour or more, running every minute instead",
                self.interval_ms,
            )
        log.info(
            "starting price sync job (interval %dms, cron %r)",
            self.interval_ms,
            self.trigger.expression,
        )

        # fresh event per thread: a stopped thread still finishing a sync must not resume
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="PriceSyncJob", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        # an in-flight sync keeps running on the daemon thread
        self._thread = None
        log.info("price sync job stopped")
