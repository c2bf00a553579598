import threading

import pytest

from token_prices.domain.errors import SyncFailure
from token_prices.jobs.price_sync_job import PriceSyncJob, sync_trigger_for


@pytest.mark.parametrize(
    "interval_ms, expression, period",
    [
        (5_000, "*/5 * * * * *", 5.0),
        (30_000, "*/30 * * * * *", 30.0),
        (59_999, "*/59 * * * * *", 59.0),
        (60_000, "*/1 * * * *", 60.0),
        (120_000, "*/2 * * * *", 120.0),
        (3_599_999, "*/59 * * * *", 3540.0),
        (3_600_000, "* * * * *", 60.0),
        (7_200_000, "* * * * *", 60.0),
    ],
)
def test_interval_to_trigger(interval_ms, expression, period):
    trig = sync_trigger_for(interval_ms)
    assert trig.expression == expression
    assert trig.period_sec == period


def test_sub_second_interval_clamps_to_one_second():
    assert sync_trigger_for(250).expression == "*/1 * * * * *"


class _Sync:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0
        self.fired = threading.Event()

    def sync_if_idle(self) -> bool:
        self.calls += 1
        self.fired.set()
        if self.fail:
            raise SyncFailure("external and fallback price sync both failed")
        return True


def test_run_once_swallows_sync_errors():
    sync = _Sync(fail=True)
    job = PriceSyncJob(sync_service=sync, interval_ms=5_000)

    assert job.run_once() is False
    assert job.run_once() is False
    assert sync.calls == 2


def test_start_fires_and_stop_is_idempotent():
    sync = _Sync(fail=True)
    job = PriceSyncJob(sync_service=sync, interval_ms=1_000)

    job.start()
    try:
        assert job.is_running
        job.start()  # no second thread
        assert sync.fired.wait(5)
    finally:
        job.stop()

    assert job.is_running is False
    job.stop()
    assert job.is_running is False


def test_stop_before_start_is_noop():
    job = PriceSyncJob(sync_service=_Sync(), interval_ms=5_000)
    job.stop()
    assert job.is_running is False
