import datetime as dt
import threading
from decimal import Decimal

import pytest

from fakes import FakeFallback, FakeFeed, price
from token_prices.domain.errors import PersistenceFailure, SourceUnavailable, SyncFailure
from token_prices.domain.token_price import PriceSource, TokenPriceDraft
from token_prices.repositories.in_memory_token_price_repository import InMemoryTokenPriceRepository
from token_prices.services.price_sync_service import PriceSyncService


ETH_FEED = [
    price("ETH", "2500", "2024-01-01T00:00:00"),
    price("ETH", "2600", "2024-01-02T00:00:00"),
    price("ETH", "2400", "2023-12-31T00:00:00"),
]

FALLBACK = [
    price("ETH", "1645.9337373737", "2023-08-29T07:10:52"),
    price("USDC", "0.989832", "2023-08-29T07:10:40"),
]


class BrokenRepo(InMemoryTokenPriceRepository):
    def upsert_many(self, drafts):
        raise PersistenceFailure("database is locked")


class CountingRepo(InMemoryTokenPriceRepository):
    def __init__(self, **kw):
        super().__init__(**kw)
        self.upserts = 0

    def upsert_many(self, drafts):
        self.upserts += 1
        return super().upsert_many(drafts)


def _service(repo=None, feed=None, fallback=None):
    repo = repo or InMemoryTokenPriceRepository()
    feed = feed or FakeFeed(ETH_FEED)
    fallback = fallback or FakeFallback(FALLBACK)
    return PriceSyncService(repository=repo, feed=feed, fallback=fallback), repo, feed, fallback


def test_status_starts_pending():
    svc, *_ = _service()

    st = svc.get_last_sync_status()

    assert st.status == "pending"
    assert st.time is None
    assert svc.is_syncing is False


def test_sync_persists_latest_external_price():
    svc, repo, feed, fallback = _service()
    before = dt.datetime.now(dt.timezone.utc)

    svc.sync_prices()

    eth = repo.find_by_currency("ETH")
    assert repo.count() == 1
    assert eth.price == Decimal("2600")
    assert eth.source == PriceSource.EXTERNAL_API
    assert feed.calls == [{"retries": 3, "delay_ms": 1000}]
    assert fallback.calls == 0

    st = svc.get_last_sync_status()
    assert st.status == "success"
    assert st.time is not None and st.time >= before


def test_feed_failure_uses_fallback():
    svc, repo, feed, fallback = _service(feed=FakeFeed(fail=True))

    svc.sync_prices()

    assert feed.calls == [{"retries": 3, "delay_ms": 1000}]
    assert fallback.calls == 1
    assert repo.count() == 2
    assert repo.find_by_currency("USDC").source == PriceSource.FALLBACK
    assert svc.get_last_sync_status().status == "success"


def test_persistence_failure_on_external_path_uses_fallback():
    calls = {"n": 0}

    class FirstWriteFails(InMemoryTokenPriceRepository):
        def upsert_many(self, drafts):
            calls["n"] += 1
            if calls["n"] == 1:
                raise PersistenceFailure("deadlock detected")
            return super().upsert_many(drafts)

    svc, repo, _, fallback = _service(repo=FirstWriteFails())

    svc.sync_prices()

    assert fallback.calls == 1
    assert repo.find_by_currency("ETH").source == PriceSource.FALLBACK
    assert repo.find_by_currency("ETH").price == Decimal("1645.9337373737")


def test_both_paths_failing_raises_sync_failure():
    svc, _, _, _ = _service(repo=BrokenRepo(), feed=FakeFeed(fail=True))

    with pytest.raises(SyncFailure) as exc_info:
        svc.sync_prices()

    assert isinstance(exc_info.value.__cause__, PersistenceFailure)
    assert svc.get_last_sync_status().status == "failed"
    assert svc.is_syncing is False


def test_failed_sync_keeps_last_success_time():
    flaky = FakeFeed(ETH_FEED)
    fallback = FakeFallback(FALLBACK)
    svc, _, _, _ = _service(feed=flaky, fallback=fallback)
    svc.sync_prices()
    ok_time = svc.get_last_sync_status().time

    flaky.fail = True
    fallback.fail = True
    with pytest.raises(SyncFailure):
        svc.sync_prices()

    st = svc.get_last_sync_status()
    assert st.status == "failed"
    assert st.time == ok_time


def test_initial_sync_noop_when_store_has_data():
    repo = CountingRepo()
    seed = price("BTC", "42000", "2024-01-01T00:00:00")
    repo.upsert_many([TokenPriceDraft(seed.currency, seed.price, seed.observed_at, PriceSource.MANUAL)])
    svc, _, feed, fallback = _service(repo=repo)

    svc.initial_sync()

    assert feed.calls == []
    assert fallback.calls == 0
    assert repo.upserts == 1


def test_initial_sync_loads_empty_store():
    svc, repo, feed, _ = _service()

    svc.initial_sync()

    assert len(feed.calls) == 1
    assert repo.count() == 1


def test_initial_sync_propagates_total_failure():
    svc, _, _, _ = _service(repo=BrokenRepo(), feed=FakeFeed(fail=True))

    with pytest.raises(SyncFailure):
        svc.initial_sync()


def test_sync_if_idle_skips_overlapping_run():
    started = threading.Event()
    release = threading.Event()

    class SlowFeed(FakeFeed):
        def fetch(self, *, retries=3, delay_ms=1000):
            started.set()
            release.wait(5)
            return super().fetch(retries=retries, delay_ms=delay_ms)

    feed = SlowFeed(ETH_FEED)
    svc, _, _, _ = _service(feed=feed)

    t = threading.Thread(target=svc.sync_prices)
    t.start()
    assert started.wait(5)

    assert svc.is_syncing is True
    assert svc.sync_if_idle() is False

    release.set()
    t.join(5)

    assert svc.is_syncing is False
    assert svc.sync_if_idle() is True
    assert len(feed.calls) == 2


def test_source_unavailable_message_names_url():
    err = SourceUnavailable("http://feed.test/prices.json", 3)
    assert "http://feed.test/prices.json" in str(err)
    assert err.attempts == 3
