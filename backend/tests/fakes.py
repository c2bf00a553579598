from __future__ import annotations

import datetime as dt
from decimal import Decimal

from token_prices.domain.errors import SourceUnavailable
from token_prices.domain.token_price import ExternalPrice


def price(currency: str, value: str, when: str) -> ExternalPrice:
    return ExternalPrice(
        currency=currency,
        price=Decimal(value),
        observed_at=dt.datetime.fromisoformat(when).replace(tzinfo=dt.timezone.utc),
    )


class FakeFeed:
    def __init__(self, prices: list[ExternalPrice] | None = None, *, fail: bool = False) -> None:
        self.prices = prices or []
        self.fail = fail
        self.calls: list[dict] = []

    def fetch(self, *, retries: int = 3, delay_ms: int = 1000) -> list[ExternalPrice]:
        self.calls.append({"retries": retries, "delay_ms": delay_ms})
        if self.fail:
            raise SourceUnavailable("http://feed.test/prices.json", retries)
        return list(self.prices)


class FakeFallback:
    def __init__(self, prices: list[ExternalPrice] | None = None, *, fail: bool = False) -> None:
        self.prices = prices or []
        self.fail = fail
        self.calls = 0

    def load(self) -> list[ExternalPrice]:
        self.calls += 1
        if self.fail:
            raise FileNotFoundError("fallback_prices.json")
        return list(self.prices)


class FixedClock:
    def __init__(self, start: dt.datetime) -> None:
        self.now = start

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + dt.timedelta(**kwargs)
