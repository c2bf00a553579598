from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class PriceSource(str, Enum):
    EXTERNAL_API = "EXTERNAL_API"
    FALLBACK = "FALLBACK"
    MANUAL = "MANUAL"


def normalize_currency(currency: str) -> str:
    if not isinstance(currency, str) or not currency.strip():
        raise ValueError("currency must be non-empty")
    return currency.strip().upper()


def parse_price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"invalid price: {value!r}")
    try:
        # str() first so floats keep their printed value (0.1 -> Decimal("0.1"))
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"invalid price: {value!r}") from exc
    if not price.is_finite() or price <= 0:
        raise ValueError(f"price must be > 0, got {value!r}")
    return price


def parse_timestamp(value: str) -> dt.datetime:
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    ts = dt.datetime.fromisoformat(raw)
    return as_utc(ts)


def as_utc(ts: dt.datetime) -> dt.datetime:
    # naive timestamps (sqlite round-trips) are taken as UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True, slots=True)
class ExternalPrice:
    """One entry of a price feed batch. Several may share a currency."""

    currency: str
    price: Decimal
    observed_at: dt.datetime

    @classmethod
    def from_payload(cls, item: Any) -> "ExternalPrice":
        if not isinstance(item, dict):
            raise ValueError(f"price entry must be an object, got {type(item).__name__}")
        try:
            currency = item["currency"]
            price = item["price"]
            date = item["date"]
        except KeyError as exc:
            raise ValueError(f"price entry missing field {exc.args[0]!r}") from exc
        if not isinstance(date, str):
            raise ValueError(f"price entry date must be a string, got {date!r}")
        return cls(
            currency=normalize_currency(currency),
            price=parse_price(price),
            observed_at=parse_timestamp(date),
        )


@dataclass(frozen=True, slots=True)
class TokenPriceDraft:
    currency: str
    price: Decimal
    observed_at: dt.datetime
    source: PriceSource


@dataclass(frozen=True, slots=True)
class TokenPrice:
    id: str
    currency: str
    price: Decimal
    observed_at: dt.datetime   # UTC
    source: PriceSource
    created_at: dt.datetime    # UTC
    updated_at: dt.datetime    # UTC

    def __post_init__(self) -> None:
        if not self.currency or self.currency != self.currency.strip().upper():
            raise ValueError("token_price.currency must be non-empty upper-case")
        if not isinstance(self.price, Decimal) or self.price <= 0:
            raise ValueError("token_price.price must be a positive Decimal")
        if not isinstance(self.source, PriceSource):
            raise ValueError("token_price.source must be a PriceSource")
