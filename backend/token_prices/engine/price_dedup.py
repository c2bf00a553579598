from __future__ import annotations

from typing import Iterable

from token_prices.domain.token_price import (
    ExternalPrice,
    PriceSource,
    TokenPriceDraft,
    normalize_currency,
)


def latest_by_currency(entries: Iterable[ExternalPrice]) -> dict[str, ExternalPrice]:
    """
    Keep one entry per currency: the one with the latest observed_at.
    On equal timestamps the entry seen later in the input wins.
    Dict order is the order in which currencies first appear.
    """
    latest: dict[str, ExternalPrice] = {}
    for entry in entries:
        key = normalize_currency(entry.currency)
        current = latest.get(key)
        if current is None or entry.observed_at >= current.observed_at:
            latest[key] = entry
    return latest


def normalize_prices(entries: Iterable[ExternalPrice], source: PriceSource) -> list[TokenPriceDraft]:
    return [
        TokenPriceDraft(
            currency=currency,
            price=entry.price,
            observed_at=entry.observed_at,
            source=source,
        )
        for currency, entry in latest_by_currency(entries).items()
    ]
