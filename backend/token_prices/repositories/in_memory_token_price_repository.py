from __future__ import annotations

import datetime as dt
import threading
from dataclasses import replace
from decimal import Decimal
from typing import Callable, Sequence
from uuid import uuid4

from token_prices.domain.errors import TokenPriceConflict, TokenPriceNotFound
from token_prices.domain.token_price import (
    PriceSource,
    TokenPrice,
    TokenPriceDraft,
    normalize_currency,
    utcnow,
)
from token_prices.repositories.sql_token_price_repository import next_updated_at
from token_prices.repositories.token_price_repository import Page, TokenPriceFilters, TokenPriceRepository


class InMemoryTokenPriceRepository(TokenPriceRepository):
    """
    Dict-backed store with the same semantics as the SQL repository.
    upsert_many builds the new state on a copy, so a failing batch leaves nothing behind.
    """

    def __init__(self, *, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._by_id: dict[str, TokenPrice] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def _id_for(self, currency: str, rows: dict[str, TokenPrice]) -> str | None:
        for row in rows.values():
            if row.currency == currency:
                return row.id
        return None

    def count(self) -> int:
        return len(self._by_id)

    def upsert_many(self, drafts: Sequence[TokenPriceDraft]) -> int:
        now = self._clock()
        with self._lock:
            staged = dict(self._by_id)
            for draft in drafts:
                cur = normalize_currency(draft.currency)
                existing_id = self._id_for(cur, staged)
                if existing_id is None:
                    new_id = str(uuid4())
                    staged[new_id] = TokenPrice(
                        id=new_id,
                        currency=cur,
                        price=draft.price,
                        observed_at=draft.observed_at,
                        source=draft.source,
                        created_at=now,
                        updated_at=now,
                    )
                else:
                    old = staged[existing_id]
                    staged[existing_id] = replace(
                        old,
                        price=draft.price,
                        observed_at=draft.observed_at,
                        source=draft.source,
                        updated_at=next_updated_at(old.updated_at, now),
                    )
            self._by_id = staged
        return len(drafts)

    def create(self, draft: TokenPriceDraft) -> TokenPrice:
        cur = normalize_currency(draft.currency)
        now = self._clock()
        with self._lock:
            if self._id_for(cur, self._by_id) is not None:
                raise TokenPriceConflict(f"token price for currency '{cur}' already exists")
            row = TokenPrice(
                id=str(uuid4()),
                currency=cur,
                price=draft.price,
                observed_at=draft.observed_at,
                source=draft.source,
                created_at=now,
                updated_at=now,
            )
            self._by_id[row.id] = row
        return row

    def get(self, price_id: str) -> TokenPrice | None:
        return self._by_id.get(str(price_id))

    def find_by_currency(self, currency: str) -> TokenPrice | None:
        row_id = self._id_for(normalize_currency(currency), self._by_id)
        return None if row_id is None else self._by_id[row_id]

    def list(self, filters: TokenPriceFilters) -> Page[TokenPrice]:
        rows = sorted(self._by_id.values(), key=lambda r: r.currency)
        if filters.currency is not None:
            cur = normalize_currency(filters.currency)
            rows = [r for r in rows if r.currency == cur]
        if filters.min_price is not None:
            rows = [r for r in rows if r.price >= filters.min_price]
        if filters.max_price is not None:
            rows = [r for r in rows if r.price <= filters.max_price]

        window = rows[filters.offset:filters.offset + filters.limit]
        return Page(items=window, page=filters.page, limit=filters.limit, total=len(rows))

    def update(
        self,
        price_id: str,
        *,
        currency: str | None = None,
        price: Decimal | None = None,
        observed_at: dt.datetime | None = None,
        source: PriceSource | None = None,
    ) -> TokenPrice:
        with self._lock:
            old = self._by_id.get(str(price_id))
            if old is None:
                raise TokenPriceNotFound(f"token price with id '{price_id}' not found")

            changes: dict = {}
            if currency is not None:
                cur = normalize_currency(currency)
                other = self._id_for(cur, self._by_id)
                if other is not None and other != old.id:
                    raise TokenPriceConflict(f"token price for currency '{cur}' already exists")
                changes["currency"] = cur
            if price is not None:
                changes["price"] = price
            if observed_at is not None:
                changes["observed_at"] = observed_at
            if source is not None:
                changes["source"] = source

            row = replace(old, updated_at=next_updated_at(old.updated_at, self._clock()), **changes)
            self._by_id[row.id] = row
        return row

    def delete(self, price_id: str) -> bool:
        with self._lock:
            return self._by_id.pop(str(price_id), None) is not None
