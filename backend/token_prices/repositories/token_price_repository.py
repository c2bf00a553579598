from __future__ import annotations

import datetime as dt
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Generic, Sequence, TypeVar

from token_prices.domain.token_price import PriceSource, TokenPrice, TokenPriceDraft


T = TypeVar("T")


@dataclass(frozen=True)
class TokenPriceFilters:
    page: int = 1
    limit: int = 20
    currency: str | None = None
    min_price: Decimal | None = None  # inclusive
    max_price: Decimal | None = None  # inclusive

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.limit <= 100:
            raise ValueError("limit must be between 1 and 100")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    page: int
    limit: int
    total: int
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_pages", math.ceil(self.total / self.limit) if self.limit else 0)


class TokenPriceRepository(ABC):
    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def upsert_many(self, drafts: Sequence[TokenPriceDraft]) -> int:
        """Insert or update every draft by currency, all-or-nothing. Returns the batch size."""

    @abstractmethod
    def create(self, draft: TokenPriceDraft) -> TokenPrice: ...

    @abstractmethod
    def get(self, price_id: str) -> TokenPrice | None: ...

    @abstractmethod
    def find_by_currency(self, currency: str) -> TokenPrice | None: ...

    @abstractmethod
    def list(self, filters: TokenPriceFilters) -> Page[TokenPrice]: ...

    @abstractmethod
    def update(
        self,
        price_id: str,
        *,
        currency: str | None = None,
        price: Decimal | None = None,
        observed_at: dt.datetime | None = None,
        source: PriceSource | None = None,
    ) -> TokenPrice: ...

    @abstractmethod
    def delete(self, price_id: str) -> bool: ...
