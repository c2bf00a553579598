from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Callable

from token_prices.domain.errors import TokenPriceConflict, TokenPriceNotFound
from token_prices.domain.token_price import (
    PriceSource,
    TokenPrice,
    TokenPriceDraft,
    as_utc,
    normalize_currency,
    parse_price,
    utcnow,
)
from token_prices.repositories.token_price_repository import Page, TokenPriceFilters, TokenPriceRepository


_RATE_QUANT = Decimal("0.00000001")
_RATE_PREC = 60


@dataclass(frozen=True)
class ExchangeRate:
    from_currency: str
    to_currency: str
    amount: Decimal
    rate: Decimal
    result: Decimal
    timestamp: dt.datetime


class TokenPriceService:

    def __init__(
        self,
        *,
        repository: TokenPriceRepository,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._clock = clock

    def list_prices(self, filters: TokenPriceFilters) -> Page[TokenPrice]:
        return self._repo.list(filters)

    def get_by_currency(self, currency: str) -> TokenPrice:
        tp = self._repo.find_by_currency(currency)
        if tp is None:
            raise TokenPriceNotFound(f"token price for currency '{normalize_currency(currency)}' not found")
        return tp

    def get_by_id(self, price_id: str) -> TokenPrice:
        tp = self._repo.get(price_id)
        if tp is None:
            raise TokenPriceNotFound(f"token price with id '{price_id}' not found")
        return tp

    def create(self, *, currency: str, price: Decimal, observed_at: dt.datetime | None = None) -> TokenPrice:
        cur = normalize_currency(currency)
        if self._repo.find_by_currency(cur) is not None:
            raise TokenPriceConflict(f"token price for currency '{cur}' already exists")

        draft = TokenPriceDraft(
            currency=cur,
            price=parse_price(price),
            observed_at=as_utc(observed_at or self._clock()),
            source=PriceSource.MANUAL,
        )
        return self._repo.create(draft)

    def update(
        self,
        price_id: str,
        *,
        currency: str | None = None,
        price: Decimal | None = None,
        observed_at: dt.datetime | None = None,
    ) -> TokenPrice:
        existing = self.get_by_id(price_id)

        cur = normalize_currency(currency) if currency is not None else None
        if cur is not None and cur != existing.currency:
            if self._repo.find_by_currency(cur) is not None:
                raise TokenPriceConflict(f"token price for currency '{cur}' already exists")

        return self._repo.update(
            price_id,
            currency=cur,
            price=parse_price(price) if price is not None else None,
            observed_at=as_utc(observed_at) if observed_at is not None else None,
            source=PriceSource.MANUAL,
        )

    def delete(self, price_id: str) -> None:
        if not self._repo.delete(price_id):
            raise TokenPriceNotFound(f"token price with id '{price_id}' not found")

    def exchange_rate(self, *, from_currency: str, to_currency: str, amount: Decimal = Decimal("1")) -> ExchangeRate:
        """How many `to` tokens one gets for `amount` of `from`, priced through the stored USD prices."""
        src = self._repo.find_by_currency(from_currency)
        if src is None:
            raise TokenPriceNotFound(f"currency '{normalize_currency(from_currency)}' not found")
        dst = self._repo.find_by_currency(to_currency)
        if dst is None:
            raise TokenPriceNotFound(f"currency '{normalize_currency(to_currency)}' not found")

        amount = parse_price(amount)
        with localcontext() as ctx:
            ctx.prec = _RATE_PREC
            rate = src.price / dst.price
            result = amount * rate
            # 8 fractional places on top of every integer digit
            ctx.prec = max(_RATE_PREC, rate.adjusted() + 10, result.adjusted() + 10)
            rate = rate.quantize(_RATE_QUANT, rounding=ROUND_HALF_UP)
            result = result.quantize(_RATE_QUANT, rounding=ROUND_HALF_UP)

        return ExchangeRate(
            from_currency=src.currency,
            to_currency=dst.currency,
            amount=amount,
            rate=rate,
            result=result,
            timestamp=self._clock(),
        )
