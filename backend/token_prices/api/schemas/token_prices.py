from __future__ import annotations

import datetime as dt
from decimal import Context, Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from token_prices.domain.token_price import TokenPrice


def plain_decimal(value: Decimal) -> str:
    # "2600", not "2.6E+3" nor "2600.000000000000000000"
    ctx = Context(prec=max(28, len(value.as_tuple().digits)))
    return format(value.normalize(ctx), "f")


class TokenPriceCreate(BaseModel):
    currency: str = Field(min_length=1, max_length=20)
    price: Decimal = Field(gt=0)
    date: dt.datetime | None = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        return v.strip().upper() if v is not None else None


class TokenPriceUpdate(BaseModel):
    currency: str | None = Field(default=None, min_length=1, max_length=20)
    price: Decimal | None = Field(default=None, gt=0)
    date: dt.datetime | None = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        return v.strip().upper() if v is not None else None


class TokenPriceOut(BaseModel):
    id: str
    currency: str
    price: str
    date: dt.datetime
    source: str
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_domain(cls, tp: TokenPrice) -> "TokenPriceOut":
        return cls(
            id=tp.id,
            currency=tp.currency,
            price=plain_decimal(tp.price),
            date=tp.observed_at,
            source=tp.source.value,
            created_at=tp.created_at,
            updated_at=tp.updated_at,
        )


class PaginationOut(BaseModel):
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=0)


class TokenPricePage(BaseModel):
    data: list[TokenPriceOut]
    pagination: PaginationOut


class ExchangeRateOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(alias="from")
    to_currency: str = Field(alias="to")
    amount: str
    rate: str
    result: str
    timestamp: dt.datetime
