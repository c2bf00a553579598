from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query

from token_prices.api.deps import get_request_logger, get_token_price_service
from token_prices.api.schemas.token_prices import ExchangeRateOut, plain_decimal
from token_prices.domain.errors import TokenPriceNotFound
from token_prices.logging_setup import CorrelationLogger
from token_prices.services.token_price_service import TokenPriceService


router = APIRouter(prefix="/api/exchange-rate", tags=["exchange-rate"])


@router.get("", response_model=ExchangeRateOut)
def exchange_rate(
    from_currency: str = Query(alias="from", min_length=1, max_length=20),
    to_currency: str = Query(alias="to", min_length=1, max_length=20),
    amount: Decimal = Query(default=Decimal("1"), gt=0),
    service: TokenPriceService = Depends(get_token_price_service),
    log: CorrelationLogger = Depends(get_request_logger),
) -> ExchangeRateOut:
    log.debug("exchange rate %s -> %s for %s", from_currency, to_currency, amount)
    try:
        res = service.exchange_rate(from_currency=from_currency, to_currency=to_currency, amount=amount)
    except TokenPriceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ExchangeRateOut(
        from_currency=res.from_currency,
        to_currency=res.to_currency,
        amount=plain_decimal(res.amount),
        rate=plain_decimal(res.rate),
        result=plain_decimal(res.result),
        timestamp=res.timestamp,
    )
