from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response

from token_prices.api.deps import get_request_logger, get_token_price_service
from token_prices.api.schemas.token_prices import (
    PaginationOut,
    TokenPriceCreate,
    TokenPriceOut,
    TokenPricePage,
    TokenPriceUpdate,
)
from token_prices.domain.errors import TokenPriceConflict, TokenPriceNotFound
from token_prices.logging_setup import CorrelationLogger
from token_prices.repositories.token_price_repository import TokenPriceFilters
from token_prices.services.token_price_service import TokenPriceService


router = APIRouter(prefix="/api/token-prices", tags=["token-prices"])


@router.get("", response_model=TokenPricePage)
def list_token_prices(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    currency: str | None = Query(default=None, min_length=1, max_length=20),
    min_price: Decimal | None = Query(default=None, gt=0),
    max_price: Decimal | None = Query(default=None, gt=0),
    service: TokenPriceService = Depends(get_token_price_service),
    log: CorrelationLogger = Depends(get_request_logger),
) -> TokenPricePage:
    filters = TokenPriceFilters(page=page, limit=limit, currency=currency, min_price=min_price, max_price=max_price)
    log.debug("listing token prices %s", filters)

    res = service.list_prices(filters)
    return TokenPricePage(
        data=[TokenPriceOut.from_domain(tp) for tp in res.items],
        pagination=PaginationOut(page=res.page, limit=res.limit, total=res.total, total_pages=res.total_pages),
    )


@router.get("/id/{price_id}", response_model=TokenPriceOut)
def get_token_price_by_id(
    price_id: UUID,
    service: TokenPriceService = Depends(get_token_price_service),
) -> TokenPriceOut:
    try:
        return TokenPriceOut.from_domain(service.get_by_id(str(price_id)))
    except TokenPriceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{currency}", response_model=TokenPriceOut)
def get_token_price_by_currency(
    currency: str = Path(min_length=1, max_length=20),
    service: TokenPriceService = Depends(get_token_price_service),
) -> TokenPriceOut:
    try:
        return TokenPriceOut.from_domain(service.get_by_currency(currency))
    except TokenPriceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=TokenPriceOut, status_code=201)
def create_token_price(
    payload: TokenPriceCreate,
    service: TokenPriceService = Depends(get_token_price_service),
    log: CorrelationLogger = Depends(get_request_logger),
) -> TokenPriceOut:
    log.info("creating token price %s", payload.currency)
    try:
        tp = service.create(currency=payload.currency, price=payload.price, observed_at=payload.date)
    except TokenPriceConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TokenPriceOut.from_domain(tp)


@router.put("/{price_id}", response_model=TokenPriceOut)
def update_token_price(
    price_id: UUID,
    payload: TokenPriceUpdate,
    service: TokenPriceService = Depends(get_token_price_service),
    log: CorrelationLogger = Depends(get_request_logger),
) -> TokenPriceOut:
    log.info("updating token price %s", price_id)
    try:
        tp = service.update(
            str(price_id),
            currency=payload.currency,
            price=payload.price,
            observed_at=payload.date,
        )
    except TokenPriceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TokenPriceConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TokenPriceOut.from_domain(tp)


@router.delete("/{price_id}", status_code=204)
def delete_token_price(
    price_id: UUID,
    service: TokenPriceService = Depends(get_token_price_service),
    log: CorrelationLogger = Depends(get_request_logger),
) -> Response:
    log.info("deleting token price %s", price_id)
    try:
        service.delete(str(price_id))
    except TokenPriceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
