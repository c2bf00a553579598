from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Callable, Sequence
from uuid import uuid4

from sqlalchemy import DateTime, Numeric, String, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Mapped, Session, mapped_column, sessionmaker

from token_prices.db_base import Base
from token_prices.domain.errors import PersistenceFailure, TokenPriceConflict, TokenPriceNotFound
from token_prices.domain.token_price import (
    PriceSource,
    TokenPrice,
    TokenPriceDraft,
    as_utc,
    normalize_currency,
    utcnow,
)
from token_prices.repositories.token_price_repository import Page, TokenPriceFilters, TokenPriceRepository


class TokenPriceRow(Base):
    __tablename__ = "token_prices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    currency: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(24, 10), nullable=False)
    observed_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)


def next_updated_at(previous: dt.datetime, now: dt.datetime) -> dt.datetime:
    # updated_at must strictly increase even when the clock doesn't move
    previous = as_utc(previous)
    if now > previous:
        return now
    return previous + dt.timedelta(microseconds=1)


class SqlTokenPriceRepository(TokenPriceRepository):

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self._sessions = session_factory
        self._clock = clock

    def count(self) -> int:
        try:
            with self._sessions() as s:
                return int(s.execute(select(func.count()).select_from(TokenPriceRow)).scalar_one())
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"count failed: {e}") from e

    def upsert_many(self, drafts: Sequence[TokenPriceDraft]) -> int:
        now = self._clock()
        try:
            with self._sessions() as s, s.begin():
                for draft in drafts:
                    self._upsert_in_session(s, draft, now)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"batch upsert of {len(drafts)} price(s) rejected: {e}") from e
        return len(drafts)

    def _upsert_in_session(self, s: Session, draft: TokenPriceDraft, now: dt.datetime) -> None:
        cur = normalize_currency(draft.currency)
        row = s.execute(select(TokenPriceRow).where(TokenPriceRow.currency == cur)).scalars().first()
        if row is None:
            s.add(
                TokenPriceRow(
                    id=str(uuid4()),
                    currency=cur,
                    price=draft.price,
                    observed_at=draft.observed_at,
                    source=draft.source.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            # flush so a repeated currency in the same batch finds this row
            s.flush()
            return

        row.price = draft.price
        row.observed_at = draft.observed_at
        row.source = draft.source.value
        row.updated_at = next_updated_at(row.updated_at, now)

    def create(self, draft: TokenPriceDraft) -> TokenPrice:
        now = self._clock()
        row = TokenPriceRow(
            id=str(uuid4()),
            currency=normalize_currency(draft.currency),
            price=draft.price,
            observed_at=draft.observed_at,
            source=draft.source.value,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._sessions() as s, s.begin():
                s.add(row)
                s.flush()
                # read back what the column type actually kept
                s.refresh(row)
        except IntegrityError as e:
            raise TokenPriceConflict(f"token price for currency '{row.currency}' already exists") from e
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"create failed: {e}") from e
        return self._to_domain(row)

    def get(self, price_id: str) -> TokenPrice | None:
        try:
            with self._sessions() as s:
                row = s.get(TokenPriceRow, str(price_id))
                return self._to_domain(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"get failed: {e}") from e

    def find_by_currency(self, currency: str) -> TokenPrice | None:
        cur = normalize_currency(currency)
        try:
            with self._sessions() as s:
                row = s.execute(select(TokenPriceRow).where(TokenPriceRow.currency == cur)).scalars().first()
                return self._to_domain(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"lookup failed: {e}") from e

    def list(self, filters: TokenPriceFilters) -> Page[TokenPrice]:
        stmt = select(TokenPriceRow)
        if filters.currency is not None:
            stmt = stmt.where(TokenPriceRow.currency == normalize_currency(filters.currency))
        if filters.min_price is not None:
            stmt = stmt.where(TokenPriceRow.price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(TokenPriceRow.price <= filters.max_price)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        page_stmt = stmt.order_by(TokenPriceRow.currency).offset(filters.offset).limit(filters.limit)

        try:
            with self._sessions() as s:
                total = int(s.execute(count_stmt).scalar_one())
                rows = s.execute(page_stmt).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"list failed: {e}") from e

        return Page(
            items=[self._to_domain(r) for r in rows],
            page=filters.page,
            limit=filters.limit,
            total=total,
        )

    def update(
        self,
        price_id: str,
        *,
        currency: str | None = None,
        price: Decimal | None = None,
        observed_at: dt.datetime | None = None,
        source: PriceSource | None = None,
    ) -> TokenPrice:
        try:
            with self._sessions() as s, s.begin():
                row = s.get(TokenPriceRow, str(price_id))
                if row is None:
                    raise TokenPriceNotFound(f"token price with id '{price_id}' not found")

                if currency is not None:
                    row.currency = normalize_currency(currency)
                if price is not None:
                    row.price = price
                if observed_at is not None:
                    row.observed_at = observed_at
                if source is not None:
                    row.source = source.value
                row.updated_at = next_updated_at(row.updated_at, self._clock())
                s.flush()
                s.refresh(row)
        except IntegrityError as e:
            raise TokenPriceConflict(f"token price for currency '{currency}' already exists") from e
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"update failed: {e}") from e
        return self._to_domain(row)

    def delete(self, price_id: str) -> bool:
        try:
            with self._sessions() as s, s.begin():
                row = s.get(TokenPriceRow, str(price_id))
                if row is None:
                    return False
                s.delete(row)
                return True
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"delete failed: {e}") from e

    @staticmethod
    def _to_domain(r: TokenPriceRow) -> TokenPrice:
        return TokenPrice(
            id=r.id,
            currency=r.currency,
            price=Decimal(r.price),
            observed_at=as_utc(r.observed_at),
            source=PriceSource(r.source),
            created_at=as_utc(r.created_at),
            updated_at=as_utc(r.updated_at),
        )
