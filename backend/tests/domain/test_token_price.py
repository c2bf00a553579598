import datetime as dt
from decimal import Decimal

import pytest

from token_prices.domain.token_price import ExternalPrice, as_utc, parse_price, parse_timestamp


def test_external_price_from_payload_normalizes():
    p = ExternalPrice.from_payload({"currency": " bNEO ", "date": "2023-08-29T07:10:50.000Z", "price": 7.1282679})

    assert p.currency == "BNEO"
    assert p.price == Decimal("7.1282679")
    assert p.observed_at == dt.datetime(2023, 8, 29, 7, 10, 50, tzinfo=dt.timezone.utc)


@pytest.mark.parametrize("bad", [0, -1, "abc", True, float("nan")])
def test_parse_price_rejects(bad):
    with pytest.raises(ValueError):
        parse_price(bad)


def test_timestamps_are_utc():
    assert parse_timestamp("2024-01-01T02:00:00+02:00") == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert as_utc(dt.datetime(2024, 1, 1)).tzinfo == dt.timezone.utc
