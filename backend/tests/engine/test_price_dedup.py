from decimal import Decimal

from fakes import price
from token_prices.domain.token_price import PriceSource
from token_prices.engine.price_dedup import latest_by_currency, normalize_prices


def test_one_draft_per_distinct_currency():
    entries = [
        price("ETH", "2500", "2024-01-01T00:00:00"),
        price("BTC", "42000", "2024-01-01T00:00:00"),
        price("ETH", "2600", "2024-01-02T00:00:00"),
        price("USDC", "1", "2024-01-01T00:00:00"),
        price("BTC", "43000", "2024-01-03T00:00:00"),
    ]

    out = normalize_prices(entries, PriceSource.EXTERNAL_API)

    assert sorted(d.currency for d in out) == ["BTC", "ETH", "USDC"]


def test_latest_timestamp_wins_regardless_of_order():
    entries = [
        price("ETH", "2500", "2024-01-01T00:00:00"),
        price("ETH", "2600", "2024-01-02T00:00:00"),
        price("ETH", "2400", "2023-12-31T00:00:00"),
    ]

    for ordering in (entries, list(reversed(entries)), [entries[1], entries[2], entries[0]]):
        out = normalize_prices(ordering, PriceSource.EXTERNAL_API)
        assert len(out) == 1
        assert out[0].price == Decimal("2600")


def test_equal_timestamps_later_entry_wins():
    entries = [
        price("BUSD", "0.999183113", "2023-08-29T07:10:40"),
        price("BUSD", "0.9998782611186441", "2023-08-29T07:10:40"),
    ]

    out = normalize_prices(entries, PriceSource.FALLBACK)

    assert [d.price for d in out] == [Decimal("0.9998782611186441")]


def test_source_tag_applied_to_every_draft():
    entries = [price("ETH", "1", "2024-01-01T00:00:00"), price("BTC", "2", "2024-01-01T00:00:00")]

    out = normalize_prices(entries, PriceSource.FALLBACK)

    assert {d.source for d in out} == {PriceSource.FALLBACK}


def test_currency_keys_are_case_insensitive():
    entries = [price("eth", "1", "2024-01-01T00:00:00"), price("ETH", "2", "2024-01-02T00:00:00")]

    latest = latest_by_currency(entries)

    assert list(latest) == ["ETH"]
    assert latest["ETH"].price == Decimal("2")


def test_empty_input():
    assert normalize_prices([], PriceSource.EXTERNAL_API) == []
