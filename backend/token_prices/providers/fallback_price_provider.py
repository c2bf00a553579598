from __future__ import annotations

import json
from pathlib import Path

from token_prices.domain.token_price import ExternalPrice
from token_prices.providers.price_feed_provider import parse_price_feed


DEFAULT_FALLBACK_PATH = Path(__file__).resolve().parents[1] / "data" / "fallback_prices.json"


class FallbackPriceProvider:
    """Bundled price list used when the remote feed is down."""

    def __init__(self, *, path: Path = DEFAULT_FALLBACK_PATH) -> None:
        self.path = path

    def load(self) -> list[ExternalPrice]:
        with self.path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
        return parse_price_feed(payload)
