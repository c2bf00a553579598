from __future__ import annotations

import json
import logging
import time
from typing import Callable
from urllib.request import Request, urlopen

from token_prices.domain.errors import SourceUnavailable
from token_prices.domain.token_price import ExternalPrice


log = logging.getLogger(__name__)


def parse_price_feed(payload: object) -> list[ExternalPrice]:
    if not isinstance(payload, list):
        raise ValueError(f"price feed must return a JSON array, got {type(payload).__name__}")
    return [ExternalPrice.from_payload(item) for item in payload]


class PriceFeedProvider:
    """Reads the remote `[{currency, date, price}, ...]` price feed."""

    def __init__(
        self,
        *,
        url: str,
        timeout_sec: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = url
        self._timeout = timeout_sec
        self._sleep = sleep

    def _get_once(self) -> list[ExternalPrice]:
        req = Request(
            self.url,
            headers={"Accept": "application/json", "User-Agent": "token-prices/0.1"},
        )
        # urlopen raises HTTPError for any non-2xx status
        with urlopen(req, timeout=self._timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
        return parse_price_feed(payload)

    def fetch(self, *, retries: int = 3, delay_ms: int = 1000) -> list[ExternalPrice]:
        if retries < 1:
            raise ValueError("retries must be >= 1")

        last_err: Exception | None = None
        for attempt in range(1, retries + 1):
            try:
                log.debug("GET %s (attempt %d/%d)", self.url, attempt, retries)
                prices = self._get_once()
                log.debug("price feed returned %d entries", len(prices))
                return prices
            except Exception as e:
                last_err = e
                log.warning(
                    "price feed request failed (attempt %d/%d): %s",
                    attempt,
                    retries,
                    e,
                    extra={"attempt": attempt, "max_retries": retries},
                )
                if attempt < retries:
                    self._sleep(delay_ms * attempt / 1000.0)

        raise SourceUnavailable(self.url, retries) from last_err
