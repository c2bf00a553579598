from __future__ import annotations

import logging
from typing import Any, MutableMapping


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class CorrelationLogger(logging.LoggerAdapter):
    """Prefixes every message with the request's correlation id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        cid = self.extra.get("correlation_id", "-") if self.extra else "-"
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("correlation_id", cid)
        kwargs["extra"] = extra
        return f"[{cid}] {msg}", kwargs


def request_logger(correlation_id: str, name: str = "token_prices.request") -> CorrelationLogger:
    return CorrelationLogger(logging.getLogger(name), {"correlation_id": correlation_id})
