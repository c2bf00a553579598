from __future__ import annotations

import uvicorn

from token_prices.settings import get_settings


def main() -> int:
    settings = get_settings()
    uvicorn.run("token_prices.api.main:app", host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
