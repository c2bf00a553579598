from __future__ import annotations

from token_prices.api.deps import build_container
from token_prices.db import init_db
from token_prices.domain.errors import SyncFailure
from token_prices.logging_setup import configure_logging
from token_prices.settings import get_settings


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    c = build_container(settings)
    try:
        init_db(c.engine)
        c.price_sync.sync_prices()
        count = c.repository.count()
    except SyncFailure as e:
        print(f"sync failed: {e}")
        return 1
    finally:
        c.engine.dispose()

    status = c.price_sync.get_last_sync_status()
    print({"status": status.status, "time": status.time.isoformat() if status.time else None, "count": count})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
