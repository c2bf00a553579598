from __future__ import annotations


class PriceSyncError(Exception):
    """Base class for failures of the price synchronization workflow."""


class SourceUnavailable(PriceSyncError):
    """The external price feed could not be read after every retry."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"price feed {url} unavailable after {attempts} attempt(s)")
        self.url = url
        self.attempts = attempts


class PersistenceFailure(PriceSyncError):
    """The store rejected a write; the transaction was rolled back."""


class SyncFailure(PriceSyncError):
    """Both the external feed path and the fallback path failed."""


class TokenPriceNotFound(KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "token price not found"


class TokenPriceConflict(ValueError):
    pass
