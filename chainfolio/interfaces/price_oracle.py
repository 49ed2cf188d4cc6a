"""Price oracle protocol — price feed abstraction."""
from typing import Protocol

from ..models import Price, PricePoint


class PriceOracle(Protocol):
    """Abstract interface for fetching asset prices by feed key."""

    async def fetch_prices(self, feed_keys: list[str]) -> dict[str, Price]: ...

    async def fetch_history(self, feed_key: str, days: int) -> list[PricePoint]: ...
