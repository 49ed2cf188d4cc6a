"""History store protocol — append-only insight persistence."""
from datetime import datetime
from typing import Protocol

from ..models import HistoryRecord


class HistoryStore(Protocol):
    """Append-only store of assessment records keyed by wallet and timestamp."""

    async def insert(self, record: HistoryRecord) -> str: ...

    async def find(
        self,
        wallet_address: str,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[HistoryRecord]: ...

    async def count(
        self,
        wallet_address: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int: ...
