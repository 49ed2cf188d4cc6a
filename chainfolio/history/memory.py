"""In-process history store."""
from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from ..models import HistoryRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryHistoryStore:
    """History kept in a list; expired records are hidden on read."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._records: list[HistoryRecord] = []

    async def insert(self, record: HistoryRecord) -> str:
        record_id = record.record_id or uuid.uuid4().hex
        self._records.append(
            dataclasses.replace(
                record,
                record_id=record_id,
                wallet_address=record.wallet_address.lower(),
            )
        )
        return record_id

    def _matching(
        self,
        wallet_address: str,
        start: datetime | None,
        end: datetime | None,
    ) -> list[HistoryRecord]:
        now = self._clock()
        wallet = wallet_address.lower()
        return [
            r
            for r in self._records
            if r.wallet_address == wallet
            and (r.expires_at is None or r.expires_at > now)
            and (start is None or r.timestamp >= start)
            and (end is None or r.timestamp <= end)
        ]

    async def find(
        self,
        wallet_address: str,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[HistoryRecord]:
        records = sorted(
            self._matching(wallet_address, start, end),
            key=lambda r: r.timestamp,
            reverse=newest_first,
        )
        records = records[offset:]
        return records if limit is None else records[:limit]

    async def count(
        self,
        wallet_address: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        return len(self._matching(wallet_address, start, end))
