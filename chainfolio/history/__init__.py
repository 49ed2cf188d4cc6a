"""Insight history stores."""
from __future__ import annotations

from ..config import HistoryConfig
from ..interfaces.history_store import HistoryStore
from .memory import InMemoryHistoryStore
from .mongo import MongoHistoryStore


def build_history_store(config: HistoryConfig) -> HistoryStore:
    """In-memory store unless the mongo backend is configured."""
    if config.backend == "mongo":
        return MongoHistoryStore.from_config(config)
    return InMemoryHistoryStore()


__all__ = ["InMemoryHistoryStore", "MongoHistoryStore", "build_history_store"]
