"""
Feed Health Store
================

Keyed store of FeedHealthRecord by source id. The in-memory store has no
expiry or capacity bound and is reset only by clear(); it does not survive
a process restart.
"""

import threading
from typing import Dict, List, Optional, Protocol

from ..models import FeedHealthRecord
from ..utils.logging import get_logger_for_component


class HealthStore(Protocol):
    """Storage interface used by the health monitor."""

    def get(self, source_id: str) -> Optional[FeedHealthRecord]: ...

    def set(self, record: FeedHealthRecord) -> None: ...

    def list(self) -> List[FeedHealthRecord]: ...

    def clear(self) -> None: ...


class InMemoryHealthStore:
    """Dict-backed HealthStore.

    Writes are scoped to a single key. Two overlapping checks of the same
    source can still interleave their read-modify-write; no per-source lock
    is taken.
    """

    def __init__(self):
        self._records: Dict[str, FeedHealthRecord] = {}
        self._lock = threading.Lock()
        self.logger = get_logger_for_component("health_store")

    def get(self, source_id: str) -> Optional[FeedHealthRecord]:
        with self._lock:
            return self._records.get(source_id)

    def set(self, record: FeedHealthRecord) -> None:
        with self._lock:
            self._records[record.source_id] = record

    def list(self) -> List[FeedHealthRecord]:
        with self._lock:
            return list(self._records.values())

    def clear(self) -> None:
        with self._lock:
            count = len(self._records)
            self._records.clear()
        self.logger.info(f"Feed health history cleared ({count} records)")

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._records


# Process-wide default store
_health_store: Optional[InMemoryHealthStore] = None


def get_health_store() -> InMemoryHealthStore:
    """Get the process-wide health store (created on first use)."""
    global _health_store

    if _health_store is None:
        _health_store = InMemoryHealthStore()

    return _health_store
