"""Per-session cache of the most recent optimized context window."""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from context_window.models.context import ContextResult, WindowRecord
from context_window.utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_MINUTES = 30


def _utilization(tokens: int, target_tokens: int) -> float:
    """Percent of *target_tokens* used. Any tokens against a zero target is infinite overage."""
    if target_tokens > 0:
        return tokens / target_tokens * 100
    return 100.0 if tokens == 0 else float("inf")


class WindowCache:
    """Session id -> WindowRecord, with read-time expiry.

    Every access goes through a single lock; each critical section touches one
    record (or one pass over the map for sweeps and stats).
    """

    def __init__(
        self,
        expiration_minutes: float = DEFAULT_EXPIRATION_MINUTES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.expiration_minutes = expiration_minutes
        self.clock = clock or utc_now
        self._records: dict[str, WindowRecord] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.expiration_minutes)

    def put(self, session_id: str, result: ContextResult, target_tokens: int) -> WindowRecord:
        utilization = _utilization(result.estimated_tokens, target_tokens)
        record = WindowRecord(
            result=result,
            target_tokens=target_tokens,
            utilization=utilization,
            expires_at=self.clock() + self.ttl,
        )
        with self._lock:
            self._records[session_id] = record
        return record

    def get(self, session_id: str) -> WindowRecord | None:
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            if record.is_expired(self.clock()):
                del self._records[session_id]
                return None
            return record

    def clear(self, session_id: str) -> bool:
        with self._lock:
            return self._records.pop(session_id, None) is not None

    def clean_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [sid for sid, rec in self._records.items() if rec.is_expired(now)]
            for sid in expired:
                del self._records[sid]
        if expired:
            logger.info("Cleaned %d expired context windows", len(expired))
        return len(expired)

    def _live_records(self) -> list[WindowRecord]:
        now = self.clock()
        with self._lock:
            return [rec for rec in self._records.values() if not rec.is_expired(now)]

    def stats(self) -> dict[str, Any]:
        """Aggregate figures for monitoring. Expired records are ignored, not evicted."""
        records = self._live_records()
        count = len(records)
        return {
            "active_count": count,
            "average_utilization": sum(r.utilization for r in records) / count if count else 0.0,
            "average_quality": sum(r.result.quality_score for r in records) / count if count else 0.0,
            "approximate_memory_bytes": sum(
                len(m.content) for r in records for m in r.result.messages
            ),
        }

    def memory_usage(self) -> dict[str, Any]:
        records = self._live_records()
        return {
            "total_sessions": len(records),
            "total_messages": sum(len(r.result.messages) for r in records),
            "total_bytes": sum(len(m.content) for r in records for m in r.result.messages),
            "oldest_expiry": min((r.expires_at for r in records), default=None),
        }

    def __len__(self) -> int:
        return len(self._live_records())

    def __contains__(self, session_id: object) -> bool:
        now = self.clock()
        with self._lock:
            record = self._records.get(session_id)
            return record is not None and not record.is_expired(now)
