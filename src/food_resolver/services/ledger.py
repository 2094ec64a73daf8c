"""Per-subject metering of fallback estimates."""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

from food_resolver.domain.usage import UsageRecord
from food_resolver.services.cache import utc_now

_logger = logging.getLogger(__name__)


class UsageLedger(Protocol):
    """Interface for quota-gated fallback usage."""

    def try_consume(self, subject_key: str) -> bool:
        """Atomically record one use if the subject is under quota."""

    def remaining(self, subject_key: str) -> int:
        """Return how many uses the subject has left in its window."""

    def reset(self, subject_key: str) -> None:
        """Forget a subject's usage."""

    def sweep(self) -> int:
        """Evict expired records and return how many were removed."""


@dataclass
class InMemoryUsageLedger(UsageLedger):
    """Process-local ledger guarded by a single lock."""

    quota: int
    ttl: timedelta
    clock: Callable[[], datetime] = utc_now
    _records: dict[str, UsageRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def try_consume(self, subject_key: str) -> bool:
        """Increment the subject's count unless the quota is used up."""
        with self._lock:
            now = self.clock()
            record = self._current_record(subject_key, now)
            if record is None:
                if self.quota <= 0:
                    return False
                self._records[subject_key] = UsageRecord(
                    subject_key=subject_key, count=1, first_seen_at=now
                )
                return True
            if record.count >= self.quota:
                return False
            record.count += 1
            return True

    def remaining(self, subject_key: str) -> int:
        """Return the uses left for the subject."""
        with self._lock:
            record = self._current_record(subject_key, self.clock())
            used = record.count if record else 0
            return max(0, self.quota - used)

    def reset(self, subject_key: str) -> None:
        """Drop the subject's record."""
        with self._lock:
            self._records.pop(subject_key, None)

    def sweep(self) -> int:
        """Evict every record older than the TTL, regardless of count."""
        with self._lock:
            now = self.clock()
            expired = [
                key
                for key, record in self._records.items()
                if self._is_expired(record, now)
            ]
            for key in expired:
                del self._records[key]
        if expired:
            _logger.info("Usage sweep evicted %s record(s)", len(expired))
        return len(expired)

    def get_record(self, subject_key: str) -> UsageRecord | None:
        """Return a copy of the live record for the subject, if any."""
        with self._lock:
            record = self._current_record(subject_key, self.clock())
            if record is None:
                return None
            return UsageRecord(
                subject_key=record.subject_key,
                count=record.count,
                first_seen_at=record.first_seen_at,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _current_record(self, subject_key: str, now: datetime) -> UsageRecord | None:
        """Return the live record, dropping it when expired or corrupt.

        Must be called with the lock held.
        """
        record = self._records.get(subject_key)
        if record is None:
            return None
        if self._is_expired(record, now):
            del self._records[subject_key]
            return None
        if record.count < 0:
            _logger.warning(
                "Resetting corrupt usage record for %s (count=%s)",
                subject_key,
                record.count,
            )
            del self._records[subject_key]
            return None
        return record

    def _is_expired(self, record: UsageRecord, now: datetime) -> bool:
        return now - record.first_seen_at > self.ttl


@dataclass
class UsageSweeper:
    """Background task that periodically sweeps a usage ledger."""

    ledger: UsageLedger
    interval_seconds: float
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return True while the sweep loop is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await self.sleep(self.interval_seconds)
            try:
                await asyncio.to_thread(self.ledger.sweep)
            except Exception:
                _logger.exception("Usage sweep failed")
