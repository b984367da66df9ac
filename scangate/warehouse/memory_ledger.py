"""
In-process scan ledger.

Keeps records in memory for development, demos and tests. A single
re-entrant lock makes appends atomic with respect to reads; a lock per uid
implements ``serialized``.
"""

import threading
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Iterator, Optional

from scangate.core.clock import day_bounds
from scangate.core.errors import DuplicateScanIdError, LedgerError
from scangate.core.models import ScanFilters, ScanRecord, ScanStats
from scangate.observability.logger import get_logger

from .ledger import LedgerSession, ScanLedger

logger = get_logger(__name__)


class _MemorySession(LedgerSession):
    def __init__(self, ledger: "InMemoryScanLedger"):
        self._ledger = ledger

    def last_record_for(self, uid: str) -> Optional[ScanRecord]:
        return self._ledger.last_record_for(uid)

    def count_for(self, uid: str, day: date) -> int:
        return self._ledger.count_for(uid, day)

    def append(self, record: ScanRecord) -> None:
        self._ledger.append(record)


class InMemoryScanLedger(ScanLedger):
    """Thread-safe, non-durable ScanLedger."""

    def __init__(self) -> None:
        self._records: list[ScanRecord] = []
        self._by_id: dict[str, ScanRecord] = {}
        self._lock = threading.RLock()
        self._uid_locks: dict[str, tuple[threading.Lock, int]] = {}
        self._uid_locks_guard = threading.Lock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True
        logger.debug("In-memory scan ledger opened")

    def close(self) -> None:
        self._open = False

    def _check_open(self) -> None:
        if not self._open:
            raise LedgerError("Scan ledger is not open")

    def _snapshot(self) -> list[ScanRecord]:
        with self._lock:
            self._check_open()
            return list(self._records)

    def append(self, record: ScanRecord) -> None:
        with self._lock:
            self._check_open()
            if record.scan_id in self._by_id:
                raise DuplicateScanIdError(record.scan_id)
            self._records.append(record)
            self._by_id[record.scan_id] = record

    @staticmethod
    def _ordered(records: list[ScanRecord], filters: ScanFilters) -> list[ScanRecord]:
        # Newest append first, then a stable sort keeps that order on ties
        matching = [r for r in reversed(records) if filters.matches(r)]
        matching.sort(key=lambda r: r.timestamp, reverse=True)
        return matching

    @staticmethod
    def _paged(matching: list[ScanRecord], filters: ScanFilters) -> list[ScanRecord]:
        offset = filters.offset or 0
        if filters.limit is None:
            return matching[offset:]
        return matching[offset:offset + filters.limit]

    def query(self, filters: ScanFilters | None = None) -> list[ScanRecord]:
        filters = filters or ScanFilters()
        return self._paged(self._ordered(self._snapshot(), filters), filters)

    def page(self, filters: ScanFilters) -> tuple[list[ScanRecord], int]:
        matching = self._ordered(self._snapshot(), filters)
        return self._paged(matching, filters), len(matching)

    def count(self, filters: ScanFilters | None = None) -> int:
        filters = filters or ScanFilters()
        return sum(1 for r in self._snapshot() if filters.matches(r))

    def get(self, scan_id: str) -> Optional[ScanRecord]:
        with self._lock:
            self._check_open()
            return self._by_id.get(scan_id)

    def distinct_uid_count(self) -> int:
        return len({r.uid for r in self._snapshot()})

    def stats(self, today: date) -> ScanStats:
        records = self._snapshot()
        today_start, today_end = day_bounds(today)
        yesterday_start, yesterday_end = day_bounds(today - timedelta(days=1))

        return ScanStats(
            total_scans=len(records),
            today_scans=sum(1 for r in records if today_start <= r.timestamp <= today_end),
            yesterday_scans=sum(1 for r in records if yesterday_start <= r.timestamp <= yesterday_end),
            unique_uids=len({r.uid for r in records}),
            last_scan=max((r.timestamp for r in records), default=None),
        )

    @contextmanager
    def serialized(self, uid: str) -> Iterator[LedgerSession]:
        self._check_open()
        lock = self._acquire_uid_lock(uid)
        try:
            with lock:
                yield _MemorySession(self)
        finally:
            self._release_uid_lock(uid)

    def _acquire_uid_lock(self, uid: str) -> threading.Lock:
        with self._uid_locks_guard:
            lock, users = self._uid_locks.get(uid, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._uid_locks[uid] = (lock, users + 1)
            return lock

    def _release_uid_lock(self, uid: str) -> None:
        with self._uid_locks_guard:
            lock, users = self._uid_locks[uid]
            if users <= 1:
                del self._uid_locks[uid]
            else:
                self._uid_locks[uid] = (lock, users - 1)
