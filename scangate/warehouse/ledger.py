"""
Scan ledger interface.

The ledger is the append-only source of truth for admitted scans. Backends
implement storage; admission serialization per card goes through
``serialized()``, which yields a LedgerSession bound to that card.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import Optional

from scangate.core.clock import day_bounds
from scangate.core.models import ScanFilters, ScanRecord, ScanStats


class LedgerSession(ABC):
    """
    Read-evaluate-write view of the ledger for one card.

    A session is only valid inside ``ScanLedger.serialized(uid)``; while it is
    open no other session for the same uid exists, so the history it reads
    cannot change under it except through its own ``append``.
    """

    @abstractmethod
    def last_record_for(self, uid: str) -> Optional[ScanRecord]:
        pass

    @abstractmethod
    def count_for(self, uid: str, day: date) -> int:
        pass

    @abstractmethod
    def append(self, record: ScanRecord) -> None:
        pass


class ScanLedger(ABC):
    """
    Append-only store of admitted scans with ordered, filterable reads.

    Contract:
    - ``append`` is atomic and raises DuplicateScanIdError for an existing id
    - reads only ever observe fully appended records
    - ``query`` orders by timestamp descending, later appends first on ties,
      and applies limit/offset after filtering
    - backend failures are raised as LedgerError
    - ``stats`` and ``page`` each read one consistent snapshot
    """

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @abstractmethod
    def open(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def append(self, record: ScanRecord) -> None:
        """
        Persist a record.

        Raises:
            DuplicateScanIdError: If record.scan_id already exists
            LedgerError: On storage failure
        """
        pass

    @abstractmethod
    def query(self, filters: ScanFilters | None = None) -> list[ScanRecord]:
        pass

    @abstractmethod
    def count(self, filters: ScanFilters | None = None) -> int:
        """Number of records matching the filters, ignoring limit/offset."""
        pass

    @abstractmethod
    def get(self, scan_id: str) -> Optional[ScanRecord]:
        pass

    @abstractmethod
    def distinct_uid_count(self) -> int:
        pass

    @abstractmethod
    def stats(self, today: date) -> ScanStats:
        """
        Ledger-wide aggregate computed from a single snapshot.

        Args:
            today: UTC day counted as "today" (the day before is "yesterday")
        """
        pass

    @abstractmethod
    def page(self, filters: ScanFilters) -> tuple[list[ScanRecord], int]:
        """
        One page of ``query(filters)`` together with the unpaged match count,
        both read from the same snapshot.
        """
        pass

    @abstractmethod
    def serialized(self, uid: str) -> AbstractContextManager[LedgerSession]:
        """
        Mutual exclusion for the read-evaluate-write sequence of one card.

        Sessions for different uids do not block each other.
        """
        pass

    def last_record_for(self, uid: str) -> Optional[ScanRecord]:
        rows = self.query(ScanFilters(uid=uid, limit=1))
        return rows[0] if rows else None

    def count_for(self, uid: str, day: date) -> int:
        start, end = day_bounds(day)
        return self.count(ScanFilters(uid=uid, start=start, end=end))
