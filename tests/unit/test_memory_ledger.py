"""
Unit tests for the in-memory scan ledger.
"""

import threading
import time
from datetime import date, datetime, timedelta, timezone

import pytest

from scangate.core.errors import DuplicateScanIdError, LedgerError
from scangate.core.models import ScanFilters, ScanRecord
from scangate.warehouse import InMemoryScanLedger

T0 = datetime(2024, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


def make_record(n: int, uid="TEST12345678", campaign_id="DEMO01", timestamp=None) -> ScanRecord:
    return ScanRecord(
        scan_id=f"scan_{n:013d}_{n:08x}",
        uid=uid,
        campaign_id=campaign_id,
        timestamp=timestamp or T0 + timedelta(minutes=n),
        checksum=f"{n:064x}",
    )


class TestAppendAndRead:
    """Tests for append, get and count"""

    def test_append_then_get(self, memory_ledger):
        record = make_record(1)
        memory_ledger.append(record)

        assert memory_ledger.get(record.scan_id) == record
        assert memory_ledger.get("scan_unknown") is None
        assert memory_ledger.count() == 1

    def test_duplicate_scan_id_rejected(self, memory_ledger):
        memory_ledger.append(make_record(1))

        with pytest.raises(DuplicateScanIdError) as exc_info:
            memory_ledger.append(make_record(1, uid="OTHER1234"))

        assert exc_info.value.code == "DUPLICATE_SCAN_ID"
        assert memory_ledger.count() == 1

    def test_distinct_uid_count(self, memory_ledger):
        memory_ledger.append(make_record(1, uid="AAAA1111"))
        memory_ledger.append(make_record(2, uid="AAAA1111"))
        memory_ledger.append(make_record(3, uid="BBBB2222"))

        assert memory_ledger.distinct_uid_count() == 2

    def test_closed_ledger_raises_storage_error(self):
        ledger = InMemoryScanLedger()

        with pytest.raises(LedgerError) as exc_info:
            ledger.count()

        assert exc_info.value.code == "STORAGE_ERROR"

    def test_context_manager_opens_and_closes(self):
        with InMemoryScanLedger() as ledger:
            assert ledger.is_open
        assert not ledger.is_open


class TestQuery:
    """Tests for ordering, filtering and paging"""

    def test_newest_first(self, memory_ledger):
        for n in (2, 1, 3):
            memory_ledger.append(make_record(n))

        assert [r.scan_id for r in memory_ledger.query()] == [
            make_record(3).scan_id,
            make_record(2).scan_id,
            make_record(1).scan_id,
        ]

    def test_ties_broken_by_later_append_first(self, memory_ledger):
        first = make_record(1, timestamp=T0)
        second = make_record(2, timestamp=T0)
        memory_ledger.append(first)
        memory_ledger.append(second)

        assert memory_ledger.query() == [second, first]

    def test_filters_are_combinable(self, memory_ledger):
        memory_ledger.append(make_record(1, uid="AAAA1111", campaign_id="C1"))
        memory_ledger.append(make_record(2, uid="AAAA1111", campaign_id="C2"))
        memory_ledger.append(make_record(3, uid="BBBB2222", campaign_id="C1"))

        rows = memory_ledger.query(ScanFilters(uid="AAAA1111", campaign_id="C1"))

        assert [r.scan_id for r in rows] == [make_record(1).scan_id]

    def test_time_range_is_inclusive(self, memory_ledger):
        for n in range(1, 6):
            memory_ledger.append(make_record(n))

        filters = ScanFilters(start=T0 + timedelta(minutes=2), end=T0 + timedelta(minutes=4))

        assert memory_ledger.count(filters) == 3

    def test_date_only_end_includes_whole_day(self, memory_ledger):
        memory_ledger.append(make_record(1, timestamp=datetime(2024, 6, 10, 23, 59, 59, tzinfo=timezone.utc)))
        memory_ledger.append(make_record(2, timestamp=datetime(2024, 6, 11, 0, 0, 0, tzinfo=timezone.utc)))

        assert memory_ledger.count(ScanFilters(start="2024-06-10", end="2024-06-10")) == 1

    def test_limit_and_offset_after_filtering(self, memory_ledger):
        for n in range(1, 11):
            memory_ledger.append(make_record(n, uid="AAAA1111" if n % 2 else "BBBB2222"))

        rows = memory_ledger.query(ScanFilters(uid="AAAA1111", limit=2, offset=1))

        # AAAA1111 has n = 9, 7, 5, 3, 1 newest first
        assert [r.scan_id for r in rows] == [make_record(7).scan_id, make_record(5).scan_id]
        assert memory_ledger.count(ScanFilters(uid="AAAA1111", limit=2, offset=1)) == 5

    def test_offset_beyond_end_is_empty(self, memory_ledger):
        memory_ledger.append(make_record(1))
        assert memory_ledger.query(ScanFilters(offset=5)) == []

    def test_page_returns_rows_and_unpaged_total(self, memory_ledger):
        for n in range(1, 11):
            memory_ledger.append(make_record(n, uid="AAAA1111" if n % 2 else "BBBB2222"))

        rows, total = memory_ledger.page(ScanFilters(uid="AAAA1111", limit=2, offset=1))

        assert [r.scan_id for r in rows] == [make_record(7).scan_id, make_record(5).scan_id]
        assert total == 5

    def test_page_past_end_keeps_total(self, memory_ledger):
        memory_ledger.append(make_record(1))
        memory_ledger.append(make_record(2))

        assert memory_ledger.page(ScanFilters(limit=10, offset=5)) == ([], 2)

    def test_stats_from_one_snapshot(self, memory_ledger):
        memory_ledger.append(make_record(1, uid="AAAA1111"))
        memory_ledger.append(make_record(2, uid="BBBB2222", timestamp=T0 - timedelta(days=1)))
        memory_ledger.append(make_record(3, uid="AAAA1111", timestamp=T0 - timedelta(days=4)))

        stats = memory_ledger.stats(date(2024, 6, 10))

        assert stats.total_scans == 3
        assert stats.today_scans == 1
        assert stats.yesterday_scans == 1
        assert stats.unique_uids == 2
        assert stats.last_scan == T0 + timedelta(minutes=1)

    def test_stats_on_empty_ledger(self, memory_ledger):
        stats = memory_ledger.stats(date(2024, 6, 10))

        assert stats.total_scans == 0
        assert stats.last_scan is None

    def test_last_record_and_count_for(self, memory_ledger):
        memory_ledger.append(make_record(1))
        memory_ledger.append(make_record(2))
        memory_ledger.append(make_record(3, uid="OTHER1234"))

        assert memory_ledger.last_record_for("TEST12345678") == make_record(2)
        assert memory_ledger.last_record_for("NOBODY123") is None
        assert memory_ledger.count_for("TEST12345678", date(2024, 6, 10)) == 2
        assert memory_ledger.count_for("TEST12345678", date(2024, 6, 11)) == 0


class TestSerialized:
    """Tests for per-uid mutual exclusion"""

    def test_session_reads_and_appends(self, memory_ledger):
        with memory_ledger.serialized("TEST12345678") as session:
            assert session.last_record_for("TEST12345678") is None
            session.append(make_record(1))
            assert session.count_for("TEST12345678", date(2024, 6, 10)) == 1

        assert memory_ledger.count() == 1

    def test_same_uid_sessions_are_exclusive(self, memory_ledger):
        entered = threading.Event()
        release = threading.Event()
        order = []

        def holder():
            with memory_ledger.serialized("TEST12345678"):
                order.append("first-in")
                entered.set()
                release.wait(timeout=5)
                order.append("first-out")

        def waiter():
            entered.wait(timeout=5)
            with memory_ledger.serialized("TEST12345678"):
                order.append("second-in")

        threads = [threading.Thread(target=holder), threading.Thread(target=waiter)]
        for t in threads:
            t.start()
        entered.wait(timeout=5)
        time.sleep(0.05)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert order == ["first-in", "first-out", "second-in"]

    def test_different_uids_do_not_block(self, memory_ledger):
        with memory_ledger.serialized("AAAA1111"):
            acquired = threading.Event()

            def other():
                with memory_ledger.serialized("BBBB2222"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            t.join(timeout=5)

            assert acquired.is_set()

    def test_uid_locks_are_released(self, memory_ledger):
        with memory_ledger.serialized("TEST12345678"):
            pass
        assert memory_ledger._uid_locks == {}

    def test_serialized_on_closed_ledger_raises(self):
        with pytest.raises(LedgerError):
            with InMemoryScanLedger().serialized("TEST12345678"):
                pass
