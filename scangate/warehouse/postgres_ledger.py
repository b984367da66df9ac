"""
PostgreSQL scan ledger.

Durable ScanLedger backed by the ``scans`` table. Per-card serialization
uses a transaction-scoped advisory lock keyed by the uid hash, so the second
of two concurrent admissions for a card reads the first one's committed row
before deciding. Different cards hash to different locks and proceed in
parallel.
"""

from contextlib import contextmanager
from datetime import date, timedelta
from typing import Any, Iterator, Optional

import psycopg

from scangate.core.clock import day_bounds, to_utc
from scangate.core.errors import DuplicateScanIdError, LedgerError
from scangate.core.models import ScanFilters, ScanRecord, ScanStats
from scangate.observability.logger import get_logger
from scangate.observability.metrics import duplicate_scan_ids_total, record_ledger_error

from .connection import DatabaseConnectionPool
from .ledger import LedgerSession, ScanLedger
from .schema_mgmt import SchemaManager

logger = get_logger(__name__)

SELECT_COLUMNS = "scan_id, uid, campaign_id, scanned_at, checksum, verified"

INSERT_SQL = """
    INSERT INTO scans (scan_id, uid, campaign_id, scanned_at, checksum, verified)
    VALUES (%(scan_id)s, %(uid)s, %(campaign_id)s, %(scanned_at)s, %(checksum)s, %(verified)s)
    ON CONFLICT (scan_id) DO NOTHING
    RETURNING id
"""

LAST_FOR_UID_SQL = f"""
    SELECT {SELECT_COLUMNS} FROM scans
    WHERE uid = %(uid)s
    ORDER BY scanned_at DESC, id DESC
    LIMIT 1
"""

COUNT_FOR_UID_SQL = """
    SELECT COUNT(*) AS count FROM scans
    WHERE uid = %(uid)s AND scanned_at >= %(start)s AND scanned_at <= %(end)s
"""

ADVISORY_LOCK_SQL = "SELECT pg_advisory_xact_lock(hashtextextended(%(uid)s, 0))"

STATS_SQL = """
    SELECT
        COUNT(*) AS total_scans,
        COUNT(*) FILTER (WHERE scanned_at >= %(today_start)s AND scanned_at <= %(today_end)s) AS today_scans,
        COUNT(*) FILTER (
            WHERE scanned_at >= %(yesterday_start)s AND scanned_at <= %(yesterday_end)s
        ) AS yesterday_scans,
        COUNT(DISTINCT uid) AS unique_uids,
        MAX(scanned_at) AS last_scan
    FROM scans
"""


def _row_to_record(row: dict[str, Any]) -> ScanRecord:
    return ScanRecord(
        scan_id=row["scan_id"],
        uid=row["uid"],
        campaign_id=row["campaign_id"],
        timestamp=row["scanned_at"],
        checksum=row["checksum"],
        verified=row["verified"],
    )


def _where_clause(filters: ScanFilters) -> tuple[str, dict[str, Any]]:
    clauses = []
    params: dict[str, Any] = {}

    if filters.uid is not None:
        clauses.append("uid = %(uid)s")
        params["uid"] = filters.uid
    if filters.campaign_id is not None:
        clauses.append("campaign_id = %(campaign_id)s")
        params["campaign_id"] = filters.campaign_id
    if filters.start is not None:
        clauses.append("scanned_at >= %(start)s")
        params["start"] = filters.start
    if filters.end is not None:
        clauses.append("scanned_at <= %(end)s")
        params["end"] = filters.end

    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class _PostgresSession(LedgerSession):
    """Session bound to one connection holding the uid's advisory lock."""

    def __init__(self, ledger: "PostgresScanLedger", conn: psycopg.Connection):
        self._ledger = ledger
        self._conn = conn

    def last_record_for(self, uid: str) -> Optional[ScanRecord]:
        with self._ledger._storage("last_record_for"):
            with self._conn.cursor() as cur:
                cur.execute(LAST_FOR_UID_SQL, {"uid": uid})
                row = cur.fetchone()
        return _row_to_record(row) if row else None

    def count_for(self, uid: str, day: date) -> int:
        start, end = day_bounds(day)
        with self._ledger._storage("count_for"):
            with self._conn.cursor() as cur:
                cur.execute(COUNT_FOR_UID_SQL, {"uid": uid, "start": start, "end": end})
                row = cur.fetchone()
        return row["count"] if row else 0

    def append(self, record: ScanRecord) -> None:
        self._ledger._insert(self._conn, record)


class PostgresScanLedger(ScanLedger):
    """
    Durable ScanLedger on PostgreSQL.

    The pool is owned by the caller's composition root but opened and closed
    through the ledger's lifecycle.
    """

    def __init__(self, pool: DatabaseConnectionPool, ensure_schema: bool = True):
        """
        Initialize the ledger.

        Args:
            pool: Database connection pool
            ensure_schema: Create the scans table and indexes on open()
        """
        self.pool = pool
        self.ensure_schema = ensure_schema

    def open(self) -> None:
        with self._storage("open"):
            self.pool.open()
            try:
                if self.ensure_schema:
                    SchemaManager(self.pool).ensure_schema()
            except Exception:
                self.pool.close()
                raise

    def close(self) -> None:
        self.pool.close()

    @contextmanager
    def _storage(self, operation: str) -> Iterator[None]:
        """Translate driver failures into LedgerError."""
        try:
            yield
        except (psycopg.Error, RuntimeError) as e:
            record_ledger_error(operation)
            logger.error(
                f"Scan ledger {operation} failed",
                extra={"operation": operation, "error_type": type(e).__name__},
                exc_info=True,
            )
            raise LedgerError() from e

    def _insert(self, conn: psycopg.Connection, record: ScanRecord) -> None:
        params = {
            "scan_id": record.scan_id,
            "uid": record.uid,
            "campaign_id": record.campaign_id,
            "scanned_at": record.timestamp,
            "checksum": record.checksum,
            "verified": record.verified,
        }
        with self._storage("append"):
            with conn.cursor() as cur:
                cur.execute(INSERT_SQL, params)
                inserted = cur.fetchone()

        if inserted is None:
            duplicate_scan_ids_total.inc()
            raise DuplicateScanIdError(record.scan_id)

        logger.debug(
            f"Appended scan: scan_id={record.scan_id}, uid={record.uid}"
        )

    def append(self, record: ScanRecord) -> None:
        with self._storage("append"):
            with self.pool.get_connection() as conn:
                with conn.transaction():
                    self._insert(conn, record)

    def _select(self, filters: ScanFilters, columns: str) -> tuple[str, dict[str, Any]]:
        where, params = _where_clause(filters)
        sql = f"SELECT {columns} FROM scans{where} ORDER BY scanned_at DESC, id DESC"

        if filters.limit is not None:
            sql += " LIMIT %(limit)s"
            params["limit"] = filters.limit
        if filters.offset:
            sql += " OFFSET %(offset)s"
            params["offset"] = filters.offset
        return sql, params

    def query(self, filters: ScanFilters | None = None) -> list[ScanRecord]:
        sql, params = self._select(filters or ScanFilters(), SELECT_COLUMNS)
        with self._storage("query"):
            rows = self.pool.execute_query(sql, params)
        return [_row_to_record(row) for row in rows]

    def count(self, filters: ScanFilters | None = None) -> int:
        where, params = _where_clause(filters or ScanFilters())
        with self._storage("count"):
            rows = self.pool.execute_query(f"SELECT COUNT(*) AS count FROM scans{where}", params)
        return rows[0]["count"] if rows else 0

    def page(self, filters: ScanFilters) -> tuple[list[ScanRecord], int]:
        # The window total is evaluated before LIMIT/OFFSET over the same rows
        sql, params = self._select(filters, f"{SELECT_COLUMNS}, COUNT(*) OVER () AS total")
        with self._storage("page"):
            rows = self.pool.execute_query(sql, params)
        if rows:
            return [_row_to_record(row) for row in rows], rows[0]["total"]
        if filters.offset:
            # Past the last row there is nothing to carry the window total
            return [], self.count(filters)
        return [], 0

    def get(self, scan_id: str) -> Optional[ScanRecord]:
        with self._storage("get"):
            rows = self.pool.execute_query(
                f"SELECT {SELECT_COLUMNS} FROM scans WHERE scan_id = %(scan_id)s",
                {"scan_id": scan_id},
            )
        return _row_to_record(rows[0]) if rows else None

    def distinct_uid_count(self) -> int:
        with self._storage("distinct_uid_count"):
            rows = self.pool.execute_query("SELECT COUNT(DISTINCT uid) AS count FROM scans")
        return rows[0]["count"] if rows else 0

    def stats(self, today: date) -> ScanStats:
        today_start, today_end = day_bounds(today)
        yesterday_start, yesterday_end = day_bounds(today - timedelta(days=1))
        params = {
            "today_start": today_start,
            "today_end": today_end,
            "yesterday_start": yesterday_start,
            "yesterday_end": yesterday_end,
        }
        with self._storage("stats"):
            row = self.pool.execute_query(STATS_SQL, params)[0]

        last_scan = row["last_scan"]
        return ScanStats(
            total_scans=row["total_scans"],
            today_scans=row["today_scans"],
            yesterday_scans=row["yesterday_scans"],
            unique_uids=row["unique_uids"],
            last_scan=to_utc(last_scan) if last_scan is not None else None,
        )

    @contextmanager
    def serialized(self, uid: str) -> Iterator[LedgerSession]:
        # Only checkout, locking and commit are storage operations. An error
        # raised by the caller inside the block rolls the transaction back and
        # is re-raised unchanged.
        caller_error = None
        with self._storage("serialized"):
            with self.pool.get_connection() as conn:
                with conn.transaction():
                    conn.execute(ADVISORY_LOCK_SQL, {"uid": uid})
                    try:
                        yield _PostgresSession(self, conn)
                    except Exception as e:
                        caller_error = e
                        raise psycopg.Rollback()
        if caller_error is not None:
            raise caller_error
