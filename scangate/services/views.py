"""
Read-side aggregation over the scan ledger: stats, paginated listing,
CSV export and integrity re-validation.

All views derive purely from ledger reads. Calendar days are UTC days.
"""

from datetime import date, datetime
from typing import Iterator

from scangate.core import integrity
from scangate.core.clock import Clock, format_timestamp, parse_day, utc_day, utc_now
from scangate.core.errors import IntegrityMismatchError, ScanNotFoundError
from scangate.core.models import Pagination, ScanFilters, ScanPage, ScanRecord, ScanStats
from scangate.observability.logger import get_logger, log_operation
from scangate.observability.metrics import integrity_failures_total, record_csv_export
from scangate.warehouse.ledger import ScanLedger

logger = get_logger(__name__)

DEFAULT_PAGE_LIMIT = 50

CSV_HEADER = ["Scan ID", "UID", "Campaign ID", "Timestamp", "Checksum", "Verified"]
CSV_SEPARATOR = ","


def csv_row(record: ScanRecord) -> list[str]:
    return [
        record.scan_id,
        record.uid,
        record.campaign_id,
        format_timestamp(record.timestamp),
        record.checksum,
        "true" if record.verified else "false",
    ]


class ScanViews:
    """
    Admin read views over a ScanLedger.

    Callers are expected to have passed the access gate already.
    """

    def __init__(self, ledger: ScanLedger, secret_key: str | None = None, clock: Clock = utc_now):
        """
        Args:
            ledger: Open scan ledger
            secret_key: HMAC key, required only for verify_scan()
            clock: Source of "today"
        """
        self.ledger = ledger
        self.secret_key = secret_key
        self.clock = clock

    def stats(self) -> ScanStats:
        """Ledger-wide counters, all taken from one ledger snapshot."""
        return self.ledger.stats(utc_day(self.clock()))

    def list_scans(self, filters: ScanFilters | None = None) -> ScanPage:
        """
        One page of scans, most recent first, with pagination metadata.

        Args:
            filters: Optional filters; limit defaults to 50 and offset to 0

        Returns:
            ScanPage
        """
        filters = filters or ScanFilters()
        limit = DEFAULT_PAGE_LIMIT if filters.limit is None else filters.limit
        offset = filters.offset or 0
        page_filters = filters.model_copy(update={"limit": limit, "offset": offset})

        scans, total = self.ledger.page(page_filters)

        return ScanPage(
            scans=scans,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=total > offset + limit,
            ),
        )

    def csv_rows(
        self,
        day: date | datetime | str | None = None,
        campaign_id: str | None = None,
    ) -> Iterator[list[str]]:
        """
        Header row, then one row per scan of the day in ledger order.

        Args:
            day: UTC calendar day (defaults to today)
            campaign_id: Optional campaign filter
        """
        target = parse_day(day, self.clock)
        records = self.ledger.query(ScanFilters.for_day(target, campaign_id=campaign_id))

        yield list(CSV_HEADER)
        for record in records:
            yield csv_row(record)

    def export_csv(
        self,
        day: date | datetime | str | None = None,
        campaign_id: str | None = None,
    ) -> str:
        """
        Render the day's scans as CSV text.

        Fields are joined without quoting: uids are alphanumeric, timestamps
        fixed-format and checksums hex, so none contain the separator.
        """
        target = parse_day(day, self.clock)
        with log_operation("CSV export", logger=logger, date=target.isoformat(), campaign_id=campaign_id):
            rows = list(self.csv_rows(target, campaign_id))
        record_csv_export(len(rows) - 1)
        return "\n".join(CSV_SEPARATOR.join(row) for row in rows)

    def csv_filename(self, day: date | datetime | str | None = None) -> str:
        return f"scans_{parse_day(day, self.clock).isoformat()}.csv"

    def verify_scan(self, scan_id: str) -> ScanRecord:
        """
        Re-validate a stored scan's checksum.

        Returns:
            The verified ScanRecord

        Raises:
            ScanNotFoundError: If no scan has this id
            IntegrityMismatchError: If the checksum does not reproduce
        """
        if not self.secret_key:
            raise ValueError("verify_scan requires a secret_key")

        record = self.ledger.get(scan_id)
        if record is None:
            raise ScanNotFoundError(scan_id)

        try:
            integrity.verify_record(record, self.secret_key)
        except IntegrityMismatchError:
            integrity_failures_total.inc()
            logger.warning("Checksum mismatch on stored scan", extra={"scan_id": scan_id})
            raise
        return record
