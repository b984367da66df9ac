"""
Scan admission pipeline.

Flow: validate request → serialize on the card → fraud policy → seal → append.

The policy check and the append run inside ``ledger.serialized(uid)`` so two
concurrent scans of the same card cannot both pass the cooldown check.
"""

import time

from scangate.core import integrity
from scangate.core.clock import Clock, truncate_ms, utc_day, utc_now
from scangate.core.errors import DuplicateScanIdError, LedgerError, ValidationError
from scangate.core.models import (
    AdmissionResult,
    ScanRecord,
    ScanRequest,
    generate_scan_id,
)
from scangate.core.rules import FraudPolicy
from scangate.core.validators import ScanRequestValidator
from scangate.observability.logger import get_logger
from scangate.observability.metrics import record_admission
from scangate.warehouse.ledger import ScanLedger

logger = get_logger(__name__)

MAX_ID_ATTEMPTS = 3


class AdmissionPipeline:
    """
    Admits scans into the ledger.

    Validation failures and policy rejections are returned as
    AdmissionResult values with a stable code. Storage failures are raised as
    LedgerError and are never reported as a policy decision; the whole
    admission is safe to retry.
    """

    def __init__(
        self,
        ledger: ScanLedger,
        policy: FraudPolicy,
        secret_key: str,
        clock: Clock = utc_now,
        validator: ScanRequestValidator | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            ledger: Open scan ledger
            policy: Fraud policy evaluator
            secret_key: HMAC key for scan checksums
            clock: Source of the admission instant
            validator: Request validator (defaults to the standard checks)
        """
        if not secret_key:
            raise ValueError("secret_key must be a non-empty string")

        self.ledger = ledger
        self.policy = policy
        self.secret_key = secret_key
        self.clock = clock
        self.validator = validator or ScanRequestValidator()

    def admit(self, request: ScanRequest) -> AdmissionResult:
        """
        Run one scan through the admission pipeline.

        Args:
            request: Inbound scan report

        Returns:
            AdmissionResult (success, validation failure or policy rejection)

        Raises:
            LedgerError: On storage failure
        """
        started = time.perf_counter()
        try:
            result = self._admit(request)
        except LedgerError:
            record_admission("STORAGE_ERROR", time.perf_counter() - started)
            logger.error(
                "Scan admission failed: storage error",
                extra={"uid": request.uid, "campaign_id": request.campaign_id},
            )
            raise

        record_admission(result.code, time.perf_counter() - started)
        logger.info(
            result.message,
            extra={
                "uid": request.uid,
                "campaign_id": request.campaign_id,
                "code": result.code,
                "scan_id": result.record.scan_id if result.record else None,
            },
        )
        return result

    def _admit(self, request: ScanRequest) -> AdmissionResult:
        try:
            self.validator.validate(request)
        except ValidationError as e:
            return AdmissionResult.invalid(e.code, e.message)

        uid = request.uid
        campaign_id = request.campaign_id

        with self.ledger.serialized(uid) as session:
            now = truncate_ms(self.clock())
            decision = self.policy.evaluate(uid, now, session)
            if not decision.admitted:
                return AdmissionResult.rejected(decision)

            record = self._append_new_record(session, uid, campaign_id, now)

        return AdmissionResult.success(record, decision, meta=self._meta(now))

    def _append_new_record(self, session, uid: str, campaign_id: str, now) -> ScanRecord:
        checksum = integrity.seal(uid, now, campaign_id, self.secret_key)

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            record = ScanRecord(
                scan_id=generate_scan_id(),
                uid=uid,
                campaign_id=campaign_id,
                timestamp=now,
                checksum=checksum,
                verified=True,
            )
            try:
                session.append(record)
                return record
            except DuplicateScanIdError:
                if attempt == MAX_ID_ATTEMPTS:
                    raise
                logger.warning(
                    f"Scan id collision, regenerating (attempt {attempt})",
                    extra={"scan_id": record.scan_id},
                )

    def _meta(self, now) -> dict[str, int]:
        """Ledger counters reported with a successful admission."""
        stats = self.ledger.stats(utc_day(now))
        return {"total_scans": stats.total_scans, "daily_scans": stats.today_scans}
