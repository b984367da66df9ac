"""
AdmissionResult model representing the outcome of one admission attempt.
"""

from typing import Any

from pydantic import BaseModel, Field

from .policy_decision import PolicyDecision
from .scan_record import ScanRecord

SCAN_REGISTERED = "SCAN_REGISTERED"

REJECTION_MESSAGES = {
    "COOLDOWN_ACTIVE": "Scan blocked: within cooldown period",
    "DAILY_LIMIT_EXCEEDED": "Daily scan limit exceeded",
}


class AdmissionResult(BaseModel):
    """
    Outcome of AdmissionPipeline.admit().

    Exactly one of ``record`` (success) or a failure ``code`` other than
    SCAN_REGISTERED is meaningful. Storage failures are raised, never
    returned here.

    Attributes:
        status: "success" or "error"
        code: SCAN_REGISTERED or a stable failure code
        message: Human-readable summary
        record: The admitted scan
        decision: Fraud policy decision (set for admitted and rejected scans)
        meta: Ledger counters after admission (total_scans, daily_scans)
    """

    status: str
    code: str
    message: str
    record: ScanRecord | None = None
    decision: PolicyDecision | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def admitted(self) -> bool:
        return self.record is not None

    @classmethod
    def success(
        cls,
        record: ScanRecord,
        decision: PolicyDecision,
        meta: dict[str, Any] | None = None,
    ) -> "AdmissionResult":
        return cls(
            status="success",
            code=SCAN_REGISTERED,
            message="Scan registered successfully",
            record=record,
            decision=decision,
            meta=meta or {},
        )

    @classmethod
    def rejected(cls, decision: PolicyDecision) -> "AdmissionResult":
        code = decision.reason.value
        return cls(
            status="error",
            code=code,
            message=REJECTION_MESSAGES[code],
            decision=decision,
        )

    @classmethod
    def invalid(cls, code: str, message: str) -> "AdmissionResult":
        return cls(status="error", code=code, message=message)

    def to_payload(self) -> dict[str, Any]:
        """Wire representation for the transport layer."""
        payload: dict[str, Any] = {
            "status": self.status,
            "message": self.message,
        }
        if self.record is not None:
            payload["data"] = self.record.to_payload()
            if self.meta:
                payload["meta"] = dict(self.meta)
            return payload

        payload["code"] = self.code
        if self.decision is not None:
            payload.update(self.decision.rejection_fields())
        return payload
