"""
PolicyDecision model representing the fraud policy outcome for one scan.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_serializer

from scangate.core.clock import format_timestamp


class RejectionReason(str, Enum):
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"


class PolicyDecision(BaseModel):
    """
    Admit, or reject with the policy parameters the caller needs to decide
    whether and when to retry.

    Attributes:
        admitted: Whether the scan may be appended
        reason: Rejection reason (None when admitted)
        cooldown_minutes: Configured cooldown window (cooldown rejections)
        last_scan_time: Most recent admitted scan (cooldown rejections)
        daily_limit: Configured daily limit (daily limit rejections)
        current_count: Scans already admitted today (daily limit rejections)
    """

    admitted: bool
    reason: RejectionReason | None = None
    cooldown_minutes: int | None = None
    last_scan_time: datetime | None = None
    daily_limit: int | None = None
    current_count: int | None = None

    @classmethod
    def admit(cls) -> "PolicyDecision":
        return cls(admitted=True)

    @classmethod
    def cooldown(cls, cooldown_minutes: int, last_scan_time: datetime) -> "PolicyDecision":
        return cls(
            admitted=False,
            reason=RejectionReason.COOLDOWN_ACTIVE,
            cooldown_minutes=cooldown_minutes,
            last_scan_time=last_scan_time,
        )

    @classmethod
    def daily_limit_exceeded(cls, daily_limit: int, current_count: int) -> "PolicyDecision":
        return cls(
            admitted=False,
            reason=RejectionReason.DAILY_LIMIT_EXCEEDED,
            daily_limit=daily_limit,
            current_count=current_count,
        )

    @field_serializer("last_scan_time")
    def serialize_last_scan_time(self, v: datetime | None) -> str | None:
        return format_timestamp(v) if v is not None else None

    def rejection_fields(self) -> dict[str, Any]:
        """Wire fields attached to a rejection response."""
        if self.reason is RejectionReason.COOLDOWN_ACTIVE:
            return {
                "cooldownMinutes": self.cooldown_minutes,
                "lastScanTime": format_timestamp(self.last_scan_time) if self.last_scan_time else None,
            }
        if self.reason is RejectionReason.DAILY_LIMIT_EXCEEDED:
            return {
                "dailyLimit": self.daily_limit,
                "currentCount": self.current_count,
            }
        return {}
