"""
Per-card fraud policy.

Decides whether a scan may be admitted given the card's admitted history:
a fixed cooldown window between scans, then a per-UTC-day scan limit.
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional, Protocol

from scangate.core.clock import to_utc, utc_day
from scangate.core.models import PolicyDecision, ScanRecord

DEFAULT_COOLDOWN_MINUTES = 5
DEFAULT_DAILY_SCAN_LIMIT = 100


class HistoryReader(Protocol):
    """Read interface the policy needs from the ledger."""

    def last_record_for(self, uid: str) -> Optional[ScanRecord]:
        ...

    def count_for(self, uid: str, day: date) -> int:
        ...


class FraudPolicy:
    """
    Cooldown and daily-limit policy.

    The cooldown is checked before the daily limit, so a scan violating both
    is reported as a cooldown rejection. A scan exactly ``cooldown_minutes``
    after the previous one is admitted. Storage errors raised by the history
    reader propagate unchanged; they are never turned into a decision.
    """

    def __init__(
        self,
        cooldown_minutes: int = DEFAULT_COOLDOWN_MINUTES,
        daily_scan_limit: int = DEFAULT_DAILY_SCAN_LIMIT,
    ):
        if cooldown_minutes < 0:
            raise ValueError(f"cooldown_minutes must be >= 0, got {cooldown_minutes}")
        if daily_scan_limit < 1:
            raise ValueError(f"daily_scan_limit must be >= 1, got {daily_scan_limit}")

        self.cooldown_minutes = cooldown_minutes
        self.daily_scan_limit = daily_scan_limit
        self.cooldown = timedelta(minutes=cooldown_minutes)

    def evaluate(self, uid: str, now: datetime, history: HistoryReader) -> PolicyDecision:
        """
        Evaluate the policy for one scan.

        Args:
            uid: Card identifier
            now: Admission instant
            history: Ledger view excluding the scan being admitted

        Returns:
            PolicyDecision
        """
        now = to_utc(now)

        last = history.last_record_for(uid)
        if last is not None and now - last.timestamp < self.cooldown:
            return PolicyDecision.cooldown(self.cooldown_minutes, last.timestamp)

        today_count = history.count_for(uid, utc_day(now))
        if today_count >= self.daily_scan_limit:
            return PolicyDecision.daily_limit_exceeded(self.daily_scan_limit, today_count)

        return PolicyDecision.admit()

    def get_policy_summary(self) -> dict[str, Any]:
        return {
            "cooldown_minutes": self.cooldown_minutes,
            "daily_scan_limit": self.daily_scan_limit,
        }

    def __repr__(self) -> str:
        return (
            f"FraudPolicy(cooldown_minutes={self.cooldown_minutes}, "
            f"daily_scan_limit={self.daily_scan_limit})"
        )
