"""
Timestamp helpers.

All instants are timezone-aware UTC and carry millisecond precision. Calendar
days (daily limit, stats, CSV export) are UTC days everywhere.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_ms(value: datetime) -> datetime:
    """Drop sub-millisecond precision."""
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    """Current wall-clock instant, UTC, millisecond precision."""
    return truncate_ms(datetime.now(timezone.utc))


def format_timestamp(value: datetime) -> str:
    """
    Canonical text form of an instant: ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    This exact string is fed to the integrity codec, so it must stay stable.
    """
    value = to_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware UTC datetime."""
    text = text.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def utc_day(value: datetime) -> date:
    return to_utc(value).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Inclusive [first instant, last instant] of a UTC calendar day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


def parse_day(value: date | datetime | str | None, clock: Clock = utc_now) -> date:
    """Resolve an optional day argument, defaulting to today (UTC)."""
    if value is None:
        return utc_day(clock())
    if isinstance(value, datetime):
        return utc_day(value)
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())
