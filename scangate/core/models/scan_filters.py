"""
ScanFilters model for ledger queries.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from scangate.core.clock import day_bounds, parse_timestamp, to_utc


def _coerce_bound(value, upper: bool):
    """
    Resolve a range bound to an aware UTC datetime.

    A date-only bound covers the whole UTC day: as a lower bound it is the
    first instant of the day, as an upper bound the last.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return day_bounds(value)[1 if upper else 0]
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return day_bounds(date.fromisoformat(text))[1 if upper else 0]
        return parse_timestamp(text)
    return value


class ScanFilters(BaseModel):
    """
    Optional, independently combinable ledger filters.

    Attributes:
        uid: Only scans of this card
        campaign_id: Only scans of this campaign
        start: Inclusive lower timestamp bound
        end: Inclusive upper timestamp bound
        limit: Maximum number of rows (applied after filtering)
        offset: Rows to skip (applied after filtering)
    """

    uid: str | None = None
    campaign_id: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int | None = Field(None, ge=0)
    offset: int | None = Field(None, ge=0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_bounds(cls, v, info: ValidationInfo):
        return _coerce_bound(v, upper=info.field_name == "end")

    @field_validator("uid", "campaign_id", mode="before")
    @classmethod
    def blank_as_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    def matches(self, record) -> bool:
        """Whether a ScanRecord satisfies every filter except paging."""
        if self.uid is not None and record.uid != self.uid:
            return False
        if self.campaign_id is not None and record.campaign_id != self.campaign_id:
            return False
        if self.start is not None and record.timestamp < self.start:
            return False
        if self.end is not None and record.timestamp > self.end:
            return False
        return True

    @classmethod
    def for_day(cls, day: date, **kwargs) -> "ScanFilters":
        start, end = day_bounds(day)
        return cls(start=start, end=end, **kwargs)
