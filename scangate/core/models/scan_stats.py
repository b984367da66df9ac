"""
Read-side result models: aggregate stats and paginated listings.
"""

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, Field, field_serializer

from scangate.core.clock import format_timestamp

from .scan_record import ScanRecord


class ScanStats(BaseModel):
    """
    Ledger-wide aggregate.

    Attributes:
        total_scans: All admitted scans
        today_scans: Scans admitted on the current UTC day
        yesterday_scans: Scans admitted on the previous UTC day
        unique_uids: Distinct card identifiers
        last_scan: Most recent admission instant, if any
    """

    total_scans: int = Field(0, ge=0, alias="totalScans")
    today_scans: int = Field(0, ge=0, alias="todayScans")
    yesterday_scans: int = Field(0, ge=0, alias="yesterdayScans")
    unique_uids: int = Field(0, ge=0, alias="uniqueUids")
    last_scan: datetime | None = Field(None, alias="lastScan")

    @field_serializer("last_scan")
    def serialize_last_scan(self, v: datetime | None) -> str | None:
        return format_timestamp(v) if v is not None else None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    class Config:
        populate_by_name = True


class Pagination(BaseModel):
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=0)
    offset: int = Field(..., ge=0)
    has_more: bool


class ScanPage(BaseModel):
    """One page of a filtered scan listing."""

    scans: List[ScanRecord] = Field(default_factory=list)
    pagination: Pagination

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
