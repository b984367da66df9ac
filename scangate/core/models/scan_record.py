"""
ScanRecord model representing one admitted card scan.
"""

import re
import secrets
import time
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from scangate.core.clock import format_timestamp, parse_timestamp, to_utc

CHECKSUM_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def generate_scan_id() -> str:
    """Opaque scan id: ``scan_<epoch-ms>_<8 hex chars>``."""
    return f"scan_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class ScanRecord(BaseModel):
    """
    One admitted scan. Immutable once created.

    Attributes:
        scan_id: Unique opaque id generated at admission
        uid: Card identifier (8-16 alphanumerics)
        campaign_id: Campaign tag
        timestamp: Admission instant (aware UTC, millisecond precision)
        checksum: HMAC-SHA256 hex digest over uid, timestamp and campaign_id
        verified: True for every record produced by the admission pipeline
    """

    scan_id: str = Field(..., min_length=1)
    uid: str = Field(..., min_length=1)
    campaign_id: str = Field(..., min_length=1)
    timestamp: datetime
    checksum: str
    verified: bool = True

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v):
        """Accept canonical strings and coerce every instant to aware UTC."""
        if isinstance(v, str):
            return parse_timestamp(v)
        if isinstance(v, datetime):
            return to_utc(v)
        return v

    @field_validator("checksum")
    @classmethod
    def check_checksum_format(cls, v):
        if not CHECKSUM_PATTERN.match(v):
            raise ValueError("checksum must be 64 lowercase hex characters")
        return v

    @field_serializer("timestamp")
    def serialize_timestamp(self, v: datetime) -> str:
        return format_timestamp(v)

    @property
    def timestamp_text(self) -> str:
        return format_timestamp(self.timestamp)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "scan_id": "scan_1718000000000_9f3a1c2b",
                "uid": "TEST12345678",
                "campaign_id": "DEMO01",
                "timestamp": "2024-06-10T06:13:20.000Z",
                "checksum": "5d41402abc4b2a76b9719d911017c5925d41402abc4b2a76b9719d911017c592",
                "verified": True,
            }
        }
