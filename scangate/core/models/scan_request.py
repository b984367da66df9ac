"""
ScanRequest model representing an inbound, not yet validated, scan report.
"""

from typing import Any

from pydantic import BaseModel


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class ScanRequest(BaseModel):
    """
    Untrusted scan report from a client.

    Fields are unconstrained: missing or malformed values
    are reported by ScanRequestValidator with their own codes.
    """

    uid: str | None = None
    campaign_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ScanRequest":
        """Build a request from a decoded JSON body, ignoring unknown keys."""
        return cls(
            uid=_as_text(payload.get("uid")),
            campaign_id=_as_text(payload.get("campaign_id")),
        )

    class Config:
        json_schema_extra = {
            "example": {
                "uid": "TEST12345678",
                "campaign_id": "DEMO01",
            }
        }
