"""
Error taxonomy for the scan gate.

Every error carries a stable machine-readable code and a human-readable
message. Raw driver or library detail is never put in the message; the
original exception is chained with ``raise ... from`` instead.
"""

from typing import Any


class ScanGateError(Exception):
    """Base class for all scangate errors."""

    code = "SCAN_GATE_ERROR"
    default_message = "Scan gate error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(f"[{self.code}] {self.message}")

    def to_payload(self) -> dict[str, Any]:
        """Render the error the way the transport layer returns it."""
        return {
            "status": "error",
            "message": self.message,
            "code": self.code,
        }


class ValidationError(ScanGateError):
    """Raised when a scan request fails input validation."""

    code = "VALIDATION_ERROR"
    default_message = "Invalid scan request"

    def __init__(self, code: str, message: str, field_name: str | None = None):
        self.field_name = field_name
        super().__init__(message, code)


class LedgerError(ScanGateError):
    """Storage failure while reading or writing the scan ledger."""

    code = "STORAGE_ERROR"
    default_message = "Scan ledger is unavailable"


class DuplicateScanIdError(LedgerError):
    """Raised when appending a record whose scan_id already exists."""

    code = "DUPLICATE_SCAN_ID"

    def __init__(self, scan_id: str):
        self.scan_id = scan_id
        super().__init__(f"Scan ID already exists: {scan_id}")


class IntegrityMismatchError(ScanGateError):
    """A stored checksum does not reproduce from the record's fields."""

    code = "CHECKSUM_MISMATCH"
    default_message = "Checksum verification failed"

    def __init__(self, scan_id: str | None = None):
        self.scan_id = scan_id
        message = self.default_message
        if scan_id:
            message = f"{self.default_message} for scan {scan_id}"
        super().__init__(message)


class ScanNotFoundError(ScanGateError):
    code = "SCAN_NOT_FOUND"

    def __init__(self, scan_id: str):
        self.scan_id = scan_id
        super().__init__(f"Scan not found: {scan_id}")


class AccessDeniedError(ScanGateError):
    """Caller is not allowed to read admin views."""

    code = "ACCESS_DENIED"
    default_message = "Access denied"


class ConfigurationError(ScanGateError):
    code = "INVALID_CONFIGURATION"
    default_message = "Invalid configuration"
