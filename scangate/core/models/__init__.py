"""
Core data models for the scan gate.

All models use Pydantic for runtime validation and type safety.
"""

from .admission_result import AdmissionResult
from .policy_decision import PolicyDecision, RejectionReason
from .scan_filters import ScanFilters
from .scan_record import ScanRecord, generate_scan_id
from .scan_request import ScanRequest
from .scan_stats import Pagination, ScanPage, ScanStats

__all__ = [
    "ScanRecord",
    "ScanRequest",
    "ScanFilters",
    "PolicyDecision",
    "RejectionReason",
    "AdmissionResult",
    "ScanStats",
    "ScanPage",
    "Pagination",
    "generate_scan_id",
]
