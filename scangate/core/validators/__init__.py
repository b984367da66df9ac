"""
Scan request validators.

Provides the identifier format rule and the ordered request checks that run
before the fraud policy.
"""

from scangate.core.errors import ValidationError

from .base_validator import BaseValidator
from .required_field_validator import RequiredFieldValidator
from .scan_request_validator import ScanRequestValidator
from .uid_validator import UidFormatValidator, is_valid_uid

__all__ = [
    "BaseValidator",
    "ValidationError",
    "RequiredFieldValidator",
    "UidFormatValidator",
    "ScanRequestValidator",
    "is_valid_uid",
]
