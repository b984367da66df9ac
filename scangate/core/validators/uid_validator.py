"""
UidFormatValidator - syntactic acceptance rule for card identifiers.
"""

import re
from typing import Any

from .base_validator import BaseValidator

UID_MIN_LENGTH = 8
UID_MAX_LENGTH = 16
UID_PATTERN = re.compile(r"[A-Za-z0-9]{%d,%d}" % (UID_MIN_LENGTH, UID_MAX_LENGTH))


def is_valid_uid(uid: Any) -> bool:
    """
    Accept iff ``uid`` is 8-16 ASCII letters or digits.

    No normalization: case is preserved and surrounding whitespace rejects.
    """
    if not isinstance(uid, str):
        return False
    return UID_PATTERN.fullmatch(uid) is not None


class UidFormatValidator(BaseValidator):
    """Rejects identifiers outside the 8-16 alphanumeric format."""

    def __init__(self, field_name: str = "uid"):
        super().__init__(field_name, "INVALID_UID_FORMAT", "Invalid UID format")

    def validate(self, value: Any, record: dict[str, Any]) -> None:
        # Presence is checked by RequiredFieldValidator
        if value is None:
            return
        if not is_valid_uid(value):
            raise self.fail()

    @property
    def rule_type(self) -> str:
        return "uid_format"
