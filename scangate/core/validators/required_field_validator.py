"""
RequiredFieldValidator - ensures a field is present and not null/blank.
"""

from typing import Any, Dict

from .base_validator import BaseValidator


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required field is present and not null/blank.

    Fails if:
    - Field is missing from the request
    - Field value is None
    - Field value is an empty or whitespace-only string
    """

    def validate(self, value: Any, record: Dict[str, Any]) -> None:
        if self.field_name not in record or value is None:
            raise self.fail()

        if isinstance(value, str) and value.strip() == "":
            raise self.fail()

    @property
    def rule_type(self) -> str:
        return "required_field"
