"""
Base validator interface for scan request fields.

All validators must inherit from BaseValidator and implement the validate() method.
"""

from abc import ABC, abstractmethod
from typing import Any

from scangate.core.errors import ValidationError


class BaseValidator(ABC):
    """
    Abstract base class for all field validators.

    Each validator checks one field of a scan request and raises a
    ValidationError carrying a stable code when the field is rejected.
    """

    def __init__(self, field_name: str, code: str, message: str):
        """
        Initialize validator.

        Args:
            field_name: Name of the field to validate
            code: Machine-readable code reported on failure
            message: Human-readable message reported on failure
        """
        self.field_name = field_name
        self.code = code
        self.message = message

    @abstractmethod
    def validate(self, value: Any, record: dict[str, Any]) -> None:
        """
        Validate a value against this rule.

        Args:
            value: The field value to validate
            record: The entire request payload

        Raises:
            ValidationError: If validation fails
        """
        pass

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule type identifier."""
        pass

    def fail(self) -> ValidationError:
        return ValidationError(code=self.code, message=self.message, field_name=self.field_name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, code={self.code})"
