"""
ScanRequestValidator - ordered field checks for an inbound scan request.
"""

from scangate.core.models import ScanRequest

from .base_validator import BaseValidator
from .required_field_validator import RequiredFieldValidator
from .uid_validator import UidFormatValidator


class ScanRequestValidator:
    """
    Applies the request validators in order and raises on the first failure.

    Order: uid present, campaign_id present, uid format.
    """

    def __init__(self, validators: list[BaseValidator] | None = None):
        self.validators = validators or [
            RequiredFieldValidator("uid", "MISSING_UID", "UID is required"),
            RequiredFieldValidator("campaign_id", "MISSING_CAMPAIGN_ID", "Campaign ID is required"),
            UidFormatValidator("uid"),
        ]

    def validate(self, request: ScanRequest) -> None:
        """
        Validate a scan request.

        Args:
            request: The inbound request

        Raises:
            ValidationError: With MISSING_UID, MISSING_CAMPAIGN_ID or INVALID_UID_FORMAT
        """
        payload = request.model_dump()
        for validator in self.validators:
            validator.validate(payload.get(validator.field_name), payload)
