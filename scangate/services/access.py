"""
Access gate for the admin read views.

The gate is a capability check only: keys come from configuration and are
compared in constant time. Key issuance and storage live outside scangate.
"""

import hmac
from typing import Iterable

from scangate.core.errors import AccessDeniedError


class ApiKeyAuthorizer:
    """Answers "is this caller allowed to read admin views"."""

    def __init__(self, api_keys: Iterable[str]):
        self._keys = [key.encode("utf-8") for key in api_keys if key]

    def is_authorized(self, api_key: str | None) -> bool:
        if not api_key:
            return False
        candidate = api_key.encode("utf-8")
        # Constant time over the whole key list
        matched = False
        for key in self._keys:
            matched |= hmac.compare_digest(candidate, key)
        return matched

    def require(self, api_key: str | None) -> None:
        """
        Raises:
            AccessDeniedError: MISSING_API_KEY or INVALID_API_KEY
        """
        if not api_key:
            raise AccessDeniedError("API key required", code="MISSING_API_KEY")
        if not self.is_authorized(api_key):
            raise AccessDeniedError("Invalid API key", code="INVALID_API_KEY")
