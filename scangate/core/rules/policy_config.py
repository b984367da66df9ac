"""
Fraud policy configuration.

Loads cooldown and daily-limit settings from YAML files.
"""

from pathlib import Path
from typing import Any

import yaml

from scangate.core.errors import ConfigurationError

from .fraud_policy import DEFAULT_COOLDOWN_MINUTES, DEFAULT_DAILY_SCAN_LIMIT, FraudPolicy


class PolicyConfigLoader:
    """
    Loads the anti-fraud section from a YAML configuration file.

    Expected YAML format:
    ```yaml
    antifraud:
      cooldown_minutes: 5
      daily_scan_limit: 100
    ```
    Missing keys fall back to the defaults.
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the policy config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Policy configuration file not found: {config_path}")

    def load_section(self) -> dict[str, int]:
        """
        Parse and validate the ``antifraud`` section.

        Returns:
            Dictionary with cooldown_minutes and daily_scan_limit

        Raises:
            ConfigurationError: If YAML is invalid or values are out of range
        """
        with open(self.config_path) as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Root of {self.config_path} must be a mapping")

        section = config.get("antifraud") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("'antifraud' section must be a mapping")

        return {
            "cooldown_minutes": _parse_int(
                section, "cooldown_minutes", DEFAULT_COOLDOWN_MINUTES, minimum=0
            ),
            "daily_scan_limit": _parse_int(
                section, "daily_scan_limit", DEFAULT_DAILY_SCAN_LIMIT, minimum=1
            ),
        }

    def load(self) -> FraudPolicy:
        return FraudPolicy(**self.load_section())


def _parse_int(section: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"antifraud.{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"antifraud.{key} must be >= {minimum}, got {value}")
    return value
