"""
Runtime configuration for scangate.

Precedence, lowest to highest:
    built-in defaults < YAML config file < dotenv file < process environment

YAML layout (all sections optional):
```yaml
antifraud:
  cooldown_minutes: 5
  daily_scan_limit: 100
ledger:
  backend: postgres        # or "memory"
database:
  host: localhost
  port: 5432
  name: scangate
  user: scangate
  min_pool_size: 2
  max_pool_size: 10
logging:
  level: INFO
  format: json
```
Secrets (SCANGATE_SECRET_KEY, DB_PASSWORD, ADMIN_API_KEYS) are read from the
environment or dotenv file only.
"""

import os
from pathlib import Path
from typing import Any, List, Literal, Mapping

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from scangate.core.errors import ConfigurationError
from scangate.core.rules import PolicyConfigLoader

DEFAULT_SECRET_KEY = "scangate-dev-secret-key"

# Environment variable -> Settings field
ENV_FIELDS = {
    "SCANGATE_SECRET_KEY": "secret_key",
    "COOLDOWN_MINUTES": "cooldown_minutes",
    "DAILY_SCAN_LIMIT": "daily_scan_limit",
    "LEDGER_BACKEND": "ledger_backend",
    "DB_HOST": "db_host",
    "DB_PORT": "db_port",
    "DB_NAME": "db_name",
    "DB_USER": "db_user",
    "DB_PASSWORD": "db_password",
    "DB_MIN_POOL_SIZE": "db_min_pool_size",
    "DB_MAX_POOL_SIZE": "db_max_pool_size",
    "ADMIN_API_KEYS": "admin_api_keys",
    "LOG_LEVEL": "log_level",
    "LOG_FORMAT": "log_format",
    "METRICS_PORT": "metrics_port",
}

# YAML (section, key) -> Settings field
YAML_FIELDS = {
    ("ledger", "backend"): "ledger_backend",
    ("database", "host"): "db_host",
    ("database", "port"): "db_port",
    ("database", "name"): "db_name",
    ("database", "user"): "db_user",
    ("database", "min_pool_size"): "db_min_pool_size",
    ("database", "max_pool_size"): "db_max_pool_size",
    ("logging", "level"): "log_level",
    ("logging", "format"): "log_format",
}


class Settings(BaseModel):
    """
    Validated scangate settings.

    Attributes:
        secret_key: HMAC key for scan checksums
        cooldown_minutes: Minimum minutes between admitted scans of a card
        daily_scan_limit: Maximum admitted scans per card per UTC day
        ledger_backend: "postgres" (durable) or "memory"
        db_*: PostgreSQL connection settings
        admin_api_keys: Keys allowed to read admin views
        log_level: Logging level name
        log_format: "json" or "text"
        metrics_port: Port for the Prometheus endpoint (disabled when None)
    """

    secret_key: str = Field(DEFAULT_SECRET_KEY, min_length=1)
    cooldown_minutes: int = Field(5, ge=0)
    daily_scan_limit: int = Field(100, ge=1)
    ledger_backend: Literal["postgres", "memory"] = "postgres"
    db_host: str = "localhost"
    db_port: int = Field(5432, ge=1, le=65535)
    db_name: str = "scangate"
    db_user: str = "scangate"
    db_password: str | None = None
    db_min_pool_size: int = Field(2, ge=1)
    db_max_pool_size: int = Field(10, ge=1)
    admin_api_keys: List[str] = Field(default_factory=list)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    metrics_port: int | None = None

    @field_validator("admin_api_keys", mode="before")
    @classmethod
    def split_keys(cls, v):
        if isinstance(v, str):
            return [key.strip() for key in v.split(",") if key.strip()]
        return v

    @field_validator("log_level", "log_format", "ledger_backend", mode="before")
    @classmethod
    def normalize_case(cls, v, info):
        if not isinstance(v, str):
            return v
        return v.upper() if info.field_name == "log_level" else v.lower()

    @model_validator(mode="after")
    def check_database(self):
        if self.ledger_backend == "postgres" and not self.db_password:
            raise ValueError("DB_PASSWORD is required for the postgres ledger backend")
        if self.db_min_pool_size > self.db_max_pool_size:
            raise ValueError("db_min_pool_size must not exceed db_max_pool_size")
        return self

    @property
    def uses_default_secret(self) -> bool:
        return self.secret_key == DEFAULT_SECRET_KEY


def _yaml_values(config_path: Path) -> dict[str, Any]:
    values: dict[str, Any] = dict(PolicyConfigLoader(config_path).load_section())

    with open(config_path) as f:
        config = yaml.safe_load(f) or {}

    for (section, key), field_name in YAML_FIELDS.items():
        block = config.get(section) or {}
        if not isinstance(block, dict):
            raise ConfigurationError(f"'{section}' section must be a mapping")
        if key in block:
            values[field_name] = block[key]
    return values


def load_settings(
    env_file: str | Path | None = None,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Build Settings from YAML, dotenv and environment.

    Args:
        env_file: Optional dotenv file (values do not override the environment)
        config_path: Optional YAML config file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Settings

    Raises:
        ConfigurationError: If any source is invalid
    """
    values: dict[str, Any] = {}

    if config_path is not None:
        if not Path(config_path).exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        values.update(_yaml_values(Path(config_path)))

    env: dict[str, str] = {}
    if env_file is not None:
        if not Path(env_file).exists():
            raise ConfigurationError(f"Env file not found: {env_file}")
        env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    env.update(os.environ if environ is None else environ)

    for env_name, field_name in ENV_FIELDS.items():
        raw = env.get(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw

    try:
        return Settings(**values)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "settings" for err in e.errors())
        raise ConfigurationError(f"Invalid settings: {fields}") from e
