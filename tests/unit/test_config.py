"""
Unit tests for settings loading and the composition root.
"""

import pytest

from scangate.config import DEFAULT_SECRET_KEY, Settings, load_settings
from scangate.core.errors import ConfigurationError
from scangate.core.models import ScanRequest
from scangate.service import ScanGate, build_ledger
from scangate.warehouse import InMemoryScanLedger


class TestLoadSettings:
    """Tests for config precedence and validation"""

    def test_defaults(self):
        settings = load_settings(environ={"LEDGER_BACKEND": "memory"})

        assert settings.cooldown_minutes == 5
        assert settings.daily_scan_limit == 100
        assert settings.secret_key == DEFAULT_SECRET_KEY
        assert settings.uses_default_secret
        assert settings.admin_api_keys == []

    def test_environment_values(self):
        settings = load_settings(
            environ={
                "SCANGATE_SECRET_KEY": "s3cret",
                "COOLDOWN_MINUTES": "2",
                "DAILY_SCAN_LIMIT": "7",
                "LEDGER_BACKEND": "Memory",
                "ADMIN_API_KEYS": "key-a, key-b,,",
                "LOG_LEVEL": "debug",
            }
        )

        assert settings.secret_key == "s3cret"
        assert not settings.uses_default_secret
        assert settings.cooldown_minutes == 2
        assert settings.daily_scan_limit == 7
        assert settings.ledger_backend == "memory"
        assert settings.admin_api_keys == ["key-a", "key-b"]
        assert settings.log_level == "DEBUG"

    def test_yaml_then_dotenv_then_environment(self, tmp_path):
        config = tmp_path / "scangate.yaml"
        config.write_text(
            "antifraud:\n  cooldown_minutes: 3\n  daily_scan_limit: 20\n"
            "ledger:\n  backend: memory\n"
            "logging:\n  level: WARNING\n"
        )
        env_file = tmp_path / ".env"
        env_file.write_text("DAILY_SCAN_LIMIT=30\nLOG_LEVEL=ERROR\nSCANGATE_SECRET_KEY=from-dotenv\n")

        settings = load_settings(
            env_file=env_file,
            config_path=config,
            environ={"LOG_LEVEL": "DEBUG"},
        )

        assert settings.cooldown_minutes == 3
        assert settings.daily_scan_limit == 30
        assert settings.log_level == "DEBUG"
        assert settings.secret_key == "from-dotenv"
        assert settings.ledger_backend == "memory"

    def test_postgres_requires_password(self):
        with pytest.raises(ConfigurationError):
            load_settings(environ={})

        settings = load_settings(environ={"DB_PASSWORD": "pw", "DB_PORT": "6543"})
        assert settings.ledger_backend == "postgres"
        assert settings.db_port == 6543

    @pytest.mark.parametrize(
        "environ",
        [
            {"LEDGER_BACKEND": "memory", "COOLDOWN_MINUTES": "-1"},
            {"LEDGER_BACKEND": "memory", "DAILY_SCAN_LIMIT": "0"},
            {"LEDGER_BACKEND": "memory", "DAILY_SCAN_LIMIT": "many"},
            {"LEDGER_BACKEND": "sqlite"},
            {"LEDGER_BACKEND": "memory", "DB_MIN_POOL_SIZE": "5", "DB_MAX_POOL_SIZE": "2"},
            {"LEDGER_BACKEND": "memory", "LOG_FORMAT": "xml"},
        ],
    )
    def test_invalid_settings_raise(self, environ):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(environ=environ)
        assert exc_info.value.code == "INVALID_CONFIGURATION"

    def test_missing_files_raise(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(config_path=tmp_path / "missing.yaml", environ={"LEDGER_BACKEND": "memory"})
        with pytest.raises(ConfigurationError):
            load_settings(env_file=tmp_path / "missing.env", environ={"LEDGER_BACKEND": "memory"})

    def test_invalid_yaml_policy_raises(self, tmp_path):
        config = tmp_path / "scangate.yaml"
        config.write_text("antifraud:\n  cooldown_minutes: soon\n")

        with pytest.raises(ConfigurationError):
            load_settings(config_path=config, environ={"LEDGER_BACKEND": "memory"})


class TestScanGate:
    """Tests for the composition root"""

    def test_memory_backend(self, memory_settings):
        assert isinstance(build_ledger(memory_settings), InMemoryScanLedger)

    def test_wires_policy_from_settings(self):
        settings = Settings(ledger_backend="memory", cooldown_minutes=1, daily_scan_limit=2)
        gate = ScanGate(settings)

        assert gate.policy.cooldown_minutes == 1
        assert gate.policy.daily_scan_limit == 2

    def test_admit_and_read_through_gate(self, memory_settings, clock):
        with ScanGate(memory_settings, clock=clock) as gate:
            result = gate.admit(ScanRequest(uid="TEST12345678", campaign_id="DEMO01"))

            assert result.admitted
            assert gate.views.stats().total_scans == 1
            assert gate.views.verify_scan(result.record.scan_id) == result.record
            gate.authorizer.require("admin-test-key")

    def test_metrics_server_started_when_port_configured(self, monkeypatch):
        started = []
        monkeypatch.setattr("scangate.service.start_metrics_server", started.append)
        settings = Settings(ledger_backend="memory", metrics_port=9105)

        with ScanGate(settings):
            pass
        with ScanGate(Settings(ledger_backend="memory")):
            pass

        assert started == [9105]

    def test_instances_are_independent(self, memory_settings, clock):
        with ScanGate(memory_settings, clock=clock) as first, ScanGate(memory_settings, clock=clock) as second:
            first.admit(ScanRequest(uid="TEST12345678", campaign_id="DEMO01"))

            assert second.admit(ScanRequest(uid="TEST12345678", campaign_id="DEMO01")).admitted
