"""
Unit tests for structured logging and metrics helpers.
"""

import io
import json

import pytest

from scangate.observability.logger import log_operation, setup_logger
from scangate.observability.metrics import (
    generate_metrics,
    get_content_type,
    get_sample_value,
    record_admission,
    record_ledger_error,
)


@pytest.fixture
def json_logger():
    """Isolated JSON logger writing to a buffer"""
    stream = io.StringIO()
    logger = setup_logger("observability_test", level="DEBUG", format_type="json", stream=stream)
    logger.propagate = False

    yield logger, stream

    logger.handlers.clear()


def lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_text_format_is_plain():
    stream = io.StringIO()
    logger = setup_logger("observability_text", level="INFO", format_type="text", stream=stream)
    logger.propagate = False

    logger.info("Scan gate started")
    logger.handlers.clear()

    assert "INFO" in stream.getvalue()
    assert "observability_text: Scan gate started" in stream.getvalue()


class TestJsonLogging:
    """Tests for the JSON formatter"""

    def test_standard_fields_and_extras(self, json_logger):
        logger, stream = json_logger

        logger.info("Scan registered successfully", extra={"uid": "TEST12345678"})

        entry = lines(stream)[0]
        assert entry["message"] == "Scan registered successfully"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "observability_test"
        assert entry["uid"] == "TEST12345678"
        assert entry["timestamp"].endswith("Z")
        assert "thread_id" in entry

    def test_log_operation_success(self, json_logger):
        logger, stream = json_logger

        with log_operation("CSV export", logger=logger, date="2024-06-10"):
            pass

        completed = lines(stream)[-1]
        assert completed["message"] == "Completed: CSV export"
        assert completed["status"] == "success"
        assert completed["date"] == "2024-06-10"

    def test_log_operation_failure_propagates(self, json_logger):
        logger, stream = json_logger

        with pytest.raises(RuntimeError):
            with log_operation("CSV export", logger=logger):
                raise RuntimeError("boom")

        failed = lines(stream)[-1]
        assert failed["status"] == "error"
        assert failed["error_type"] == "RuntimeError"


class TestMetrics:
    """Tests for Prometheus helpers"""

    def test_admission_counter_by_outcome(self):
        labels = {"outcome": "COOLDOWN_ACTIVE"}
        before = get_sample_value("scangate_admissions_total", labels)

        record_admission("COOLDOWN_ACTIVE", 0.002)

        assert get_sample_value("scangate_admissions_total", labels) == before + 1

    def test_ledger_error_counter(self):
        labels = {"operation": "query"}
        before = get_sample_value("scangate_ledger_errors_total", labels)

        record_ledger_error("query")

        assert get_sample_value("scangate_ledger_errors_total", labels) == before + 1

    def test_exposition(self):
        record_admission("SCAN_REGISTERED", 0.001)

        text = generate_metrics().decode("utf-8")

        assert "scangate_admissions_total" in text
        assert "scangate_admission_duration_seconds_bucket" in text
        assert get_content_type().startswith("text/plain")

    def test_unknown_sample_is_zero(self):
        assert get_sample_value("scangate_does_not_exist") == 0.0
