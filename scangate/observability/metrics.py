"""
Prometheus instrumentation for the scan gate

All collectors live on a private CollectorRegistry so that several ScanGate
instances (and the test suite) can share one process without colliding with
the prometheus_client default registry.
"""
import os
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# Admission pipeline

admissions_total = Counter(
    name="scangate_admissions_total",
    documentation="Total number of admission attempts by outcome",
    labelnames=["outcome"],  # SCAN_REGISTERED or a failure code
    registry=REGISTRY,
)

admission_duration_seconds = Histogram(
    name="scangate_admission_duration_seconds",
    documentation="Time spent admitting a scan (validation to append) in seconds",
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.1, 0.5],
    registry=REGISTRY,
)

# Ledger

ledger_errors_total = Counter(
    name="scangate_ledger_errors_total",
    documentation="Total number of scan ledger storage errors",
    labelnames=["operation"],
    registry=REGISTRY,
)

duplicate_scan_ids_total = Counter(
    name="scangate_duplicate_scan_ids_total",
    documentation="Total number of appends rejected for an existing scan_id",
    registry=REGISTRY,
)

# Read side

integrity_failures_total = Counter(
    name="scangate_integrity_failures_total",
    documentation="Total number of checksum verification failures",
    registry=REGISTRY,
)

csv_exports_total = Counter(
    name="scangate_csv_exports_total",
    documentation="Total number of CSV exports",
    registry=REGISTRY,
)

csv_export_rows_total = Counter(
    name="scangate_csv_export_rows_total",
    documentation="Total number of data rows written by CSV exports",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """Text exposition of every scangate collector."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Serve the scangate registry over HTTP on a daemon thread

    Args:
        port: Listening port (falls back to METRICS_PORT, then 8000)
    """
    from prometheus_client import start_http_server

    start_http_server(port or int(os.getenv("METRICS_PORT", "8000")), registry=REGISTRY)


def record_admission(outcome: str, duration_seconds: float) -> None:
    """
    Record one admission attempt.

    Args:
        outcome: Result code (SCAN_REGISTERED or a failure code)
        duration_seconds: Time spent in the pipeline
    """
    admissions_total.labels(outcome=outcome).inc()
    admission_duration_seconds.observe(duration_seconds)


def record_ledger_error(operation: str) -> None:
    ledger_errors_total.labels(operation=operation).inc()


def record_csv_export(row_count: int) -> None:
    csv_exports_total.inc()
    if row_count > 0:
        csv_export_rows_total.inc(row_count)


def get_sample_value(name: str, labels: dict[str, str] | None = None) -> float:
    """Current value of a sample in the scangate registry (0.0 if absent)."""
    value = REGISTRY.get_sample_value(name, labels or {})
    return value or 0.0
