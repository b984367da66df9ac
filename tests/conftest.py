"""
Pytest configuration and fixtures for scangate tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import threading
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest

from scangate.config import Settings
from scangate.core.rules import FraudPolicy
from scangate.services import AdmissionPipeline, ScanViews
from scangate.warehouse import InMemoryScanLedger

TEST_SECRET = "test-secret-key"
T0 = datetime(2024, 6, 10, 12, 0, 0, tzinfo=timezone.utc)


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that exercise the full admission flow"
    )


# =======================
# CLOCK FIXTURES
# =======================

class FakeClock:
    """Manually advanced, thread-safe clock."""

    def __init__(self, start: datetime):
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, **kwargs) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


# =======================
# LEDGER / SERVICE FIXTURES
# =======================

@pytest.fixture
def memory_ledger() -> Generator[InMemoryScanLedger, None, None]:
    """Open in-memory ledger, closed after the test"""
    ledger = InMemoryScanLedger()
    ledger.open()
    yield ledger
    ledger.close()


@pytest.fixture
def policy() -> FraudPolicy:
    return FraudPolicy(cooldown_minutes=5, daily_scan_limit=100)


@pytest.fixture
def pipeline(memory_ledger, policy, clock) -> AdmissionPipeline:
    return AdmissionPipeline(memory_ledger, policy, TEST_SECRET, clock=clock)


@pytest.fixture
def views(memory_ledger, clock) -> ScanViews:
    return ScanViews(memory_ledger, secret_key=TEST_SECRET, clock=clock)


@pytest.fixture
def memory_settings() -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        ledger_backend="memory",
        admin_api_keys=["admin-test-key"],
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container():
    """
    Start PostgreSQL container for integration tests

    Skips the requesting tests when Docker is not available.
    """
    from testcontainers.postgres import PostgresContainer

    container = PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_scangate",
        password="test_password",
        dbname="test_scangate",
    )
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Docker is not available for PostgreSQL tests: {e}")

    yield container

    container.stop()


@pytest.fixture
def pg_pool(postgres_container):
    """Open connection pool against the test container"""
    from scangate.warehouse.connection import DatabaseConnectionPool

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_scangate",
        user="test_scangate",
        password="test_password",
        min_size=2,
        max_size=8,
    )
    yield pool
    pool.close()


@pytest.fixture
def pg_ledger(pg_pool):
    """Open PostgreSQL ledger with an empty scans table"""
    from scangate.warehouse.postgres_ledger import PostgresScanLedger
    from scangate.warehouse.schema_mgmt import SchemaManager

    ledger = PostgresScanLedger(pg_pool)
    ledger.open()
    SchemaManager(pg_pool).truncate()
    yield ledger
    ledger.close()
