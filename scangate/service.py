"""
Composition root.

Builds the ledger, fraud policy, admission pipeline, read views and access
gate from Settings and owns their lifecycle. Each ScanGate instance is
independent; nothing is stored at module level.
"""

from scangate.config import Settings
from scangate.core.clock import Clock, utc_now
from scangate.core.models import AdmissionResult, ScanRequest
from scangate.core.rules import FraudPolicy
from scangate.observability.logger import get_logger, setup_logger
from scangate.observability.metrics import start_metrics_server
from scangate.services import AdmissionPipeline, ApiKeyAuthorizer, ScanViews
from scangate.warehouse import InMemoryScanLedger, ScanLedger

logger = get_logger(__name__)


def build_ledger(settings: Settings) -> ScanLedger:
    """Construct (but do not open) the ledger for the configured backend."""
    if settings.ledger_backend == "memory":
        return InMemoryScanLedger()

    # psycopg is only imported for the postgres backend
    from scangate.warehouse.connection import DatabaseConnectionPool
    from scangate.warehouse.postgres_ledger import PostgresScanLedger

    pool = DatabaseConnectionPool(
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        user=settings.db_user,
        password=settings.db_password,
        min_size=settings.db_min_pool_size,
        max_size=settings.db_max_pool_size,
    )
    return PostgresScanLedger(pool)


class ScanGate:
    """
    Wires the scan gate together.

    Usage:
        with ScanGate(load_settings()) as gate:
            result = gate.admit(ScanRequest(uid="TEST12345678", campaign_id="DEMO01"))
    """

    def __init__(
        self,
        settings: Settings,
        ledger: ScanLedger | None = None,
        clock: Clock = utc_now,
        configure_logging: bool = False,
    ):
        """
        Args:
            settings: Validated settings
            ledger: Pre-built ledger (defaults to build_ledger(settings))
            clock: Source of admission and "today" instants
            configure_logging: Apply settings.log_level/log_format to the package logger
        """
        self.settings = settings
        if configure_logging:
            setup_logger(level=settings.log_level, format_type=settings.log_format)

        self.ledger = ledger or build_ledger(settings)
        self.policy = FraudPolicy(
            cooldown_minutes=settings.cooldown_minutes,
            daily_scan_limit=settings.daily_scan_limit,
        )
        self.pipeline = AdmissionPipeline(self.ledger, self.policy, settings.secret_key, clock=clock)
        self.views = ScanViews(self.ledger, secret_key=settings.secret_key, clock=clock)
        self.authorizer = ApiKeyAuthorizer(settings.admin_api_keys)

    def open(self) -> None:
        if self.settings.uses_default_secret:
            logger.warning("Using the built-in development secret key; set SCANGATE_SECRET_KEY")
        self.ledger.open()
        if self.settings.metrics_port:
            start_metrics_server(self.settings.metrics_port)
        logger.info(
            "Scan gate started",
            extra={"ledger_backend": self.settings.ledger_backend, **self.policy.get_policy_summary()},
        )

    def close(self) -> None:
        self.ledger.close()
        logger.info("Scan gate stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def admit(self, request: ScanRequest) -> AdmissionResult:
        return self.pipeline.admit(request)
