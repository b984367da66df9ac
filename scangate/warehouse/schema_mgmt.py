"""
Schema management for the scan ledger.

Creates the ``scans`` table and the indexes the ledger filters rely on.
"""

from scangate.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

SCANS_DDL = """
    CREATE TABLE IF NOT EXISTS scans (
        id BIGSERIAL PRIMARY KEY,
        scan_id TEXT NOT NULL UNIQUE,
        uid TEXT NOT NULL,
        campaign_id TEXT NOT NULL,
        scanned_at TIMESTAMPTZ NOT NULL,
        checksum TEXT NOT NULL,
        verified BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

INDEX_DDL = [
    "CREATE INDEX IF NOT EXISTS idx_scans_uid_scanned_at ON scans (uid, scanned_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_scans_campaign_id ON scans (campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_scans_scanned_at ON scans (scanned_at DESC)",
]


class SchemaManager:
    """
    Manages the scan ledger DDL.

    Handles:
    - Creating the scans table and its indexes (idempotent)
    - Truncating the ledger (tests and demo resets only)
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema manager.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def ensure_schema(self) -> None:
        """Create the scans table and indexes if they do not exist."""
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCANS_DDL)
                for statement in INDEX_DDL:
                    cur.execute(statement)
            conn.commit()
        logger.info("Scan ledger schema ready")

    def truncate(self) -> None:
        self.pool.execute_command("TRUNCATE TABLE scans RESTART IDENTITY")
        logger.warning("Scan ledger truncated")

    def table_exists(self) -> bool:
        rows = self.pool.execute_query("SELECT to_regclass('public.scans') IS NOT NULL AS present")
        return bool(rows and rows[0]["present"])
