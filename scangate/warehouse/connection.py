"""
PostgreSQL connection pool for the scan ledger (psycopg3 + psycopg_pool)

The pool is built by the composition root and handed to the ledger. Rows are
returned as dictionaries. Connections handed out by ``get_connection`` commit
on a clean exit and roll back when the block raises.
"""
import os
import time
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from scangate.observability.logger import get_logger

logger = get_logger(__name__)

Params = tuple | dict[str, Any] | None


class DatabaseConnectionPool:
    """
    Lifecycle wrapper around a psycopg_pool ConnectionPool

    Settings not passed explicitly fall back to the DB_* environment
    variables. A password is mandatory.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 30.0,
        open_attempts: int = 3,
        retry_delay: float = 2.0,
    ) -> None:
        """
        Args:
            host: Database host (env DB_HOST, default localhost)
            port: Database port (env DB_PORT, default 5432)
            database: Database name (env DB_NAME, default scangate)
            user: Database user (env DB_USER, default scangate)
            password: Database password (env DB_PASSWORD, required)
            min_size: Connections kept open
            max_size: Upper bound on concurrent connections
            timeout: Seconds to wait for a connection
            open_attempts: Attempts made by open() before giving up
            retry_delay: Seconds between open() attempts
        """
        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", "scangate")
        self.user = user or os.getenv("DB_USER", "scangate")
        password = password or os.getenv("DB_PASSWORD")
        if not password:
            raise ValueError("A database password is required (DB_PASSWORD)")

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.open_attempts = max(1, open_attempts)
        self.retry_delay = retry_delay

        self._conninfo = make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=password,
            connect_timeout=max(1, int(timeout)),
            application_name="scangate",
        )
        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def _new_pool(self) -> ConnectionPool:
        return ConnectionPool(
            conninfo=self._conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

    def open(self) -> None:
        """
        Open the pool and wait until ``min_size`` connections are ready

        Raises:
            psycopg.OperationalError: If every attempt fails
        """
        if self._pool is not None:
            return

        for attempt in range(1, self.open_attempts + 1):
            pool = self._new_pool()
            try:
                pool.open(wait=True, timeout=self.timeout)
            except Exception as e:
                pool.close()
                if attempt == self.open_attempts:
                    raise psycopg.OperationalError(
                        f"Could not reach {self.host}:{self.port}/{self.database} "
                        f"after {attempt} attempts"
                    ) from e
                logger.warning(
                    f"Database not ready (attempt {attempt}/{self.open_attempts})",
                    extra={"host": self.host, "error_type": type(e).__name__},
                )
                time.sleep(self.retry_delay)
                continue

            self._pool = pool
            logger.info(
                "Connection pool opened",
                extra={"host": self.host, "database": self.database, "max_size": self.max_size},
            )
            return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        """
        Borrow a connection from the pool

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def get_cursor(self) -> Iterator[psycopg.Cursor]:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                yield cur

    def execute_query(self, query: str, params: Params = None) -> list[dict]:
        """Run a SELECT and return all rows as dictionaries."""
        with self.get_cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def execute_command(self, command: str, params: Params = None) -> int:
        """Run a DML/DDL statement in its own transaction and return the row count."""
        with self.get_cursor() as cur:
            cur.execute(command, params)
            return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
