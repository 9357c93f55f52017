"""DuckDB query executor for WindowForge.

duckdb stands in for the analytics engine locally - embedded, fast, and it
speaks enough sql for count/sum/min/max buckets. approx_set/merge are presto
functions, so APPROXIMATE_UNIQUE reports need a presto-like engine behind the
same interface.

projects map to schemas, qualified names are joined with underscores:
("continuous", "pageviews") in project "demo" -> "demo"."continuous_pageviews"
"""

import asyncio
import threading
from typing import Any

import duckdb
from sqlglot import exp

from windowforge.core.logger import get_logger
from windowforge.models.query import ExecutionResult, QueryError

logger = get_logger(__name__)


class DuckDBExecutor:
    """Execute queries against DuckDB.

    thin wrapper around duckdb that handles connection management and result
    formatting. the async entry point runs the blocking call in a worker thread
    on its own cursor, so concurrent requests don't share cursor state.
    """

    def __init__(self, database_path: str | None = None) -> None:
        """Initialize DuckDB connection.

        Args:
            database_path: Path to DuckDB file, or None for in-memory.
        """
        self.database_path = database_path
        self._conn: duckdb.DuckDBPyConnection | None = None  # lazy init
        self._conn_lock = threading.Lock()

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection."""
        if self._conn is None:
            with self._conn_lock:
                if self._conn is None:
                    self._conn = duckdb.connect(self.database_path or ":memory:")
        return self._conn

    def execute(self, sql: str, parameters: list[Any] | None = None) -> ExecutionResult:
        """Execute SQL synchronously.

        duckdb errors are turned into a failed result - the caller decides
        what a failure means, we don't retry.
        """
        cursor = self.conn.cursor()
        try:
            result = cursor.execute(sql, parameters) if parameters else cursor.execute(sql)
            if result.description is None:
                # ddl / dml, nothing to fetch
                return ExecutionResult()
            columns = [desc[0] for desc in result.description]
            rows = [list(row) for row in result.fetchall()]
        except duckdb.Error as e:
            logger.warning("Query failed: %s", e)
            return ExecutionResult(error=QueryError(message=str(e)))
        finally:
            cursor.close()

        return ExecutionResult(columns=columns, rows=rows)

    async def execute_raw_query(self, sql: str) -> ExecutionResult:
        """Execute SQL without blocking the event loop."""
        return await asyncio.to_thread(self.execute, sql)

    def format_table_reference(self, project: str, qualified_name: tuple[str, ...]) -> str:
        """Quoted "schema"."table" reference for a project-scoped name."""
        schema = exp.to_identifier(project, quoted=True)
        table = exp.to_identifier("_".join(qualified_name), quoted=True)
        return f"{schema.sql(dialect='duckdb')}.{table.sql(dialect='duckdb')}"

    def ensure_schema(self, project: str) -> None:
        schema = exp.to_identifier(project, quoted=True).sql(dialect="duckdb")
        with self.conn.cursor() as cursor:
            cursor.execute(f"CREATE SCHEMA IF NOT EXISTS {schema}")

    def create_table_from_data(
        self, table_name: str, columns: list[str], data: list[tuple[Any, ...]]
    ) -> None:
        """Create a table from in-memory data.

        useful for tests and demos. columns are "name TYPE" definitions.
        """
        if not data:
            raise ValueError("Cannot create table from empty data")

        placeholders = ", ".join(["?"] * len(columns))
        col_defs = ", ".join(columns)

        with self.conn.cursor() as cursor:
            cursor.execute(f"CREATE OR REPLACE TABLE {table_name} ({col_defs})")
            cursor.executemany(f"INSERT INTO {table_name} VALUES ({placeholders})", data)

    def table_exists(self, schema: str, table_name: str) -> bool:
        with self.conn.cursor() as cursor:
            row = cursor.execute(
                "SELECT COUNT(*) FROM information_schema.tables "
                "WHERE table_schema = ? AND table_name = ?",
                [schema, table_name],
            ).fetchone()
        return row[0] > 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBExecutor":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
