"""DuckDB-backed continuous aggregate store.

definitions go into a metadata table as json. each aggregate is materialized
as a view over its generating query, so the "continuous" table is always up
to date without any refresh scheduling - fine locally, where event volumes
are small enough to re-bucket on read.

every statement goes through DuckDBExecutor.execute, which opens a cursor per
call - create/delete run in worker threads while get/list run on the caller's.
"""

import asyncio
import threading
from typing import Any

from windowforge.core.logger import get_logger
from windowforge.errors import ExecutionError
from windowforge.executor.duckdb_executor import DuckDBExecutor
from windowforge.models.query import ExecutionResult, OperationStatus
from windowforge.models.report import ContinuousAggregate

logger = get_logger(__name__)

METADATA_TABLE = "windowforge_continuous_aggregates"


class DuckDBAggregateStore:
    def __init__(self, executor: DuckDBExecutor) -> None:
        self.executor = executor
        self._initialized = False
        self._setup_lock = threading.Lock()

    def _setup(self) -> None:
        if self._initialized:
            return
        with self._setup_lock:
            if self._initialized:
                return
            self._run(f"""
                CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
                    project VARCHAR NOT NULL,
                    table_name VARCHAR NOT NULL,
                    definition VARCHAR NOT NULL,
                    PRIMARY KEY (project, table_name)
                )
            """)
            self._initialized = True

    def _run(self, sql: str, parameters: list[Any] | None = None) -> ExecutionResult:
        """Execute a metadata statement. these aren't expected to fail."""
        result = self.executor.execute(sql, parameters)
        if result.is_failed:
            raise ExecutionError(result.error.message, sql=sql)
        return result

    def _view_reference(self, aggregate: ContinuousAggregate) -> str:
        return self.executor.format_table_reference(
            aggregate.project, ("continuous", aggregate.table_name)
        )

    async def create(self, aggregate: ContinuousAggregate) -> OperationStatus:
        return await asyncio.to_thread(self._create, aggregate)

    def _create(self, aggregate: ContinuousAggregate) -> OperationStatus:
        self._setup()

        # the primary key does the duplicate check for us
        inserted = self.executor.execute(
            f"INSERT INTO {METADATA_TABLE} VALUES (?, ?, ?)",
            [aggregate.project, aggregate.table_name, aggregate.model_dump_json()],
        )
        if inserted.is_failed:
            return OperationStatus.error(
                f"Continuous aggregate '{aggregate.table_name}' already exists"
            )

        self.executor.ensure_schema(aggregate.project)
        created = self.executor.execute(
            f"CREATE VIEW {self._view_reference(aggregate)} AS {aggregate.query}"
        )
        if created.is_failed:
            # don't leave a definition behind that points at nothing
            self._remove_definition(aggregate.project, aggregate.table_name)
            return OperationStatus.error(created.error.message)

        logger.info("Materialized %s as view", self._view_reference(aggregate))
        return OperationStatus.ok()

    def get(self, project: str, table_name: str) -> ContinuousAggregate | None:
        self._setup()
        result = self._run(
            f"SELECT definition FROM {METADATA_TABLE} WHERE project = ? AND table_name = ?",
            [project, table_name],
        )
        if not result.rows:
            return None
        return ContinuousAggregate.model_validate_json(result.rows[0][0])

    def list(self, project: str) -> list[ContinuousAggregate]:
        self._setup()
        result = self._run(
            f"SELECT definition FROM {METADATA_TABLE} WHERE project = ? ORDER BY table_name",
            [project],
        )
        return [ContinuousAggregate.model_validate_json(r[0]) for r in result.rows]

    async def delete(self, project: str, table_name: str) -> bool:
        return await asyncio.to_thread(self._delete, project, table_name)

    def _delete(self, project: str, table_name: str) -> bool:
        aggregate = self.get(project, table_name)
        if aggregate is None:
            return False
        self._run(f"DROP VIEW IF EXISTS {self._view_reference(aggregate)}")
        self._remove_definition(project, table_name)
        return True

    def _remove_definition(self, project: str, table_name: str) -> None:
        self._run(
            f"DELETE FROM {METADATA_TABLE} WHERE project = ? AND table_name = ?",
            [project, table_name],
        )
