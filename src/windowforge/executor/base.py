"""Interface the realtime service expects from a query engine."""

from typing import Protocol

from windowforge.models.query import ExecutionResult


class QueryExecutor(Protocol):
    async def execute_raw_query(self, sql: str) -> ExecutionResult:
        """Run sql. engine failures come back as a failed result, not an exception."""
        ...

    def format_table_reference(self, project: str, qualified_name: tuple[str, ...]) -> str:
        """Engine text for a table that belongs to a project."""
        ...
