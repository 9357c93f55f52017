"""Exception hierarchy for WindowForge.

four families, matching how a caller should react:
  - ReportValidationError: bad input, fix the request (never reaches the engine)
  - NotFound: the continuous aggregate doesn't exist for this project
  - ExecutionError: the engine said no, message passed through untouched
  - NotSupported: structurally impossible, e.g. averaging pre-aggregated buckets

nothing in here retries. that's the executor's (or the caller's) call.
"""

from collections.abc import Iterable


class WindowForgeError(Exception):
    """Base class for all WindowForge errors."""


class ReportValidationError(WindowForgeError):
    """A report definition or window query is invalid."""


class UnsupportedAggregation(ReportValidationError):
    """One or more aggregation types are not enabled for the project."""

    def __init__(self, aggregations: Iterable[str]) -> None:
        self.aggregations = list(aggregations)
        super().__init__(f"Unsupported aggregation types: {', '.join(self.aggregations)}")


class FilterParseError(ReportValidationError):
    """A filter expression could not be parsed."""


class NotFound(WindowForgeError):
    """A continuous aggregate does not exist for the project."""

    def __init__(self, project: str, table_name: str) -> None:
        self.project = project
        self.table_name = table_name
        super().__init__(f"Continuous aggregate '{table_name}' not found in project '{project}'")


class ExecutionError(WindowForgeError):
    """The query engine reported a failure."""

    def __init__(self, message: str, sql: str | None = None) -> None:
        self.message = message
        self.sql = sql
        super().__init__(message)


class NotSupported(WindowForgeError):
    """The requested operation can't be expressed over continuous aggregates."""
