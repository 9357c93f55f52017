"""Pydantic models for window queries and their results."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from windowforge.models.report import Measure, check_identifier


class WindowQuery(BaseModel):
    """A request to recombine a continuous aggregate over a time window.

    date_start/date_end are optional - leaving them out gives the most recent
    window that's guaranteed to be fully materialized.
    """

    project: str
    table_name: str
    measure: Measure
    filter: str | None = None
    dimensions: list[str] = Field(default_factory=list)
    aggregate: bool = False  # collapse the window into one value per dimension combo
    date_start: datetime | None = None
    date_end: datetime | None = None

    @field_validator("dimensions")
    @classmethod
    def validate_dimensions(cls, values: list[str]) -> list[str]:
        return [check_identifier(v, "dimension") for v in values]


class DimensionValue(BaseModel):
    """One collapsed value for a dimension combination."""

    dimensions: tuple[Any, ...]
    value: Any


class DimensionSeries(BaseModel):
    """A per-slide series for one dimension combination."""

    dimensions: tuple[Any, ...]
    points: list[tuple[int, Any]]


class QueryResult(BaseModel):
    """Result of a window query.

    start/end are epoch seconds aligned to the slide. result is one of:
      - list of (timestamp, value) points (series, no dimensions)
      - list of DimensionSeries (series, dimensions)
      - a scalar (aggregate, no dimensions)
      - list of DimensionValue (aggregate, dimensions)
    """

    start: int
    end: int
    result: Any
    sql: str | None = None  # the generated sql, always included for transparency


class QueryError(BaseModel):
    message: str
    sql_state: str | None = None


class ExecutionResult(BaseModel):
    """Raw engine output: ordered columns, ordered rows of ordered cells."""

    columns: list[str] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)
    error: QueryError | None = None

    @property
    def is_failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, message: str) -> "ExecutionResult":
        return cls(error=QueryError(message=message))


class OperationStatus(BaseModel):
    """Outcome of a create/delete call."""

    success: bool
    message: str | None = None

    @classmethod
    def ok(cls, message: str | None = None) -> "OperationStatus":
        return cls(success=True, message=message)

    @classmethod
    def error(cls, message: str) -> "OperationStatus":
        return cls(success=False, message=message)
