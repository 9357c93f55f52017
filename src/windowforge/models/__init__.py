"""Pydantic models for WindowForge."""

from windowforge.models.query import (
    DimensionSeries,
    DimensionValue,
    ExecutionResult,
    OperationStatus,
    QueryError,
    QueryResult,
    WindowQuery,
)
from windowforge.models.report import (
    MERGEABLE_AGGREGATIONS,
    AggregationType,
    ContinuousAggregate,
    Measure,
    ReportDefinition,
    check_identifier,
)

__all__ = [
    "MERGEABLE_AGGREGATIONS",
    "AggregationType",
    "ContinuousAggregate",
    "DimensionSeries",
    "DimensionValue",
    "ExecutionResult",
    "Measure",
    "OperationStatus",
    "QueryError",
    "QueryResult",
    "ReportDefinition",
    "WindowQuery",
    "check_identifier",
]
