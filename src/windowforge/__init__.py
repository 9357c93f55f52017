"""WindowForge - realtime reports over continuous aggregates."""

from windowforge.errors import (
    ExecutionError,
    FilterParseError,
    NotFound,
    NotSupported,
    ReportValidationError,
    UnsupportedAggregation,
    WindowForgeError,
)
from windowforge.service import RealtimeService
from windowforge.slug import to_slug

__all__ = [
    "ExecutionError",
    "FilterParseError",
    "NotFound",
    "NotSupported",
    "RealtimeService",
    "ReportValidationError",
    "UnsupportedAggregation",
    "WindowForgeError",
    "to_slug",
]
