"""Pydantic models for report definitions and continuous aggregates.

a report definition is what the user asks for ("count events per minute by
country"), a continuous aggregate is what we hand to the engine to keep
materialized. the first is thrown away after create, the second lives until
someone deletes it.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from windowforge.slug import to_slug

# plain identifiers only - anything fancier would need quoting rules per engine
# and the column names end up spliced into generated sql
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# table names are always quoted, so anything a slug can produce is fine
TABLE_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")


def check_identifier(value: str, kind: str = "column") -> str:
    """Validate a column / collection name, returning it unchanged."""
    if not IDENTIFIER_PATTERN.match(value):
        raise ValueError(f"Invalid {kind} name: {value!r}")
    return value


class AggregationType(str, Enum):
    """Aggregation types a measure can use.

    only the first five can be merged bucket-by-bucket. the rest exist because
    ad-hoc reports support them and people will try them on realtime reports.
    """

    COUNT = "COUNT"
    SUM = "SUM"
    MINIMUM = "MINIMUM"
    MAXIMUM = "MAXIMUM"
    APPROXIMATE_UNIQUE = "APPROXIMATE_UNIQUE"
    AVERAGE = "AVERAGE"
    STANDARD_DEVIATION = "STANDARD_DEVIATION"
    POPULATION_VARIANCE = "POPULATION_VARIANCE"


MERGEABLE_AGGREGATIONS: tuple[AggregationType, ...] = (
    AggregationType.COUNT,
    AggregationType.SUM,
    AggregationType.MINIMUM,
    AggregationType.MAXIMUM,
    AggregationType.APPROXIMATE_UNIQUE,
)


class Measure(BaseModel):
    """A raw column plus the aggregation applied to it."""

    model_config = ConfigDict(frozen=True)

    column: str
    aggregation: AggregationType

    @field_validator("column")
    @classmethod
    def validate_column(cls, value: str) -> str:
        return check_identifier(value)

    @property
    def output_column(self) -> str:
        """Name of the per-bucket column in the continuous aggregate."""
        return f"{self.column}_{self.aggregation.value.lower()}"


class ReportDefinition(BaseModel):
    """A realtime report as submitted by the user.

    table_name defaults to the slug of the name, which is what ends up as the
    continuous aggregate's key.
    """

    project: str
    name: str
    table_name: str | None = None
    collections: list[str] = Field(min_length=1)
    measures: list[Measure] = Field(min_length=1)
    dimensions: list[str] = Field(default_factory=list)
    filter: str | None = None  # raw boolean expression, parsed before any engine call

    @field_validator("collections")
    @classmethod
    def validate_collections(cls, values: list[str]) -> list[str]:
        return [check_identifier(v, "collection") for v in values]

    @field_validator("dimensions")
    @classmethod
    def validate_dimensions(cls, values: list[str]) -> list[str]:
        if len(set(values)) != len(values):
            raise ValueError("Dimensions must be unique")
        return [check_identifier(v, "dimension") for v in values]

    @field_validator("measures")
    @classmethod
    def validate_measures(cls, values: list[Measure]) -> list[Measure]:
        # two identical measures would produce two columns with the same name
        outputs = [m.output_column for m in values]
        if len(set(outputs)) != len(outputs):
            raise ValueError("Measures must be unique")
        return values

    @model_validator(mode="after")
    def derive_table_name(self) -> "ReportDefinition":
        if not self.table_name:
            self.table_name = to_slug(self.name)
        if not TABLE_NAME_PATTERN.fullmatch(self.table_name):
            raise ValueError(f"Invalid table name: {self.table_name!r}")
        return self

    @property
    def aggregations(self) -> list[AggregationType]:
        return [m.aggregation for m in self.measures]


class ContinuousAggregate(BaseModel):
    """A persisted continuous aggregate definition.

    immutable once created - to change one you delete it and create a new one.
    options carries the realtime marker plus the measures/dimensions so the
    window builder can check what it's allowed to ask for.
    """

    model_config = ConfigDict(frozen=True)

    project: str
    name: str
    table_name: str
    query: str  # generating sql
    slide_interval: int  # seconds
    window_interval: int  # seconds
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_realtime(self) -> bool:
        return self.options.get("realtime") is True

    @property
    def measures(self) -> list[Measure]:
        return [Measure.model_validate(m) for m in self.options.get("measures", [])]

    @property
    def dimensions(self) -> list[str]:
        return list(self.options.get("dimensions", []))
