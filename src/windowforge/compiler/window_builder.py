"""Builds the query that recombines buckets into a reporting window.

the bucket values are partial aggregates, so they go through the combine
table (sum of counts, min of mins, cardinality of merged sketches) rather
than the function that produced them.

  SELECT <time expr> AS _timestamp, <dimensions>, <combine>(<col>_<agg>) AS value
  FROM <continuous table> AS continuous
  WHERE _bucket BETWEEN <previous> AND <current> [AND <filter>]
  [GROUP BY <time expr>, <dimensions>]
  ORDER BY 1 ASC
  LIMIT 5000
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlglot import exp

from windowforge.compiler.continuous_builder import BUCKET_COLUMN
from windowforge.compiler.expressions import call_chain, parse_filter, qualify_columns
from windowforge.compiler.functions import combine_function
from windowforge.errors import ReportValidationError
from windowforge.models.query import WindowQuery
from windowforge.models.report import ContinuousAggregate

TableReference = Callable[[str, tuple[str, ...]], str]

TABLE_ALIAS = "continuous"
TIME_COLUMN = "_timestamp"
VALUE_COLUMN = "value"


def to_epoch_seconds(value: datetime) -> float:
    """Epoch seconds for a datetime. naive datetimes are taken as utc."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


@dataclass(frozen=True)
class WindowBounds:
    """Window boundaries in bucket-index units."""

    previous_window: int
    current_window: int
    slide: int

    @property
    def start(self) -> int:
        return self.previous_window * self.slide

    @property
    def end(self) -> int:
        return self.current_window * self.slide

    def bucket_indexes(self) -> range:
        """Buckets a dense series covers - current_window itself is excluded."""
        return range(self.previous_window, self.current_window)

    def timestamps(self) -> range:
        return range(self.start, self.end, self.slide)


def compute_bounds(
    slide: int,
    window: int,
    now: float,
    date_start: datetime | None = None,
    date_end: datetime | None = None,
) -> WindowBounds:
    """Work out which buckets a query covers.

    with no dates the window ends one slide ago - the newest bucket may
    still be filling up.
    """
    last_update = now - slide
    start = to_epoch_seconds(date_start) if date_start else last_update - window
    end = to_epoch_seconds(date_end) if date_end else last_update

    bounds = WindowBounds(
        previous_window=math.floor(start / slide),
        current_window=math.floor(end / slide),
        slide=slide,
    )
    if bounds.previous_window > bounds.current_window:
        raise ReportValidationError("date_start must not be after date_end")
    return bounds


class WindowQueryBuilder:
    """Compiles a window query against a stored continuous aggregate."""

    def __init__(
        self,
        table_reference: TableReference,
        dialect: str = "duckdb",
        max_rows: int = 5000,
    ) -> None:
        self.table_reference = table_reference
        self.dialect = dialect
        self.max_rows = max_rows

    def build(
        self, aggregate: ContinuousAggregate, query: WindowQuery, bounds: WindowBounds
    ) -> str:
        """Generate the recombination sql.

        checks come first: an aggregation we can't combine is NotSupported,
        a measure or dimension the aggregate doesn't carry is a validation
        error. both before any sql exists.
        """
        functions = combine_function(query.measure.aggregation)
        self._check_query(aggregate, query)

        time_expr = self._build_time_expr(query, bounds)
        dimensions = [exp.column(d) for d in query.dimensions]
        value_expr = call_chain(functions, exp.column(query.measure.output_column))

        select = exp.select(
            exp.alias_(time_expr, TIME_COLUMN),
            *dimensions,
            exp.alias_(value_expr, VALUE_COLUMN),
        ).from_(self._build_from(aggregate))

        select = select.where(*self._build_where_conditions(aggregate, query, bounds))

        group_by = self._build_group_by_exprs(query, time_expr)
        if group_by:
            select = select.group_by(*group_by)

        select = select.order_by("1 ASC").limit(self.max_rows)
        return select.sql(dialect=self.dialect, pretty=True)

    def _check_query(self, aggregate: ContinuousAggregate, query: WindowQuery) -> None:
        measures = aggregate.measures
        if query.measure not in measures:
            available = ", ".join(m.output_column for m in measures) or "none"
            raise ReportValidationError(
                f"Measure '{query.measure.output_column}' is not part of "
                f"'{aggregate.table_name}' (available: {available})"
            )

        unknown = [d for d in query.dimensions if d not in aggregate.dimensions]
        if unknown:
            raise ReportValidationError(
                f"Unknown dimensions for '{aggregate.table_name}': {', '.join(unknown)}"
            )

    def _build_time_expr(self, query: WindowQuery, bounds: WindowBounds) -> exp.Expression:
        # collapsed queries report the whole window at its end timestamp
        if query.aggregate:
            return exp.Literal.number(bounds.end)
        return exp.Mul(
            this=exp.column(BUCKET_COLUMN), expression=exp.Literal.number(bounds.slide)
        )

    def _build_from(self, aggregate: ContinuousAggregate) -> exp.Expression:
        reference = self.table_reference(aggregate.project, ("continuous", aggregate.table_name))
        table = exp.to_table(reference, dialect=self.dialect)
        return exp.alias_(table, TABLE_ALIAS, table=True)

    def _build_where_conditions(
        self, aggregate: ContinuousAggregate, query: WindowQuery, bounds: WindowBounds
    ) -> list[exp.Expression]:
        conditions: list[exp.Expression] = [
            exp.column(BUCKET_COLUMN).between(
                exp.Literal.number(bounds.previous_window),
                exp.Literal.number(bounds.current_window),
            )
        ]

        if query.filter:
            parsed = parse_filter(query.filter, self.dialect)
            conditions.append(
                exp.paren(qualify_columns(parsed, aggregate.project, self._qualify, self.dialect))
            )

        return conditions

    def _qualify(self, project: str, qualified_name: tuple[str, ...]) -> str:
        """Point a bare column at the continuous table alias."""
        parts = [TABLE_ALIAS, *qualified_name]
        return ".".join(exp.to_identifier(p).sql(dialect=self.dialect) for p in parts)

    def _build_group_by_exprs(
        self, query: WindowQuery, time_expr: exp.Expression
    ) -> list[exp.Expression]:
        dimensions = [exp.column(d) for d in query.dimensions]
        if not query.aggregate:
            return [time_expr.copy(), *dimensions]
        # constant time column - grouping on it would be a no-op
        return dimensions
