"""Builds the generating query for a continuous aggregate.

the query folds raw events into fixed-width buckets:

  SELECT CAST(FLOOR(epoch(_time) / <slide>) AS BIGINT) AS _bucket,
         <dimensions>,
         <bucket fn>(<column>) AS <column>_<aggregation>, ...
  FROM (<collection 1> UNION ALL <collection 2> ...) AS data
  [WHERE <filter>]
  GROUP BY 1, 2, ...

every collection is projected to the same column list so the union lines up.
the engine (not us) keeps the result materialized - this is just text.
"""

from collections.abc import Callable
from functools import reduce

from sqlglot import exp

from windowforge.compiler.expressions import call_chain, parse_filter
from windowforge.compiler.functions import bucket_function
from windowforge.models.report import Measure, ReportDefinition

# (project, qualified name parts) -> engine table reference
TableReference = Callable[[str, tuple[str, ...]], str]

BUCKET_COLUMN = "_bucket"


def _bare_reference(project: str, qualified_name: tuple[str, ...]) -> str:
    return ".".join(qualified_name)


class ContinuousAggregateBuilder:
    """Compiles a report definition into bucketed pre-aggregation sql.

    stateless apart from configuration, one instance can serve every request.
    """

    def __init__(
        self,
        slide_interval: int,
        timestamp_to_epoch_function: str = "epoch",
        event_time_column: str = "_time",
        table_reference: TableReference | None = None,
        dialect: str = "duckdb",
    ) -> None:
        if slide_interval <= 0:
            raise ValueError("slide_interval must be positive")
        self.slide_interval = slide_interval
        self.timestamp_to_epoch_function = timestamp_to_epoch_function
        self.event_time_column = event_time_column
        self.table_reference = table_reference or _bare_reference
        self.dialect = dialect

    def build(self, report: ReportDefinition) -> str:
        """Generate the continuous aggregate query for a report."""
        select_exprs = [
            self._build_bucket_expr(),
            *(exp.column(d) for d in report.dimensions),
            *(self._build_measure_expr(m) for m in report.measures),
        ]

        query = exp.select(*select_exprs).from_(self._build_source(report))

        if report.filter:
            query = query.where(parse_filter(report.filter, self.dialect))

        # ordinals rather than names - not every engine lets you group by an alias
        group_by = [exp.Literal.number(i) for i in range(1, len(report.dimensions) + 2)]
        query = query.group_by(*group_by)

        return query.sql(dialect=self.dialect, pretty=True)

    def _build_bucket_expr(self) -> exp.Expression:
        """floor(epoch(event time) / slide), as a bigint bucket index."""
        epoch = call_chain(
            (self.timestamp_to_epoch_function,), exp.column(self.event_time_column)
        )
        bucket = exp.Floor(
            this=exp.Div(this=epoch, expression=exp.Literal.number(self.slide_interval))
        )
        return exp.alias_(exp.cast(bucket, "BIGINT"), BUCKET_COLUMN)

    def _build_measure_expr(self, measure: Measure) -> exp.Expression:
        functions = bucket_function(measure.aggregation)
        return exp.alias_(call_chain(functions, exp.column(measure.column)), measure.output_column)

    def _build_source(self, report: ReportDefinition) -> exp.Expression:
        """UNION ALL of every collection, projected to the same columns."""
        # dict.fromkeys keeps order and drops a measure column that's also a dimension
        columns = list(
            dict.fromkeys(
                [self.event_time_column, *report.dimensions, *(m.column for m in report.measures)]
            )
        )

        selects = [
            exp.select(*(exp.column(c) for c in columns)).from_(
                exp.to_table(
                    self.table_reference(report.project, (collection,)), dialect=self.dialect
                )
            )
            for collection in report.collections
        ]
        union = reduce(lambda left, right: exp.union(left, right, distinct=False), selects)
        return union.subquery("data")
