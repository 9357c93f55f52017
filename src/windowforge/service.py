"""Main RealtimeService interface for WindowForge.

the four operations the transport layer calls:

  create  - validate a report, compile its continuous aggregate, hand it to the store
  get     - recombine the stored buckets over a window and reshape the rows
  list    - realtime aggregates of a project
  delete  - drop an aggregate

everything up to the engine call is synchronous and raises straight away;
the only await that touches the engine is the single execute_raw_query in get.
no retries here - if the engine should retry, the executor does it.
"""

import time
from collections.abc import Callable, Iterable

from windowforge.compiler.continuous_builder import ContinuousAggregateBuilder
from windowforge.compiler.expressions import parse_filter
from windowforge.compiler.functions import validate_aggregations
from windowforge.compiler.window_builder import WindowBounds, WindowQueryBuilder, compute_bounds
from windowforge.core.config import Settings
from windowforge.core.config import settings as default_settings
from windowforge.core.logger import get_logger
from windowforge.errors import ExecutionError, NotFound
from windowforge.executor.base import QueryExecutor
from windowforge.models.query import OperationStatus, QueryResult, WindowQuery
from windowforge.models.report import AggregationType, ContinuousAggregate, ReportDefinition
from windowforge.reshaper import ResultReshaper
from windowforge.storage.base import ContinuousAggregateStore

logger = get_logger(__name__)


class RealtimeService:
    """Main interface for WindowForge.

    holds no per-request state, so one instance can serve the whole process.
    the clock is injectable because window boundaries depend on "now".
    """

    def __init__(
        self,
        store: ContinuousAggregateStore,
        executor: QueryExecutor,
        settings: Settings | None = None,
        enabled_aggregations: Iterable[AggregationType] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.executor = executor
        self.settings = settings or default_settings
        self.enabled_aggregations = frozenset(
            enabled_aggregations
            if enabled_aggregations is not None
            else self.settings.enabled_aggregations
        )
        self.clock = clock

        self.continuous_builder = ContinuousAggregateBuilder(
            slide_interval=self.settings.slide_interval_seconds,
            timestamp_to_epoch_function=self.settings.timestamp_to_epoch_function,
            event_time_column=self.settings.event_time_column,
            table_reference=executor.format_table_reference,
            dialect=self.settings.sql_dialect,
        )
        self.window_builder = WindowQueryBuilder(
            table_reference=executor.format_table_reference,
            dialect=self.settings.sql_dialect,
            max_rows=self.settings.max_result_rows,
        )
        self.reshaper = ResultReshaper()

    def compile_report(self, report: ReportDefinition) -> ContinuousAggregate:
        """Validate a report and build its continuous aggregate, without persisting it.

        raises NotSupported / UnsupportedAggregation / FilterParseError. nothing
        has touched the store or the engine at that point.
        """
        validate_aggregations(report.aggregations, self.enabled_aggregations)
        if report.filter:
            parse_filter(report.filter, self.settings.sql_dialect)

        query = self.continuous_builder.build(report)
        return ContinuousAggregate(
            project=report.project,
            name=report.name,
            table_name=report.table_name,
            query=query,
            slide_interval=self.settings.slide_interval_seconds,
            window_interval=self.settings.window_interval_seconds,
            options={
                "realtime": True,
                "measures": [m.model_dump(mode="json") for m in report.measures],
                "dimensions": list(report.dimensions),
            },
        )

    async def create(self, report: ReportDefinition) -> OperationStatus:
        """Create the continuous aggregate behind a realtime report."""
        aggregate = self.compile_report(report)
        logger.debug("Continuous aggregate query for %s:\n%s", aggregate.table_name, aggregate.query)

        status = await self.store.create(aggregate)
        if status.success:
            logger.info("Created realtime report %s/%s", report.project, aggregate.table_name)
        else:
            logger.warning(
                "Could not create realtime report %s/%s: %s",
                report.project,
                aggregate.table_name,
                status.message,
            )
        return status

    def compile_window(self, query: WindowQuery) -> tuple[str, WindowBounds]:
        """Build the window sql and its boundaries for a query.

        raises NotFound for an unknown aggregate before anything else happens.
        """
        aggregate = self.store.get(query.project, query.table_name)
        if aggregate is None:
            raise NotFound(query.project, query.table_name)

        # the aggregate's own intervals win - it was bucketed with its slide
        bounds = compute_bounds(
            slide=aggregate.slide_interval,
            window=aggregate.window_interval,
            now=self.clock(),
            date_start=query.date_start,
            date_end=query.date_end,
        )
        sql = self.window_builder.build(aggregate, query, bounds)
        return sql, bounds

    async def get(self, query: WindowQuery) -> QueryResult:
        """Recombine a continuous aggregate over a window."""
        sql, bounds = self.compile_window(query)
        logger.debug("Window query for %s:\n%s", query.table_name, sql)

        result = await self.executor.execute_raw_query(sql)
        if result.is_failed:
            logger.warning("Window query on %s failed: %s", query.table_name, result.error.message)
            raise ExecutionError(result.error.message, sql=sql)

        return self.reshaper.reshape(
            result.rows,
            bounds,
            aggregate=query.aggregate,
            dimension_count=len(query.dimensions),
            sql=sql,
        )

    def list(self, project: str) -> list[ContinuousAggregate]:
        """Realtime aggregates of a project - other continuous queries are skipped."""
        return [a for a in self.store.list(project) if a.is_realtime]

    async def delete(self, project: str, table_name: str) -> OperationStatus:
        deleted = await self.store.delete(project, table_name)
        if not deleted:
            return OperationStatus.error(
                "Couldn't delete report. Most probably it doesn't exist"
            )
        logger.info("Deleted realtime report %s/%s", project, table_name)
        return OperationStatus.ok()
