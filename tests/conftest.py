"""Pytest fixtures for WindowForge tests."""

from collections.abc import Generator
from datetime import datetime
from pathlib import Path

import pytest

from windowforge.core.config import Settings
from windowforge.executor.duckdb_executor import DuckDBExecutor
from windowforge.models.query import ExecutionResult
from windowforge.models.report import AggregationType, Measure, ReportDefinition
from windowforge.service import RealtimeService
from windowforge.storage.duckdb_store import DuckDBAggregateStore
from windowforge.storage.memory import InMemoryAggregateStore

# 2024-01-01 12:00:00 UTC, a whole number of minutes
T0 = 1_704_110_400
# "now" for service tests: two hours and 15 seconds after T0
NOW = T0 + 7_215


class FakeExecutor:
    """Records queries and answers with a canned result."""

    def __init__(self, result: ExecutionResult | None = None) -> None:
        self.result = result or ExecutionResult()
        self.queries: list[str] = []

    async def execute_raw_query(self, sql: str) -> ExecutionResult:
        self.queries.append(sql)
        return self.result

    def format_table_reference(self, project: str, qualified_name: tuple[str, ...]) -> str:
        return f"{project}.{'_'.join(qualified_name)}"


@pytest.fixture
def settings() -> Settings:
    return Settings(slide_interval_seconds=60, window_interval_seconds=3600)


@pytest.fixture
def count_report() -> ReportDefinition:
    return ReportDefinition(
        project="demo",
        name="Pageviews",
        collections=["pageview"],
        measures=[Measure(column="user_id", aggregation=AggregationType.COUNT)],
    )


@pytest.fixture
def country_report() -> ReportDefinition:
    return ReportDefinition(
        project="demo",
        name="Pageviews by country",
        collections=["pageview", "click"],
        measures=[
            Measure(column="user_id", aggregation=AggregationType.COUNT),
            Measure(column="amount", aggregation=AggregationType.SUM),
        ],
        dimensions=["country"],
    )


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def store() -> InMemoryAggregateStore:
    return InMemoryAggregateStore()


@pytest.fixture
def service(
    store: InMemoryAggregateStore, executor: FakeExecutor, settings: Settings
) -> RealtimeService:
    return RealtimeService(store, executor, settings=settings, clock=lambda: NOW)


@pytest.fixture
def sample_events() -> list[tuple]:
    """(time, country, user_id, amount) - naive datetimes are utc."""
    return [
        (datetime(2024, 1, 1, 12, 0, 10), "US", 1, 10.0),
        (datetime(2024, 1, 1, 12, 0, 20), "US", 2, 5.0),
        (datetime(2024, 1, 1, 12, 1, 10), "DE", 3, 7.5),
        (datetime(2024, 1, 1, 12, 2, 10), "US", 1, 2.5),
        (datetime(2024, 1, 1, 12, 2, 40), "FR", 4, 1.0),
    ]


@pytest.fixture
def duckdb_service(
    sample_events: list[tuple], settings: Settings
) -> Generator[RealtimeService, None, None]:
    """A service backed by in-memory duckdb with events in "demo"."pageview"."""
    executor = DuckDBExecutor()
    executor.ensure_schema("demo")
    executor.create_table_from_data(
        executor.format_table_reference("demo", ("pageview",)),
        ["_time TIMESTAMP", "country VARCHAR", "user_id INTEGER", "amount DOUBLE"],
        sample_events,
    )
    service = RealtimeService(
        DuckDBAggregateStore(executor), executor, settings=settings, clock=lambda: NOW
    )
    yield service
    executor.close()


@pytest.fixture
def reports_yaml() -> str:
    return """
project: demo
reports:
  - name: Pageviews
    collections: [pageview]
    measures:
      - column: user_id
        aggregation: COUNT

  - name: Revenue by country
    collections: [pageview]
    measures:
      - column: amount
        aggregation: SUM
      - column: amount
        aggregation: MAXIMUM
    dimensions: [country]
"""


@pytest.fixture
def reports_dir(tmp_path: Path, reports_yaml: str) -> Path:
    path = tmp_path / "reports"
    path.mkdir()
    (path / "reports.yaml").write_text(reports_yaml)
    return path
