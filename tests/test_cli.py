"""Tests for CLI commands."""

from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from windowforge.cli import main
from windowforge.cli.main import app
from windowforge.executor.duckdb_executor import DuckDBExecutor
from windowforge.storage.duckdb_store import DuckDBAggregateStore

runner = CliRunner()

WINDOW = ["--start", "2024-01-01T12:00:00", "--end", "2024-01-01T12:05:00"]


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # keep rich from folding table cells at the default 80 columns
    monkeypatch.setattr(main, "console", Console(width=200))


@pytest.fixture
def db_path(tmp_path: Path, sample_events: list[tuple]) -> str:
    """A duckdb file holding the sample events in "demo"."pageview"."""
    path = str(tmp_path / "events.duckdb")
    with DuckDBExecutor(path) as executor:
        executor.ensure_schema("demo")
        executor.create_table_from_data(
            executor.format_table_reference("demo", ("pageview",)),
            ["_time TIMESTAMP", "country VARCHAR", "user_id INTEGER", "amount DOUBLE"],
            sample_events,
        )
    return path


@pytest.fixture
def created_db(db_path: str, reports_dir: Path) -> str:
    result = runner.invoke(app, ["create", str(reports_dir), "--db", db_path])
    assert result.exit_code == 0, result.stdout
    return db_path


class TestCLICreate:
    def test_create_bundled_examples(self, db_path: str, sample_events: list[tuple]):
        with DuckDBExecutor(db_path) as executor:
            executor.create_table_from_data(
                executor.format_table_reference("demo", ("click",)),
                ["_time TIMESTAMP", "country VARCHAR", "user_id INTEGER", "amount DOUBLE"],
                sample_events,
            )
        path = Path(__file__).parent.parent / "examples" / "reports.yaml"

        result = runner.invoke(app, ["create", str(path), "--db", db_path])

        assert result.exit_code == 0, result.stdout
        assert "demo/pageviews_by_country" in result.stdout

    def test_create_from_directory(self, db_path: str, reports_dir: Path):
        result = runner.invoke(app, ["create", str(reports_dir), "--db", db_path])

        assert result.exit_code == 0
        assert "demo/pageviews" in result.stdout
        assert "demo/revenue_by_country" in result.stdout

    def test_create_twice_fails(self, created_db: str, reports_dir: Path):
        result = runner.invoke(app, ["create", str(reports_dir), "--db", created_db])

        assert result.exit_code == 1
        assert "already exists" in result.stdout

    def test_create_missing_path(self, db_path: str, tmp_path: Path):
        result = runner.invoke(app, ["create", str(tmp_path / "nope.yaml"), "--db", db_path])

        assert result.exit_code == 1
        assert "error" in result.stdout.lower()

    def test_create_unsupported_aggregation(self, db_path: str, tmp_path: Path):
        path = tmp_path / "avg.yaml"
        path.write_text(
            "project: demo\n"
            "reports:\n"
            "  - name: Average amount\n"
            "    collections: [pageview]\n"
            "    measures: [{column: amount, aggregation: AVERAGE}]\n"
        )

        result = runner.invoke(app, ["create", str(path), "--db", db_path])
        assert result.exit_code == 1
        assert "Average amount" in result.stdout


class TestCLIList:
    def test_list_reports(self, created_db: str):
        result = runner.invoke(app, ["list", "--project", "demo", "--db", created_db])

        assert result.exit_code == 0
        assert "pageviews" in result.stdout
        assert "amount_sum" in result.stdout

    def test_list_empty_project(self, created_db: str):
        result = runner.invoke(app, ["list", "--project", "other", "--db", created_db])

        assert result.exit_code == 0
        assert "no realtime reports" in result.stdout.lower()


class TestCLIGet:
    def test_get_series_json(self, created_db: str):
        result = runner.invoke(
            app,
            ["get", "pageviews", "-p", "demo", "-c", "user_id", "-a", "count", "-o", "json",
             "--db", created_db, *WINDOW],
        )

        assert result.exit_code == 0
        assert '"start": 1704110400' in result.stdout
        assert '"end": 1704110700' in result.stdout

    def test_get_aggregate_by_country(self, created_db: str):
        result = runner.invoke(
            app,
            ["get", "revenue_by_country", "-p", "demo", "-c", "amount", "-a", "SUM",
             "-g", "country", "--aggregate", "--db", created_db, *WINDOW],
        )

        assert result.exit_code == 0
        assert "US" in result.stdout
        assert "17.5" in result.stdout

    def test_get_unknown_report(self, created_db: str):
        result = runner.invoke(
            app,
            ["get", "nope", "-p", "demo", "-c", "user_id", "-a", "COUNT", "--db", created_db],
        )

        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_get_average_not_supported(self, created_db: str):
        result = runner.invoke(
            app,
            ["get", "pageviews", "-p", "demo", "-c", "user_id", "-a", "AVERAGE",
             "--db", created_db],
        )
        assert result.exit_code == 1


class TestCLIShowSQL:
    def test_show_sql(self, created_db: str):
        result = runner.invoke(
            app,
            ["show-sql", "pageviews", "-p", "demo", "-c", "user_id", "-a", "COUNT",
             "--db", created_db, *WINDOW],
        )

        assert result.exit_code == 0
        assert "SELECT" in result.stdout.upper()
        assert "BETWEEN" in result.stdout.upper()

    def test_show_sql_with_filter(self, created_db: str):
        result = runner.invoke(
            app,
            ["show-sql", "revenue_by_country", "-p", "demo", "-c", "amount", "-a", "SUM",
             "-f", "country = 'US'", "--db", created_db],
        )

        assert result.exit_code == 0
        assert "continuous" in result.stdout

    def test_show_sql_rejects_subquery_filter(self, created_db: str):
        result = runner.invoke(
            app,
            ["show-sql", "pageviews", "-p", "demo", "-c", "user_id", "-a", "COUNT",
             "-f", "user_id IN (SELECT 1)", "--db", created_db],
        )
        assert result.exit_code == 1


class TestCLIDelete:
    def test_delete(self, created_db: str):
        result = runner.invoke(app, ["delete", "pageviews", "-p", "demo", "--db", created_db])
        assert result.exit_code == 0

        with DuckDBExecutor(created_db) as executor:
            remaining = DuckDBAggregateStore(executor).list("demo")
        assert [a.table_name for a in remaining] == ["revenue_by_country"]

    def test_delete_missing(self, created_db: str):
        result = runner.invoke(app, ["delete", "nope", "-p", "demo", "--db", created_db])
        assert result.exit_code == 1


class TestCLISlug:
    def test_slug(self):
        result = runner.invoke(app, ["slug", "Pageviews by Country"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "pageviews_by_country"
