"""CLI for WindowForge.

runs against a local duckdb file - events go in per-project schemas
("demo"."pageview"), continuous aggregates are views next to them.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from windowforge.core.config import settings
from windowforge.errors import WindowForgeError
from windowforge.executor.duckdb_executor import DuckDBExecutor
from windowforge.models.query import DimensionSeries, DimensionValue, QueryResult, WindowQuery
from windowforge.models.report import AggregationType, Measure
from windowforge.parser.loader import ReportLoader
from windowforge.service import RealtimeService
from windowforge.slug import to_slug
from windowforge.storage.duckdb_store import DuckDBAggregateStore

app = typer.Typer(
    name="wf",
    help="WindowForge - realtime reports over continuous aggregates",
    no_args_is_help=True,
)
console = Console()

DEFAULT_DB = settings.database_path or "windowforge.duckdb"

DbOption = Annotated[str, typer.Option("--db", help="DuckDB database path")]
ProjectOption = Annotated[str, typer.Option("--project", "-p", help="Project id")]


def get_service(db_path: str) -> RealtimeService:
    executor = DuckDBExecutor(db_path)
    return RealtimeService(DuckDBAggregateStore(executor), executor)


def _close(service: RealtimeService) -> None:
    service.executor.close()


@app.command()
def create(
    path: Annotated[Path, typer.Argument(help="YAML file or directory of report definitions")],
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Default project id")
    ] = None,
    db_path: DbOption = DEFAULT_DB,
) -> None:
    """Create continuous aggregates for the reports in a YAML file."""
    loader = ReportLoader(default_project=project)
    try:
        reports = loader.load_directory(path) if path.is_dir() else loader.load_file(path)
    except Exception as e:
        console.print(f"[red]Error loading reports: {e}[/red]")
        raise typer.Exit(1)

    service = get_service(db_path)
    failed = False
    try:
        for report in reports:
            try:
                status = asyncio.run(service.create(report))
            except WindowForgeError as e:
                console.print(f"[red]{report.name}: {e}[/red]")
                failed = True
                continue

            if status.success:
                console.print(f"[green]Created {report.project}/{report.table_name}[/green]")
            else:
                console.print(f"[red]{report.name}: {status.message}[/red]")
                failed = True
    finally:
        _close(service)

    if failed:
        raise typer.Exit(1)


@app.command("list")
def list_reports(project: ProjectOption, db_path: DbOption = DEFAULT_DB) -> None:
    """List realtime reports of a project."""
    service = get_service(db_path)
    try:
        aggregates = service.list(project)
    finally:
        _close(service)

    if not aggregates:
        console.print("[yellow]No realtime reports defined[/yellow]")
        return

    table = Table(title=f"Realtime reports ({project})")
    table.add_column("Table", style="cyan")
    table.add_column("Name")
    table.add_column("Slide", style="green")
    table.add_column("Window", style="green")
    table.add_column("Measures", style="yellow")
    table.add_column("Dimensions")

    for aggregate in aggregates:
        table.add_row(
            aggregate.table_name,
            aggregate.name,
            f"{aggregate.slide_interval}s",
            f"{aggregate.window_interval}s",
            ", ".join(m.output_column for m in aggregate.measures),
            ", ".join(aggregate.dimensions) or "-",
        )

    console.print(table)


def _build_query(
    table_name: str,
    project: str,
    column: str,
    aggregation: str,
    dimensions: str | None,
    filter_expr: str | None,
    aggregate: bool,
    start: str | None,
    end: str | None,
) -> WindowQuery:
    return WindowQuery(
        project=project,
        table_name=table_name,
        measure=Measure(column=column, aggregation=AggregationType(aggregation.upper())),
        filter=filter_expr,
        dimensions=[d.strip() for d in dimensions.split(",")] if dimensions else [],
        aggregate=aggregate,
        date_start=datetime.fromisoformat(start) if start else None,
        date_end=datetime.fromisoformat(end) if end else None,
    )


ColumnOption = Annotated[str, typer.Option("--column", "-c", help="Measure column")]
AggregationOption = Annotated[
    str, typer.Option("--aggregation", "-a", help="COUNT, SUM, MINIMUM, MAXIMUM, ...")
]
DimensionsOption = Annotated[
    str | None, typer.Option("--dimensions", "-g", help="Comma-separated dimensions")
]
FilterOption = Annotated[str | None, typer.Option("--filter", "-f", help="Filter expression")]
AggregateOption = Annotated[
    bool, typer.Option("--aggregate", help="Collapse the window into one value")
]
StartOption = Annotated[str | None, typer.Option("--start", help="Window start (ISO 8601)")]
EndOption = Annotated[str | None, typer.Option("--end", help="Window end (ISO 8601)")]


@app.command()
def get(
    table_name: Annotated[str, typer.Argument(help="Continuous aggregate table name")],
    project: ProjectOption,
    column: ColumnOption,
    aggregation: AggregationOption,
    dimensions: DimensionsOption = None,
    filter_expr: FilterOption = None,
    aggregate: AggregateOption = False,
    start: StartOption = None,
    end: EndOption = None,
    show_sql: Annotated[bool, typer.Option("--sql", "-s", help="Show generated SQL")] = False,
    output: Annotated[
        str, typer.Option("--output", "-o", help="Output format: table, json")
    ] = "table",
    db_path: DbOption = DEFAULT_DB,
) -> None:
    """Query a realtime report over a window."""
    service = get_service(db_path)
    try:
        query = _build_query(
            table_name, project, column, aggregation, dimensions, filter_expr, aggregate, start, end
        )
        result = asyncio.run(service.get(query))
    except (WindowForgeError, ValueError) as e:
        console.print(f"[red]Query error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        _close(service)

    if show_sql and result.sql:
        console.print(Syntax(result.sql, "sql", theme="monokai", line_numbers=True))
        console.print()

    _output_result(result, output)


@app.command("show-sql")
def show_sql(
    table_name: Annotated[str, typer.Argument(help="Continuous aggregate table name")],
    project: ProjectOption,
    column: ColumnOption,
    aggregation: AggregationOption,
    dimensions: DimensionsOption = None,
    filter_expr: FilterOption = None,
    aggregate: AggregateOption = False,
    start: StartOption = None,
    end: EndOption = None,
    db_path: DbOption = DEFAULT_DB,
) -> None:
    """Show the window SQL without executing it."""
    service = get_service(db_path)
    try:
        query = _build_query(
            table_name, project, column, aggregation, dimensions, filter_expr, aggregate, start, end
        )
        sql, _ = service.compile_window(query)
    except (WindowForgeError, ValueError) as e:
        console.print(f"[red]Error generating SQL: {e}[/red]")
        raise typer.Exit(1)
    finally:
        _close(service)

    console.print(Syntax(sql, "sql", theme="monokai", line_numbers=True))


@app.command()
def delete(
    table_name: Annotated[str, typer.Argument(help="Continuous aggregate table name")],
    project: ProjectOption,
    db_path: DbOption = DEFAULT_DB,
) -> None:
    """Delete a realtime report."""
    service = get_service(db_path)
    try:
        status = asyncio.run(service.delete(project, table_name))
    finally:
        _close(service)

    if not status.success:
        console.print(f"[red]{status.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {project}/{table_name}[/green]")


@app.command()
def slug(text: Annotated[str, typer.Argument(help="Report name")]) -> None:
    """Print the table name a report name maps to."""
    console.print(to_slug(text))


def _output_result(result: QueryResult, output_format: str) -> None:
    """Output query result in the specified format."""
    if output_format == "json":
        data = result.model_dump(mode="json", exclude={"sql"})
        console.print(json.dumps(data, indent=2, default=str))
        return

    title = f"{_format_ts(result.start)} .. {_format_ts(result.end)}"
    payload = result.result

    if not isinstance(payload, list):
        console.print(f"{title}: [bold]{payload}[/bold]")
        return

    table = Table(title=title)
    if payload and isinstance(payload[0], DimensionValue):
        table.add_column("Dimensions", style="cyan")
        table.add_column("Value", style="green")
        for item in payload:
            table.add_row(_format_dims(item.dimensions), str(item.value))
    elif payload and isinstance(payload[0], DimensionSeries):
        table.add_column("Dimensions", style="cyan")
        table.add_column("Time")
        table.add_column("Value", style="green")
        for series in payload:
            for timestamp, value in series.points:
                table.add_row(_format_dims(series.dimensions), _format_ts(timestamp), str(value))
    else:
        table.add_column("Time")
        table.add_column("Value", style="green")
        for timestamp, value in payload:
            table.add_row(_format_ts(timestamp), str(value))

    console.print(table)


def _format_ts(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _format_dims(dimensions: tuple[Any, ...]) -> str:
    return ", ".join(str(d) for d in dimensions)


if __name__ == "__main__":
    app()
