"""Filter expression parsing and formatting.

filters arrive as raw sql boolean expressions ("country = 'US' AND n > 3").
sqlglot parses them into an ast once, up front, so a malformed filter is a
validation error and never reaches the engine. we then regenerate the text
from the ast, which is what keeps smuggled statements out of the final query.

module level functions, no state - safe to share across requests.
"""

from collections.abc import Callable

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from windowforge.errors import FilterParseError

# (project, qualified name parts) -> engine text for the reference
ColumnRewriter = Callable[[str, tuple[str, ...]], str]


def parse_filter(raw: str, dialect: str = "duckdb") -> exp.Expression:
    """Parse a raw filter string into a boolean expression ast."""
    if raw is None or not raw.strip():
        raise FilterParseError("Filter expression is empty")

    try:
        statements = sqlglot.parse(raw, dialect=dialect)
    except (ParseError, TokenError) as e:
        raise FilterParseError(f"Invalid filter expression {raw!r}: {e}") from e

    if len(statements) != 1 or statements[0] is None:
        raise FilterParseError(f"Filter must be a single expression: {raw!r}")

    expression = statements[0]
    if not isinstance(expression, exp.Condition):
        raise FilterParseError(f"Filter is not a boolean expression: {raw!r}")
    # subqueries would let a filter read other tables
    if expression.find(exp.Query):
        raise FilterParseError(f"Subqueries are not allowed in filters: {raw!r}")

    return expression


def qualify_columns(
    expression: exp.Expression,
    project: str,
    rewrite: ColumnRewriter,
    dialect: str = "duckdb",
) -> exp.Expression:
    """Rewrite bare column references using the given callback.

    already-qualified columns are left alone. returns a new tree, the input
    is not modified.
    """

    def _rewrite(node: exp.Expression) -> exp.Expression:
        if isinstance(node, exp.Column) and not node.table:
            return sqlglot.parse_one(rewrite(project, (node.name,)), dialect=dialect)
        return node

    return expression.copy().transform(_rewrite)


def format_expression(expression: exp.Expression, dialect: str = "duckdb") -> str:
    """Render an expression ast as engine text."""
    return expression.sql(dialect=dialect)


def call_chain(functions: tuple[str, ...], argument: exp.Expression) -> exp.Expression:
    """Wrap an argument in nested function calls, outermost first.

    anonymous functions on purpose: sqlglot would otherwise map names like
    cardinality to its own idea of the function and transpile them.
    """
    result = argument
    for name in reversed(functions):
        result = exp.Anonymous(this=name, expressions=[result])
    return result
