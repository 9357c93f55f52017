"""Turns raw window query rows into the shape the caller asked for.

rows come back as [timestamp, *dimensions, value]. four shapes:

  aggregate | dimensions | result
  ----------+------------+-------------------------------------------
  no        | no         | dense [timestamp, value] series, gaps -> 0
  no        | yes        | DimensionSeries per dimension tuple, no gap fill
  yes       | no         | scalar, 0 when nothing matched
  yes       | yes        | DimensionValue per observed combination

the gap fill asymmetry is deliberate: filling every dimension combination
would mean inventing combinations we've never seen.
"""

from collections.abc import Sequence
from typing import Any

from windowforge.compiler.window_builder import WindowBounds
from windowforge.models.query import DimensionSeries, DimensionValue, QueryResult

Row = Sequence[Any]


class ResultReshaper:
    """Pure transform from rows to QueryResult. no state, safe to share."""

    def reshape(
        self,
        rows: Sequence[Row],
        bounds: WindowBounds,
        aggregate: bool,
        dimension_count: int,
        sql: str | None = None,
    ) -> QueryResult:
        if aggregate:
            result = (
                self._dimension_values(rows) if dimension_count else self._scalar(rows)
            )
        else:
            result = (
                self._dimension_series(rows) if dimension_count else self._dense_series(rows, bounds)
            )
        return QueryResult(start=bounds.start, end=bounds.end, result=result, sql=sql)

    def _dense_series(self, rows: Sequence[Row], bounds: WindowBounds) -> list[list[Any]]:
        """One point per slide between the window bounds, zero where no bucket exists."""
        values = {int(row[0]): row[-1] for row in rows}
        return [[timestamp, values.get(timestamp, 0)] for timestamp in bounds.timestamps()]

    def _dimension_series(self, rows: Sequence[Row]) -> list[DimensionSeries]:
        """Group points by the full dimension tuple, first-seen order."""
        grouped: dict[tuple[Any, ...], list[tuple[int, Any]]] = {}
        for row in rows:
            grouped.setdefault(tuple(row[1:-1]), []).append((int(row[0]), row[-1]))

        return [
            DimensionSeries(dimensions=dims, points=sorted(points, key=lambda p: p[0]))
            for dims, points in grouped.items()
        ]

    def _scalar(self, rows: Sequence[Row]) -> Any:
        # an ungrouped aggregate over no buckets comes back as one NULL row
        if not rows or rows[0][-1] is None:
            return 0
        return rows[0][-1]

    def _dimension_values(self, rows: Sequence[Row]) -> list[DimensionValue]:
        return [DimensionValue(dimensions=tuple(row[1:-1]), value=row[-1]) for row in rows]
