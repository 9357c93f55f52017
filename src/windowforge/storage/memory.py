"""In-memory continuous aggregate store.

good enough for tests and for engines that keep their own materialization
and only need us to remember the definitions for the life of the process.
"""

from windowforge.models.query import OperationStatus
from windowforge.models.report import ContinuousAggregate


class InMemoryAggregateStore:
    def __init__(self) -> None:
        self._aggregates: dict[tuple[str, str], ContinuousAggregate] = {}

    async def create(self, aggregate: ContinuousAggregate) -> OperationStatus:
        key = (aggregate.project, aggregate.table_name)
        if key in self._aggregates:
            return OperationStatus.error(
                f"Continuous aggregate '{aggregate.table_name}' already exists"
            )
        self._aggregates[key] = aggregate
        return OperationStatus.ok()

    def get(self, project: str, table_name: str) -> ContinuousAggregate | None:
        return self._aggregates.get((project, table_name))

    def list(self, project: str) -> list[ContinuousAggregate]:
        return [a for (p, _), a in self._aggregates.items() if p == project]

    async def delete(self, project: str, table_name: str) -> bool:
        return self._aggregates.pop((project, table_name), None) is not None
