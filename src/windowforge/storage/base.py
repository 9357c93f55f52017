"""Interface for wherever continuous aggregate definitions live."""

from typing import Protocol

from windowforge.models.query import OperationStatus
from windowforge.models.report import ContinuousAggregate


class ContinuousAggregateStore(Protocol):
    async def create(self, aggregate: ContinuousAggregate) -> OperationStatus:
        """Persist a new aggregate. duplicates are the store's problem to reject."""
        ...

    def get(self, project: str, table_name: str) -> ContinuousAggregate | None: ...

    def list(self, project: str) -> list[ContinuousAggregate]: ...

    async def delete(self, project: str, table_name: str) -> bool:
        """Drop an aggregate. False when there was nothing to drop."""
        ...
