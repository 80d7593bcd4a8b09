"""
Sort-order rebalancing.

Repeated midpoint reorders eventually leave neighbouring keys with no integer
between them, and concurrent writers can leave duplicates. Rebalancing
renumbers each open partition of an owner to 1000, 2000, 3000, ... while
preserving the current order.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from betterdoit.db_adapter import BaseDatabaseAdapter, Executor
from betterdoit.exceptions import RebalanceError, StorageError
from betterdoit.storage.task_repository import SORT_ORDER_GAP, TaskRepository

logger = logging.getLogger(__name__)

ACTIVE = "active"
MASTER = "master"


@dataclass
class RebalanceResult:
    """How many tasks were renumbered in each partition."""

    active_tasks_fixed: int = 0
    master_tasks_fixed: int = 0
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_api(self) -> Dict[str, int]:
        return {
            "activeTasksFixed": self.active_tasks_fixed,
            "masterTasksFixed": self.master_tasks_fixed,
        }


class SortOrderRebalancer:
    """Renumbers an owner's open tasks to canonical, evenly spaced keys."""

    def __init__(self, adapter: BaseDatabaseAdapter):
        self.adapter = adapter
        self.tasks = TaskRepository(adapter)

    @property
    def c(self):
        return self.adapter.columns.task

    async def _renumber_partition(self, owner_id: str, is_active: bool) -> int:
        lock = self.adapter.lock_clause()

        async def renumber(tx: Executor) -> int:
            rows = await tx.prepare(
                f"SELECT {self.c.id} FROM task "
                f"WHERE {self.c.userId} = ? AND {self.c.isActive} = ? AND {self.c.isCompleted} = 0 "
                f"ORDER BY {self.c.sortOrder} ASC, {self.c.createdAt} ASC, {self.c.id} ASC{lock}"
            ).all((owner_id, int(is_active)))
            update = tx.prepare(
                f"UPDATE task SET {self.c.sortOrder} = ? WHERE {self.c.id} = ? AND {self.c.userId} = ?"
            )
            for index, row in enumerate(rows):
                task_id = self.c.from_row(row)["id"]
                await update.run(((index + 1) * SORT_ORDER_GAP, task_id, owner_id))
            return len(rows)

        return await self.adapter.with_transaction(renumber)

    async def rebalance(self, owner_id: str) -> RebalanceResult:
        """
        Renumber the owner's open active and master partitions.

        Each partition is renumbered in its own transaction, so a failure in
        one does not undo the other.

        Args:
            owner_id: Owner user ID

        Returns:
            RebalanceResult with the number of tasks renumbered per partition

        Raises:
            RebalanceError: If either partition failed; ``.result`` holds the
                counts of whatever did commit
        """
        result = RebalanceResult()
        for name, is_active in ((ACTIVE, True), (MASTER, False)):
            try:
                fixed = await self._renumber_partition(owner_id, is_active)
            except StorageError as e:
                logger.error(f"Rebalance of {name} tasks failed for user {owner_id}: {e}")
                result.errors[name] = e.message
                continue
            if is_active:
                result.active_tasks_fixed = fixed
            else:
                result.master_tasks_fixed = fixed

        if not result.ok:
            failed = ", ".join(sorted(result.errors))
            raise RebalanceError(
                f"Sort order rebalance failed for {failed} tasks of user {owner_id}",
                result=result,
            )

        logger.info(
            f"Rebalanced user {owner_id}: {result.active_tasks_fixed} active, "
            f"{result.master_tasks_fixed} master"
        )
        return result

    async def needs_rebalance(self, owner_id: str, is_active: bool) -> bool:
        """True when the partition has duplicate keys or two neighbours with no integer between them."""
        keys = await self.tasks.partition_keys(owner_id, is_active)
        return has_drift(keys)

    async def rebalance_if_needed(self, owner_id: str) -> bool:
        """Rebalance only when either partition has drifted. Returns whether it ran."""
        if await self.needs_rebalance(owner_id, True) or await self.needs_rebalance(owner_id, False):
            await self.rebalance(owner_id)
            return True
        return False


def has_drift(keys: List[int]) -> bool:
    """Sorted keys drift when any adjacent pair is closer than 2."""
    ordered = sorted(keys)
    return any(b - a < 2 for a, b in zip(ordered, ordered[1:]))
