"""
Repository for task operations.

Every operation is scoped to an owner: a task id that exists but belongs to
someone else is indistinguishable from a missing one. Sort keys are sparse
integers; new tasks get a key one GAP past the end of their partition.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from betterdoit.db_adapter import BaseDatabaseAdapter, Executor
from betterdoit.exceptions import TaskNotFoundError
from betterdoit.models import Task, from_db_timestamp, to_db_timestamp, utc_now

logger = logging.getLogger(__name__)

# Distance between neighbouring keys after creation or a rebalance
SORT_ORDER_GAP = 1000


class TaskRepository:
    """Repository for task CRUD and ordering operations."""

    def __init__(self, adapter: BaseDatabaseAdapter, now: Callable[[], datetime] = utc_now):
        """
        Initialize TaskRepository.

        Args:
            adapter: Connected database adapter
            now: Clock used for created/completed/activated stamps
        """
        self.adapter = adapter
        self._now = now

    @property
    def c(self):
        return self.adapter.columns.task

    def _select(self) -> str:
        return f"SELECT {self.c.select_list()} FROM task"

    def _to_task(self, row) -> Task:
        return Task.from_row(self.c.from_row(row))

    async def _fetch_owned(self, db: Executor, task_id: str, owner_id: str) -> Task:
        row = await db.prepare(
            f"{self._select()} WHERE {self.c.id} = ? AND {self.c.userId} = ?"
        ).get((task_id, owner_id))
        if row is None:
            raise TaskNotFoundError(task_id, context={"owner_id": owner_id})
        return self._to_task(row)

    async def _max_sort_order(self, db: Executor, owner_id: str, is_active: bool) -> Optional[int]:
        row = await db.prepare(
            f"SELECT MAX({self.c.sortOrder}) AS max_sort_order FROM task "
            f"WHERE {self.c.userId} = ? AND {self.c.isActive} = ?"
        ).get((owner_id, int(is_active)))
        if row is None or row["max_sort_order"] is None:
            return None
        return int(row["max_sort_order"])

    async def _trailing_sort_order(self, db: Executor, owner_id: str, is_active: bool) -> int:
        current = await self._max_sort_order(db, owner_id, is_active)
        return SORT_ORDER_GAP if current is None else current + SORT_ORDER_GAP

    async def _next_created_at(self, db: Executor, owner_id: str) -> datetime:
        # Creation stamps are strictly increasing per owner so "oldest first" is creation order
        row = await db.prepare(
            f"SELECT MAX({self.c.createdAt}) AS latest FROM task WHERE {self.c.userId} = ?"
        ).get((owner_id,))
        now = self._now()
        latest = from_db_timestamp(row["latest"]) if row else None
        if latest is not None and now <= latest:
            return latest + timedelta(microseconds=1)
        return now

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, task_id: str, owner_id: str) -> Task:
        """
        Get one of the owner's tasks.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        return await self._fetch_owned(self.adapter, task_id, owner_id)

    async def list_by_owner_and_partition(
        self,
        owner_id: str,
        is_active: bool,
        is_completed: bool,
        limit: Optional[int] = None,
    ) -> List[Task]:
        """
        List one partition of the owner's tasks in display order.

        Args:
            owner_id: Owner user ID
            is_active: Active list (True) or master/backlog list (False)
            is_completed: Completed (True) or open (False) tasks
            limit: Optional maximum number of tasks, applied after ordering

        Returns:
            Tasks ordered by sort key ascending
        """
        query = (
            f"{self._select()} WHERE {self.c.userId} = ? AND {self.c.isActive} = ? AND {self.c.isCompleted} = ? "
            f"ORDER BY {self.c.sortOrder} ASC, {self.c.createdAt} ASC, {self.c.id} ASC"
        )
        params: tuple = (owner_id, int(is_active), int(is_completed))
        if limit is not None:
            query += " LIMIT ?"
            params += (limit,)
        rows = await self.adapter.prepare(query).all(params)
        return [self._to_task(row) for row in rows]

    async def list_by_owner(self, owner_id: str) -> List[Task]:
        """All of the owner's tasks: active first, open before completed, then by sort key."""
        rows = await self.adapter.prepare(
            f"{self._select()} WHERE {self.c.userId} = ? "
            f"ORDER BY {self.c.isActive} DESC, {self.c.isCompleted} ASC, {self.c.sortOrder} ASC, "
            f"{self.c.createdAt} DESC"
        ).all((owner_id,))
        return [self._to_task(row) for row in rows]

    async def list_open_by_owner(self, owner_id: str, limit: int) -> List[Task]:
        """The owner's incomplete tasks from either list, oldest created first."""
        rows = await self.adapter.prepare(
            f"{self._select()} WHERE {self.c.userId} = ? AND {self.c.isCompleted} = 0 "
            f"ORDER BY {self.c.createdAt} ASC, {self.c.id} ASC LIMIT ?"
        ).all((owner_id, limit))
        return [self._to_task(row) for row in rows]

    async def list_completed(self, owner_id: str, limit: Optional[int] = None) -> List[Task]:
        """The owner's completed tasks, most recently completed first."""
        query = (
            f"{self._select()} WHERE {self.c.userId} = ? AND {self.c.isCompleted} = 1 "
            f"ORDER BY {self.c.completedAt} DESC, {self.c.id} ASC"
        )
        params: tuple = (owner_id,)
        if limit is not None:
            query += " LIMIT ?"
            params += (limit,)
        rows = await self.adapter.prepare(query).all(params)
        return [self._to_task(row) for row in rows]

    async def count_completed_between(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
        active_only: bool = True,
    ) -> int:
        """Count tasks completed in [start, end)."""
        query = (
            f"SELECT COUNT(*) AS cnt FROM task WHERE {self.c.userId} = ? AND {self.c.isCompleted} = 1 "
            f"AND {self.c.completedAt} >= ? AND {self.c.completedAt} < ?"
        )
        if active_only:
            query += f" AND {self.c.isActive} = 1"
        row = await self.adapter.prepare(query).get((owner_id, to_db_timestamp(start), to_db_timestamp(end)))
        return int(row["cnt"]) if row else 0

    async def partition_keys(self, owner_id: str, is_active: bool) -> List[int]:
        """Sort keys of the owner's open tasks in one partition, ascending."""
        rows = await self.adapter.prepare(
            f"SELECT {self.c.sortOrder} FROM task "
            f"WHERE {self.c.userId} = ? AND {self.c.isActive} = ? AND {self.c.isCompleted} = 0 "
            f"ORDER BY {self.c.sortOrder} ASC"
        ).all((owner_id, int(is_active)))
        return [int(self.c.from_row(row)["sortOrder"]) for row in rows]

    async def count(self, owner_id: Optional[str] = None) -> int:
        query = "SELECT COUNT(*) AS cnt FROM task"
        params: tuple = ()
        if owner_id is not None:
            query += f" WHERE {self.c.userId} = ?"
            params = (owner_id,)
        row = await self.adapter.prepare(query).get(params)
        return int(row["cnt"]) if row else 0

    async def count_open_active(self, owner_id: str) -> int:
        row = await self.adapter.prepare(
            f"SELECT COUNT(*) AS cnt FROM task "
            f"WHERE {self.c.userId} = ? AND {self.c.isActive} = 1 AND {self.c.isCompleted} = 0"
        ).get((owner_id,))
        return int(row["cnt"]) if row else 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, owner_id: str, title: str, is_active: bool = False) -> Task:
        """
        Create a task at the end of its partition.

        Args:
            owner_id: Owner user ID
            title: Task title (already validated)
            is_active: Create directly in the active list instead of the backlog

        Returns:
            The created task
        """
        task_id = str(uuid.uuid4())

        async def insert(tx: Executor) -> None:
            now = to_db_timestamp(await self._next_created_at(tx, owner_id))
            sort_order = await self._trailing_sort_order(tx, owner_id, is_active)
            await tx.prepare(
                f"INSERT INTO task ({self.c.id}, {self.c.userId}, {self.c.title}, {self.c.isCompleted}, "
                f"{self.c.isActive}, {self.c.sortOrder}, {self.c.createdAt}, {self.c.completedAt}, "
                f"{self.c.addedToActiveAt}) VALUES (?, ?, ?, 0, ?, ?, ?, NULL, ?)"
            ).run((task_id, owner_id, title, int(is_active), sort_order, now, now if is_active else None))

        await self.adapter.with_transaction(insert)
        logger.info(f"Created task {task_id} for user {owner_id} (active={is_active})")
        return await self.get(task_id, owner_id)

    async def set_completed(self, task_id: str, owner_id: str, completed: bool) -> Task:
        """
        Mark a task completed or reopen it.

        completed_at is stamped only on an incomplete-to-complete transition and
        cleared on reopen.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        async def apply(tx: Executor) -> None:
            await self._write_completed(tx, await self._fetch_owned(tx, task_id, owner_id), completed)

        await self.adapter.with_transaction(apply)
        logger.info(f"Task {task_id} completed={completed}")
        return await self.get(task_id, owner_id)

    async def set_active(self, task_id: str, owner_id: str, active: bool) -> Task:
        """
        Move a task between the master list and the active list.

        Entering the active list stamps added_to_active_at; leaving it clears the
        stamp. A task that changes list is given a trailing key in its new list.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        async def apply(tx: Executor) -> None:
            await self._write_active(tx, await self._fetch_owned(tx, task_id, owner_id), active)

        await self.adapter.with_transaction(apply)
        logger.info(f"Task {task_id} active={active}")
        return await self.get(task_id, owner_id)

    async def reorder(self, task_id: str, owner_id: str, new_sort_order: int) -> Task:
        """
        Overwrite a task's sort key.

        If another task in the same partition already holds new_sort_order the
        write is skipped and the unchanged task is returned; the collision is
        left for the rebalancer rather than reported to the caller.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        async def apply(tx: Executor) -> None:
            await self._write_sort_order(tx, await self._fetch_owned(tx, task_id, owner_id), new_sort_order)

        await self.adapter.with_transaction(apply)
        return await self.get(task_id, owner_id)

    async def update(
        self,
        task_id: str,
        owner_id: str,
        *,
        title: Optional[str] = None,
        completed: Optional[bool] = None,
        active: Optional[bool] = None,
        sort_order: Optional[int] = None,
    ) -> Task:
        """
        Apply several changes to one task atomically.

        Changes are applied in the order title, completion, list, sort key,
        with the same rules as rename/set_completed/set_active/reorder. Either
        all of them are committed or none are.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        async def apply(tx: Executor) -> None:
            task = await self._fetch_owned(tx, task_id, owner_id)
            if title is not None:
                await tx.prepare(
                    f"UPDATE task SET {self.c.title} = ? WHERE {self.c.id} = ? AND {self.c.userId} = ?"
                ).run((title, task_id, owner_id))
            if completed is not None:
                await self._write_completed(tx, task, completed)
                task = await self._fetch_owned(tx, task_id, owner_id)
            if active is not None:
                await self._write_active(tx, task, active)
                task = await self._fetch_owned(tx, task_id, owner_id)
            if sort_order is not None:
                await self._write_sort_order(tx, task, sort_order)

        await self.adapter.with_transaction(apply)
        logger.info(f"Updated task {task_id} for user {owner_id}")
        return await self.get(task_id, owner_id)

    async def _write_completed(self, tx: Executor, task: Task, completed: bool) -> None:
        if task.is_completed == completed:
            return
        completed_at = to_db_timestamp(self._now()) if completed else None
        await tx.prepare(
            f"UPDATE task SET {self.c.isCompleted} = ?, {self.c.completedAt} = ? "
            f"WHERE {self.c.id} = ? AND {self.c.userId} = ?"
        ).run((int(completed), completed_at, task.id, task.user_id))

    async def _write_active(self, tx: Executor, task: Task, active: bool) -> None:
        if task.is_active == active:
            return
        sort_order = await self._trailing_sort_order(tx, task.user_id, active)
        added_to_active_at = to_db_timestamp(self._now()) if active else None
        await tx.prepare(
            f"UPDATE task SET {self.c.isActive} = ?, {self.c.addedToActiveAt} = ?, {self.c.sortOrder} = ? "
            f"WHERE {self.c.id} = ? AND {self.c.userId} = ?"
        ).run((int(active), added_to_active_at, sort_order, task.id, task.user_id))

    async def _write_sort_order(self, tx: Executor, task: Task, new_sort_order: int) -> bool:
        clash = await tx.prepare(
            f"SELECT {self.c.id} FROM task WHERE {self.c.userId} = ? AND {self.c.isActive} = ? "
            f"AND {self.c.isCompleted} = ? AND {self.c.sortOrder} = ? AND {self.c.id} <> ?"
        ).get((task.user_id, int(task.is_active), int(task.is_completed), new_sort_order, task.id))
        if clash is not None:
            logger.info(f"Skipped reorder of task {task.id}: sort order {new_sort_order} already taken")
            return False
        await tx.prepare(
            f"UPDATE task SET {self.c.sortOrder} = ? WHERE {self.c.id} = ? AND {self.c.userId} = ?"
        ).run((new_sort_order, task.id, task.user_id))
        logger.debug(f"Task {task.id} sort order set to {new_sort_order}")
        return True

    async def rename(self, task_id: str, owner_id: str, title: str) -> Task:
        """
        Change a task's title.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        result = await self.adapter.prepare(
            f"UPDATE task SET {self.c.title} = ? WHERE {self.c.id} = ? AND {self.c.userId} = ?"
        ).run((title, task_id, owner_id))
        if result.affected_count == 0:
            raise TaskNotFoundError(task_id, context={"owner_id": owner_id})
        return await self.get(task_id, owner_id)

    async def delete(self, task_id: str, owner_id: str) -> None:
        """
        Permanently delete a task.

        Raises:
            TaskNotFoundError: If the task does not exist or is not the owner's
        """
        result = await self.adapter.prepare(
            f"DELETE FROM task WHERE {self.c.id} = ? AND {self.c.userId} = ?"
        ).run((task_id, owner_id))
        if result.affected_count == 0:
            raise TaskNotFoundError(task_id, context={"owner_id": owner_id})
        logger.info(f"Deleted task {task_id} for user {owner_id}")
