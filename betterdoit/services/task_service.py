"""
Task service - business rules for the active and master lists.
This layer contains no HTTP framework dependencies.

The repository owns storage semantics; this layer adds title validation, the
active-list size limit, positional moves and the dashboard view.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from betterdoit.exceptions import ValidationError
from betterdoit.models import Task, utc_now
from betterdoit.services.rebalance_service import SortOrderRebalancer
from betterdoit.storage.task_repository import SORT_ORDER_GAP, TaskRepository
from betterdoit.task_age import get_task_age
from betterdoit.week import current_week_start, next_week_start, previous_week_start

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


def validate_title(title: Optional[str]) -> str:
    """Strip and check a task title, returning the cleaned value."""
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Title is required", field="title")
    if len(cleaned) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be {MAX_TITLE_LENGTH} characters or less",
            field="title",
            value=len(cleaned),
        )
    return cleaned


def midpoint_key(before: Optional[int], after: Optional[int]) -> Optional[int]:
    """
    Key strictly between two neighbours, or None when no integer fits.

    A missing ``before`` means the head of the list, a missing ``after`` the tail.
    """
    if before is None and after is None:
        return SORT_ORDER_GAP
    if before is None:
        return after - SORT_ORDER_GAP
    if after is None:
        return before + SORT_ORDER_GAP
    if after - before < 2:
        return None
    return (before + after) // 2


class TaskService:
    """Service for task business logic."""

    def __init__(
        self,
        task_repository: TaskRepository,
        rebalancer: Optional[SortOrderRebalancer] = None,
        max_active_tasks: int = 3,
        now: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize task service.

        Args:
            task_repository: Repository used for every read and write
            rebalancer: Rebalancer used when a move finds no room between neighbours
            max_active_tasks: Maximum open tasks in the active list (0 disables the limit)
            now: Clock used for week boundaries and task ages
        """
        self.tasks = task_repository
        self.rebalancer = rebalancer or SortOrderRebalancer(task_repository.adapter)
        self.max_active_tasks = max_active_tasks
        self._now = now

    async def _check_active_limit(self, owner_id: str) -> None:
        if self.max_active_tasks <= 0:
            return
        active = await self.tasks.count_open_active(owner_id)
        if active >= self.max_active_tasks:
            raise ValidationError(
                f"Active list is full ({self.max_active_tasks} tasks). "
                f"Complete or deactivate a task first.",
                field="isActive",
                context={"active_tasks": active},
            )

    async def create_task(self, owner_id: str, title: str, is_active: bool = False) -> Task:
        cleaned = validate_title(title)
        if is_active:
            await self._check_active_limit(owner_id)
        return await self.tasks.create(owner_id, cleaned, is_active=is_active)

    async def get_task(self, task_id: str, owner_id: str) -> Task:
        return await self.tasks.get(task_id, owner_id)

    async def set_completed(self, task_id: str, owner_id: str, completed: bool) -> Task:
        return await self.tasks.set_completed(task_id, owner_id, completed)

    async def set_active(self, task_id: str, owner_id: str, active: bool) -> Task:
        """
        Move a task to or from the active list.

        Raises:
            TaskNotFoundError: If the task is not the owner's
            ValidationError: If activating would exceed the active-list limit
        """
        task = await self.tasks.get(task_id, owner_id)
        if active and not task.is_active and not task.is_completed:
            await self._check_active_limit(owner_id)
        return await self.tasks.set_active(task_id, owner_id, active)

    async def update_task(
        self,
        task_id: str,
        owner_id: str,
        *,
        title: Optional[str] = None,
        completed: Optional[bool] = None,
        toggle: bool = False,
        active: Optional[bool] = None,
        sort_order: Optional[int] = None,
    ) -> Task:
        """
        Apply a partial update with all-or-nothing semantics.

        Every check runs before the first write, so a rejected update leaves
        the task untouched. ``toggle`` flips completion unless ``completed``
        is given explicitly.

        Raises:
            TaskNotFoundError: If the task is not the owner's
            ValidationError: If the title is invalid or activating would exceed the active-list limit
        """
        task = await self.tasks.get(task_id, owner_id)
        cleaned = validate_title(title) if title is not None else None
        if completed is None and toggle:
            completed = not task.is_completed
        final_completed = task.is_completed if completed is None else completed
        if active and not task.is_active and not final_completed:
            await self._check_active_limit(owner_id)
        return await self.tasks.update(
            task_id,
            owner_id,
            title=cleaned,
            completed=completed,
            active=active,
            sort_order=sort_order,
        )

    async def reorder(self, task_id: str, owner_id: str, sort_order: int) -> Task:
        return await self.tasks.reorder(task_id, owner_id, sort_order)

    async def delete_task(self, task_id: str, owner_id: str) -> None:
        await self.tasks.delete(task_id, owner_id)

    async def move(self, task_id: str, owner_id: str, to_active: bool, index: int) -> Task:
        """
        Place a task at a position in the active or master list.

        The task gets a key between its new neighbours. When the neighbours
        are adjacent integers the destination list is rebalanced first.

        Args:
            task_id: Task to move
            owner_id: Owner user ID
            to_active: Destination list
            index: Zero-based position among the destination's other tasks
                (clamped to the list bounds)

        Raises:
            TaskNotFoundError: If the task is not the owner's
            ValidationError: If moving into the active list would exceed its limit
        """
        task = await self.tasks.get(task_id, owner_id)
        if task.is_active != to_active:
            task = await self.set_active(task_id, owner_id, to_active)

        for _ in range(2):
            neighbours = [
                t.sort_order
                for t in await self.tasks.list_by_owner_and_partition(owner_id, to_active, task.is_completed)
                if t.id != task_id
            ]
            position = min(max(index, 0), len(neighbours))
            before = neighbours[position - 1] if position > 0 else None
            after = neighbours[position] if position < len(neighbours) else None
            key = midpoint_key(before, after)
            if key is not None:
                break
            logger.info(f"No room between {before} and {after} for task {task_id}; rebalancing user {owner_id}")
            await self.rebalancer.rebalance(owner_id)
        else:
            # Still adjacent after a rebalance: completed partitions are not renumbered
            key = after

        if key == task.sort_order:
            return task
        return await self.tasks.reorder(task_id, owner_id, key)

    async def list_completed(self, owner_id: str, limit: Optional[int] = None) -> List[Task]:
        return await self.tasks.list_completed(owner_id, limit=limit)

    async def overview(self, owner_id: str) -> Dict[str, Any]:
        """
        Everything the dashboard shows for one user.

        Returns:
            Dictionary with activeTasks, masterTasks, completedTasks (API
            representations), completedThisWeek, completedLastWeek and weekStart
        """
        now = self._now()
        week_start = current_week_start(now)
        active = await self.tasks.list_by_owner_and_partition(owner_id, True, False)
        master = await self.tasks.list_by_owner_and_partition(owner_id, False, False)
        completed = await self.tasks.list_completed(owner_id)
        completed_this_week = await self.tasks.count_completed_between(
            owner_id, week_start, next_week_start(now)
        )
        completed_last_week = await self.tasks.count_completed_between(
            owner_id, previous_week_start(now), week_start
        )

        active_payload = []
        for task in active:
            age = get_task_age(task.added_to_active_at, now)
            data = task.to_api()
            data["age"] = {"daysOld": age.days_old, "category": age.category}
            active_payload.append(data)

        return {
            "activeTasks": active_payload,
            "masterTasks": [task.to_api() for task in master],
            "completedTasks": [task.to_api() for task in completed],
            "completedThisWeek": completed_this_week,
            "completedLastWeek": completed_last_week,
            "weekStart": week_start.isoformat(),
        }
