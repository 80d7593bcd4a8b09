"""
Task routes.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from betterdoit.api.schemas import TaskCreate, TaskMove, TaskReorder, TaskUpdate
from betterdoit.auth.dependencies import get_current_user
from betterdoit.dependencies import get_rebalancer, get_task_service
from betterdoit.services import SortOrderRebalancer, TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
async def list_tasks(
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    """Active, master and completed tasks plus this week's progress."""
    return await service.overview(user_id)


@router.post("", status_code=201)
async def create_task(
    body: TaskCreate,
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    task = await service.create_task(user_id, body.title, is_active=body.is_active)
    return task.to_api()


@router.get("/completed")
async def list_completed_tasks(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    tasks = await service.list_completed(user_id, limit=limit)
    return {"tasks": [task.to_api() for task in tasks]}


@router.post("/rebalance")
async def rebalance_tasks(
    user_id: str = Depends(get_current_user),
    rebalancer: SortOrderRebalancer = Depends(get_rebalancer),
) -> Dict[str, int]:
    """Renumber the caller's open tasks to evenly spaced sort keys."""
    result = await rebalancer.rebalance(user_id)
    return result.to_api()


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    task = await service.get_task(task_id, user_id)
    return task.to_api()


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    """
    Apply a partial update; a rejected update changes nothing.

    ``toggle`` flips completion; an explicit ``isCompleted`` wins over it.
    """
    task = await service.update_task(
        task_id,
        user_id,
        title=body.title,
        completed=body.is_completed,
        toggle=body.toggle,
        active=body.is_active,
        sort_order=body.sort_order,
    )
    return task.to_api()


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, bool]:
    await service.delete_task(task_id, user_id)
    return {"success": True}


@router.post("/{task_id}/reorder")
async def reorder_task(
    task_id: str,
    body: TaskReorder,
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    task = await service.reorder(task_id, user_id, body.sort_order)
    return task.to_api()


@router.post("/{task_id}/move")
async def move_task(
    task_id: str,
    body: TaskMove,
    user_id: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    """Drop a task at a position in the active or master list."""
    task = await service.move(task_id, user_id, body.is_active, body.index)
    return task.to_api()
