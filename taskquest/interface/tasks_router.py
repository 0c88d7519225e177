"""HTTP queries and mutations for tasks and stats."""

import logging
from enum import StrEnum
from typing import Literal

from fastapi import APIRouter, Query, status

from taskquest.core.errors import StatsNotFoundError
from taskquest.domain.create_models import TaskCreate
from taskquest.domain.stats import UserStats
from taskquest.domain.task import Task, TaskCategory, TaskPriority
from taskquest.domain.update_models import TaskUpdate
from taskquest.modules.tasks import analytics, lifecycle, service
from taskquest.modules.tasks.query_view import Dashboard, SortKey, build_dashboard


logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])


class TaskStatusFilter(StrEnum):
    """Which slice of a user's tasks to list."""

    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"


_COMPLETION_FILTER: dict[TaskStatusFilter, bool | None] = {
    TaskStatusFilter.ALL: None,
    TaskStatusFilter.COMPLETED: True,
    TaskStatusFilter.PENDING: False,
}


@router.get("/users/{user_id}/tasks")
async def list_tasks(
    user_id: str,
    status_filter: TaskStatusFilter = Query(default=TaskStatusFilter.ALL, alias="status"),
) -> list[Task]:
    """List a user's tasks, newest first."""
    return await service.list_user_tasks(user_id=user_id, is_completed=_COMPLETION_FILTER[status_filter])


@router.get("/users/{user_id}/stats")
async def get_stats(user_id: str) -> UserStats:
    """Return the user's gamification stats."""
    stats = await analytics.get_stats(user_id=user_id)
    if stats is None:
        raise StatsNotFoundError(user_id)
    return stats


@router.get("/users/{user_id}/dashboard")
async def get_dashboard(
    user_id: str,
    query: str = "",
    category: TaskCategory | Literal["all"] | None = None,
    priority: TaskPriority | Literal["all"] | None = None,
    sort_by: SortKey = SortKey.CREATED,
) -> Dashboard:
    """Filtered task board plus stats panel."""
    return await build_dashboard(user_id=user_id, query=query, category=category, priority=priority, sort_by=sort_by)


@router.post("/users/{user_id}/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(user_id: str, payload: TaskCreate) -> Task:
    """Create a task for the user."""
    return await lifecycle.create_task(user_id=user_id, fields=payload)


@router.post("/users/{user_id}/tasks/random", status_code=status.HTTP_201_CREATED)
async def create_random_task(user_id: str) -> Task:
    """Create a surprise task from the random pools."""
    return await lifecycle.create_random_task(user_id=user_id)


@router.post("/tasks/{task_id}/complete")
async def complete_task(task_id: str) -> Task:
    """Mark a task completed."""
    return await lifecycle.complete_task(task_id=task_id)


@router.post("/tasks/{task_id}/uncomplete")
async def uncomplete_task(task_id: str) -> Task:
    """Mark a task incomplete."""
    return await lifecycle.uncomplete_task(task_id=task_id)


@router.patch("/tasks/{task_id}")
async def update_task(task_id: str, payload: TaskUpdate) -> Task:
    """Patch task fields."""
    return await lifecycle.update_task(task_id=task_id, fields=payload)


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str) -> Task:
    """Delete a task, returning it as it was."""
    return await lifecycle.delete_task(task_id=task_id)
