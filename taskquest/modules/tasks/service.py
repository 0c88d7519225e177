"""Task store: CRUD operations on the tasks table, scoped to a user."""

import logging
from datetime import UTC, datetime
from typing import Any

from taskquest.core import db_client
from taskquest.core.errors import RecordNotFoundError, TaskNotFoundError, ValidationError
from taskquest.core.logging import span
from taskquest.domain.create_models import TaskCreate
from taskquest.domain.task import Task


logger = logging.getLogger(__name__)

COLLECTION = "tasks"


def _now() -> datetime:
    return datetime.now(UTC)


async def create_task(*, user_id: str, task: TaskCreate) -> Task:
    """Insert a new pending task.

    Args:
        user_id: Owning user ID
        task: Validated creation payload

    Returns:
        The stored task

    Raises:
        ValidationError: If the title is empty
        DatabaseError: If the database operation fails
    """
    with span("task_service.create_task"):
        if not task.title.strip():
            raise ValidationError("Title cannot be empty")

        now = _now()
        data: dict[str, Any] = {
            "user_id": user_id,
            **task.model_dump(mode="json"),
            "is_completed": False,
            "created_at": now,
            "updated_at": now,
            "streak": 0,
        }

        record = await db_client.create_record(collection=COLLECTION, data=data)
        logger.info("Created task: %s (user: %s)", task.title, user_id)
        return Task(**record)


async def get_task(*, task_id: str) -> Task:
    """Get task by ID.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    try:
        record = await db_client.get_record(collection=COLLECTION, record_id=task_id)
    except RecordNotFoundError as e:
        raise TaskNotFoundError(task_id) from e
    return Task(**record)


async def list_user_tasks(*, user_id: str, is_completed: bool | None = None) -> list[Task]:
    """List a user's tasks, newest first.

    Args:
        user_id: Owning user ID
        is_completed: Restrict to completed (True) or pending (False) tasks; None for all

    Returns:
        Tasks ordered by creation time, newest first
    """
    with span("task_service.list_user_tasks"):
        where: dict[str, Any] = {"user_id": user_id}
        if is_completed is not None:
            where["is_completed"] = is_completed

        records = await db_client.get_full_list(
            collection=COLLECTION,
            where=where,
            sort="-created_at,-id",
        )

        logger.debug("Retrieved %d tasks matching %s", len(records), where)
        return [Task(**record) for record in records]


async def patch_task(*, task_id: str, data: dict[str, Any]) -> Task:
    """Merge fields into a task and bump its updated_at.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("task_service.patch_task"):
        try:
            record = await db_client.update_record(
                collection=COLLECTION,
                record_id=task_id,
                data={**data, "updated_at": _now()},
            )
        except RecordNotFoundError as e:
            raise TaskNotFoundError(task_id) from e

        logger.debug("Patched task %s fields=%s", task_id, sorted(data))
        return Task(**record)


async def delete_task(*, task_id: str) -> None:
    """Remove a task.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("task_service.delete_task"):
        try:
            await db_client.delete_record(collection=COLLECTION, record_id=task_id)
        except RecordNotFoundError as e:
            raise TaskNotFoundError(task_id) from e

        logger.info("Deleted task %s", task_id)
