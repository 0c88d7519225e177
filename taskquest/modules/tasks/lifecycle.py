"""Task lifecycle: each mutation writes the task and the user's stats atomically.

Every public function here opens one ``db_client.transaction()``. If the stats
write fails the task write is rolled back with it, so a task can never be
completed without the matching experience being recorded.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from taskquest.core import db_client
from taskquest.core.errors import ValidationError
from taskquest.core.logging import log_with_user_context, span
from taskquest.domain.create_models import TaskCreate
from taskquest.domain.task import Task
from taskquest.domain.update_models import TaskUpdate
from taskquest.modules.tasks import analytics, service, state_machine
from taskquest.modules.tasks.generators import RandomTaskGenerator, get_generator
from taskquest.modules.tasks.state_machine import GamificationRules, LifecycleEvent


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _now() -> datetime:
    return datetime.now(UTC)


def _validate(model: type[ModelT], fields: ModelT | Mapping[str, Any]) -> ModelT:
    """Coerce caller input into ``model``, converting pydantic failures into ValidationError."""
    if isinstance(fields, model):
        return fields
    try:
        return model.model_validate(dict(fields))
    except PydanticValidationError as e:
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ValidationError(details) from e


async def _create(*, user_id: str, payload: TaskCreate, rules: GamificationRules | None) -> Task:
    async with db_client.transaction():
        task = await service.create_task(user_id=user_id, task=payload)
        await analytics.on_task_created(user_id=user_id, rules=rules)
    log_with_user_context(logger, "info", "Task created", user_id=user_id, task_id=task.id)
    return task


async def create_task(
    *,
    user_id: str,
    fields: TaskCreate | Mapping[str, Any],
    generator: RandomTaskGenerator | None = None,
    rules: GamificationRules | None = None,
) -> Task:
    """Create a pending task and count it in the user's stats.

    Args:
        user_id: Owning user ID
        fields: Task fields; missing emoji, color, category and priority are randomized
        generator: Random source for the decorations (defaults to the shared one)
        rules: Gamification rules (defaults to application settings)

    Returns:
        The created task

    Raises:
        ValidationError: If the title is empty or a field is invalid
    """
    with span("task_lifecycle.create_task"):
        payload = _validate(TaskCreate, fields)
        payload = (generator or get_generator()).fill_defaults(payload)
        return await _create(user_id=user_id, payload=payload, rules=rules)


async def create_random_task(
    *,
    user_id: str,
    generator: RandomTaskGenerator | None = None,
    rules: GamificationRules | None = None,
) -> Task:
    """Create a task drawn entirely from the random pools."""
    with span("task_lifecycle.create_random_task"):
        payload = (generator or get_generator()).random_task()
        return await _create(user_id=user_id, payload=payload, rules=rules)


async def complete_task(*, task_id: str, rules: GamificationRules | None = None) -> Task:
    """Mark a task completed, bump its streak and award the user experience.

    Completing an already completed task counts again.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("task_lifecycle.complete_task"):
        async with db_client.transaction():
            task = await service.get_task(task_id=task_id)
            updated = await service.patch_task(
                task_id=task_id,
                data=state_machine.completion_patch(task, now=_now()),
            )
            await analytics.on_task_completed(user_id=task.user_id, rules=rules)

        log_with_user_context(logger, "info", "Task completed", user_id=task.user_id, task_id=task_id)
        return updated


async def uncomplete_task(*, task_id: str, rules: GamificationRules | None = None) -> Task:
    """Move a task back to pending. Repeating it is harmless.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("task_lifecycle.uncomplete_task"):
        async with db_client.transaction():
            task = await service.get_task(task_id=task_id)
            updated = await service.patch_task(task_id=task_id, data=state_machine.uncompletion_patch(task))
            await analytics.on_task_uncompleted(
                user_id=task.user_id,
                task_was_completed=task.is_completed,
                rules=rules,
            )

        log_with_user_context(logger, "info", "Task marked incomplete", user_id=task.user_id, task_id=task_id)
        return updated


async def update_task(*, task_id: str, fields: TaskUpdate | Mapping[str, Any]) -> Task:
    """Patch the listed fields of a task. Stats are untouched.

    Raises:
        ValidationError: If a field is invalid
        TaskNotFoundError: If the task does not exist
    """
    with span("task_lifecycle.update_task"):
        payload = _validate(TaskUpdate, fields)
        async with db_client.transaction():
            task = await service.get_task(task_id=task_id)
            state_machine.next_state(current=task.state, event=LifecycleEvent.UPDATED)
            updated = await service.patch_task(task_id=task_id, data=payload.to_patch())

        log_with_user_context(logger, "info", "Task updated", user_id=task.user_id, task_id=task_id)
        return updated


async def delete_task(*, task_id: str, rules: GamificationRules | None = None) -> Task:
    """Delete a task and uncount it from the user's stats.

    Returns:
        The task as it was just before deletion

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("task_lifecycle.delete_task"):
        async with db_client.transaction():
            task = await service.get_task(task_id=task_id)
            state_machine.next_state(current=task.state, event=LifecycleEvent.DELETED)
            await service.delete_task(task_id=task_id)
            await analytics.on_task_deleted(
                user_id=task.user_id,
                task_was_completed=task.is_completed,
                rules=rules,
            )

        log_with_user_context(logger, "info", "Task deleted", user_id=task.user_id, task_id=task_id)
        return task
