"""Stats aggregate: the single user_stats record per user.

Every update is computed by :func:`state_machine.reduce_stats` and only the
changed columns are written back. Callers run these functions inside the same
transaction as the task write they accompany.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from taskquest.core import db_client
from taskquest.core.logging import log_with_user_context, span
from taskquest.domain.stats import UserStats
from taskquest.modules.tasks.state_machine import GamificationRules, LifecycleEvent, new_stats, reduce_stats


logger = logging.getLogger(__name__)

COLLECTION = "user_stats"


def _now() -> datetime:
    return datetime.now(UTC)


def _changed_fields(before: UserStats, after: UserStats) -> dict[str, Any]:
    old = before.model_dump(exclude={"id", "user_id"})
    return {key: value for key, value in after.model_dump(exclude={"id", "user_id"}).items() if old[key] != value}


async def get_stats(*, user_id: str) -> UserStats | None:
    """Return the user's stats record, or None if they have never created a task."""
    record = await db_client.get_first_record(
        collection=COLLECTION,
        where={"user_id": user_id},
    )
    return UserStats(**record) if record else None


async def ensure_stats(*, user_id: str) -> UserStats:
    """Return the user's stats, creating a zeroed record first if needed (idempotent)."""
    with span("stats_aggregate.ensure_stats"):
        existing = await get_stats(user_id=user_id)
        if existing is not None:
            return existing

        fresh = new_stats(user_id=user_id, now=_now())
        record = await db_client.create_record(collection=COLLECTION, data=fresh.model_dump(exclude={"id"}))
        log_with_user_context(logger, "info", "Created stats record", user_id=user_id)
        return UserStats(**record)


async def apply_event(
    *,
    user_id: str,
    event: LifecycleEvent,
    task_was_completed: bool = False,
    rules: GamificationRules | None = None,
) -> UserStats | None:
    """Fold a lifecycle event into the user's stats and persist the changes.

    Creation events create the record when missing. Other events leave a
    missing record alone and return None.
    """
    with span(f"stats_aggregate.{event}"):
        if event == LifecycleEvent.CREATED:
            current = await ensure_stats(user_id=user_id)
        else:
            current = await get_stats(user_id=user_id)
            if current is None:
                log_with_user_context(
                    logger, "warning", "No stats record to update", user_id=user_id, lifecycle_event=str(event)
                )
                return None

        updated = reduce_stats(current, event, now=_now(), rules=rules, task_was_completed=task_was_completed)
        changes = _changed_fields(current, updated)
        if not changes:
            return current

        record = await db_client.update_record(collection=COLLECTION, record_id=str(current.id), data=changes)
        log_with_user_context(
            logger,
            "debug",
            "Applied lifecycle event to stats",
            user_id=user_id,
            lifecycle_event=str(event),
            fields=sorted(changes),
        )
        return UserStats(**record)


async def on_task_created(*, user_id: str, rules: GamificationRules | None = None) -> UserStats | None:
    """Count a newly created task."""
    return await apply_event(user_id=user_id, event=LifecycleEvent.CREATED, rules=rules)


async def on_task_completed(*, user_id: str, rules: GamificationRules | None = None) -> UserStats | None:
    """Award experience and extend the user's streak."""
    return await apply_event(user_id=user_id, event=LifecycleEvent.COMPLETED, rules=rules)


async def on_task_uncompleted(
    *, user_id: str, task_was_completed: bool, rules: GamificationRules | None = None
) -> UserStats | None:
    """No-op unless reversal is enabled, in which case the completion reward is taken back."""
    return await apply_event(
        user_id=user_id,
        event=LifecycleEvent.UNCOMPLETED,
        task_was_completed=task_was_completed,
        rules=rules,
    )


async def on_task_deleted(
    *, user_id: str, task_was_completed: bool = False, rules: GamificationRules | None = None
) -> UserStats | None:
    """Uncount a deleted task."""
    return await apply_event(
        user_id=user_id,
        event=LifecycleEvent.DELETED,
        task_was_completed=task_was_completed,
        rules=rules,
    )
