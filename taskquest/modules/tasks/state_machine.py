"""Pure state transition and stats reduction functions for the task lifecycle.

Nothing in this module touches the database: callers read the current task and
stats, ask this module for the next values, and write them back inside a
single transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from taskquest.core.config import Settings, settings
from taskquest.domain.stats import UserStats
from taskquest.domain.task import Task, TaskState


logger = logging.getLogger(__name__)


class LifecycleEvent(StrEnum):
    """Events that move a task through its lifecycle."""

    CREATED = "created"
    COMPLETED = "completed"
    UNCOMPLETED = "uncompleted"
    UPDATED = "updated"
    DELETED = "deleted"


class InvalidTransitionError(ValueError):
    """Raised when an event is not allowed from the task's current state."""


# Completing an already completed task is allowed and counts again
TRANSITIONS: dict[TaskState, dict[LifecycleEvent, TaskState]] = {
    TaskState.PENDING: {
        LifecycleEvent.COMPLETED: TaskState.COMPLETED,
        LifecycleEvent.UNCOMPLETED: TaskState.PENDING,
        LifecycleEvent.UPDATED: TaskState.PENDING,
        LifecycleEvent.DELETED: TaskState.DELETED,
    },
    TaskState.COMPLETED: {
        LifecycleEvent.COMPLETED: TaskState.COMPLETED,
        LifecycleEvent.UNCOMPLETED: TaskState.PENDING,
        LifecycleEvent.UPDATED: TaskState.COMPLETED,
        LifecycleEvent.DELETED: TaskState.DELETED,
    },
    TaskState.DELETED: {},
}


@dataclass(frozen=True)
class GamificationRules:
    """Tunable numbers behind experience, levels and reversal."""

    experience_per_completion: int = 10
    experience_per_level: int = 100
    reversal_enabled: bool = False

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "GamificationRules":
        """Build rules from application settings (read at call time)."""
        config = config or settings
        return cls(
            experience_per_completion=config.experience_per_completion,
            experience_per_level=config.experience_per_level,
            reversal_enabled=config.stats_reversal_enabled,
        )


def next_state(*, current: TaskState, event: LifecycleEvent) -> TaskState:
    """Return the state reached by applying ``event`` to a task in ``current``."""
    allowed = TRANSITIONS.get(current, {})
    if event not in allowed:
        msg = f"Cannot apply {event} to a task in {current} state"
        raise InvalidTransitionError(msg)
    return allowed[event]


def completion_patch(task: Task, *, now: datetime) -> dict[str, Any]:
    """Fields written to a task when it is completed."""
    next_state(current=task.state, event=LifecycleEvent.COMPLETED)
    return {
        "is_completed": True,
        "completed_at": now,
        "streak": task.streak + 1,
        "last_completed": now,
    }


def uncompletion_patch(task: Task) -> dict[str, Any]:
    """Fields written to a task when it is marked incomplete."""
    next_state(current=task.state, event=LifecycleEvent.UNCOMPLETED)
    return {"is_completed": False, "completed_at": None}


def level_for_experience(experience: int, *, experience_per_level: int = 100) -> int:
    """Level reached with ``experience`` points; everyone starts at level 1."""
    return experience // experience_per_level + 1


def new_stats(*, user_id: str, now: datetime) -> UserStats:
    """A zeroed stats record for a user who has no history yet."""
    return UserStats(user_id=user_id, last_activity_date=now)


def _apply_completion(stats: UserStats, rules: GamificationRules) -> dict[str, Any]:
    experience = stats.experience + rules.experience_per_completion
    current_streak = stats.current_streak + 1
    return {
        "experience": experience,
        "level": level_for_experience(experience, experience_per_level=rules.experience_per_level),
        "current_streak": current_streak,
        "longest_streak": max(stats.longest_streak, current_streak),
        "total_tasks_completed": stats.total_tasks_completed + 1,
    }


def _reverse_completion(stats: UserStats, rules: GamificationRules) -> dict[str, Any]:
    experience = max(0, stats.experience - rules.experience_per_completion)
    return {
        "experience": experience,
        "level": level_for_experience(experience, experience_per_level=rules.experience_per_level),
        "current_streak": max(0, stats.current_streak - 1),
        "total_tasks_completed": max(0, stats.total_tasks_completed - 1),
    }


def reduce_stats(
    stats: UserStats,
    event: LifecycleEvent,
    *,
    now: datetime,
    rules: GamificationRules | None = None,
    task_was_completed: bool = False,
) -> UserStats:
    """Fold one lifecycle event into a user's stats.

    Args:
        stats: Stats before the event
        event: The lifecycle event being applied
        now: Timestamp recorded as the last activity
        rules: Experience and reversal rules (defaults to application settings)
        task_was_completed: Whether the affected task was completed before the
            event; only consulted when reversal is enabled

    Returns:
        New stats; ``stats`` itself when the event does not touch the aggregate
    """
    rules = rules or GamificationRules.from_settings()
    update: dict[str, Any] = {}

    if event == LifecycleEvent.CREATED:
        update["total_tasks_created"] = stats.total_tasks_created + 1
    elif event == LifecycleEvent.COMPLETED:
        update.update(_apply_completion(stats, rules))
    elif event == LifecycleEvent.DELETED:
        update["total_tasks_created"] = max(0, stats.total_tasks_created - 1)
        if rules.reversal_enabled and task_was_completed:
            update.update(_reverse_completion(stats, rules))
    elif event == LifecycleEvent.UNCOMPLETED:
        if not (rules.reversal_enabled and task_was_completed):
            return stats
        update.update(_reverse_completion(stats, rules))
    else:
        return stats

    update["last_activity_date"] = now
    return stats.model_copy(update=update)
