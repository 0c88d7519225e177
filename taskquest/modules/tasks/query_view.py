"""Read side: filtering and sorting of fetched task lists, plus the dashboard snapshot."""

import logging
from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel

from taskquest.core.config import settings
from taskquest.core.errors import ValidationError
from taskquest.core.logging import span
from taskquest.domain.stats import UserStats
from taskquest.domain.task import PRIORITY_RANK, Task, TaskCategory, TaskPriority
from taskquest.modules.tasks import analytics, progress, service


logger = logging.getLogger(__name__)

ALL = "all"


class SortKey(StrEnum):
    """Orderings offered by the task list."""

    CREATED = "created"
    PRIORITY = "priority"
    CATEGORY = "category"


class AvailableFilters(BaseModel):
    """Distinct categories and priorities present in a task list."""

    categories: list[TaskCategory]
    priorities: list[TaskPriority]


class Dashboard(BaseModel):
    """Everything the task board needs in one payload."""

    user_id: str
    tasks: list[Task]
    pending_count: int
    completed_count: int
    completed_tasks: list[Task]
    filters: AvailableFilters
    stats: UserStats | None
    level: progress.LevelProgress | None
    title: progress.Achievement | None
    next_title: progress.Achievement | None
    streaks: progress.StreakAchievements | None


def _choice(enum: type[StrEnum], value: StrEnum | str | None, label: str) -> StrEnum | None:
    """Resolve a filter value; None and "all" mean no filter."""
    if value is None or value == ALL:
        return None
    try:
        return enum(value)
    except ValueError as e:
        raise ValidationError(f"Unknown {label}: {value}") from e


def _matches(task: Task, needle: str, category: StrEnum | None, priority: StrEnum | None) -> bool:
    if needle and needle not in task.title.lower() and needle not in (task.description or "").lower():
        return False
    if category is not None and task.category != category:
        return False
    return priority is None or task.priority == priority


def filter_and_sort_tasks(
    tasks: Iterable[Task],
    *,
    query: str = "",
    category: TaskCategory | str | None = None,
    priority: TaskPriority | str | None = None,
    sort_by: SortKey | str = SortKey.CREATED,
) -> list[Task]:
    """Filter a fetched task list and order it for display.

    Args:
        tasks: Tasks already loaded for one user
        query: Case-insensitive substring matched against title and description
        category: Only keep this category (None or "all" keeps everything)
        priority: Only keep this priority (None or "all" keeps everything)
        sort_by: ``created`` (newest first), ``priority`` (most urgent first)
            or ``category`` (alphabetical); missing values sort lowest

    Returns:
        A new list; the input is not modified

    Raises:
        ValidationError: If the category, priority or sort key is unknown
    """
    category_filter = _choice(TaskCategory, category, "category")
    priority_filter = _choice(TaskPriority, priority, "priority")
    needle = query.lower()
    filtered = [task for task in tasks if _matches(task, needle, category_filter, priority_filter)]

    try:
        key = SortKey(sort_by)
    except ValueError as e:
        raise ValidationError(f"Unknown sort key: {sort_by}") from e

    if key == SortKey.PRIORITY:
        return sorted(filtered, key=lambda t: PRIORITY_RANK.get(t.priority, 0), reverse=True)
    if key == SortKey.CATEGORY:
        return sorted(filtered, key=lambda t: t.category or "")
    return sorted(filtered, key=lambda t: t.created_at, reverse=True)


def available_filters(tasks: Iterable[Task]) -> AvailableFilters:
    """Distinct categories and priorities in first-seen order."""
    categories: dict[TaskCategory, None] = {}
    priorities: dict[TaskPriority, None] = {}
    for task in tasks:
        if task.category:
            categories.setdefault(task.category)
        if task.priority:
            priorities.setdefault(task.priority)
    return AvailableFilters(categories=list(categories), priorities=list(priorities))


async def build_dashboard(
    *,
    user_id: str,
    query: str = "",
    category: TaskCategory | str | None = None,
    priority: TaskPriority | str | None = None,
    sort_by: SortKey | str = SortKey.CREATED,
) -> Dashboard:
    """Assemble the filtered task board, the completed list and the stats panel for a user."""
    with span("query_view.build_dashboard"):
        all_tasks = await service.list_user_tasks(user_id=user_id)
        pending = [task for task in all_tasks if not task.is_completed]
        completed = [task for task in all_tasks if task.is_completed]
        stats = await analytics.get_stats(user_id=user_id)

        logger.debug("Built dashboard for %s (%d pending, %d completed)", user_id, len(pending), len(completed))
        return Dashboard(
            user_id=user_id,
            tasks=filter_and_sort_tasks(all_tasks, query=query, category=category, priority=priority, sort_by=sort_by),
            pending_count=len(pending),
            completed_count=len(completed),
            completed_tasks=completed,
            filters=available_filters(all_tasks),
            stats=stats,
            level=progress.level_progress(stats, experience_per_level=settings.experience_per_level) if stats else None,
            title=progress.current_title(stats.level) if stats else None,
            next_title=progress.next_title(stats.level) if stats else None,
            streaks=progress.streak_achievements(stats.current_streak) if stats else None,
        )
