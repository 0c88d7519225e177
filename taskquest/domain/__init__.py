"""Domain models and DTOs."""

from taskquest.domain.create_models import TaskCreate
from taskquest.domain.stats import UserStats
from taskquest.domain.task import PRIORITY_RANK, Task, TaskCategory, TaskPriority, TaskState
from taskquest.domain.update_models import TaskUpdate


__all__ = [
    "PRIORITY_RANK",
    "Task",
    "TaskCategory",
    "TaskCreate",
    "TaskPriority",
    "TaskState",
    "TaskUpdate",
    "UserStats",
]
