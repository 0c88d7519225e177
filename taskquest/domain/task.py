"""Task domain models and enums."""

import json
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class TaskCategory(StrEnum):
    """What area of life a task belongs to."""

    WORK = "work"
    PERSONAL = "personal"
    FITNESS = "fitness"
    CREATIVE = "creative"
    LEARNING = "learning"
    RANDOM = "random"
    CRAZY = "crazy"


class TaskPriority(StrEnum):
    """How loudly a task is screaming for attention."""

    CHILL = "chill"
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"
    APOCALYPSE = "apocalypse"


class TaskState(StrEnum):
    """Task lifecycle state."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    DELETED = "DELETED"


# Higher rank sorts first; unknown priorities rank 0
PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.APOCALYPSE: 5,
    TaskPriority.EMERGENCY: 4,
    TaskPriority.URGENT: 3,
    TaskPriority.NORMAL: 2,
    TaskPriority.CHILL: 1,
}


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    user_id: str = Field(..., description="Owning user ID")
    title: str = Field(..., min_length=1, description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    category: TaskCategory | None = Field(default=None, description="Task category")
    priority: TaskPriority | None = Field(default=None, description="Task priority")
    emoji: str | None = Field(default=None, description="Decorative emoji")
    color: str | None = Field(default=None, description="Decorative hex color")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    estimated_time: int | None = Field(default=None, ge=1, description="Estimated minutes")
    actual_time: int | None = Field(default=None, ge=1, description="Actual minutes spent")
    is_completed: bool = Field(default=False, description="Whether the task is completed")
    completed_at: datetime | None = Field(default=None, description="Completion timestamp, set iff completed")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    streak: int = Field(default=0, ge=0, description="Consecutive completions of this task")
    last_completed: datetime | None = Field(default=None, description="Most recent completion timestamp")

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: object) -> object:
        """Accept the JSON text stored in SQLite as well as plain lists."""
        if v is None:
            return []
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v

    @field_validator("streak", mode="before")
    @classmethod
    def default_streak(cls, v: object) -> object:
        """Treat a missing streak as zero."""
        return 0 if v is None else v

    @property
    def state(self) -> TaskState:
        """Current lifecycle state derived from the completion flag."""
        return TaskState.COMPLETED if self.is_completed else TaskState.PENDING
