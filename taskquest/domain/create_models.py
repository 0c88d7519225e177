"""Pydantic models for creating records in database."""

from pydantic import BaseModel, Field, field_validator

from taskquest.domain.task import TaskCategory, TaskPriority


class TaskCreate(BaseModel):
    """Fields accepted when creating a task.

    Missing category, priority, emoji and color are filled in from the random
    pools at creation time.
    """

    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    category: TaskCategory | None = Field(default=None, description="Task category")
    priority: TaskPriority | None = Field(default=None, description="Task priority")
    emoji: str | None = Field(default=None, description="Decorative emoji")
    color: str | None = Field(default=None, description="Decorative hex color")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    estimated_time: int | None = Field(default=None, ge=1, description="Estimated minutes")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Titles must contain something other than whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v
