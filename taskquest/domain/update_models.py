"""Update models for database operations."""

from pydantic import BaseModel, Field, field_validator

from taskquest.domain.task import TaskCategory, TaskPriority


class TaskUpdate(BaseModel):
    """Partial update payload for a task; only explicitly set fields are applied."""

    title: str | None = None
    description: str | None = None
    category: TaskCategory | None = None
    priority: TaskPriority | None = None
    estimated_time: int | None = Field(default=None, ge=1)
    actual_time: int | None = Field(default=None, ge=1)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """A title may be changed but never blanked."""
        if v is None:
            raise ValueError("Title cannot be removed")
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    def to_patch(self) -> dict[str, object]:
        """Return only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True, mode="json")
