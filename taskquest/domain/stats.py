"""Per-user gamification stats models."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class UserStats(BaseModel):
    """Per-user gamification counters derived from task lifecycle events."""

    id: str | None = Field(default=None, description="Row ID, None until persisted")
    user_id: str = Field(..., description="Owning user ID")
    total_tasks_completed: int = Field(default=0, ge=0)
    total_tasks_created: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0, description="Completions across the user's tasks")
    longest_streak: int = Field(default=0, ge=0, description="Highest current_streak ever reached")
    last_activity_date: datetime = Field(..., description="Timestamp of the last recorded activity")
    favorite_emoji: str | None = Field(default=None)
    level: int = Field(default=1, ge=1)
    experience: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_longest_streak(self) -> "UserStats":
        """The longest streak can never trail the current one."""
        if self.longest_streak < self.current_streak:
            msg = f"longest_streak ({self.longest_streak}) < current_streak ({self.current_streak})"
            raise ValueError(msg)
        return self
