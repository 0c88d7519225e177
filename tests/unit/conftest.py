"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from taskquest.domain.stats import UserStats
from taskquest.domain.task import Task


BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def task_factory() -> Callable[..., Task]:
    """Build Task objects without touching the database."""
    counter = {"next_id": 1}

    def _create_task(**overrides: Any) -> Task:
        task_id = counter["next_id"]
        counter["next_id"] += 1
        created = BASE_TIME + timedelta(minutes=task_id)
        data: dict[str, Any] = {
            "id": str(task_id),
            "user_id": "user-1",
            "title": f"Task {task_id}",
            "created_at": created,
            "updated_at": created,
        }
        data.update(overrides)
        return Task(**data)

    return _create_task


@pytest.fixture
def fresh_stats() -> UserStats:
    """Stats for a user with no history."""
    return UserStats(id="1", user_id="user-1", last_activity_date=BASE_TIME)
