"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from taskquest.core import db_client
from taskquest.core.config import settings
from taskquest.modules.tasks.generators import RandomTaskGenerator


logger = logging.getLogger(__name__)


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the application at a throwaway SQLite file."""
    path = tmp_path / "taskquest_test.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(path))
    return path


@pytest.fixture
async def sqlite_db(db_path: Path) -> AsyncIterator[Path]:
    """Provide an initialized database with the tasks schema, closed after the test."""
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def generator() -> RandomTaskGenerator:
    """A deterministic random task generator."""
    return RandomTaskGenerator(seed=1234)
