"""SQLite schema management (code-first approach)."""

import logging

from taskquest.core import db_client
from taskquest.domain.task import TaskCategory, TaskPriority


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "tasks",
    "user_stats",
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_by_user ON tasks (user_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_by_user_completed ON tasks (user_id, is_completed)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_by_user_category ON tasks (user_id, category)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_by_user_priority ON tasks (user_id, priority)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_user_stats_by_user ON user_stats (user_id)",
]


def _sql_enum(values: type[TaskCategory] | type[TaskPriority]) -> str:
    return ", ".join(f"'{member.value}'" for member in values)


def _get_table_ddl(*, collection_name: str) -> str:
    """Get the CREATE TABLE statement for a collection.

    A task is completed exactly when it has a completion time, and a
    user's longest streak is never below the current one.

    Raises:
        ValueError: If the collection is not in COLLECTIONS
    """
    if collection_name == "tasks":
        return f"""CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL CHECK (length(trim(title)) > 0),
        description TEXT,
        category TEXT CHECK (category IS NULL OR category IN ({_sql_enum(TaskCategory)})),
        priority TEXT CHECK (priority IS NULL OR priority IN ({_sql_enum(TaskPriority)})),
        emoji TEXT,
        color TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        estimated_time INTEGER CHECK (estimated_time IS NULL OR estimated_time >= 1),
        actual_time INTEGER CHECK (actual_time IS NULL OR actual_time >= 1),
        is_completed INTEGER NOT NULL DEFAULT 0,
        completed_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        streak INTEGER NOT NULL DEFAULT 0,
        last_completed TEXT,
        CHECK ((is_completed = 1) = (completed_at IS NOT NULL)),
        CHECK (updated_at >= created_at)
    )"""

    if collection_name == "user_stats":
        return """CREATE TABLE IF NOT EXISTS user_stats (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        total_tasks_completed INTEGER NOT NULL DEFAULT 0 CHECK (total_tasks_completed >= 0),
        total_tasks_created INTEGER NOT NULL DEFAULT 0 CHECK (total_tasks_created >= 0),
        current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
        longest_streak INTEGER NOT NULL DEFAULT 0,
        last_activity_date TEXT NOT NULL,
        favorite_emoji TEXT,
        level INTEGER NOT NULL DEFAULT 1 CHECK (level >= 1),
        experience INTEGER NOT NULL DEFAULT 0 CHECK (experience >= 0),
        CHECK (longest_streak >= current_streak)
    )"""

    msg = f"Unknown collection: {collection_name}"
    raise ValueError(msg)


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist (idempotent)."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection_name in COLLECTIONS:
        await conn.execute(_get_table_ddl(collection_name=collection_name))
        logger.debug("Ensured table", extra={"table": collection_name})

    for index_ddl in INDEXES:
        await conn.execute(index_ddl)

    logger.info("Database schema initialized", extra={"tables": COLLECTIONS})
