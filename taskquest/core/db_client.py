"""SQLite database client wrapper with CRUD operations and transactions."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from taskquest.core.config import constants, settings
from taskquest.core.errors import DatabaseError, RecordNotFoundError


logger = logging.getLogger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

__all__ = [
    "DatabaseError",
    "RecordNotFoundError",
    "close_connection",
    "create_record",
    "delete_record",
    "get_connection",
    "get_first_record",
    "get_full_list",
    "get_record",
    "init_db",
    "list_records",
    "parse_filter",
    "transaction",
    "update_record",
]


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not _FIELD_NAME.match(collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert the integer primary key to a string for Pydantic compatibility."""
    converted = record.copy()
    if isinstance(converted.get("id"), int):
        converted["id"] = str(converted["id"])
    return converted


def _serialize_value(value: Any) -> Any:
    """Convert a Python value into something sqlite3 can bind."""
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    if sql_op == "LIKE":
        return f"{field} LIKE ? ESCAPE '\\'", _parse_value(raw_value, is_like=True)

    return f"{field} {sql_op} ?", _parse_value(raw_value)


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports ``field = "value"`` comparisons (=, !=, >, <, >=, <=, ~) joined with
    ``&&`` and parenthesized ``||`` groups.
    """
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def _build_where(filter_query: str, where: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
    """Combine exact-match column bindings with a filter-language query.

    ``where`` values are bound as-is, so free-form values such as user IDs never
    pass through the filter parser's type coercion.
    """
    conditions: list[str] = []
    params: list[Any] = []
    for field, value in (where or {}).items():
        if not _FIELD_NAME.match(field):
            msg = f"Invalid field name: {field}"
            raise ValueError(msg)
        conditions.append(f"{field} = ?")
        params.append(_serialize_value(value))

    if filter_query:
        clause, filter_params = parse_filter(filter_query)
        conditions.append(clause)
        params.extend(filter_params)

    return " AND ".join(conditions), params


def _parse_sort(sort: str) -> str:
    """Translate ``-field,+other`` sort syntax into an ORDER BY clause."""
    terms = []
    for raw_term in sort.split(","):
        term = raw_term.strip()
        if not term:
            continue
        direction = "ASC"
        if term[0] in "+-":
            direction = "DESC" if term[0] == "-" else "ASC"
            term = term[1:]
        if not _FIELD_NAME.match(term):
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return "id ASC"
        terms.append(f"{term} {direction}")
    return ", ".join(terms) or "id ASC"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_write_locks: dict[tuple[int, int, str], asyncio.Lock] = {}
_connection_loops: dict[tuple[int, int, str], asyncio.AbstractEventLoop] = {}
_db_lock = asyncio.Lock()
_active_transaction: ContextVar[aiosqlite.Connection | None] = ContextVar("_active_transaction", default=None)


def _cache_key(db_path: str | None) -> tuple[int, int, str]:
    loop = asyncio.get_running_loop()
    return (threading.get_ident(), id(loop), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path.

    Connections run in autocommit mode; multi-statement atomicity goes through
    :func:`transaction`.
    """
    active = _active_transaction.get()
    if active is not None:
        return active

    loop = asyncio.get_running_loop()
    cache_key = _cache_key(db_path)

    # A new loop can reuse the id of a closed one; its connection is unusable
    if cache_key in _db_connections:
        owner = _connection_loops.get(cache_key)
        if owner is loop and not owner.is_closed():
            return _db_connections[cache_key]
        async with _db_lock:
            _db_connections.pop(cache_key, None)
            _write_locks.pop(cache_key, None)
            _connection_loops.pop(cache_key, None)
        logger.info("Dropped stale SQLite connection", extra={"db_path": cache_key[2]})

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path = get_db_path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path), isolation_level=None)
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn
        _write_locks[cache_key] = asyncio.Lock()
        _connection_loops[cache_key] = loop

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": cache_key[1]},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            _write_locks.pop(cache_key, None)
            _connection_loops.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})


@asynccontextmanager
async def _statement_scope() -> AsyncIterator[aiosqlite.Connection]:
    """Yield a connection, serialized against open transactions unless already inside one."""
    active = _active_transaction.get()
    if active is not None:
        yield active
        return

    conn = await get_connection()
    async with _write_locks[_cache_key(None)]:
        yield conn


@asynccontextmanager
async def transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed db_client calls as one atomic unit of work.

    Commits on normal exit and rolls back if the block raises. Nested use joins
    the outer transaction.

    Usage:
        async with db_client.transaction():
            await db_client.update_record(...)
            await db_client.update_record(...)
    """
    active = _active_transaction.get()
    if active is not None:
        yield active
        return

    conn = await get_connection()
    async with _write_locks[_cache_key(None)]:
        await conn.execute("BEGIN IMMEDIATE")
        token = _active_transaction.set(conn)
        try:
            yield conn
        except BaseException:
            await conn.execute("ROLLBACK")
            logger.warning("Transaction rolled back")
            raise
        else:
            await conn.execute("COMMIT")
        finally:
            _active_transaction.reset(token)


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from taskquest.core import schema

    await schema.init_db(db_path=db_path)


def _row_to_record(cursor: aiosqlite.Cursor, row: Any) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


async def _fetch_record(conn: aiosqlite.Connection, collection: str, record_id: str) -> dict[str, Any]:
    query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    cursor = await conn.execute(query, (int(record_id),))
    row = await cursor.fetchone()

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    return _row_to_record(cursor, row)


def _is_valid_id(record_id: str) -> bool:
    return str(record_id).isdigit()


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_collection_name(collection)
    try:
        async with _statement_scope() as conn:
            columns = list(data.keys())
            columns_str = ", ".join(columns)
            placeholders_str = ", ".join("?" for _ in columns)
            values = [_serialize_value(data[key]) for key in columns]

            query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
            cursor = await conn.execute(query, values)
            record = await _fetch_record(conn, collection, str(cursor.lastrowid))

        logger.info("Created record", extra={"collection": collection, "record_id": record["id"]})
        return record
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            logger.error("Table not found", extra={"collection": collection})
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not _is_valid_id(record_id):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    try:
        async with _statement_scope() as conn:
            record = await _fetch_record(conn, collection, record_id)

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return record
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    if not _is_valid_id(record_id):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    try:
        async with _statement_scope() as conn:
            set_clause = ", ".join(f"{key} = ?" for key in data)
            values = [_serialize_value(val) for val in data.values()]
            values.append(int(record_id))

            query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
            cursor = await conn.execute(query, values)
            if cursor.rowcount == 0:
                msg = f"Record not found in {collection}: {record_id}"
                raise RecordNotFoundError(msg)
            record = await _fetch_record(conn, collection, record_id)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return record
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not _is_valid_id(record_id):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    try:
        async with _statement_scope() as conn:
            query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
            cursor = await conn.execute(query, (int(record_id),))

            if cursor.rowcount == 0:
                msg = f"Record not found in {collection}: {record_id}"
                raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    where: Mapping[str, Any] | None = None,
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination.

    ``where`` maps column names to values that must match exactly; it is ANDed
    with ``filter_query``. ``sort`` takes comma-separated field names, each
    optionally prefixed with ``-`` (descending) or ``+`` (ascending).
    """
    _validate_collection_name(collection)
    try:
        where_clause, params = _build_where(filter_query, where)
        if where_clause:
            where_clause = f"WHERE {where_clause}"

        order_by = _parse_sort(sort) if sort else "id ASC"
        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        async with _statement_scope() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            records = [_row_to_record(cursor, row) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_full_list(
    *,
    collection: str,
    filter_query: str = "",
    where: Mapping[str, Any] | None = None,
    sort: str = "",
    batch_size: int = constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """Return every record matching the filter by draining pages of ``batch_size``."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=batch_size,
            filter_query=filter_query,
            where=where,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < batch_size:
            return records
        page += 1


async def get_first_record(
    *,
    collection: str,
    filter_query: str = "",
    where: Mapping[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Return the first record matching the filter and exact-match bindings, or None."""
    _validate_collection_name(collection)
    try:
        where_clause, params = _build_where(filter_query, where)

        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
            params = []

        async with _statement_scope() as conn:
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
            if row is None:
                return None
            record = _row_to_record(cursor, row)

        logger.debug("Retrieved first record", extra={"collection": collection})
        return record
    except Exception as e:
        logger.error(
            "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise DatabaseError(msg) from e
