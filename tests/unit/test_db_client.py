"""Unit tests for the SQLite db_client against a temporary database."""

import asyncio

import pytest

from taskquest.core import db_client
from taskquest.core.db_client import DatabaseError, RecordNotFoundError, parse_filter


def _task_row(**overrides):
    row = {
        "user_id": "user-1",
        "title": "Row",
        "created_at": "2026-01-01T00:00:00.000000+00:00",
        "updated_at": "2026-01-01T00:00:00.000000+00:00",
    }
    row.update(overrides)
    return row


@pytest.mark.unit
class TestParseFilter:
    """Tests for the filter language."""

    def test_empty(self):
        assert parse_filter("") == ("", [])

    def test_and_conditions(self):
        clause, params = parse_filter('user_id = "abc" && is_completed = "true"')

        assert clause == "user_id = ? AND is_completed = ?"
        assert params == ["abc", True]

    def test_or_group(self):
        clause, params = parse_filter('(priority = "urgent" || priority = "apocalypse")')

        assert clause == "(priority = ? OR priority = ?)"
        assert params == ["urgent", "apocalypse"]

    def test_comparison_operators(self):
        clause, params = parse_filter('streak >= "2" && streak != "5"')

        assert clause == "streak >= ? AND streak != ?"
        assert params == [2, 5]

    def test_like_escapes_wildcards(self):
        clause, params = parse_filter('title ~ "100%"')

        assert clause.startswith("title LIKE ?")
        assert params == ["%100\\%%"]

    def test_invalid_syntax(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            parse_filter("title is great")


@pytest.mark.unit
class TestCrud:
    """Tests for record CRUD."""

    async def test_create_and_get(self, sqlite_db):
        created = await db_client.create_record(collection="tasks", data=_task_row(tags=["a"]))

        fetched = await db_client.get_record(collection="tasks", record_id=created["id"])

        assert isinstance(created["id"], str)
        assert fetched["title"] == "Row"
        assert fetched["tags"] == '["a"]'

    async def test_get_missing(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="12345")

    async def test_non_numeric_id_is_not_found(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="not-an-id")

    async def test_update(self, sqlite_db):
        created = await db_client.create_record(collection="tasks", data=_task_row())

        updated = await db_client.update_record(collection="tasks", record_id=created["id"], data={"title": "New"})

        assert updated["title"] == "New"

    async def test_update_missing(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.update_record(collection="tasks", record_id="999", data={"title": "x"})

    async def test_update_empty_payload(self, sqlite_db):
        with pytest.raises(ValueError, match="Empty update payload"):
            await db_client.update_record(collection="tasks", record_id="1", data={})

    async def test_delete(self, sqlite_db):
        created = await db_client.create_record(collection="tasks", data=_task_row())

        await db_client.delete_record(collection="tasks", record_id=created["id"])

        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id=created["id"])

    async def test_delete_missing(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.delete_record(collection="tasks", record_id="999")

    async def test_constraint_violation_is_database_error(self, sqlite_db):
        with pytest.raises(DatabaseError, match="Failed to create record"):
            await db_client.create_record(collection="tasks", data=_task_row(priority="whenever"))

    async def test_invalid_collection_name(self, sqlite_db):
        with pytest.raises(ValueError, match="Invalid collection name"):
            await db_client.get_record(collection="tasks; DROP TABLE tasks", record_id="1")

    async def test_missing_table(self, db_path):
        try:
            with pytest.raises(DatabaseError, match="does not exist"):
                await db_client.create_record(collection="nowhere", data={"a": 1})
        finally:
            await db_client.close_connection()


@pytest.mark.unit
class TestListing:
    """Tests for list_records, get_full_list and get_first_record."""

    async def test_filter_and_multi_key_sort(self, sqlite_db):
        for title, user in [("a", "u1"), ("b", "u2"), ("c", "u1")]:
            await db_client.create_record(collection="tasks", data=_task_row(title=title, user_id=user))

        records = await db_client.list_records(collection="tasks", filter_query='user_id = "u1"', sort="-created_at,-id")

        assert [r["title"] for r in records] == ["c", "a"]

    async def test_where_binds_values_without_coercion(self, sqlite_db):
        await db_client.create_record(collection="tasks", data=_task_row(title="zeros", user_id="007"))
        await db_client.create_record(collection="tasks", data=_task_row(title="seven", user_id="7"))
        await db_client.create_record(collection="tasks", data=_task_row(title="slash", user_id="dom\\user"))

        zeros = await db_client.get_full_list(collection="tasks", where={"user_id": "007"})
        slash = await db_client.get_first_record(collection="tasks", where={"user_id": "dom\\user"})

        assert [r["title"] for r in zeros] == ["zeros"]
        assert slash["title"] == "slash"

    async def test_where_combines_with_filter(self, sqlite_db):
        await db_client.create_record(collection="tasks", data=_task_row(title="keep", user_id="u1", streak=3))
        await db_client.create_record(collection="tasks", data=_task_row(title="low", user_id="u1", streak=0))
        await db_client.create_record(collection="tasks", data=_task_row(title="other", user_id="u2", streak=3))

        records = await db_client.list_records(collection="tasks", where={"user_id": "u1"}, filter_query='streak > "1"')

        assert [r["title"] for r in records] == ["keep"]

    async def test_where_rejects_bad_field_name(self, sqlite_db):
        with pytest.raises(DatabaseError, match="Invalid field name"):
            await db_client.list_records(collection="tasks", where={"user_id = user_id OR 1": "x"})

    async def test_pagination_and_full_list(self, sqlite_db):
        for i in range(7):
            await db_client.create_record(collection="tasks", data=_task_row(title=f"t{i}"))

        page_two = await db_client.list_records(collection="tasks", page=2, per_page=3, sort="+id")
        everything = await db_client.get_full_list(collection="tasks", sort="id", batch_size=3)

        assert [r["title"] for r in page_two] == ["t3", "t4", "t5"]
        assert len(everything) == 7

    async def test_invalid_sort_falls_back_to_id(self, sqlite_db):
        await db_client.create_record(collection="tasks", data=_task_row(title="only"))

        records = await db_client.list_records(collection="tasks", sort="id; DROP TABLE tasks")

        assert [r["title"] for r in records] == ["only"]

    async def test_get_first_record(self, sqlite_db):
        await db_client.create_record(collection="tasks", data=_task_row(title="first", user_id="u9"))
        await db_client.create_record(collection="tasks", data=_task_row(title="second", user_id="u9"))

        record = await db_client.get_first_record(collection="tasks", filter_query='user_id = "u9"')
        missing = await db_client.get_first_record(collection="tasks", filter_query='user_id = "nobody"')

        assert record["title"] == "first"
        assert missing is None


@pytest.mark.unit
class TestConnectionCache:
    """Tests for get_connection caching."""

    async def test_reuses_connection_within_loop(self, sqlite_db):
        assert await db_client.get_connection() is await db_client.get_connection()

    async def test_connection_from_closed_loop_is_replaced(self, db_path):
        dead_loop = asyncio.new_event_loop()
        dead_loop.close()
        cache_key = db_client._cache_key(None)
        stale = object()
        db_client._db_connections[cache_key] = stale
        db_client._connection_loops[cache_key] = dead_loop

        try:
            conn = await db_client.get_connection()

            assert conn is not stale
            assert db_client._connection_loops[cache_key] is asyncio.get_running_loop()
        finally:
            await db_client.close_connection()


@pytest.mark.unit
class TestTransaction:
    """Tests for transaction()."""

    async def test_commit(self, sqlite_db):
        async with db_client.transaction():
            first = await db_client.create_record(collection="tasks", data=_task_row(title="one"))
            await db_client.create_record(collection="tasks", data=_task_row(title="two"))

        assert (await db_client.get_record(collection="tasks", record_id=first["id"]))["title"] == "one"
        assert len(await db_client.get_full_list(collection="tasks")) == 2

    async def test_rollback_on_error(self, sqlite_db):
        with pytest.raises(RuntimeError, match="boom"):
            async with db_client.transaction():
                await db_client.create_record(collection="tasks", data=_task_row(title="doomed"))
                raise RuntimeError("boom")

        assert await db_client.get_full_list(collection="tasks") == []

    async def test_nested_transaction_joins_outer(self, sqlite_db):
        with pytest.raises(RuntimeError):
            async with db_client.transaction():
                async with db_client.transaction():
                    await db_client.create_record(collection="tasks", data=_task_row(title="inner"))
                raise RuntimeError("outer fails")

        assert await db_client.get_full_list(collection="tasks") == []

    async def test_concurrent_transactions_are_serialized(self, sqlite_db):
        created = await db_client.create_record(collection="tasks", data=_task_row(streak=0))

        async def bump() -> None:
            async with db_client.transaction():
                record = await db_client.get_record(collection="tasks", record_id=created["id"])
                await asyncio.sleep(0)
                await db_client.update_record(
                    collection="tasks", record_id=created["id"], data={"streak": record["streak"] + 1}
                )

        await asyncio.gather(*(bump() for _ in range(5)))

        final = await db_client.get_record(collection="tasks", record_id=created["id"])
        assert final["streak"] == 5
