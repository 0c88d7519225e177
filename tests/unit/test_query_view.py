"""Unit tests for query_view filtering and sorting."""

from datetime import UTC, datetime

import pytest

from taskquest.core.errors import ValidationError
from taskquest.domain.task import TaskCategory, TaskPriority
from taskquest.modules.tasks.query_view import SortKey, available_filters, filter_and_sort_tasks


@pytest.fixture
def board(task_factory):
    """A small mixed task list in creation order."""
    return [
        task_factory(title="Write report", category=TaskCategory.WORK, priority=TaskPriority.URGENT),
        task_factory(
            title="Morning run",
            description="Five km around the park",
            category=TaskCategory.FITNESS,
            priority=TaskPriority.CHILL,
        ),
        task_factory(title="Paint a mural", category=TaskCategory.CREATIVE, priority=TaskPriority.APOCALYPSE),
        task_factory(title="Mystery errand"),
    ]


@pytest.mark.unit
class TestSorting:
    """Tests for the three sort keys."""

    def test_priority_sort_orders_by_rank_descending(self, task_factory):
        tasks = [
            task_factory(priority=TaskPriority.CHILL),
            task_factory(priority=TaskPriority.APOCALYPSE),
            task_factory(priority=TaskPriority.NORMAL),
        ]

        result = filter_and_sort_tasks(tasks, sort_by=SortKey.PRIORITY)

        assert [t.priority for t in result] == [TaskPriority.APOCALYPSE, TaskPriority.NORMAL, TaskPriority.CHILL]

    def test_priority_sort_puts_missing_priority_last(self, board):
        result = filter_and_sort_tasks(board, sort_by="priority")

        assert result[-1].title == "Mystery errand"
        assert result[0].priority == TaskPriority.APOCALYPSE

    def test_category_sort_is_alphabetical_with_missing_first(self, board):
        result = filter_and_sort_tasks(board, sort_by=SortKey.CATEGORY)

        assert [t.category for t in result] == [
            None,
            TaskCategory.CREATIVE,
            TaskCategory.FITNESS,
            TaskCategory.WORK,
        ]

    def test_created_sort_is_newest_first(self, board):
        result = filter_and_sort_tasks(board)

        assert [t.title for t in result] == ["Mystery errand", "Paint a mural", "Morning run", "Write report"]

    def test_created_sort_uses_timestamps_not_input_order(self, task_factory):
        older = task_factory(title="older", created_at=datetime(2025, 1, 1, tzinfo=UTC))
        newer = task_factory(title="newer", created_at=datetime(2026, 1, 1, tzinfo=UTC))

        result = filter_and_sort_tasks([older, newer], sort_by=SortKey.CREATED)

        assert [t.title for t in result] == ["newer", "older"]

    def test_unknown_sort_key_rejected(self, board):
        with pytest.raises(ValidationError, match="Unknown sort key"):
            filter_and_sort_tasks(board, sort_by="alphabet")


@pytest.mark.unit
class TestFiltering:
    """Tests for free-text, category and priority filters."""

    def test_query_matches_title_case_insensitively(self, board):
        result = filter_and_sort_tasks(board, query="REPORT")

        assert [t.title for t in result] == ["Write report"]

    def test_query_matches_description(self, board):
        result = filter_and_sort_tasks(board, query="park")

        assert [t.title for t in result] == ["Morning run"]

    def test_category_filter(self, board):
        result = filter_and_sort_tasks(board, category=TaskCategory.CREATIVE)

        assert [t.title for t in result] == ["Paint a mural"]

    def test_priority_filter_accepts_plain_string(self, board):
        result = filter_and_sort_tasks(board, priority="urgent")

        assert [t.title for t in result] == ["Write report"]

    def test_all_disables_filters(self, board):
        result = filter_and_sort_tasks(board, category="all", priority="all")

        assert len(result) == len(board)

    @pytest.mark.parametrize(
        ("filters", "message"),
        [
            ({"category": "bogus"}, "Unknown category: bogus"),
            ({"priority": "whenever"}, "Unknown priority: whenever"),
            ({"category": "All"}, "Unknown category: All"),
        ],
    )
    def test_unknown_filter_values_rejected(self, board, filters, message):
        with pytest.raises(ValidationError, match=message):
            filter_and_sort_tasks(board, **filters)

    def test_query_is_matched_untrimmed(self, board):
        assert filter_and_sort_tasks(board, query=" report") == [board[0]]
        assert filter_and_sort_tasks(board, query="report ") == []

    def test_filters_combine(self, board):
        assert filter_and_sort_tasks(board, query="run", category=TaskCategory.WORK) == []

    def test_input_is_not_mutated(self, board):
        snapshot = list(board)

        filter_and_sort_tasks(board, sort_by=SortKey.PRIORITY)

        assert board == snapshot


@pytest.mark.unit
class TestAvailableFilters:
    """Tests for available_filters."""

    def test_distinct_values_in_first_seen_order(self, board, task_factory):
        board.append(task_factory(category=TaskCategory.WORK, priority=TaskPriority.CHILL))

        filters = available_filters(board)

        assert filters.categories == [TaskCategory.WORK, TaskCategory.FITNESS, TaskCategory.CREATIVE]
        assert filters.priorities == [TaskPriority.URGENT, TaskPriority.CHILL, TaskPriority.APOCALYPSE]

    def test_empty_list(self):
        filters = available_filters([])

        assert filters.categories == []
        assert filters.priorities == []
