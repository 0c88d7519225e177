"""End-to-end tests for the tasks HTTP API against a temporary database."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from taskquest.main import app


@pytest.fixture
def client(db_path) -> Iterator[TestClient]:
    """A client whose lifespan initializes the temporary database."""
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient, user_id: str = "user-1", **fields) -> dict:
    response = client.post(f"/users/{user_id}/tasks", json={"title": "Test", **fields})
    assert response.status_code == 201
    return response.json()


@pytest.mark.integration
class TestTaskEndpoints:
    """Tests for task creation, listing and mutation."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_create_returns_pending_task(self, client):
        task = _create(client, category="learning", estimated_time=15)

        assert task["is_completed"] is False
        assert task["completed_at"] is None
        assert task["category"] == "learning"
        assert task["estimated_time"] == 15
        assert task["emoji"]
        assert task["priority"]

    def test_blank_title_rejected(self, client):
        response = client.post("/users/user-1/tasks", json={"title": "   "})

        assert response.status_code == 422
        assert client.get("/users/user-1/tasks").json() == []

    def test_complete_and_stats(self, client):
        task = _create(client)

        completed = client.post(f"/tasks/{task['id']}/complete")
        stats = client.get("/users/user-1/stats").json()

        assert completed.status_code == 200
        assert completed.json()["is_completed"] is True
        assert completed.json()["streak"] == 1
        assert stats["experience"] == 10
        assert stats["level"] == 1
        assert stats["current_streak"] == 1
        assert stats["total_tasks_created"] == 1

    def test_complete_missing_task(self, client):
        response = client.post("/tasks/999/complete")

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_TASK_NOT_FOUND"

    def test_status_filter(self, client):
        first = _create(client, title="first")
        _create(client, title="second")
        client.post(f"/tasks/{first['id']}/complete")

        everything = client.get("/users/user-1/tasks").json()
        completed = client.get("/users/user-1/tasks", params={"status": "completed"}).json()
        pending = client.get("/users/user-1/tasks", params={"status": "pending"}).json()

        assert [t["title"] for t in everything] == ["second", "first"]
        assert [t["title"] for t in completed] == ["first"]
        assert [t["title"] for t in pending] == ["second"]

    def test_unknown_status_filter(self, client):
        assert client.get("/users/user-1/tasks", params={"status": "someday"}).status_code == 422

    def test_uncomplete(self, client):
        task = _create(client)
        client.post(f"/tasks/{task['id']}/complete")

        response = client.post(f"/tasks/{task['id']}/uncomplete")

        assert response.status_code == 200
        assert response.json()["is_completed"] is False
        assert response.json()["completed_at"] is None

    def test_patch(self, client):
        task = _create(client, description="old")

        response = client.patch(f"/tasks/{task['id']}", json={"priority": "urgent", "actual_time": 20})

        assert response.status_code == 200
        body = response.json()
        assert body["priority"] == "urgent"
        assert body["actual_time"] == 20
        assert body["description"] == "old"

    def test_patch_missing_task(self, client):
        response = client.patch("/tasks/999", json={"title": "x"})

        assert response.status_code == 404

    def test_delete(self, client):
        keep = _create(client, title="keep")
        doomed = _create(client, title="doomed")

        response = client.delete(f"/tasks/{doomed['id']}")

        assert response.status_code == 200
        assert response.json()["title"] == "doomed"
        assert [t["id"] for t in client.get("/users/user-1/tasks").json()] == [keep["id"]]
        assert client.get("/users/user-1/stats").json()["total_tasks_created"] == 1
        assert client.delete(f"/tasks/{doomed['id']}").status_code == 404

    def test_random_task(self, client):
        response = client.post("/users/user-1/tasks/random")

        assert response.status_code == 201
        assert response.json()["tags"] == ["random", "fun"]


@pytest.mark.integration
class TestReadEndpoints:
    """Tests for stats and dashboard reads."""

    def test_stats_missing_user(self, client):
        response = client.get("/users/nobody/stats")

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_STATS_NOT_FOUND"

    def test_dashboard(self, client):
        _create(client, title="Write report", category="work", priority="urgent")
        done = _create(client, title="Go for a run", category="fitness", priority="chill")
        client.post(f"/tasks/{done['id']}/complete")

        response = client.get("/users/user-1/dashboard", params={"sort_by": "priority", "query": "report"})

        assert response.status_code == 200
        board = response.json()
        assert [t["title"] for t in board["tasks"]] == ["Write report"]
        assert board["pending_count"] == 1
        assert board["completed_count"] == 1
        assert [t["title"] for t in board["completed_tasks"]] == ["Go for a run"]
        assert board["filters"]["categories"] == ["fitness", "work"]
        assert board["stats"]["experience"] == 10
        assert board["title"]["name"]

    @pytest.mark.parametrize("params", [{"category": "bogus"}, {"priority": "whenever"}, {"sort_by": "alphabet"}])
    def test_dashboard_rejects_unknown_filters(self, client, params):
        assert client.get("/users/user-1/dashboard", params=params).status_code == 422

    def test_dashboard_all_keeps_everything(self, client):
        _create(client, title="one", category="work")
        _create(client, title="two", category="personal")

        board = client.get("/users/user-1/dashboard", params={"category": "all", "priority": "all"}).json()

        assert len(board["tasks"]) == 2

    def test_dashboard_for_new_user(self, client):
        board = client.get("/users/nobody/dashboard").json()

        assert board["tasks"] == []
        assert board["stats"] is None
        assert board["level"] is None
