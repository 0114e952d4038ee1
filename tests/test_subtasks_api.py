import time
from datetime import datetime

import pytest

from tasks_api.errors import PersistenceError
from tasks_api.repositories import SubtaskRepository, get_subtask_repository


def create_task(client, title="Parent") -> dict:
    res = client.post("/tasks", json={"title": title, "priority": "Medium"})
    assert res.status_code == 201
    return res.json()


def create_subtask(client, task_id, title="Test Subtask") -> dict:
    res = client.post(f"/tasks/{task_id}/subtasks", json={"title": title})
    assert res.status_code == 201, res.text
    return res.json()


def send_raw(client, method, url, body):
    return client.request(method, url, content=body, headers={"Content-Type": "application/json"})


class FailingSubtaskRepository:
    def _fail(self, *args, **kwargs):
        raise PersistenceError("database is down")

    create = list_for_task = get = update_title = set_done = delete = _fail


class SaveFailingSubtaskRepository(SubtaskRepository):
    """Reads work; writes to an existing subtask fail."""

    def _fail(self, *args, **kwargs):
        raise PersistenceError("database is down")

    update_title = set_done = _fail


class TestCreateSubtask:
    def test_create_subtask(self, client):
        task = create_task(client)
        subtask = create_subtask(client, task["id"])
        assert subtask["task_id"] == task["id"]
        assert subtask["title"] == "Test Subtask"
        assert subtask["done"] is False
        assert isinstance(subtask["id"], int)
        assert "created_at" in subtask and "updated_at" in subtask

    def test_parent_task_is_not_checked(self, client):
        res = client.post("/tasks/999/subtasks", json={"title": "dangling"})
        assert res.status_code == 201
        assert res.json()["task_id"] == 999

    @pytest.mark.parametrize("raw", ['{"title": "Test Subtask"}', "{invalid}", "{}"])
    def test_invalid_task_id_wins_regardless_of_body(self, client, raw):
        res = send_raw(client, "POST", "/tasks/invalid/subtasks", raw)
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid task ID"}

    def test_missing_title(self, client):
        task = create_task(client)
        res = client.post(f"/tasks/{task['id']}/subtasks", json={})
        assert res.status_code == 400
        assert res.json() == {"error": "title: is required"}

    def test_invalid_json(self, client):
        task = create_task(client)
        res = send_raw(client, "POST", f"/tasks/{task['id']}/subtasks", "{invalid}")
        assert res.status_code == 400
        assert res.json() == {"error": "Cannot parse JSON"}

    def test_persistence_failure(self, app, client):
        app.dependency_overrides[get_subtask_repository] = FailingSubtaskRepository
        res = client.post("/tasks/1/subtasks", json={"title": "x"})
        assert res.status_code == 500
        assert res.json() == {"error": "Could not create subtask"}


class TestListSubtasks:
    def test_list_only_that_tasks_subtasks(self, client):
        task = create_task(client)
        other = create_task(client, title="Other")
        create_subtask(client, task["id"], "one")
        create_subtask(client, other["id"], "elsewhere")
        create_subtask(client, task["id"], "two")

        res = client.get(f"/tasks/{task['id']}/subtasks")
        assert res.status_code == 200
        assert [s["title"] for s in res.json()] == ["one", "two"]

    def test_unknown_task_gives_empty_list(self, client):
        res = client.get("/tasks/12345/subtasks")
        assert res.status_code == 200
        assert res.json() == []

    def test_invalid_task_id(self, client):
        res = client.get("/tasks/invalid/subtasks")
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid task ID"}

    def test_persistence_failure(self, app, client):
        app.dependency_overrides[get_subtask_repository] = FailingSubtaskRepository
        res = client.get("/tasks/1/subtasks")
        assert res.status_code == 500
        assert res.json() == {"error": "Could not retrieve subtasks"}


class TestUpdateSubtask:
    def test_update_title_only(self, client):
        task = create_task(client)
        subtask = create_subtask(client, task["id"], "Old Subtask")
        client.patch(f"/subtasks/{subtask['id']}/done", json={"done": True})

        res = client.put(f"/subtasks/{subtask['id']}", json={"title": "Updated Subtask", "done": False})
        assert res.status_code == 200
        updated = res.json()
        assert updated["title"] == "Updated Subtask"
        assert updated["done"] is True
        assert updated["task_id"] == task["id"]

    def test_invalid_id(self, client):
        res = client.put("/subtasks/invalid", json={"title": "Updated Subtask"})
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid subtask ID"}

    def test_not_found(self, client):
        res = client.put("/subtasks/999", json={"title": "Updated Subtask"})
        assert res.status_code == 404
        assert res.json() == {"error": "Subtask not found"}

    def test_invalid_json(self, client):
        subtask = create_subtask(client, create_task(client)["id"])
        res = send_raw(client, "PUT", f"/subtasks/{subtask['id']}", "{invalid}")
        assert res.status_code == 400
        assert res.json() == {"error": "Cannot parse JSON"}

    def test_blank_title(self, client):
        subtask = create_subtask(client, create_task(client)["id"])
        res = client.put(f"/subtasks/{subtask['id']}", json={"title": ""})
        assert res.status_code == 400
        assert res.json() == {"error": "title: is required"}

    def test_retrieve_failure(self, app, client):
        app.dependency_overrides[get_subtask_repository] = FailingSubtaskRepository
        res = client.put("/subtasks/1", json={"title": "x"})
        assert res.status_code == 500
        assert res.json() == {"error": "Could not retrieve subtask"}

    def test_save_failure(self, app, client, database):
        subtask = create_subtask(client, create_task(client)["id"])
        app.dependency_overrides[get_subtask_repository] = lambda: SaveFailingSubtaskRepository(database)
        res = client.put(f"/subtasks/{subtask['id']}", json={"title": "x"})
        assert res.status_code == 500
        assert res.json() == {"error": "Could not update subtask"}

    def test_same_title_refreshes_updated_at(self, client):
        subtask = create_subtask(client, create_task(client)["id"], "Same")
        time.sleep(0.01)
        res = client.put(f"/subtasks/{subtask['id']}", json={"title": "Same"})
        assert res.status_code == 200
        assert datetime.fromisoformat(res.json()["updated_at"]) > datetime.fromisoformat(subtask["updated_at"])

    def test_empty_body(self, client):
        subtask = create_subtask(client, create_task(client)["id"])
        res = send_raw(client, "PUT", f"/subtasks/{subtask['id']}", "")
        assert res.status_code == 400
        assert res.json() == {"error": "Cannot parse JSON"}


class TestDeleteSubtask:
    def test_delete_subtask(self, client):
        task = create_task(client)
        subtask = create_subtask(client, task["id"])
        res = client.delete(f"/subtasks/{subtask['id']}")
        assert res.status_code == 204
        assert res.text == ""
        assert client.get(f"/tasks/{task['id']}/subtasks").json() == []

    def test_missing_subtask_is_a_server_error(self, client):
        res = client.delete("/subtasks/999")
        assert res.status_code == 500
        assert res.json() == {"error": "Could not delete subtask"}

    @pytest.mark.parametrize("raw_id", ["invalid", "99999999999999999999"])
    def test_invalid_id(self, client, raw_id):
        res = client.delete(f"/subtasks/{raw_id}")
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid subtask ID"}


class TestSetSubtaskDone:
    def test_toggle_twice_restores_original(self, client):
        subtask = create_subtask(client, create_task(client)["id"], "Flip")
        first = client.patch(f"/subtasks/{subtask['id']}/done", json={"done": not subtask["done"]})
        assert first.status_code == 200
        assert first.json()["done"] is True

        second = client.patch(f"/subtasks/{subtask['id']}/done", json={"done": subtask["done"]})
        assert second.status_code == 200
        restored = second.json()
        assert restored["done"] == subtask["done"]
        assert restored["title"] == "Flip"
        assert restored["task_id"] == subtask["task_id"]

    def test_invalid_id(self, client):
        res = client.patch("/subtasks/invalid/done", json={"done": True})
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid subtask ID"}

    def test_not_found(self, client):
        res = client.patch("/subtasks/999/done", json={"done": True})
        assert res.status_code == 404
        assert res.json() == {"error": "Subtask not found"}

    def test_invalid_json(self, client):
        subtask = create_subtask(client, create_task(client)["id"])
        res = send_raw(client, "PATCH", f"/subtasks/{subtask['id']}/done", "{invalid}")
        assert res.status_code == 400
        assert res.json() == {"error": "Cannot parse JSON"}

    def test_empty_body_leaves_subtask_unchanged(self, client):
        subtask = create_subtask(client, create_task(client)["id"])
        client.patch(f"/subtasks/{subtask['id']}/done", json={"done": True})
        res = send_raw(client, "PATCH", f"/subtasks/{subtask['id']}/done", "")
        assert res.status_code == 400
        assert res.json() == {"error": "Cannot parse JSON"}
        assert client.get(f"/tasks/{subtask['task_id']}/subtasks").json()[0]["done"] is True

    def test_save_failure(self, app, client, database):
        subtask = create_subtask(client, create_task(client)["id"])
        app.dependency_overrides[get_subtask_repository] = lambda: SaveFailingSubtaskRepository(database)
        res = client.patch(f"/subtasks/{subtask['id']}/done", json={"done": True})
        assert res.status_code == 500
        assert res.json() == {"error": "Could not update subtask"}

    def test_same_value_refreshes_updated_at(self, client):
        subtask = create_subtask(client, create_task(client)["id"])
        time.sleep(0.01)
        res = client.patch(f"/subtasks/{subtask['id']}/done", json={"done": False})
        assert res.status_code == 200
        assert datetime.fromisoformat(res.json()["updated_at"]) > datetime.fromisoformat(subtask["updated_at"])

    def test_toggle_is_visible_on_parent_task(self, client):
        task = create_task(client)
        subtask = create_subtask(client, task["id"])
        client.patch(f"/subtasks/{subtask['id']}/done", json={"done": True})
        fetched = client.get(f"/tasks/{task['id']}").json()
        assert fetched["subtasks"][0]["done"] is True
        assert fetched["done"] is False
