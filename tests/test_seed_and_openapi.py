import json
from datetime import datetime, timedelta

import pytest

from tasks_api.generate_openapi import build_schema, generate_openapi
from tasks_api.repositories import TaskRepository
from tasks_api.seed import sample_tasks, seed_database
from tasks_api.validation import validate_task_input


class TestSeed:
    def test_samples_are_valid(self):
        samples = sample_tasks()
        assert len(samples) == 10
        assert all(validate_task_input(t) == [] for t in samples)
        assert all(len(t.subtasks) == 3 for t in samples)

    def test_due_dates_are_relative_to_now(self):
        now = datetime(2025, 1, 1, 9, 0)
        first = sample_tasks(now)[0]
        assert first.due_date == now + timedelta(days=3)

    def test_seed_database(self, database):
        assert seed_database(database) == 10
        tasks = TaskRepository(database).list()
        assert len(tasks) == 10
        assert all(len(t.subtasks) == 3 for t in tasks)
        bug = next(t for t in tasks if t.title == "Fix Bug in Task Deletion")
        assert bug.done is True
        assert all(s.done for s in bug.subtasks)

    def test_seeded_tasks_are_served(self, database, client):
        seed_database(database)
        res = client.get("/tasks")
        assert res.status_code == 200
        assert [t["assignee"] for t in res.json()][:3] == ["Alice", "Bob", "Charlie"]


class TestOpenApi:
    def test_schema_lists_all_routes(self):
        schema = build_schema()
        paths = schema["paths"]
        assert set(paths["/tasks"]) == {"get", "post"}
        assert set(paths["/tasks/{task_id}"]) == {"get", "put", "delete"}
        assert set(paths["/tasks/{task_id}/done"]) == {"patch"}
        assert set(paths["/tasks/{task_id}/subtasks"]) == {"get", "post"}
        assert set(paths["/subtasks/{subtask_id}"]) == {"put", "delete"}
        assert set(paths["/subtasks/{subtask_id}/done"]) == {"patch"}
        assert {t["name"] for t in schema["tags"]} >= {"health", "tasks", "subtasks"}

    def test_generate_openapi_writes_file(self, tmp_path):
        out = tmp_path / "interfaces" / "openapi.json"
        written = generate_openapi(str(out))
        assert written == str(out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["info"]["title"] == "Tasks Backend"

    @pytest.mark.parametrize(
        "path, method, model",
        [
            ("/tasks", "post", "TaskInput"),
            ("/tasks/{task_id}", "put", "TaskInput"),
            ("/tasks/{task_id}/done", "patch", "DoneInput"),
            ("/tasks/{task_id}/subtasks", "post", "SubtaskInput"),
            ("/subtasks/{subtask_id}", "put", "SubtaskInput"),
            ("/subtasks/{subtask_id}/done", "patch", "DoneInput"),
        ],
    )
    def test_request_bodies_are_documented(self, path, method, model):
        schema = build_schema()
        body = schema["paths"][path][method]["requestBody"]
        assert body["content"]["application/json"]["schema"] == {"$ref": f"#/components/schemas/{model}"}
        assert model in schema["components"]["schemas"]

    def test_request_body_components_carry_examples(self):
        components = build_schema()["components"]["schemas"]
        assert components["TaskInput"]["example"]["title"] == "Setup CI/CD"
        assert components["DoneInput"]["example"] == {"done": True}
        subtasks = components["TaskInput"]["properties"]["subtasks"]
        assert subtasks["items"] == {"$ref": "#/components/schemas/SubtaskInput"}
