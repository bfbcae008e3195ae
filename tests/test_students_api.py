"""
Tests for the /students endpoints against an in-memory store
"""
import pytest
from fastapi.testclient import TestClient

from students_crud.core.config import settings
from students_crud.main import create_app
from students_crud.core.exceptions import PersistenceError
from students_crud.schemas.student import Student

INVALID_IDS = ["abc", "-1", "0", "1.5", "+1", "1e3", "99999999999999999999"]
MALFORMED_BODIES = ["invalid json", "", "[]", '{"name": "Student #1"}', '{"name": 1, "email": "x"}']


class TestCreateStudent:
    """POST /students"""

    def test_create_returns_assigned_id(self, client, store):
        resp = client.post(
            "/students",
            content='{"name": "Student #1","email": "#1@mail.com"}',
        )
        assert resp.status_code == 201
        assert resp.text == '{"id":1}'
        assert store.students[1] == Student(id=1, name="Student #1", email="#1@mail.com")

    def test_create_ignores_id_in_body(self, client, store):
        resp = client.post("/students", json={"id": 42, "name": "A", "email": "a@mail.com"})
        assert resp.status_code == 201
        assert resp.json() == {"id": 1}
        assert 42 not in store.students

    def test_create_store_failure(self, client, store):
        store.error = PersistenceError("fake.create", "connection refused")
        resp = client.post("/students", json={"name": "Student #2", "email": "#2@mail.com"})
        assert resp.status_code == 500
        assert resp.text == '{"error":"failed to create student"}'

    def test_create_unexpected_store_error_is_not_exposed(self, client, store):
        store.error = RuntimeError("secret internals")
        resp = client.post("/students", json={"name": "Student #2", "email": "#2@mail.com"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "failed to create student"}

    @pytest.mark.parametrize("body", MALFORMED_BODIES)
    def test_create_malformed_body(self, client, store, body):
        resp = client.post("/students", content=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "failed to unmarshal data"}
        assert store.calls == []


class TestReadStudent:
    """GET /students/{id}"""

    def test_read_existing(self, client, store):
        store.students[1] = Student(id=1, name="Student #1", email="#1@mail.com")
        resp = client.get("/students/1")
        assert resp.status_code == 200
        assert resp.text == '{"id":1,"name":"Student #1","email":"#1@mail.com"}'

    def test_read_not_found(self, client):
        resp = client.get("/students/2")
        assert resp.status_code == 404
        assert resp.text == '{"error":"student not found"}'

    def test_read_store_failure(self, client, store):
        store.error = PersistenceError("fake.read", "timeout")
        resp = client.get("/students/1")
        assert resp.status_code == 500
        assert resp.json() == {"error": "failed to read student"}


class TestUpdateStudent:
    """PUT /students/{id}"""

    def test_update_overwrites_record(self, client, store):
        store.students[1] = Student(id=1, name="Student #1", email="#1@mail.com")
        resp = client.put(
            "/students/1",
            content='{"name": "Updated Student","email": "updated@mail.com"}',
        )
        assert resp.status_code == 200
        assert resp.text == '{"message":"student updated successfully"}'
        assert store.students[1] == Student(id=1, name="Updated Student", email="updated@mail.com")

    def test_update_uses_path_id(self, client, store):
        store.students[1] = Student(id=1, name="Student #1", email="#1@mail.com")
        resp = client.put("/students/1", json={"id": 7, "name": "B", "email": "b@mail.com"})
        assert resp.status_code == 200
        assert store.calls == [("update", Student(id=1, name="B", email="b@mail.com"))]

    def test_update_is_idempotent(self, client, store):
        store.students[1] = Student(id=1, name="Student #1", email="#1@mail.com")
        body = {"name": "Same", "email": "same@mail.com"}
        first = client.put("/students/1", json=body)
        second = client.put("/students/1", json=body)
        assert first.status_code == second.status_code == 200
        assert store.students[1] == Student(id=1, **body)

    def test_update_invalid_id(self, client, store):
        resp = client.put(
            "/students/-1",
            content='{"name": "Updated Student","email": "updated@mail.com"}',
        )
        assert resp.status_code == 400
        assert resp.text == '{"error":"invalid id"}'
        assert store.calls == []

    def test_update_invalid_id_checked_before_body(self, client):
        resp = client.put("/students/abc", content="invalid json")
        assert resp.json() == {"error": "invalid id"}

    @pytest.mark.parametrize("body", MALFORMED_BODIES)
    def test_update_malformed_body(self, client, store, body):
        resp = client.put("/students/1", content=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "failed to unmarshal data"}
        assert store.calls == []

    def test_update_missing_student(self, client):
        resp = client.put("/students/5", json={"name": "A", "email": "a@mail.com"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "student not found"}

    def test_update_store_failure(self, client, store):
        store.error = PersistenceError("fake.update", "connection reset")
        resp = client.put("/students/1", json={"name": "A", "email": "a@mail.com"})
        assert resp.status_code == 500
        assert resp.text == '{"error":"failed to update student"}'


class TestDeleteStudent:
    """DELETE /students/{id}"""

    def test_delete(self, client, store):
        store.students[1] = Student(id=1, name="Student #1", email="#1@mail.com")
        resp = client.delete("/students/1")
        assert resp.status_code == 200
        assert resp.text == '{"message":"student deleted successfully"}'
        assert 1 not in store.students

    def test_delete_missing_is_silent(self, client):
        resp = client.delete("/students/3")
        assert resp.status_code == 200

    def test_delete_store_failure(self, client, store):
        store.error = PersistenceError("fake.delete", "connection reset")
        resp = client.delete("/students/1")
        assert resp.status_code == 500
        assert resp.text == '{"error":"failed to delete student"}'

    def test_delete_then_read_is_not_found(self, client):
        created = client.post("/students", json={"name": "A", "email": "a@mail.com"}).json()
        assert client.delete(f"/students/{created['id']}").status_code == 200
        resp = client.get(f"/students/{created['id']}")
        assert resp.status_code == 404


@pytest.mark.parametrize("method", ["get", "put", "delete"])
@pytest.mark.parametrize("raw_id", INVALID_IDS)
def test_invalid_id_never_reaches_store(client, store, method, raw_id):
    kwargs = {"json": {"name": "A", "email": "a@mail.com"}} if method == "put" else {}
    resp = getattr(client, method)(f"/students/{raw_id}", **kwargs)
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid id"}
    assert store.calls == []


def test_create_then_read_round_trip(client):
    body = {"name": "Student #1", "email": "#1@mail.com"}
    created = client.post("/students", json=body)
    assert created.status_code == 201
    student_id = created.json()["id"]
    assert student_id > 0

    resp = client.get(f"/students/{student_id}")
    assert resp.json() == {"id": student_id, **body}


def test_unknown_route_uses_error_shape(client):
    resp = client.get("/teachers")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["docs"] == "/docs"


def test_unexpected_error_hides_traceback_in_debug_mode(store, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", True)
    app = create_app(store=store)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/boom")
    assert resp.status_code == 500
    assert resp.json() == {"error": "internal server error"}
    assert "secret internals" not in resp.text
