"""
Tests for FastAPI endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from leave_approval.directory import Directory
from leave_approval.main import app, get_service
from leave_approval.service import LeaveService
from leave_approval.store import InMemoryStore

ALICE = ("alice", "alice-pass")
BOB = ("bob", "bob-pass")
DAVE = ("dave", "dave-pass")
CAROL = ("carol", "carol-pass")

STUDENT_LEAVE = {"reason": "sick", "start_date": "2024-03-01", "end_date": "2024-03-03", "teacher": "bob"}


@pytest.fixture
def service():
    svc = LeaveService(directory=Directory(hash_iterations=1000), store=InMemoryStore())
    for username, password, role in [
        ("alice", "alice-pass", "student"),
        ("bob", "bob-pass", "teacher"),
        ("dave", "dave-pass", "teacher"),
        ("carol", "carol-pass", "admin"),
    ]:
        svc.register(username, password, role)
    return svc


@pytest.fixture
def client(service):
    """Create test client bound to a fresh service."""
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAPIEndpoints:
    """Test public endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Leave Approval API" in response.json()["message"]

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["users"] == 4
        assert data["leave_requests"] == 0

    def test_teachers(self, client):
        assert client.get("/teachers").json() == ["bob", "dave"]

    def test_openapi_docs_available(self, client):
        assert client.get("/openapi.json").status_code == 200
        assert client.get("/docs").status_code == 200


class TestAccounts:
    def test_register(self, client):
        response = client.post("/register", json={"username": "erin", "password": "pw", "role": "student"})

        assert response.status_code == 201
        assert response.json() == {"username": "erin", "role": "student"}

    def test_register_duplicate(self, client):
        response = client.post("/register", json={"username": "Alice", "password": "pw", "role": "student"})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_me(self, client):
        response = client.get("/me", auth=BOB)
        assert response.json() == {"username": "bob", "role": "teacher"}

    def test_bad_credentials(self, client):
        response = client.get("/me", auth=("bob", "wrong"))

        assert response.status_code == 401
        assert response.json()["error"] == "auth_error"

    def test_missing_credentials(self, client):
        assert client.get("/leaves/mine").status_code == 401


class TestLeaveWorkflow:
    def submit(self, client, auth=ALICE, payload=STUDENT_LEAVE):
        return client.post("/leaves", json=payload, auth=auth)

    def test_submit(self, client):
        response = self.submit(client)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "Pending"
        assert data["number_of_days"] == 3
        assert data["teacher_target"] == "bob"
        assert data["teacher_approved"] is False
        assert data["admin_approved"] is False

    def test_submit_invalid_range(self, client):
        payload = {**STUDENT_LEAVE, "start_date": "2024-03-05"}
        response = self.submit(client, payload=payload)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_teacher_submit(self, client):
        payload = {"reason": "vacation", "start_date": "2024-04-01", "end_date": "2024-04-01"}
        data = self.submit(client, auth=BOB, payload=payload).json()

        assert data["requester_role"] == "teacher"
        assert data["teacher_approved"] is True

    def test_admin_submit_forbidden(self, client):
        payload = {"reason": "vacation", "start_date": "2024-04-01", "end_date": "2024-04-01"}
        response = self.submit(client, auth=CAROL, payload=payload)

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
        assert client.get("/leaves", auth=CAROL).json() == []

    def test_full_decision_flow(self, client):
        request_id = self.submit(client).json()["id"]

        assert [r["id"] for r in client.get("/leaves/pending/teacher", auth=BOB).json()] == [request_id]
        assert client.get("/leaves/pending/teacher", auth=DAVE).json() == []

        response = client.post(
            f"/leaves/{request_id}/decision", json={"action": "approve", "stage": "teacher"}, auth=BOB
        )
        assert response.json()["status"] == "Approved by Teacher"

        assert [r["id"] for r in client.get("/leaves/pending/admin", auth=CAROL).json()] == [request_id]

        response = client.post(
            f"/leaves/{request_id}/decision", json={"action": "approve", "stage": "admin"}, auth=CAROL
        )
        assert response.json()["status"] == "Approved by Admin"
        assert response.json()["admin_approved"] is True

        response = client.post(
            f"/leaves/{request_id}/decision", json={"action": "reject", "stage": "teacher"}, auth=BOB
        )
        assert response.json()["status"] == "Rejected by Teacher"
        assert response.json()["admin_approved"] is False

    def test_wrong_teacher_forbidden(self, client):
        request_id = self.submit(client).json()["id"]
        response = client.post(
            f"/leaves/{request_id}/decision", json={"action": "approve", "stage": "teacher"}, auth=DAVE
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_unknown_request(self, client):
        response = client.post("/leaves/nope/decision", json={"action": "approve", "stage": "admin"}, auth=CAROL)
        assert response.status_code == 404

    def test_invalid_action(self, client):
        response = client.post("/leaves/x/decision", json={"action": "maybe", "stage": "admin"}, auth=CAROL)
        assert response.status_code == 422

    def test_my_leaves(self, client):
        self.submit(client)
        assert len(client.get("/leaves/mine", auth=ALICE).json()) == 1
        assert client.get("/leaves/mine", auth=BOB).json() == []

    def test_admin_only_views(self, client):
        self.submit(client)

        assert client.get("/leaves", auth=ALICE).status_code == 403
        assert client.get("/leaves/pending/admin", auth=BOB).status_code == 403
        assert len(client.get("/leaves", auth=CAROL).json()) == 1
