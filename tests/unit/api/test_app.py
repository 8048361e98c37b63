"""Tests for the HTTP surface using FastAPI's TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from planlink.api.app import create_app
from planlink.core.config import AppSettings
from planlink.models.records import PARTICIPANTS
from tests.fakes import MemoryFileStore
from tests.unit.conftest import seed_family

GROUP_CSV = (
    b"Participant,Date of Birth,Plan Name,Option,Rate\n"
    b"Jane Doe,03/15/1980,PPO,Employee Only,520\n"
)
MEDICARE_CSV = (
    b"Participant,Date of Birth,ID Number,Plan Start Date,Provider,Plan Name,Rate\n"
    b"Mary Major,1950-05-05,MBI123,02/01/2025,Acme Health,Plan G,142.50\n"
)


@pytest.fixture
def file_store():
    return MemoryFileStore()


@pytest.fixture
def client(store, file_store):
    seed_family(store)
    app = create_app(settings=AppSettings(), store=store, file_store=file_store)
    with TestClient(app) as client:
        yield client


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


class TestUploadParticipants:
    def test_imports_and_archives(self, client, store, file_store):
        resp = client.post(
            "/upload-participants",
            files={"file": ("census.csv", GROUP_CSV, "text/csv")},
            data={"groupId": "grp-1", "planStartDate": "2025-03-01"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["processed"] == 1
        assert body["errors"] == 0
        assert body["details"][-1] == 'Row 2: Successfully created participant group plan for "Jane Doe"'
        assert store.select(PARTICIPANTS, client_name="Jane Doe")
        archived = file_store.list_files("uploads/group/")
        assert len(archived) == 1
        assert archived[0].endswith("-census.csv")

    def test_missing_group_is_400(self, client):
        resp = client.post(
            "/upload-participants",
            files={"file": ("census.csv", GROUP_CSV, "text/csv")},
            data={"planStartDate": "2025-03-01"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Missing groupId or planStartDate"}

    def test_missing_file_is_400(self, client):
        resp = client.post(
            "/upload-participants", data={"groupId": "grp-1", "planStartDate": "2025-03-01"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "No file uploaded"}

    def test_missing_column_is_400(self, client):
        resp = client.post(
            "/upload-participants",
            files={"file": ("census.csv", b"Participant,Rate\nJane,520\n", "text/csv")},
            data={"groupId": "grp-1", "planStartDate": "2025-03-01"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Missing required columns")


class TestUploadMedicare:
    def test_imports(self, client, file_store):
        resp = client.post(
            "/upload-medicare-participants",
            files={"file": ("medicare.csv", MEDICARE_CSV, "text/csv")},
        )
        assert resp.status_code == 200
        assert resp.json()["processed"] == 1
        assert len(file_store.list_files("uploads/medicare/")) == 1


class TestParticipantPlans:
    def test_add_composite_plan(self, client):
        resp = client.post("/participants/p-1/plans", json={
            "plan_id": "plan-comp", "option_id": "opt-comp-ee", "effective_date": "2025-03-01",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["participant_id"] == "p-1"
        assert body["enrollments"][0]["rate_id"] == "rate-comp-new"
        assert body["enrollments"][0]["effective_date"] == "2025-03-01"

    def test_validation_error_is_422(self, client):
        resp = client.post("/participants/p-1/plans", json={"plan_id": "plan-ab"})
        assert resp.status_code == 422
        assert resp.json()["message"].startswith("Please select an inclusion type")

    def test_unknown_participant_is_404(self, client):
        resp = client.post("/participants/nobody/plans", json={"plan_id": "plan-comp"})
        assert resp.status_code == 404

    def test_duplicate_is_409(self, client):
        payload = {"plan_id": "plan-comp", "option_id": "opt-comp-ee", "effective_date": "2025-03-01"}
        assert client.post("/participants/p-1/plans", json=payload).status_code == 200
        assert client.post("/participants/p-1/plans", json=payload).status_code == 409


class TestParticipantDependents:
    def test_add_dependent(self, client):
        resp = client.post("/participants/p-1/dependents", json={
            "name": "Baby Smith", "relationship": "Child", "dob": "2024-01-05",
        })
        assert resp.status_code == 200
        assert resp.json()["message"] == 'Dependent "Baby Smith" linked to 0 existing plan(s)'

    def test_invalid_relationship_is_422(self, client):
        resp = client.post("/participants/p-1/dependents", json={
            "name": "Cousin Itt", "relationship": "Cousin",
        })
        assert resp.status_code == 422
