"""
Tests for FastAPI Endpoints

Integration tests for the subscription records API, backed by a temporary
SQLite database.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from subscriptions.api.server import create_app
from subscriptions.config import Settings
from subscriptions.persistence.database import Database

from conftest import FROZEN_NOW, make_record

TODAY = datetime.now(timezone.utc).date()


def ddmmyyyy(days_from_today: int = 0) -> str:
    return (TODAY + timedelta(days=days_from_today)).strftime("%d-%m-%Y")


@pytest.fixture
def client(db):
    """Test client over the per-test database."""
    app = create_app(Settings.from_env(), database=db)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def netflix_body():
    return {
        "service_name": "Netflix",
        "price": 999,
        "user_id": "u1",
        "expires_at": ddmmyyyy(30),
    }


@pytest.fixture
def created(client, netflix_body):
    response = client.post("/api/create", json=netflix_body)
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "sqlite"
        assert "version" in data
        assert "uptime_seconds" in data


class TestInMemoryDatabase:
    """sqlite:///:memory: serves requests from every worker thread."""

    def test_create_then_list(self, netflix_body):
        app = create_app(Settings.from_env(), database=Database("sqlite:///:memory:"))

        with TestClient(app) as client:
            assert client.post("/api/create", json=netflix_body).status_code == 201
            response = client.get("/api/records")

        assert response.status_code == 200
        assert [r["service_name"] for r in response.json()] == ["Netflix"]


class TestCreateEndpoint:
    """POST /api/create"""

    def test_create(self, created):
        assert created["id"] > 0
        assert created["service_name"] == "Netflix"
        assert created["price"] == 999
        assert created["user_id"] == "u1"
        assert created["expires_at"].startswith((TODAY + timedelta(days=30)).isoformat())

    def test_create_with_created_at(self, client, netflix_body):
        netflix_body["created_at"] = ddmmyyyy(-3)
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 201
        assert response.json()["created_at"].startswith((TODAY - timedelta(days=3)).isoformat())

    def test_bad_date_format(self, client, netflix_body):
        netflix_body["expires_at"] = "2030-01-01"
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 400
        assert "DD-MM-YYYY" in response.json()["detail"]

    def test_missing_field(self, client, netflix_body):
        del netflix_body["user_id"]
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 400

    def test_negative_price(self, client, netflix_body):
        netflix_body["price"] = -1
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 400

    def test_expires_before_created(self, client, netflix_body):
        netflix_body["created_at"] = ddmmyyyy(40)
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 400

    def test_expires_today_before_default_created_at(self, client, netflix_body):
        netflix_body["expires_at"] = ddmmyyyy(0)
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 400

    def test_expires_today_with_created_today(self, client, netflix_body):
        netflix_body.update(created_at=ddmmyyyy(0), expires_at=ddmmyyyy(0))
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 201

    def test_expires_in_past(self, client, netflix_body):
        netflix_body["expires_at"] = ddmmyyyy(-1)
        response = client.post("/api/create", json=netflix_body)

        assert response.status_code == 400


class TestRecordEndpoints:
    """Fetch, update and delete by id."""

    def test_get_by_id(self, client, created):
        response = client.get(f"/api/record/{created['id']}")

        assert response.status_code == 200
        assert response.json() == created

    def test_get_missing(self, client):
        assert client.get("/api/record/999").status_code == 404

    def test_id_must_be_positive(self, client):
        assert client.get("/api/record/0").status_code == 400

    def test_update(self, client, created, netflix_body):
        netflix_body.update(service_name="Spotify", price=199)
        response = client.put(f"/api/update/{created['id']}", json=netflix_body)

        assert response.status_code == 204
        fetched = client.get(f"/api/record/{created['id']}").json()
        assert fetched["service_name"] == "Spotify"
        assert fetched["price"] == 199
        assert fetched["created_at"].startswith(TODAY.isoformat())

    def test_update_with_created_at(self, client, created, netflix_body):
        netflix_body["created_at"] = ddmmyyyy(-2)
        response = client.put(f"/api/update/{created['id']}", json=netflix_body)

        assert response.status_code == 204
        fetched = client.get(f"/api/record/{created['id']}").json()
        assert fetched["created_at"].startswith((TODAY - timedelta(days=2)).isoformat())

    def test_update_missing(self, client, netflix_body):
        response = client.put("/api/update/999", json=netflix_body)

        assert response.status_code == 404

    def test_update_invalid_range(self, client, created, netflix_body):
        netflix_body["expires_at"] = ddmmyyyy(-10)
        response = client.put(f"/api/update/{created['id']}", json=netflix_body)

        assert response.status_code == 400

    def test_delete(self, client, created):
        response = client.delete(f"/api/delete/{created['id']}")

        assert response.status_code == 204
        assert client.get(f"/api/record/{created['id']}").status_code == 404

    def test_delete_missing(self, client):
        assert client.delete("/api/delete/999").status_code == 404


class TestLookupEndpoints:
    """Per-user lookups."""

    def test_records_by_user(self, client, created):
        response = client.get("/api/records/user", params={"user_id": "u1"})

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [created["id"]]

    def test_unknown_user_empty_list(self, client):
        response = client.get("/api/records/user", params={"user_id": "ghost"})

        assert response.status_code == 200
        assert response.json() == []

    def test_user_id_required(self, client):
        assert client.get("/api/records/user").status_code == 400

    def test_user_service(self, client, created):
        response = client.get(
            "/api/record/user_service",
            params={"user_id": "u1", "service_name": "Netflix"},
        )

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_user_service_missing(self, client, created):
        response = client.get(
            "/api/record/user_service",
            params={"user_id": "u1", "service_name": "Hulu"},
        )

        assert response.status_code == 404


class TestListEndpoint:
    """GET /api/records"""

    @pytest.fixture
    def many(self, client, netflix_body):
        for i in range(25):
            body = dict(netflix_body, user_id="u1" if i % 2 else "u2", price=i)
            assert client.post("/api/create", json=body).status_code == 201

    def test_default_limit(self, client, many):
        response = client.get("/api/records")

        assert response.status_code == 200
        assert len(response.json()) == 20

    def test_limit_clamped(self, client, repository):
        for _ in range(105):
            repository.save(make_record(created_at=FROZEN_NOW))

        response = client.get("/api/records", params={"limit": 150})

        assert response.status_code == 200
        assert len(response.json()) == 100

    def test_offset(self, client, many):
        assert len(client.get("/api/records", params={"limit": 10, "offset": 20}).json()) == 5

    def test_user_filter(self, client, many):
        records = client.get("/api/records", params={"user_id": "u1", "limit": 100}).json()

        assert len(records) == 12
        assert {r["user_id"] for r in records} == {"u1"}

    def test_newest_first(self, client, many):
        records = client.get("/api/records").json()
        stamps = [r["created_at"] for r in records]

        assert stamps == sorted(stamps, reverse=True)


class TestSummaryEndpoint:
    """GET /api/records/summary"""

    def test_sum(self, client, created):
        response = client.get("/api/records/summary", params={
            "start_time": ddmmyyyy(0),
            "end_time": ddmmyyyy(30),
            "user_id": "u1",
        })

        assert response.status_code == 200
        assert response.json()["total"] == 999

    def test_empty_period(self, client, created):
        response = client.get("/api/records/summary", params={
            "start_time": ddmmyyyy(-30),
            "end_time": ddmmyyyy(-10),
        })

        assert response.status_code == 200
        assert response.json()["total"] == 0

    def test_end_before_start(self, client):
        response = client.get("/api/records/summary", params={
            "start_time": ddmmyyyy(5),
            "end_time": ddmmyyyy(0),
        })

        assert response.status_code == 400

    def test_bad_date(self, client):
        response = client.get("/api/records/summary", params={
            "start_time": "yesterday",
            "end_time": ddmmyyyy(0),
        })

        assert response.status_code == 400
