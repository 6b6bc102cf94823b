import json
from datetime import date, datetime, timezone

import pytest
import requests
from fastapi.testclient import TestClient

from taskboard.config import get_settings
from taskboard.db import get_database
from taskboard.models.tasks import Task

GOOGLE_CLIENT_ID = "test-client.apps.googleusercontent.com"

GOOGLE_ID_INFO = {
    "iss": "https://accounts.google.com",
    "sub": "google-123",
    "email": "ada@example.com",
    "email_verified": True,
    "name": "Ada Lovelace",
    "picture": "https://example.com/ada.png",
}


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the service and client at a throwaway JSON database and state dir."""
    monkeypatch.setenv("DATA_FILE", str(tmp_path / "taskboard.json"))
    monkeypatch.setenv("STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", GOOGLE_CLIENT_ID)
    monkeypatch.setenv("MONGODB_URI", "")
    get_settings.cache_clear()
    get_database.cache_clear()
    yield
    get_settings.cache_clear()
    get_database.cache_clear()


@pytest.fixture
def api_client():
    """FastAPI TestClient for router tests."""
    from taskboard.main import api
    return TestClient(api)


@pytest.fixture
def user():
    from taskboard.services import users as users_service
    return users_service.create_user("Bob", "bob@example.com", "hunter22")


@pytest.fixture
def other_user():
    from taskboard.services import users as users_service
    return users_service.create_user("Eve", "eve@example.com", "hunter22")


@pytest.fixture
def auth_headers(user):
    from taskboard.auth import create_access_token
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# --- Client-side helpers ---

def make_task(task_id: str = "t1", **overrides) -> Task:
    data = {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": "",
        "deadline": date(2025, 1, 1),
        "assigned_to": "bob",
        "status": "pending",
        "priority": "low",
        "created_at": datetime(2024, 12, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 12, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return Task(**data)


def make_response(status_code: int, body=None, reason: str | None = None, raw: bytes | None = None) -> requests.Response:
    """Build a real requests.Response for a mocked Session. ``raw`` sets a non-JSON body."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = reason
    if raw is not None:
        resp._content = raw
        resp.headers["Content-Type"] = "text/html"
        return resp
    resp._content = json.dumps(body).encode() if body is not None else b""
    resp.headers["Content-Type"] = "application/json"
    return resp
