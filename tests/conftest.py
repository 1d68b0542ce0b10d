"""Test configuration and fixtures for the Travel Journal API."""

import asyncio
import base64
import os
import re
import tempfile
from typing import Any, Dict, Generator, List, Optional

# Must be set before travel_api is imported: the engine and limiter read them once
_TEST_ROOT = tempfile.mkdtemp(prefix="travel-api-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/test.db"
os.environ["CONTENT_ROOT"] = _TEST_ROOT
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-0123456789-abcdefghijklmnop"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from travel_api import database  # noqa: E402
from travel_api.config import Settings, get_settings  # noqa: E402
from travel_api.main import app  # noqa: E402
from travel_api.services.storage import PhotoStorage  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))

_REFRESH_COOKIE = re.compile(r"refreshToken=([^;]+)")


@pytest.fixture(name='settings')
def settings_fixture(tmp_path) -> Settings:
    """Settings with a per-test content root."""
    return Settings(content_root=tmp_path, rate_limit_enabled=False)


@pytest.fixture(name='storage')
def storage_fixture(settings: Settings) -> PhotoStorage:
    return PhotoStorage(settings)


@pytest.fixture(name='test_db')
def test_database() -> Generator[None, None, None]:
    """Fresh tables for every test."""
    asyncio.run(database.drop_db())
    asyncio.run(database.init_db())
    yield
    asyncio.run(database.drop_db())


@pytest.fixture(name='client')
def client_fixture(test_db: None, settings: Settings) -> Generator[TestClient, None, None]:
    """Test client running the app lifespan, with settings overridden."""
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# ============== Helpers ==============


def run(coro):
    """Run a coroutine against the test database from synchronous test code."""
    return asyncio.run(coro)


def refresh_cookie(response) -> Optional[str]:
    """Refresh token from the Set-Cookie header (Secure cookies are not kept over http)."""
    match = _REFRESH_COOKIE.search(response.headers.get("set-cookie", ""))
    return match.group(1) if match else None


def register(
    client: TestClient,
    email: str = "anna@example.com",
    password: str = "Travel123!",
    username: str = "anna",
) -> Dict[str, Any]:
    response = client.post(
        "/api/register",
        json={"email": email, "password": password, "username": username},
    )
    assert response.status_code == 200, response.text
    return response.json()


def photo_payload(content: bytes = PNG_BYTES, file_name: str = "photo.png", photo_id: int = 0) -> Dict[str, Any]:
    encoded = base64.b64encode(content).decode()
    return {
        "id": photo_id,
        "fileName": file_name,
        "base64Content": f"data:image/png;base64,{encoded}",
    }


def point_payload(
    name: str = "Louvre",
    photos: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    point = {
        "name": name,
        "address": "Rue de Rivoli, Paris",
        "coordinates": {"lat": 48.8606, "lon": 2.3376},
        "departureTime": "10:00",
        "type": "museum",
        "note": "Arrive early",
        "photos": photos or [],
    }
    point.update(extra)
    return point


def travel_payload(
    points: Optional[List[Dict[str, Any]]] = None,
    title: Optional[str] = "Paris",
    date: str = "2024-05-01T09:00:00Z",
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"date": date, "points": points if points is not None else [point_payload()]}
    if title is not None:
        payload["title"] = title
    return payload


def create_travel(client: TestClient, user_id: int, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response = client.post(f"/api/users/{user_id}/travels", json=payload or travel_payload())
    assert response.status_code == 200, response.text
    return response.json()


def uploaded_files(settings: Settings) -> List[str]:
    """Names of files currently in the uploads directory."""
    if not settings.uploads_path.exists():
        return []
    return sorted(p.name for p in settings.uploads_path.iterdir())
