import pytest
from fastapi.testclient import TestClient

from recipebook import main


@pytest.fixture
def client() -> TestClient:
    return TestClient(main.app)


def test_health_reports_connected_database(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "check_database_health", lambda: True)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}


def test_health_reports_disconnected_database(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "check_database_health", lambda: False)

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "unhealthy", "database": "disconnected"}


def test_root(client: TestClient) -> None:
    response = client.get("/")

    assert response.json()["name"] == "Recipe Book"
