"""
Health Endpoint Tests
"""

from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient

from health_check import create_health_app


def make_database(connected=True, error=None):
    database = Mock()
    database.test_connection = AsyncMock(return_value=connected, side_effect=error)
    return database


def test_root_reports_running():
    client = TestClient(create_health_app(make_database()))

    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "Bot is running"


def test_health_ok_when_database_reachable():
    client = TestClient(create_health_app(make_database(connected=True)))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": True}


def test_health_503_when_database_down():
    client = TestClient(create_health_app(make_database(connected=False)))

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "unhealthy", "database": False}


def test_health_503_when_check_raises():
    client = TestClient(create_health_app(make_database(error=RuntimeError("pool exhausted"))))

    response = client.get("/health")

    assert response.status_code == 503


def test_health_without_database():
    client = TestClient(create_health_app())

    assert client.get("/health").status_code == 503
