from unittest.mock import patch

from fastapi.testclient import TestClient

from dbmaster.core.config import settings
from dbmaster.core.pool import ConnectionFailedError
from tests.utils.connection import connection_body
from tests.utils.fake_db import FakeDatabase

CREATE = "dbmaster.api.routes.connections.create_connection"


def test_connection_success(client: TestClient, fake_db: FakeDatabase) -> None:
    conn = fake_db.connect()
    with patch(CREATE, return_value=conn) as mock_create:
        response = client.post(
            f"{settings.API_V1_STR}/connections/test",
            json=connection_body(use_ssl=True),
        )
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Connection successful"}
    config = mock_create.call_args.args[0]
    assert config.use_ssl is True
    assert "SELECT 1" in conn.statements()
    assert conn.closed


def test_connection_failure(client: TestClient) -> None:
    error = ConnectionFailedError("Failed to connect to database: Access denied")
    with patch(CREATE, side_effect=error):
        response = client.post(
            f"{settings.API_V1_STR}/connections/test", json=connection_body()
        )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["message"] == "Connection failed: Failed to connect to database: Access denied"


def test_connection_closed_when_ping_fails(client: TestClient, fake_db: FakeDatabase) -> None:
    conn = fake_db.connect()
    fake_db.down = True
    with patch(CREATE, return_value=conn):
        response = client.post(
            f"{settings.API_V1_STR}/connections/test", json=connection_body()
        )
    assert response.json()["success"] is False
    assert conn.closed


def test_connection_test_does_not_register_pool(client: TestClient, fake_db: FakeDatabase) -> None:
    with patch(CREATE, return_value=fake_db.connect()):
        client.post(f"{settings.API_V1_STR}/connections/test", json=connection_body())
    response = client.get(f"{settings.API_V1_STR}/pools/stats")
    assert response.json()["pools"] == 0
