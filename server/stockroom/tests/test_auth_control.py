from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from stockroom.auth import normalize_role
from stockroom.config import settings


def create_access_token(data: dict, expires_delta: timedelta = timedelta(hours=12)) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def _headers(**claims):
    token = create_access_token({"sub": "u-1", "name": "Ana Ruiz", **claims})
    return {"Authorization": f"Bearer {token}"}


def test_normalize_role_picks_highest_priority_role():
    assert normalize_role("Warehouse, admin") == "admin"
    assert normalize_role("warehouse,supervisor") == "supervisor"
    assert normalize_role("guest,supervisor") == "supervisor"
    assert normalize_role("guest") is None
    assert normalize_role(None) is None


@pytest.mark.real_auth
def test_missing_token_is_401(client: TestClient):
    response = client.get("/api/warehouse")

    assert response.status_code == 401


@pytest.mark.real_auth
def test_invalid_and_expired_tokens_are_401(client: TestClient):
    expired = create_access_token({"sub": "u-1", "role": "admin"}, expires_delta=timedelta(minutes=-1))

    assert client.get("/api/warehouse", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
    assert client.get("/api/warehouse", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


@pytest.mark.real_auth
def test_token_without_known_role_is_401(client: TestClient):
    response = client.get("/api/warehouse", headers=_headers(role="guest"))

    assert response.status_code == 401


@pytest.mark.real_auth
def test_supervisor_token_reads_but_cannot_create_items(client: TestClient):
    headers = _headers(role="supervisor")

    assert client.get("/api/warehouse", headers=headers).status_code == 200
    response = client.post("/api/warehouse", json={"sku": "HERR-0001", "name": "Pinzas"}, headers=headers)
    assert response.status_code == 403


@pytest.mark.real_auth
def test_adjustment_records_actor_from_token(client: TestClient):
    headers = _headers(role="warehouse")
    item = client.post("/api/warehouse", json={"sku": "HERR-0001", "name": "Pinzas", "quantity_on_hand": 2}, headers=headers)

    response = client.post(
        f"/api/warehouse/{item.json()['id']}/adjustments",
        json={"delta": 3, "reason": "increase"},
        headers=headers,
    )

    assert response.status_code == 201
    assert response.json()["adjustment"]["actor_id"] == "u-1"
    assert response.json()["adjustment"]["actor_name"] == "Ana Ruiz"
    assert response.json()["adjustment"]["actor_role"] == "warehouse"


@pytest.mark.real_auth
def test_report_return_requires_write_role(client: TestClient):
    response = client.patch("/api/warehouse-reports/1/return", headers=_headers(role="supervisor"))

    assert response.status_code == 403
