from fastapi.testclient import TestClient

from stockroom.auth import Actor, get_current_actor
from stockroom.main import app


def _create(client: TestClient, **overrides):
    payload = {"sku": "HERR-0001", "name": "Pinzas de corte", "quantity_on_hand": 5, "min_quantity": 2}
    payload.update(overrides)
    return client.post("/api/warehouse", json=payload)


def test_create_and_get_item(client: TestClient):
    created = _create(client)

    assert created.status_code == 201
    body = created.json()
    assert body["available_quantity"] == 5
    assert body["is_below_minimum"] is False
    assert body["last_adjustment_by"] == {"id": "u-1", "name": "Test Admin", "role": "admin"}

    fetched = client.get(f"/api/warehouse/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["sku"] == "HERR-0001"


def test_duplicate_sku_is_409(client: TestClient):
    _create(client)

    response = _create(client, name="Otra")

    assert response.status_code == 409


def test_create_rejects_negative_initial_quantity(client: TestClient):
    response = _create(client, quantity_on_hand=-1)

    assert response.status_code == 422


def test_adjustment_overdraft_is_400_and_leaves_quantity(client: TestClient):
    item_id = _create(client).json()["id"]

    response = client.post(f"/api/warehouse/{item_id}/adjustments", json={"delta": -6, "reason": "decrease"})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "NEGATIVE_NOT_ALLOWED"
    assert response.json()["detail"]["available"] == 5
    assert client.get(f"/api/warehouse/{item_id}").json()["quantity_on_hand"] == 5


def test_adjustment_to_zero_and_history(client: TestClient):
    item_id = _create(client).json()["id"]

    response = client.post(
        f"/api/warehouse/{item_id}/adjustments",
        json={"delta": -5, "reason": "decrease", "note": "Salida a hangar"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["item"]["quantity_on_hand"] == 0
    assert body["item"]["is_below_minimum"] is True
    assert body["adjustment"]["resulting_quantity"] == 0

    history = client.get(f"/api/warehouse/{item_id}/adjustments")
    assert [entry["reason"] for entry in history.json()] == ["decrease", "initial"]


def test_zero_delta_is_rejected(client: TestClient):
    item_id = _create(client).json()["id"]

    response = client.post(f"/api/warehouse/{item_id}/adjustments", json={"delta": 0, "reason": "increase"})

    assert response.status_code == 422


def test_adjusting_unknown_item_is_404(client: TestClient):
    response = client.post("/api/warehouse/404/adjustments", json={"delta": 1, "reason": "increase"})

    assert response.status_code == 404
    assert client.get("/api/warehouse/404/adjustments").status_code == 404


def test_patch_cannot_change_quantity(client: TestClient):
    item_id = _create(client).json()["id"]

    rejected = client.patch(f"/api/warehouse/{item_id}", json={"quantity_on_hand": 100})
    accepted = client.patch(f"/api/warehouse/{item_id}", json={"location": "Anaquel C"})

    assert rejected.status_code == 422
    assert accepted.status_code == 200
    assert accepted.json()["location"] == "Anaquel C"
    assert accepted.json()["quantity_on_hand"] == 5


def test_archive_and_reactivate(client: TestClient):
    item_id = _create(client).json()["id"]

    archived = client.delete(f"/api/warehouse/{item_id}")
    assert archived.status_code == 200
    assert archived.json()["status"] == "inactive"
    assert [item["id"] for item in client.get("/api/warehouse", params={"status": "inactive"}).json()] == [item_id]

    reactivated = client.post(f"/api/warehouse/{item_id}/reactivate")
    assert reactivated.json()["status"] == "active"
    assert reactivated.json()["quantity_on_hand"] == 5


def test_list_filters_low_stock(client: TestClient):
    _create(client)
    _create(client, sku="HERR-0002", name="Taladro", quantity_on_hand=1, min_quantity=3)

    response = client.get("/api/warehouse", params={"low_stock": True})

    assert [item["sku"] for item in response.json()] == ["HERR-0002"]


def test_supervisor_can_read_but_not_adjust(client: TestClient):
    item_id = _create(client).json()["id"]
    app.dependency_overrides[get_current_actor] = lambda: Actor(id="u-9", name="Supervisor", role="supervisor")

    assert client.get(f"/api/warehouse/{item_id}").status_code == 200
    assert client.post(f"/api/warehouse/{item_id}/adjustments", json={"delta": 1, "reason": "increase"}).status_code == 403
    assert client.delete(f"/api/warehouse/{item_id}").status_code == 403


def test_warehouse_role_cannot_archive(client: TestClient):
    item_id = _create(client).json()["id"]
    app.dependency_overrides[get_current_actor] = lambda: Actor(id="u-5", name="Almacén", role="warehouse")

    assert client.post(f"/api/warehouse/{item_id}/adjustments", json={"delta": 1, "reason": "increase"}).status_code == 201
    assert client.delete(f"/api/warehouse/{item_id}").status_code == 403
