from fastapi.testclient import TestClient

from stockroom.config import settings
from stockroom.models import RequestDeduplication, WorkReport


def _payload(**overrides):
    payload = {
        "subsistema": "Frenos",
        "ubicacion": "Hangar 2",
        "fecha_hora_inicio": "2026-03-02T08:00",
        "fecha_hora_termino": "2026-03-02T11:30",
        "turno": "Matutino",
        "frecuencia": "Semanal",
        "tipo_mantenimiento": "Preventivo",
        "template_id": "tpl-frenos",
        "trabajadores": ["Juan", "Alicia"],
        "actividades_realizadas": [
            {"template_id": "t1", "nombre": "Revisión de balatas", "realizado": True, "evidencias": []},
        ],
        "inspeccion_realizada": True,
        "herramientas": ["Torquímetro"],
        "refacciones": [],
        "nombre_responsable": "Marta Gil",
    }
    payload.update(overrides)
    return payload


def test_create_work_report_assigns_folio_and_date(client: TestClient):
    response = client.post("/api/reports", json=_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["folio"] == "FT-0001"
    assert body["fecha"] == "2026-03-02"
    assert body["template_ids"] == ["tpl-frenos"]
    assert body["actividades_realizadas"][0]["nombre"] == "Revisión de balatas"


def test_missing_end_time_defaults_to_now(client: TestClient):
    response = client.post("/api/reports", json=_payload(fecha_hora_termino=None))

    assert response.status_code == 201
    assert response.json()["fecha_hora_termino"]


def test_reordered_duplicate_submission_is_replayed(client: TestClient, session_factory):
    first = client.post("/api/reports", json=_payload())
    second = client.post("/api/reports", json=_payload(trabajadores=["Alicia", " Juan "]))

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    with session_factory() as db:
        assert db.query(WorkReport).count() == 1


def test_different_reports_are_both_created(client: TestClient):
    first = client.post("/api/reports", json=_payload())
    second = client.post("/api/reports", json=_payload(ubicacion="Hangar 3"))

    assert first.status_code == second.status_code == 201
    assert second.json()["folio"] == "FT-0002"


def test_workers_are_required(client: TestClient):
    assert client.post("/api/reports", json=_payload(trabajadores=[])).status_code == 422
    assert client.post("/api/reports", json=_payload(trabajadores=["  "])).status_code == 422


def test_inline_signature_is_rejected(client: TestClient, session_factory):
    response = client.post("/api/reports", json=_payload(firma_responsable="data:image/png;base64,AAAA"))

    assert response.status_code == 400
    with session_factory() as db:
        assert db.query(WorkReport).count() == 0
        assert db.query(RequestDeduplication).one().status == "failed"


def test_list_and_get_reports(client: TestClient):
    report_id = client.post("/api/reports", json=_payload()).json()["id"]
    client.post("/api/reports", json=_payload(subsistema="Motor"))

    listing = client.get("/api/reports", params={"subsistema": "Motor"})
    assert [report["subsistema"] for report in listing.json()] == ["Motor"]

    assert client.get(f"/api/reports/{report_id}").json()["folio"] == "FT-0001"
    assert client.get("/api/reports/999").status_code == 404


def test_disabled_deduplication_creates_every_submission(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "deduplication_enabled", False)

    first = client.post("/api/reports", json=_payload())
    second = client.post("/api/reports", json=_payload())

    assert first.status_code == second.status_code == 201
    assert first.json()["id"] != second.json()["id"]
