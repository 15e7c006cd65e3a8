from stockroom.deduplication.fingerprint import WAREHOUSE_REPORT, WORK_REPORT, fingerprint


def _warehouse_payload(**overrides):
    payload = {
        "subsistema": "Tren de aterrizaje",
        "fecha_hora_entrega": "2026-03-02T08:00",
        "turno": "Matutino",
        "tipo_mantenimiento": "Preventivo",
        "frecuencia": "Mensual",
        "nombre_quien_recibe": "Luis Pérez",
        "nombre_almacenista": "Ana Ruiz",
        "herramientas": [
            {"id": "h1", "sku": "HERR-0001", "name": "Pinzas", "units": 2, "observations": ""},
            {"id": "h2", "sku": "HERR-0002", "name": "Taladro", "units": 1, "observations": "con broca"},
        ],
        "refacciones": [],
    }
    payload.update(overrides)
    return payload


def _work_payload(**overrides):
    payload = {
        "subsistema": "Frenos",
        "ubicacion": "Hangar 2",
        "fecha_hora_inicio": "2026-03-02T08:00",
        "turno": "Matutino",
        "nombre_responsable": "Marta Gil",
        "trabajadores": ["Juan", "Alicia"],
        "actividades_realizadas": [
            {"template_id": "t1", "nombre": "Revisión de balatas", "realizado": True},
            {"template_id": "t2", "nombre": "Limpieza", "realizado": True},
        ],
        "tipo_mantenimiento": "Preventivo",
        "frecuencia": "Semanal",
    }
    payload.update(overrides)
    return payload


def test_warehouse_fingerprint_ignores_line_item_order_ids_and_whitespace():
    original = _warehouse_payload()
    shuffled = _warehouse_payload(
        subsistema="  Tren de aterrizaje ",
        herramientas=[
            {"id": "x9", "sku": "HERR-0002", "name": "Taladro ", "units": 1, "observations": "con broca"},
            {"id": "x8", "sku": " HERR-0001", "name": "Pinzas", "units": 2, "observations": ""},
        ],
        folio="FA-0099",
        firma_almacenista="https://files.example/sig.png",
    )

    assert fingerprint(original, WAREHOUSE_REPORT) == fingerprint(shuffled, WAREHOUSE_REPORT)


def test_warehouse_fingerprint_changes_with_units():
    changed = _warehouse_payload()
    changed["herramientas"][0]["units"] = 3

    assert fingerprint(_warehouse_payload(), WAREHOUSE_REPORT) != fingerprint(changed, WAREHOUSE_REPORT)


def test_work_fingerprint_ignores_worker_and_activity_order():
    reordered = _work_payload(
        trabajadores=["Alicia", "Juan"],
        actividades_realizadas=[
            {"template_id": "t2", "nombre": "Limpieza"},
            {"template_id": "t1", "nombre": "Revisión de balatas"},
        ],
    )

    assert fingerprint(_work_payload(), WORK_REPORT) == fingerprint(reordered, WORK_REPORT)


def test_work_fingerprint_accepts_legacy_worker_objects():
    legacy = _work_payload(trabajadores=[{"nombre": "Juan", "puesto": ""}, {"nombre": "Alicia"}])

    assert fingerprint(_work_payload(), WORK_REPORT) == fingerprint(legacy, WORK_REPORT)


def test_kinds_are_hashed_independently():
    assert fingerprint(_work_payload(), WORK_REPORT) != fingerprint(_work_payload(), WAREHOUSE_REPORT)


def test_malformed_payload_never_matches_itself():
    malformed = _warehouse_payload(herramientas="not-a-list")

    first = fingerprint(malformed, WAREHOUSE_REPORT)
    second = fingerprint(malformed, WAREHOUSE_REPORT)

    assert first != second
    assert len(first) == 64


def test_non_object_payload_falls_back_to_nonce_hash():
    assert fingerprint(["a"], WORK_REPORT) != fingerprint(["a"], WORK_REPORT)
