import hashlib
import json
import logging
import time
from typing import Any, Callable


logger = logging.getLogger(__name__)

WORK_REPORT = "work_report"
WAREHOUSE_REPORT = "warehouse_report"


class NormalizationError(ValueError):
    pass


def _text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise NormalizationError(f"Expected text, got {type(value).__name__}")
    return value.strip()


def _items(value: Any) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise NormalizationError(f"Expected a list, got {type(value).__name__}")
    return value


def _normalize_worker(worker: Any) -> dict:
    if isinstance(worker, str):
        return {"nombre": worker.strip(), "puesto": ""}
    if isinstance(worker, dict):
        return {"nombre": _text(worker.get("nombre")), "puesto": _text(worker.get("puesto"))}
    raise NormalizationError("Malformed worker entry")


def _activity_name(activity: Any) -> str:
    if isinstance(activity, str):
        return activity.strip()
    if isinstance(activity, dict):
        return _text(activity.get("nombre")) or _text(activity.get("template_id"))
    raise NormalizationError("Malformed activity entry")


def _normalize_line_item(item: Any) -> dict:
    if not isinstance(item, dict):
        raise NormalizationError("Malformed line item")
    units = item.get("units")
    if isinstance(units, bool) or not isinstance(units, (int, float)):
        raise NormalizationError("Line item units must be numeric")
    return {
        "sku": _text(item.get("sku")),
        "name": _text(item.get("name")),
        "units": units,
        "observations": _text(item.get("observations")),
    }


def _line_item_key(item: dict) -> tuple:
    return (item["sku"], item["name"], item["units"], item["observations"])


def normalize_work_report(data: dict) -> dict:
    workers = [_normalize_worker(worker) for worker in _items(data.get("trabajadores"))]
    activities = [_activity_name(activity) for activity in _items(data.get("actividades_realizadas"))]
    return {
        "subsistema": _text(data.get("subsistema")),
        "ubicacion": _text(data.get("ubicacion")),
        "fecha_hora_inicio": _text(data.get("fecha_hora_inicio")),
        "turno": _text(data.get("turno")),
        "nombre_responsable": _text(data.get("nombre_responsable")),
        "trabajadores": sorted(workers, key=lambda worker: (worker["nombre"], worker["puesto"])),
        "actividades_realizadas": sorted(activities),
        "tipo_mantenimiento": _text(data.get("tipo_mantenimiento")),
        "frecuencia": _text(data.get("frecuencia")),
    }


def normalize_warehouse_report(data: dict) -> dict:
    herramientas = [_normalize_line_item(item) for item in _items(data.get("herramientas"))]
    refacciones = [_normalize_line_item(item) for item in _items(data.get("refacciones"))]
    return {
        "subsistema": _text(data.get("subsistema")),
        "fecha_hora_entrega": _text(data.get("fecha_hora_entrega")),
        "turno": _text(data.get("turno")),
        "tipo_mantenimiento": _text(data.get("tipo_mantenimiento")),
        "frecuencia": _text(data.get("frecuencia")),
        "nombre_quien_recibe": _text(data.get("nombre_quien_recibe")),
        "nombre_almacenista": _text(data.get("nombre_almacenista")),
        "herramientas": sorted(herramientas, key=_line_item_key),
        "refacciones": sorted(refacciones, key=_line_item_key),
    }


NORMALIZERS: dict[str, Callable[[dict], dict]] = {
    WORK_REPORT: normalize_work_report,
    WAREHOUSE_REPORT: normalize_warehouse_report,
}


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def fingerprint(payload: Any, kind: str) -> str:
    """SHA-256 of the normalized payload for ``kind``.

    Only the fields a normalizer projects take part in the hash; ids, folios,
    signatures and evidence links are left out. If the payload cannot be
    normalized, the raw payload is hashed with a nanosecond nonce so the
    request is never matched against anything else.
    """
    normalizer = NORMALIZERS[kind]
    try:
        if not isinstance(payload, dict):
            raise NormalizationError("Payload must be an object")
        normalized = normalizer(payload)
        return _digest(json.dumps(normalized, sort_keys=True, ensure_ascii=False, separators=(",", ":")))
    except NormalizationError as exc:
        logger.warning("Could not normalize %s payload for fingerprinting: %s", kind, exc)
        raw = json.dumps(payload, sort_keys=True, default=str)
        return _digest(f"{raw}{time.time_ns()}")
