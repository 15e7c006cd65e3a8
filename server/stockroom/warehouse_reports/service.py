from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from stockroom.auth import Actor
from stockroom.models import WarehouseReport
from stockroom.utils.folio import next_folio
from stockroom.warehouse_reports.reconciler import StockAdjustmentSummary, process_delivery, process_return


logger = logging.getLogger(__name__)

FOLIO_PREFIX = "FA"
DEFAULT_LIMIT = 100
DEFAULT_FRECUENCIA = "Eventual"
SIGNATURE_FIELDS = ("firma_quien_recibe", "firma_almacenista", "firma_quien_entrega")


class ReportNotFoundError(ValueError):
    pass


class InlineEvidenceError(ValueError):
    pass


def validate_no_base64_data(data: dict) -> None:
    """Evidence and signatures must be uploaded to storage before the report is created."""
    for field_name in ("herramientas", "refacciones"):
        for item in data.get(field_name) or []:
            for evidence in item.get("evidences") or []:
                preview_url = evidence.get("preview_url")
                if evidence.get("base64") or (isinstance(preview_url, str) and preview_url.startswith("data:")):
                    raise InlineEvidenceError(
                        f"Base64 data found in {field_name} evidences. "
                        "All images must be uploaded before creating the report."
                    )

    for field_name in SIGNATURE_FIELDS:
        signature = data.get(field_name)
        if isinstance(signature, str) and signature.startswith("data:"):
            raise InlineEvidenceError(
                f"Base64 data found in {field_name}. Signature must be uploaded before creating the report."
            )


def _normalize_items(items: list[dict]) -> list[dict]:
    return [
        {
            "id": item["id"],
            "sku": (item.get("sku") or "").strip() or None,
            "name": item.get("name", ""),
            "units": int(item.get("units") or 0),
            "observations": item.get("observations") or "",
            "evidences": [
                {"id": evidence["id"], "preview_url": evidence["preview_url"]}
                for evidence in item.get("evidences") or []
            ],
        }
        for item in items
    ]


def get_warehouse_report(db: Session, report_id: int) -> Optional[WarehouseReport]:
    return db.query(WarehouseReport).filter(WarehouseReport.id == report_id).first()


def list_warehouse_reports(
    db: Session,
    *,
    subsistema: str | None = None,
    frecuencia: str | None = None,
    tipo_mantenimiento: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[list[WarehouseReport], int, int, int]:
    query = db.query(WarehouseReport)
    if subsistema:
        query = query.filter(WarehouseReport.subsistema == subsistema)
    if frecuencia:
        query = query.filter(WarehouseReport.frecuencia == frecuencia)
    if tipo_mantenimiento:
        query = query.filter(WarehouseReport.tipo_mantenimiento == tipo_mantenimiento)

    limit = DEFAULT_LIMIT if limit is None else limit
    offset = offset or 0
    total = query.count()
    rows = (
        query.order_by(WarehouseReport.created_at.desc(), WarehouseReport.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total, limit, offset


def create_warehouse_report(
    db: Session,
    data: dict,
    actor: Actor,
) -> tuple[WarehouseReport, StockAdjustmentSummary]:
    """Persist the report and debit stock for every delivered line item.

    Stock failures on individual items are reported in the summary; the report
    is created regardless.
    """
    validate_no_base64_data(data)

    now = datetime.utcnow()
    report = WarehouseReport(
        folio=next_folio(db, WarehouseReport, FOLIO_PREFIX),
        subsistema=data["subsistema"],
        fecha_hora_entrega=data["fecha_hora_entrega"],
        fecha_hora_recepcion=data.get("fecha_hora_recepcion"),
        turno=data.get("turno") or "",
        tipo_mantenimiento=data["tipo_mantenimiento"],
        frecuencia=data.get("frecuencia") or DEFAULT_FRECUENCIA,
        template_id=data.get("template_id"),
        nombre_quien_recibe=data["nombre_quien_recibe"],
        nombre_almacenista=data["nombre_almacenista"],
        nombre_quien_entrega=data.get("nombre_quien_entrega") or "",
        nombre_almacenista_cierre=data.get("nombre_almacenista_cierre") or "",
        herramientas=_normalize_items(data.get("herramientas") or []),
        refacciones=_normalize_items(data.get("refacciones") or []),
        observaciones_generales=data.get("observaciones_generales"),
        firma_quien_recibe=data.get("firma_quien_recibe"),
        firma_almacenista=data.get("firma_almacenista"),
        firma_quien_entrega=data.get("firma_quien_entrega"),
        return_processed_item_ids=[],
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    db.flush()

    result = process_delivery(db, report, actor)
    if result.summary.processed > 0:
        report.delivery_adjusted_at = datetime.utcnow()
        db.flush()

    logger.info(
        "Created warehouse report %s: processed=%s failed=%s",
        report.folio,
        result.summary.processed,
        len(result.summary.failed),
    )
    return report, result.summary


def process_report_return(
    db: Session,
    report_id: int,
    actor: Actor,
    fecha_hora_recepcion: str | None = None,
) -> tuple[WarehouseReport, StockAdjustmentSummary]:
    report = (
        db.query(WarehouseReport)
        .filter(WarehouseReport.id == report_id)
        .with_for_update()
        .first()
    )
    if report is None:
        raise ReportNotFoundError(f"Warehouse report {report_id} not found.")

    already_processed = list(report.return_processed_item_ids or [])
    result = process_return(db, report, actor, skip_item_ids=already_processed)

    now = datetime.utcnow()
    if result.processed_item_ids:
        report.return_processed_item_ids = list(dict.fromkeys([*already_processed, *result.processed_item_ids]))
        report.return_adjusted_at = now

    if not report.fecha_hora_recepcion or fecha_hora_recepcion is not None:
        report.fecha_hora_recepcion = (
            fecha_hora_recepcion or report.fecha_hora_recepcion or now.isoformat()
        )

    report.updated_at = now
    db.flush()
    return report, result.summary


def update_warehouse_report(db: Session, report_id: int, updates: dict) -> WarehouseReport:
    report = get_warehouse_report(db, report_id)
    if report is None:
        raise ReportNotFoundError(f"Warehouse report {report_id} not found.")
    validate_no_base64_data(updates)
    for field_name, value in updates.items():
        setattr(report, field_name, value)
    report.updated_at = datetime.utcnow()
    db.flush()
    return report


def delete_warehouse_report(db: Session, report_id: int) -> None:
    report = get_warehouse_report(db, report_id)
    if report is None:
        raise ReportNotFoundError(f"Warehouse report {report_id} not found.")
    db.delete(report)
    db.flush()
