from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from stockroom.models import WorkReport
from stockroom.utils.folio import next_folio
from stockroom.warehouse_reports.service import InlineEvidenceError


logger = logging.getLogger(__name__)

FOLIO_PREFIX = "FT"


def _reject_inline_signature(data: dict) -> None:
    signature = data.get("firma_responsable")
    if isinstance(signature, str) and signature.startswith("data:"):
        raise InlineEvidenceError(
            "Base64 data found in firma_responsable. Signature must be uploaded before creating the report."
        )
    for activity in data.get("actividades_realizadas") or []:
        for evidence in activity.get("evidencias") or []:
            if isinstance(evidence, str) and evidence.startswith("data:"):
                raise InlineEvidenceError(
                    "Base64 data found in activity evidences. "
                    "All images must be uploaded before creating the report."
                )


def create_work_report(db: Session, data: dict) -> WorkReport:
    _reject_inline_signature(data)

    template_ids = list(data.get("template_ids") or [])
    if data.get("template_id") and data["template_id"] not in template_ids:
        template_ids.insert(0, data["template_id"])

    now = datetime.utcnow()
    report = WorkReport(
        folio=next_folio(db, WorkReport, FOLIO_PREFIX),
        subsistema=data["subsistema"],
        ubicacion=data["ubicacion"],
        fecha=data["fecha_hora_inicio"][:10],
        fecha_hora_inicio=data["fecha_hora_inicio"],
        fecha_hora_termino=data.get("fecha_hora_termino") or now.isoformat(),
        turno=data.get("turno") or "",
        frecuencia=data["frecuencia"],
        tipo_mantenimiento=data["tipo_mantenimiento"],
        template_ids=template_ids,
        trabajadores=data["trabajadores"],
        actividades_realizadas=data.get("actividades_realizadas") or [],
        inspeccion_realizada=bool(data.get("inspeccion_realizada")),
        observaciones_actividad=data.get("observaciones_actividad"),
        herramientas=data.get("herramientas") or [],
        refacciones=data.get("refacciones") or [],
        observaciones_generales=data.get("observaciones_generales"),
        nombre_responsable=data["nombre_responsable"],
        firma_responsable=data.get("firma_responsable"),
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    db.flush()
    logger.info("Created work report %s", report.folio)
    return report


def list_work_reports(
    db: Session,
    *,
    subsistema: str | None = None,
    frecuencia: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[WorkReport]:
    query = db.query(WorkReport)
    if subsistema:
        query = query.filter(WorkReport.subsistema == subsistema)
    if frecuencia:
        query = query.filter(WorkReport.frecuencia == frecuencia)
    return (
        query.order_by(WorkReport.created_at.desc(), WorkReport.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_work_report(db: Session, report_id: int) -> Optional[WorkReport]:
    return db.query(WorkReport).filter(WorkReport.id == report_id).first()
