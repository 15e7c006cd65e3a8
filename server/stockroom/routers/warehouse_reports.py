from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from stockroom.auth import ALL_ROLES, WRITE_ROLES, Actor, require_role
from stockroom.db import get_db
from stockroom.deduplication.dependencies import GuardedRequest, idempotent
from stockroom.deduplication.fingerprint import WAREHOUSE_REPORT
from stockroom.models import WarehouseReport
from stockroom.warehouse_reports import schemas
from stockroom.warehouse_reports.reconciler import StockAdjustmentSummary
from stockroom.warehouse_reports.service import (
    DEFAULT_FRECUENCIA,
    InlineEvidenceError,
    ReportNotFoundError,
    create_warehouse_report,
    delete_warehouse_report,
    get_warehouse_report,
    list_warehouse_reports,
    process_report_return,
    update_warehouse_report,
)


router = APIRouter(prefix="/api/warehouse-reports", tags=["warehouse-reports"])


def _format_fecha(value: str) -> str:
    try:
        return datetime.fromisoformat(value[:10]).strftime("%d/%m/%Y")
    except (TypeError, ValueError):
        return value or ""


def _to_response(
    report: WarehouseReport,
    summary: StockAdjustmentSummary | None = None,
) -> schemas.WarehouseReportResponse:
    return schemas.WarehouseReportResponse(
        id=report.id,
        folio=report.folio,
        subsistema=report.subsistema,
        fecha_hora_entrega=report.fecha_hora_entrega,
        fecha_hora_recepcion=report.fecha_hora_recepcion,
        turno=report.turno or "",
        tipo_mantenimiento=report.tipo_mantenimiento,
        frecuencia=report.frecuencia or DEFAULT_FRECUENCIA,
        template_id=report.template_id,
        nombre_quien_recibe=report.nombre_quien_recibe,
        nombre_almacenista=report.nombre_almacenista,
        nombre_quien_entrega=report.nombre_quien_entrega or "",
        nombre_almacenista_cierre=report.nombre_almacenista_cierre or "",
        observaciones_generales=report.observaciones_generales,
        firma_quien_recibe=report.firma_quien_recibe,
        firma_almacenista=report.firma_almacenista,
        firma_quien_entrega=report.firma_quien_entrega,
        herramientas=report.herramientas or [],
        refacciones=report.refacciones or [],
        return_processed_item_ids=report.return_processed_item_ids or [],
        delivery_adjusted_at=report.delivery_adjusted_at,
        return_adjusted_at=report.return_adjusted_at,
        created_at=report.created_at,
        updated_at=report.updated_at,
        fecha_entrega=_format_fecha(report.fecha_hora_entrega),
        responsable_almacen=report.nombre_almacenista or "",
        responsable_recepcion=report.nombre_quien_recibe or "",
        stock_adjustments=summary.as_dict() if summary is not None else None,
    )


@router.post("", response_model=schemas.WarehouseReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: schemas.WarehouseReportCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(ALL_ROLES)),
    guard: GuardedRequest = Depends(idempotent(WAREHOUSE_REPORT)),
):
    data = payload.model_dump()
    early_response = guard.start(data)
    if early_response is not None:
        return early_response

    try:
        report, summary = create_warehouse_report(db, data, actor)
        db.commit()
    except InlineEvidenceError as exc:
        db.rollback()
        guard.fail(str(exc))
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        db.rollback()
        guard.fail(str(exc))
        raise

    db.refresh(report)
    response = _to_response(report, summary)
    guard.complete(str(report.id), jsonable_encoder(response))
    return response


@router.get("", response_model=schemas.WarehouseReportListResponse)
def list_reports(
    subsistema: Optional[str] = None,
    frecuencia: Optional[str] = None,
    tipo_mantenimiento: Optional[str] = Query(default=None, alias="tipoMantenimiento"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: Optional[int] = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    rows, total, limit, offset = list_warehouse_reports(
        db,
        subsistema=subsistema,
        frecuencia=frecuencia,
        tipo_mantenimiento=tipo_mantenimiento,
        limit=limit,
        offset=offset,
    )
    return schemas.WarehouseReportListResponse(
        data=[_to_response(report) for report in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{report_id}", response_model=schemas.WarehouseReportResponse)
def get_report(
    report_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    report = get_warehouse_report(db, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Warehouse report not found.")
    return _to_response(report)


@router.put("/{report_id}", response_model=schemas.WarehouseReportResponse)
def update_report(
    report_id: int,
    payload: schemas.WarehouseReportUpdate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(WRITE_ROLES)),
):
    try:
        report = update_warehouse_report(db, report_id, payload.model_dump(exclude_unset=True))
        db.commit()
    except ReportNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InlineEvidenceError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.refresh(report)
    return _to_response(report)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    report_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(WRITE_ROLES)),
):
    try:
        delete_warehouse_report(db, report_id)
        db.commit()
    except ReportNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.patch("/{report_id}/return", response_model=schemas.WarehouseReportResponse)
def return_report(
    report_id: int,
    payload: Optional[schemas.WarehouseReportReturn] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(WRITE_ROLES)),
):
    fecha_hora_recepcion = payload.fecha_hora_recepcion if payload else None
    try:
        report, summary = process_report_return(db, report_id, actor, fecha_hora_recepcion)
        db.commit()
    except ReportNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    db.refresh(report)
    return _to_response(report, summary)
