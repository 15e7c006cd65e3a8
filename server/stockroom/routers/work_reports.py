from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from stockroom.auth import ALL_ROLES, Actor, require_role
from stockroom.db import get_db
from stockroom.deduplication.dependencies import GuardedRequest, idempotent
from stockroom.deduplication.fingerprint import WORK_REPORT
from stockroom.warehouse_reports.service import InlineEvidenceError
from stockroom.work_reports import schemas
from stockroom.work_reports.service import create_work_report, get_work_report, list_work_reports


router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("", response_model=schemas.WorkReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: schemas.WorkReportCreate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
    guard: GuardedRequest = Depends(idempotent(WORK_REPORT)),
):
    data = payload.model_dump()
    early_response = guard.start(data)
    if early_response is not None:
        return early_response

    try:
        report = create_work_report(db, data)
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
    response = schemas.WorkReportResponse.model_validate(report)
    guard.complete(str(report.id), jsonable_encoder(response))
    return response


@router.get("", response_model=List[schemas.WorkReportResponse])
def list_reports(
    subsistema: Optional[str] = None,
    frecuencia: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    return list_work_reports(db, subsistema=subsistema, frecuencia=frecuencia, limit=limit, offset=offset)


@router.get("/{report_id}", response_model=schemas.WorkReportResponse)
def get_report(
    report_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    report = get_work_report(db, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found.")
    return report
