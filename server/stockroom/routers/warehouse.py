from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from stockroom.auth import ADMIN_ROLES, ALL_ROLES, WRITE_ROLES, Actor, require_role
from stockroom.db import get_db
from stockroom.warehouse import schemas
from stockroom.warehouse.service import (
    DEFAULT_ADJUSTMENT_LIMIT,
    DuplicateSkuError,
    ItemNotFoundError,
    NegativeQuantityError,
    adjust,
    create_item,
    get_item,
    list_adjustments,
    list_items,
    set_status,
    update_item,
)


router = APIRouter(prefix="/api/warehouse", tags=["warehouse"])


def _get_item_or_404(db: Session, item_id: int):
    item = get_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Stock item not found.")
    return item


@router.get("", response_model=List[schemas.StockItemResponse])
def list_stock_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    item_status: Optional[schemas.ItemStatus] = Query(default=None, alias="status"),
    low_stock: bool = False,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    return list_items(
        db,
        search=search,
        category=category,
        location=location,
        status=item_status,
        low_stock=low_stock,
    )


@router.post("", response_model=schemas.StockItemResponse, status_code=status.HTTP_201_CREATED)
def create_stock_item(
    payload: schemas.StockItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(WRITE_ROLES)),
):
    try:
        item = create_item(db, payload.model_dump(), actor=actor)
        db.commit()
    except DuplicateSkuError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.refresh(item)
    return item


@router.get("/{item_id}", response_model=schemas.StockItemResponse)
def get_stock_item(
    item_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    return _get_item_or_404(db, item_id)


@router.patch("/{item_id}", response_model=schemas.StockItemResponse)
def update_stock_item(
    item_id: int,
    payload: schemas.StockItemUpdate,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(WRITE_ROLES)),
):
    try:
        item = update_item(db, item_id, payload.model_dump(exclude_unset=True))
        db.commit()
    except ItemNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.refresh(item)
    return item


@router.delete("/{item_id}", response_model=schemas.StockItemResponse)
def archive_stock_item(
    item_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ADMIN_ROLES)),
):
    try:
        item = set_status(db, item_id, "inactive")
        db.commit()
    except ItemNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    db.refresh(item)
    return item


@router.post("/{item_id}/reactivate", response_model=schemas.StockItemResponse)
def reactivate_stock_item(
    item_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ADMIN_ROLES)),
):
    try:
        item = set_status(db, item_id, "active")
        db.commit()
    except ItemNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    db.refresh(item)
    return item


@router.get("/{item_id}/adjustments", response_model=List[schemas.StockAdjustmentResponse])
def list_stock_adjustments(
    item_id: int,
    limit: int = Query(default=DEFAULT_ADJUSTMENT_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
    _: Actor = Depends(require_role(ALL_ROLES)),
):
    try:
        return list_adjustments(db, item_id, limit=limit)
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post(
    "/{item_id}/adjustments",
    response_model=schemas.StockAdjustmentResult,
    status_code=status.HTTP_201_CREATED,
)
def create_stock_adjustment(
    item_id: int,
    payload: schemas.StockAdjustmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(WRITE_ROLES)),
):
    try:
        item, adjustment = adjust(
            db,
            item_id,
            delta=payload.delta,
            reason=payload.reason,
            actor=actor,
            note=payload.note,
        )
        db.commit()
    except ItemNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except NegativeQuantityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=400,
            detail={
                "code": "NEGATIVE_NOT_ALLOWED",
                "message": str(exc),
                "available": exc.available,
            },
        ) from exc
    db.refresh(item)
    db.refresh(adjustment)
    return schemas.StockAdjustmentResult(
        item=schemas.StockItemResponse.model_validate(item),
        adjustment=schemas.StockAdjustmentResponse.model_validate(adjustment),
    )
