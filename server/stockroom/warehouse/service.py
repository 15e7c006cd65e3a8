from datetime import datetime
import logging
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockroom.auth import Actor
from stockroom.models import ADJUSTMENT_REASONS, ITEM_STATUSES, StockAdjustment, StockItem


logger = logging.getLogger(__name__)

DEFAULT_ADJUSTMENT_LIMIT = 50
UPDATABLE_FIELDS = {
    "name",
    "description",
    "category",
    "location",
    "unit",
    "min_quantity",
    "max_quantity",
    "reorder_point",
    "allow_negative",
    "tags",
    "status",
}


class LedgerError(ValueError):
    pass


class DuplicateSkuError(LedgerError):
    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"SKU {sku} already exists.")


class ItemNotFoundError(LedgerError):
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Stock item {item_id} not found.")


class NegativeQuantityError(LedgerError):
    def __init__(self, *, item_id: int, sku: str, available: int, delta: int):
        self.item_id = item_id
        self.sku = sku
        self.available = available
        self.delta = delta
        super().__init__(
            f"Quantity for {sku} cannot go below zero (available {available}, delta {delta})."
        )


def get_item(db: Session, item_id: int) -> Optional[StockItem]:
    return db.query(StockItem).filter(StockItem.id == item_id).first()


def get_item_by_sku(db: Session, sku: str) -> Optional[StockItem]:
    return db.query(StockItem).filter(StockItem.sku == sku).first()


def list_items(
    db: Session,
    *,
    search: str | None = None,
    category: str | None = None,
    location: str | None = None,
    status: str | None = None,
    low_stock: bool = False,
) -> list[StockItem]:
    query = db.query(StockItem)
    if category:
        query = query.filter(StockItem.category == category)
    if location:
        query = query.filter(StockItem.location == location)
    if status:
        query = query.filter(StockItem.status == status)
    if low_stock:
        query = query.filter(
            StockItem.min_quantity.isnot(None),
            StockItem.quantity_on_hand < StockItem.min_quantity,
        )
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            or_(
                StockItem.name.ilike(like),
                StockItem.sku.ilike(like),
                StockItem.description.ilike(like),
            )
        )
    return query.order_by(StockItem.name.asc()).all()


def _stamp_actor(actor: Actor | None) -> dict:
    return {
        "actor_id": actor.id if actor else None,
        "actor_name": actor.name if actor else None,
        "actor_role": actor.role if actor else None,
    }


def create_item(db: Session, data: dict, *, actor: Actor | None = None) -> StockItem:
    sku = (data.get("sku") or "").strip()
    if not sku:
        raise ValueError("SKU is required.")
    quantity = int(data.get("quantity_on_hand") or 0)
    if quantity < 0:
        raise ValueError("Initial quantity cannot be negative.")

    if get_item_by_sku(db, sku) is not None:
        raise DuplicateSkuError(sku)

    now = datetime.utcnow()
    item = StockItem(
        sku=sku,
        name=data["name"],
        description=data.get("description"),
        category=data.get("category"),
        location=data.get("location"),
        unit=data.get("unit"),
        tags=list(data.get("tags") or []),
        quantity_on_hand=quantity,
        min_quantity=data.get("min_quantity"),
        max_quantity=data.get("max_quantity"),
        reorder_point=data.get("reorder_point"),
        allow_negative=bool(data.get("allow_negative", False)),
        status=data.get("status") or "active",
        created_at=now,
        updated_at=now,
    )
    try:
        with db.begin_nested():
            db.add(item)
    except IntegrityError as exc:
        # Lost a concurrent insert of the same sku.
        raise DuplicateSkuError(sku) from exc

    if quantity > 0:
        stamp = _stamp_actor(actor)
        item.last_adjustment_at = now
        item.last_adjustment_by_id = stamp["actor_id"]
        item.last_adjustment_by_name = stamp["actor_name"]
        item.last_adjustment_by_role = stamp["actor_role"]
        db.add(
            StockAdjustment(
                item_id=item.id,
                delta=quantity,
                reason="initial",
                note="Initial quantity",
                resulting_quantity=quantity,
                created_at=now,
                **stamp,
            )
        )
        db.flush()

    logger.info("Created stock item sku=%s id=%s quantity=%s", item.sku, item.id, quantity)
    return item


def update_item(db: Session, item_id: int, updates: dict) -> StockItem:
    item = get_item(db, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)

    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    if "status" in updates and updates["status"] not in ITEM_STATUSES:
        raise ValueError(f"Unknown status: {updates['status']}")

    for field, value in updates.items():
        setattr(item, field, list(value) if field == "tags" and value is not None else value)
    item.updated_at = datetime.utcnow()
    db.flush()
    return item


def set_status(db: Session, item_id: int, status: str) -> StockItem:
    if status not in ITEM_STATUSES:
        raise ValueError(f"Unknown status: {status}")
    item = get_item(db, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    item.status = status
    item.updated_at = datetime.utcnow()
    db.flush()
    return item


def adjust(
    db: Session,
    item_id: int,
    *,
    delta: int,
    reason: str,
    actor: Actor | None = None,
    note: str | None = None,
) -> tuple[StockItem, StockAdjustment]:
    """Apply a signed delta to an item's on-hand quantity and append it to the ledger.

    The balance change and the overdraft check are one conditional UPDATE, so
    concurrent adjustments on the same row serialize in the database instead of
    racing on a value read earlier. When the UPDATE matches no row nothing has
    been written and the caller gets ``ItemNotFoundError`` or
    ``NegativeQuantityError``.
    """
    delta = int(delta)
    if delta == 0:
        raise ValueError("delta must not be zero")
    if reason not in ADJUSTMENT_REASONS:
        raise ValueError(f"Unknown adjustment reason: {reason}")

    now = datetime.utcnow()
    stamp = _stamp_actor(actor)
    stmt = (
        update(StockItem)
        .where(StockItem.id == item_id)
        .where(or_(StockItem.allow_negative.is_(True), StockItem.quantity_on_hand + delta >= 0))
        .values(
            quantity_on_hand=StockItem.quantity_on_hand + delta,
            last_adjustment_at=now,
            last_adjustment_by_id=stamp["actor_id"],
            last_adjustment_by_name=stamp["actor_name"],
            last_adjustment_by_role=stamp["actor_role"],
            updated_at=now,
        )
        .returning(StockItem.quantity_on_hand)
        .execution_options(synchronize_session=False)
    )
    resulting_quantity = db.execute(stmt).scalar_one_or_none()

    if resulting_quantity is None:
        item = db.get(StockItem, item_id, populate_existing=True)
        if item is None:
            raise ItemNotFoundError(item_id)
        raise NegativeQuantityError(
            item_id=item.id,
            sku=item.sku,
            available=item.quantity_on_hand,
            delta=delta,
        )

    adjustment = StockAdjustment(
        item_id=item_id,
        delta=delta,
        reason=reason,
        note=note,
        resulting_quantity=resulting_quantity,
        created_at=now,
        **stamp,
    )
    db.add(adjustment)
    db.flush()

    item = db.get(StockItem, item_id, populate_existing=True)
    logger.debug(
        "Stock adjusted: item_id=%s delta=%s reason=%s resulting_quantity=%s",
        item_id,
        delta,
        reason,
        resulting_quantity,
    )
    return item, adjustment


def list_adjustments(db: Session, item_id: int, limit: int = DEFAULT_ADJUSTMENT_LIMIT) -> list[StockAdjustment]:
    if get_item(db, item_id) is None:
        raise ItemNotFoundError(item_id)
    return (
        db.query(StockAdjustment)
        .filter(StockAdjustment.item_id == item_id)
        .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
        .limit(limit)
        .all()
    )
