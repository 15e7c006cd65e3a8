"""Turns warehouse report line items into stock ledger adjustments.

A delivery debits every line item that carries a SKU, a return credits it
back. Per-item problems are collected into a summary and never stop the rest
of the batch; the adjustment ledger, not the summary, is the record of what
moved.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from stockroom.auth import Actor
from stockroom.models import WarehouseReport
from stockroom.warehouse.service import ItemNotFoundError, NegativeQuantityError, adjust, get_item_by_sku


logger = logging.getLogger(__name__)

DELIVERY = "delivery"
RETURN = "return"


class AdjustmentFailureCode(str, Enum):
    MISSING_SKU = "MISSING_SKU"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    NEGATIVE_NOT_ALLOWED = "NEGATIVE_NOT_ALLOWED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AdjustmentOutcome:
    success: bool
    code: Optional[AdjustmentFailureCode] = None
    failure_reason: Optional[str] = None


@dataclass
class StockAdjustmentSummary:
    processed: int = 0
    failed: list[dict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ReconciliationResult:
    summary: StockAdjustmentSummary
    processed_item_ids: list[str]


def _failure(code: AdjustmentFailureCode, reason: str) -> AdjustmentOutcome:
    return AdjustmentOutcome(success=False, code=code, failure_reason=reason)


def adjust_stock_for_report_action(
    db: Session,
    kind: str,
    *,
    sku: str,
    units: int,
    report_folio: str,
    actor: Actor,
) -> AdjustmentOutcome:
    units = abs(int(units))
    if units == 0:
        return AdjustmentOutcome(success=True)

    item = get_item_by_sku(db, sku)
    if item is None:
        return _failure(AdjustmentFailureCode.MISSING_SKU, "Stock item not found")

    delta = -units if kind == DELIVERY else units
    label = "Delivery" if kind == DELIVERY else "Return"
    try:
        with db.begin_nested():
            adjust(
                db,
                item.id,
                delta=delta,
                reason="decrease" if kind == DELIVERY else "increase",
                actor=actor,
                note=f"{label} via warehouse report {report_folio}",
            )
    except NegativeQuantityError as exc:
        if kind == DELIVERY:
            return _failure(
                AdjustmentFailureCode.INSUFFICIENT_STOCK,
                f"Insufficient stock. Available {exc.available}, requested {units}",
            )
        return _failure(AdjustmentFailureCode.NEGATIVE_NOT_ALLOWED, "Negative stock not allowed for this item")
    except ItemNotFoundError:
        return _failure(AdjustmentFailureCode.MISSING_SKU, "Stock item not found")
    except Exception:
        logger.exception(
            "Unexpected error adjusting stock for warehouse report: sku=%s folio=%s",
            sku,
            report_folio,
        )
        return _failure(AdjustmentFailureCode.UNKNOWN, "Unexpected error when applying stock adjustment")

    return AdjustmentOutcome(success=True)


def _process_items(
    db: Session,
    report: WarehouseReport,
    actor: Actor,
    kind: str,
    skip_item_ids: Iterable[str] = (),
) -> ReconciliationResult:
    summary = StockAdjustmentSummary()
    processed_item_ids: list[str] = []
    skip = set(skip_item_ids)

    for line in report.line_items:
        if line.get("id") in skip:
            continue

        sku = (line.get("sku") or "").strip()
        if not sku:
            summary.warnings.append(f'Item "{line.get("name", "")}" does not have a SKU and was skipped')
            continue

        outcome = adjust_stock_for_report_action(
            db,
            kind,
            sku=sku,
            units=line.get("units") or 0,
            report_folio=report.folio,
            actor=actor,
        )
        if outcome.success:
            summary.processed += 1
            processed_item_ids.append(line["id"])
            continue

        reason = outcome.failure_reason or "Unknown error"
        summary.failed.append({"sku": sku, "reason": reason, "code": outcome.code.value})
        summary.warnings.append(f"Failed to adjust SKU {sku}: {reason}")

    if summary.failed:
        logger.warning(
            "Warehouse report %s %s reconciled with failures: processed=%s failed=%s",
            report.folio,
            kind,
            summary.processed,
            len(summary.failed),
        )
    return ReconciliationResult(summary=summary, processed_item_ids=processed_item_ids)


def process_delivery(db: Session, report: WarehouseReport, actor: Actor) -> ReconciliationResult:
    return _process_items(db, report, actor, DELIVERY)


def process_return(
    db: Session,
    report: WarehouseReport,
    actor: Actor,
    skip_item_ids: Optional[Iterable[str]] = None,
) -> ReconciliationResult:
    if skip_item_ids is None:
        skip_item_ids = report.return_processed_item_ids or []
    return _process_items(db, report, actor, RETURN, skip_item_ids)
