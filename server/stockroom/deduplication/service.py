from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stockroom.deduplication.fingerprint import fingerprint
from stockroom.models import RequestDeduplication


logger = logging.getLogger(__name__)

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class GuardDecision(str, Enum):
    PROCEED = "ok-proceed"
    DUPLICATE_IN_PROGRESS = "duplicate-in-progress"
    REPLAY = "duplicate-completed-replay"
    RETRY_ALLOWED = "duplicate-failed-retry-allowed"


@dataclass(frozen=True)
class GuardOutcome:
    decision: GuardDecision
    request_hash: Optional[str] = None
    result_data: Any = None

    @property
    def should_process(self) -> bool:
        return self.decision in (GuardDecision.PROCEED, GuardDecision.RETRY_ALLOWED)


def _short(request_hash: str) -> str:
    return f"{request_hash[:8]}..."


def _key_filter(query, request_hash: str, endpoint: str, method: str):
    return query.filter(
        RequestDeduplication.request_hash == request_hash,
        RequestDeduplication.endpoint == endpoint,
        RequestDeduplication.method == method,
    )


def is_expired(record: RequestDeduplication, now: datetime | None = None) -> bool:
    return record.expires_at <= (now or datetime.utcnow())


def check_duplication(
    db: Session,
    request_hash: str,
    endpoint: str,
    method: str,
    *,
    now: datetime | None = None,
) -> Optional[RequestDeduplication]:
    record = _key_filter(db.query(RequestDeduplication), request_hash, endpoint, method).first()
    if record is None or is_expired(record, now):
        return None
    return record


def mark_in_progress(
    db: Session,
    request_hash: str,
    endpoint: str,
    method: str,
    *,
    ttl_hours: int,
    now: datetime | None = None,
) -> bool:
    """Claim the request key. Returns False when another request already holds it.

    A fresh key is claimed by INSERT and the unique constraint picks the winner.
    A failed or expired record is re-armed with a compare-and-set UPDATE on its
    previous status and expiry, so only one retry can take it over.
    """
    now = now or datetime.utcnow()
    expires_at = now + timedelta(hours=ttl_hours)
    existing = _key_filter(db.query(RequestDeduplication), request_hash, endpoint, method).first()

    if existing is None:
        db.add(
            RequestDeduplication(
                request_hash=request_hash,
                endpoint=endpoint,
                method=method,
                status=STATUS_IN_PROGRESS,
                created_at=now,
                expires_at=expires_at,
            )
        )
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Request already marked as in-progress: %s", _short(request_hash))
            return False
        return True

    if existing.status != STATUS_FAILED and not is_expired(existing, now):
        return False

    result = db.execute(
        update(RequestDeduplication)
        .where(
            RequestDeduplication.id == existing.id,
            RequestDeduplication.status == existing.status,
            RequestDeduplication.expires_at == existing.expires_at,
        )
        .values(
            status=STATUS_IN_PROGRESS,
            result_id=None,
            result_data=None,
            error=None,
            created_at=now,
            expires_at=expires_at,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.expire(existing)
    return result.rowcount == 1


def mark_completed(
    db: Session,
    request_hash: str,
    endpoint: str,
    method: str,
    *,
    result_id: str,
    result_data: Any,
) -> None:
    try:
        _key_filter(db.query(RequestDeduplication), request_hash, endpoint, method).update(
            {"status": STATUS_COMPLETED, "result_id": result_id, "result_data": result_data},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error marking request completed: %s", _short(request_hash))


def mark_failed(db: Session, request_hash: str, endpoint: str, method: str, *, error: str) -> None:
    try:
        _key_filter(db.query(RequestDeduplication), request_hash, endpoint, method).update(
            {"status": STATUS_FAILED, "error": error},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error marking request failed: %s", _short(request_hash))


def complete_in_new_session(session_factory: sessionmaker, request_hash: str, endpoint: str, method: str, result_id: str, result_data: Any) -> None:
    with session_factory() as db:
        mark_completed(db, request_hash, endpoint, method, result_id=result_id, result_data=result_data)


def fail_in_new_session(session_factory: sessionmaker, request_hash: str, endpoint: str, method: str, error: str) -> None:
    with session_factory() as db:
        mark_failed(db, request_hash, endpoint, method, error=error)


def evaluate_request(
    db: Session,
    payload: Any,
    *,
    kind: str,
    endpoint: str,
    method: str,
    enabled: bool = True,
    ttl_hours: int = 24,
    now: datetime | None = None,
) -> GuardOutcome:
    if not enabled:
        return GuardOutcome(GuardDecision.PROCEED)

    request_hash = fingerprint(payload, kind)
    try:
        existing = check_duplication(db, request_hash, endpoint, method, now=now)
    except SQLAlchemyError:
        # An unreadable guard table never blocks the request it wraps.
        db.rollback()
        logger.exception("Idempotency check failed, processing request without it")
        return GuardOutcome(GuardDecision.PROCEED)

    if existing is not None and existing.status == STATUS_IN_PROGRESS:
        logger.info("Duplicate in-progress request detected: %s", _short(request_hash))
        return GuardOutcome(GuardDecision.DUPLICATE_IN_PROGRESS, request_hash)

    if existing is not None and existing.status == STATUS_COMPLETED:
        logger.info("Returning cached result for request: %s", _short(request_hash))
        return GuardOutcome(GuardDecision.REPLAY, request_hash, existing.result_data)

    decision = GuardDecision.PROCEED
    if existing is not None:
        logger.info("Allowing retry for failed request: %s", _short(request_hash))
        decision = GuardDecision.RETRY_ALLOWED

    try:
        claimed = mark_in_progress(db, request_hash, endpoint, method, ttl_hours=ttl_hours, now=now)
    except OperationalError:
        # Another request is writing the same key; it owns the submission.
        db.rollback()
        logger.warning("Could not claim request key, treating it as in progress: %s", _short(request_hash))
        return GuardOutcome(GuardDecision.DUPLICATE_IN_PROGRESS, request_hash)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Idempotency check failed, processing request without it")
        return GuardOutcome(GuardDecision.PROCEED)

    if not claimed:
        return GuardOutcome(GuardDecision.DUPLICATE_IN_PROGRESS, request_hash)
    if decision == GuardDecision.PROCEED:
        logger.info("Marked request as in-progress: %s", _short(request_hash))
    return GuardOutcome(decision, request_hash)


def purge_expired(db: Session, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    deleted = (
        db.query(RequestDeduplication)
        .filter(RequestDeduplication.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Purged %s expired deduplication records", deleted)
    return deleted
