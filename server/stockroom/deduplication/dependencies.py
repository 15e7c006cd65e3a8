from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from stockroom.config import settings
from stockroom.db import get_db, get_session_factory
from stockroom.deduplication.service import (
    GuardDecision,
    GuardOutcome,
    complete_in_new_session,
    evaluate_request,
    fail_in_new_session,
)


class GuardedRequest:
    """Idempotency bookkeeping for one call of a guarded endpoint."""

    def __init__(
        self,
        *,
        kind: str,
        endpoint: str,
        method: str,
        db: Session,
        session_factory: sessionmaker,
        background_tasks: BackgroundTasks,
    ):
        self.kind = kind
        self.endpoint = endpoint
        self.method = method
        self.db = db
        self.session_factory = session_factory
        self.background_tasks = background_tasks
        self.outcome: Optional[GuardOutcome] = None

    def start(self, payload: Any) -> Optional[JSONResponse]:
        """Returns a response to send instead of running the handler, or None to proceed."""
        self.outcome = evaluate_request(
            self.db,
            payload,
            kind=self.kind,
            endpoint=self.endpoint,
            method=self.method,
            enabled=settings.deduplication_enabled,
            ttl_hours=settings.deduplication_ttl_hours,
        )
        if self.outcome.decision == GuardDecision.DUPLICATE_IN_PROGRESS:
            retry_after = settings.deduplication_retry_after_seconds
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "error": "Request already in progress",
                    "code": "DUPLICATE_IN_PROGRESS",
                    "message": "This report is already being created. Please wait a few seconds and check your reports list.",
                    "retryAfter": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )
        if self.outcome.decision == GuardDecision.REPLAY:
            return JSONResponse(status_code=status.HTTP_200_OK, content=self.outcome.result_data)
        return None

    @property
    def _tracked_hash(self) -> Optional[str]:
        if self.outcome is None or not self.outcome.should_process:
            return None
        return self.outcome.request_hash

    def complete(self, result_id: str, result_data: Any) -> None:
        request_hash = self._tracked_hash
        if request_hash is None:
            return
        # The business transaction is committed by now; hand its connection back
        # before the bookkeeping write runs on another one.
        self.db.close()
        self.background_tasks.add_task(
            complete_in_new_session,
            self.session_factory,
            request_hash,
            self.endpoint,
            self.method,
            result_id,
            result_data,
        )

    def fail(self, error: str) -> None:
        request_hash = self._tracked_hash
        if request_hash is None:
            return
        # Error responses are built by exception handlers and drop background tasks.
        fail_in_new_session(self.session_factory, request_hash, self.endpoint, self.method, error)


def idempotent(kind: str):
    def dependency(
        request: Request,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        session_factory: sessionmaker = Depends(get_session_factory),
    ) -> GuardedRequest:
        return GuardedRequest(
            kind=kind,
            endpoint=request.url.path,
            method=request.method,
            db=db,
            session_factory=session_factory,
            background_tasks=background_tasks,
        )

    return dependency
