"""Persist one call log row per dispatch attempt."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api_manager.errors import UpstreamDispatchError
from api_manager.models import CallLog, ExternalAPI, Provider, TARGET_EXTERNAL_API, TARGET_PROVIDER
from api_manager.services.dispatcher import DispatchResult

logger = logging.getLogger(__name__)


def target_type_of(target) -> str:
    if isinstance(target, Provider):
        return TARGET_PROVIDER
    if isinstance(target, ExternalAPI):
        return TARGET_EXTERNAL_API
    raise TypeError(f"Unsupported call log target: {target!r}")


class CallLogger:
    """Writes call logs and the target's last-tested status.

    Logging is a best-effort side effect: the log insert and the status
    update are two independent commits, and a failure in either is logged
    and rolled back without being raised to the caller.
    """

    def record(
        self,
        db: Session,
        target,
        method: str,
        url: str,
        status: int,
        duration: int,
        response_size: int,
        success: bool,
        error: Optional[str] = None,
        endpoint_id: Optional[int] = None,
    ) -> Optional[CallLog]:
        """Insert a call log row and refresh the target's test status.

        Args:
            db: Database session.
            target: Provider or ExternalAPI the call was made for.
            method: HTTP method used.
            url: Final URL.
            status: HTTP status, 0 when no response was received.
            duration: Elapsed milliseconds.
            response_size: Response body size in bytes, 0 on failure.
            success: True only for 2xx responses.
            error: Error message for failed calls.
            endpoint_id: Provider endpoint used, if any.

        Returns:
            The CallLog row, or None if it could not be written.
        """
        target_type = target_type_of(target)
        target_id = target.id

        log_entry = CallLog(
            target_type=target_type,
            target_id=target_id,
            endpoint_id=endpoint_id,
            method=method,
            url=url,
            status=status,
            duration=duration,
            response_size=response_size if success else 0,
            success=success,
            error=error,
        )

        try:
            db.add(log_entry)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to write call log for {target_type} {target_id}: {e}")
            log_entry = None

        try:
            target.last_tested = datetime.utcnow()
            target.test_status = "success" if success else "error"
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update test status for {target_type} {target_id}: {e}")

        return log_entry

    def record_result(
        self,
        db: Session,
        target,
        result: DispatchResult,
        endpoint_id: Optional[int] = None,
    ) -> Optional[CallLog]:
        """Log a call that produced an HTTP response."""
        error = None
        if not result.success:
            error = f"HTTP {result.status_code} {result.status_text}".strip()
        return self.record(
            db,
            target,
            method=result.method,
            url=result.url,
            status=result.status_code,
            duration=result.duration_ms,
            response_size=result.response_size,
            success=result.success,
            error=error,
            endpoint_id=endpoint_id,
        )

    def record_failure(
        self,
        db: Session,
        target,
        method: str,
        error: UpstreamDispatchError,
        endpoint_id: Optional[int] = None,
    ) -> Optional[CallLog]:
        """Log a call that never produced a response."""
        return self.record(
            db,
            target,
            method=method,
            url=error.url,
            status=error.status,
            duration=error.duration_ms,
            response_size=0,
            success=False,
            error=error.message or "Dispatch failed",
            endpoint_id=endpoint_id,
        )
