"""Usage statistics, log listing and log retention over call logs."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import extract, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api_manager.errors import PersistenceError, ValidationError
from api_manager.models import CallLog

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "30d"


def call_log_to_dict(log: CallLog) -> Dict[str, Any]:
    return {
        "id": log.id,
        "target_type": log.target_type,
        "target_id": log.target_id,
        "endpoint_id": log.endpoint_id,
        "method": log.method,
        "url": log.url,
        "status": log.status,
        "duration": log.duration,
        "response_size": log.response_size,
        "success": log.success,
        "error": log.error,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }


class UsageService:
    """Read-only aggregates over the call log table, plus explicit purge.

    All windows use UTC, matching the timestamps written by the call logger.
    """

    def __init__(self, clock=None):
        """Initialize usage service.

        Args:
            clock: Callable returning the current naive UTC datetime.
        """
        self._clock = clock or datetime.utcnow

    def _base_query(self, db: Session, target_type: str, target_id: int):
        return db.query(CallLog).filter(
            CallLog.target_type == target_type,
            CallLog.target_id == target_id,
        )

    def get_usage(
        self,
        db: Session,
        target_type: str,
        target_id: int,
        period: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Compute call counts for one target.

        Args:
            db: Database session.
            target_type: ``provider`` or ``external_api``.
            target_id: Target ID.
            period: ``7d``, ``30d`` or ``90d`` (default ``30d``).

        Returns:
            Dictionary with ``total``, ``today``, ``this_month``, ``period``,
            ``daily`` ([{date, count}]) and ``hourly`` ([{hour, count}]).

        Raises:
            ValidationError: If the period is not supported.
        """
        period = period or DEFAULT_PERIOD
        if period not in PERIOD_DAYS:
            raise ValidationError(
                f"Invalid period '{period}'. Expected one of: {', '.join(PERIOD_DAYS)}"
            )

        now = self._clock()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_month = start_of_day.replace(day=1)
        period_start = now - timedelta(days=PERIOD_DAYS[period])

        query = self._base_query(db, target_type, target_id)
        total = query.count()
        today = query.filter(CallLog.created_at >= start_of_day).count()
        this_month = query.filter(CallLog.created_at >= start_of_month).count()

        day_bucket = func.date(CallLog.created_at)
        daily_rows = (
            db.query(day_bucket.label("date"), func.count(CallLog.id).label("count"))
            .filter(
                CallLog.target_type == target_type,
                CallLog.target_id == target_id,
                CallLog.created_at >= period_start,
            )
            .group_by(day_bucket)
            .order_by(day_bucket)
            .all()
        )

        hour_bucket = extract("hour", CallLog.created_at)
        hourly_rows = (
            db.query(hour_bucket.label("hour"), func.count(CallLog.id).label("count"))
            .filter(
                CallLog.target_type == target_type,
                CallLog.target_id == target_id,
                CallLog.created_at >= start_of_day,
            )
            .group_by(hour_bucket)
            .order_by(hour_bucket)
            .all()
        )

        return {
            "period": period,
            "total": total,
            "today": today,
            "this_month": this_month,
            "daily": [{"date": str(row.date), "count": int(row.count)} for row in daily_rows],
            "hourly": [{"hour": int(row.hour), "count": int(row.count)} for row in hourly_rows],
        }

    def list_logs(
        self,
        db: Session,
        target_type: str,
        target_id: int,
        page: int = 1,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Page through a target's call logs, newest first."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")

        query = self._base_query(db, target_type, target_id)
        total = query.count()
        logs: List[CallLog] = (
            query.order_by(CallLog.created_at.desc(), CallLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "logs": [call_log_to_dict(log) for log in logs],
            "total": total,
            "page": page,
            "limit": limit,
        }

    def purge_logs(
        self,
        db: Session,
        older_than_days: int,
        target_type: Optional[str] = None,
        target_id: Optional[int] = None,
    ) -> int:
        """Delete call logs older than the given number of days.

        Args:
            db: Database session.
            older_than_days: Age threshold; 0 deletes everything up to now.
            target_type: Restrict to one target type.
            target_id: Restrict to one target (requires target_type).

        Returns:
            Number of rows deleted.
        """
        if older_than_days < 0:
            raise ValidationError("older_than_days must be zero or positive")

        cutoff = self._clock() - timedelta(days=older_than_days)
        query = db.query(CallLog).filter(CallLog.created_at <= cutoff)
        if target_type is not None:
            query = query.filter(CallLog.target_type == target_type)
        if target_id is not None:
            query = query.filter(CallLog.target_id == target_id)

        try:
            deleted = query.delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to purge call logs: {e}")
            raise PersistenceError("Failed to purge call logs")

        logger.info(f"Purged {deleted} call logs older than {older_than_days} days")
        return deleted
