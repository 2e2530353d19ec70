"""Activity log management.

This module provides the append-only audit trail: best-effort writes,
filtered reads, aggregate statistics and the age-based retention sweep.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from deptrecords.config import LOG_RETENTION_DAYS, LOG_STATS_DAYS
from deptrecords.core.exceptions import ValidationError
from deptrecords.models.activity_log import ActivityLogModel
from deptrecords.models.base import is_valid_id
from deptrecords.models.user import UserModel
from deptrecords.schemas.activity_log import ActivityLog, ActivityLogEntry
from deptrecords.schemas.common import Page, Pagination
from deptrecords.schemas.user import Identity
from deptrecords.utils.converters import model_to_activity_log
from deptrecords.utils.query import (
    build_order_by,
    contains_literal,
    normalize_paging,
    paginate,
)
from deptrecords.utils.timeutils import days_ago

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "timestamp": ActivityLogModel.timestamp,
    "username": ActivityLogModel.username,
    "userType": ActivityLogModel.user_type,
    "action": ActivityLogModel.action,
    "ipAddress": ActivityLogModel.ip_address,
}

DEFAULT_ORDER = (ActivityLogModel.timestamp.desc(),)


class ActivityLogManager:
    """Manages activity log entries using SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: ActivityLogEntry) -> Optional[str]:
        """Store an audit event, never raising.

        A user reference that is not a valid id is dropped and the entry is
        stored without it.

        Returns:
            The new log id, or None if the write failed.
        """
        user_id = entry.user if is_valid_id(entry.user) else None
        if entry.user and user_id is None:
            logger.info(
                "Invalid or missing user id in activity log, continuing without user reference"
            )

        model = ActivityLogModel(
            user_id=user_id,
            username=entry.username,
            user_type=entry.user_type,
            action=entry.action.strip(),
            details=entry.details or {},
            ip_address=entry.ip_address,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Error creating activity log (action=%s)", entry.action)
            return None
        return model.log_id

    def list_logs(
        self,
        user: Optional[str] = None,
        username: Optional[str] = None,
        user_type: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page:
        """List log entries, newest first unless a sort is given.

        username and action match as literal case-insensitive substrings;
        user and userType match exactly; the date bounds are inclusive.
        """
        page, limit = normalize_paging(page, limit)
        query = self.db.query(ActivityLogModel)
        if user:
            query = query.filter(ActivityLogModel.user_id == user)
        if username:
            query = query.filter(contains_literal(ActivityLogModel.username, username))
        if user_type:
            query = query.filter(ActivityLogModel.user_type == user_type)
        if action:
            query = query.filter(contains_literal(ActivityLogModel.action, action))
        if start_date:
            query = query.filter(ActivityLogModel.timestamp >= start_date)
        if end_date:
            query = query.filter(ActivityLogModel.timestamp <= end_date)

        total = query.count()
        order_by = build_order_by(SORTABLE_FIELDS, sort_field, sort_direction, DEFAULT_ORDER)
        models = paginate(query.order_by(*order_by), page, limit).all()

        return Page(
            items=self._with_user_info(models),
            total=total,
            pagination=Pagination.build(page, limit, total),
        )

    def _with_user_info(self, models: List[ActivityLogModel]) -> List[ActivityLog]:
        user_ids = {m.user_id for m in models if m.user_id}
        users: Dict[str, UserModel] = {}
        if user_ids:
            users = {
                u.user_id: u
                for u in self.db.query(UserModel).filter(UserModel.user_id.in_(user_ids))
            }
        return [model_to_activity_log(m, users) for m in models]

    def _grouped_counts(self, column) -> List[Dict[str, Any]]:
        count = func.count(ActivityLogModel.log_id)
        rows = (
            self.db.query(column, count.label("count"))
            .group_by(column)
            .order_by(count.desc())
            .all()
        )
        return [{"_id": key, "count": n} for key, n in rows]

    def stats(self) -> Dict[str, Any]:
        """Aggregate statistics.

        Returns:
            Dictionary with totalLogs, actionStats and userTypeStats (each
            descending by count) and dailyStats for the trailing week
            (ascending by day, keys formatted YYYY-MM-DD).
        """
        total = self.db.query(func.count(ActivityLogModel.log_id)).scalar() or 0

        day = func.date(ActivityLogModel.timestamp)
        daily_rows = (
            self.db.query(day.label("day"), func.count(ActivityLogModel.log_id))
            .filter(ActivityLogModel.timestamp >= days_ago(LOG_STATS_DAYS))
            .group_by(day)
            .order_by(day.asc())
            .all()
        )

        return {
            "totalLogs": total,
            "actionStats": self._grouped_counts(ActivityLogModel.action),
            "userTypeStats": self._grouped_counts(ActivityLogModel.user_type),
            "dailyStats": [{"_id": str(d), "count": n} for d, n in daily_rows],
        }

    def cleanup(self, older_than_days: int = LOG_RETENTION_DAYS) -> int:
        """Delete entries with a timestamp strictly before now - older_than_days.

        Returns:
            Number of entries deleted.

        Raises:
            ValidationError: If older_than_days is not a positive integer.
        """
        if isinstance(older_than_days, bool) or not isinstance(older_than_days, int) or older_than_days < 1:
            raise ValidationError(["Days must be a positive whole number"])

        cutoff = days_ago(older_than_days)
        deleted = (
            self.db.query(ActivityLogModel)
            .filter(ActivityLogModel.timestamp < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info("Deleted %d activity logs older than %d days", deleted, older_than_days)
        return deleted


def write_activity_log(session_factory: sessionmaker, entry: ActivityLogEntry) -> None:
    """Append an entry in a session of its own; failures are logged only."""
    try:
        db = session_factory()
    except Exception:
        logger.exception("Could not open a session for the activity log")
        return
    try:
        ActivityLogManager(db).append(entry)
    finally:
        db.close()


class ActivityRecorder:
    """Schedules audit writes to run after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks, session_factory: sessionmaker):
        self.background_tasks = background_tasks
        self.session_factory = session_factory

    def record(
        self,
        action: str,
        identity: Optional[Identity] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Queue an audit event attributed to the given identity."""
        entry = ActivityLogEntry(
            user=identity.user_id if identity else None,
            username=identity.username if identity else "unknown",
            user_type=identity.user_type if identity else "unknown",
            action=action,
            details=details or {},
            ip_address=ip_address or (identity.ip_address if identity else None),
        )
        self.background_tasks.add_task(write_activity_log, self.session_factory, entry)
