"""Activity log routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from deptrecords.api.responses import client_ip, ok
from deptrecords.api.routes.auth import get_current_identity, require
from deptrecords.config import API_PREFIX, LOG_RETENTION_DAYS
from deptrecords.core.dependencies import ActivityLogManagerDep, ActivityRecorderDep
from deptrecords.core.exceptions import ValidationError
from deptrecords.schemas.activity_log import ActivityLogEntry
from deptrecords.schemas.user import Identity
from deptrecords.utils.permissions import Operation
from deptrecords.utils.timeutils import parse_datetime
from deptrecords.utils.validators import ensure_valid, validate_activity_log

router = APIRouter(prefix=f"{API_PREFIX}/logs", tags=["Logs"])

is_admin = require(Operation.ADMIN)


def _parse_bound(name: str, value: Optional[str], end_of_day: bool = False):
    if not value:
        return None
    parsed = parse_datetime(value, end_of_day=end_of_day)
    if parsed is None:
        raise ValidationError([f"{name} must be an ISO 8601 date"])
    return parsed


@router.get("", summary="List activity logs")
def list_logs(
    log_manager: ActivityLogManagerDep,
    user: Optional[str] = Query(None),
    username: Optional[str] = Query(None),
    user_type: Optional[str] = Query(None, alias="userType"),
    action: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_direction: Optional[str] = Query(None, alias="sortDirection"),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """List audit events, newest first by default.

    A bare ``endDate`` (YYYY-MM-DD) includes the whole of that day.
    """
    result = log_manager.list_logs(
        user=user,
        username=username,
        user_type=user_type,
        action=action,
        start_date=_parse_bound("startDate", start_date),
        end_date=_parse_bound("endDate", end_date, end_of_day=True),
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=page,
        limit=limit,
    )
    return result.envelope()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Append an activity log")
def append_log(
    request: Request,
    log_manager: ActivityLogManagerDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """Record a client-side event attributed to the caller.

    User, username and userType always come from the caller's session;
    any values for them in the body are ignored.
    """
    ensure_valid(validate_activity_log, payload)
    entry = ActivityLogEntry(
        user=identity.user_id,
        username=identity.username,
        user_type=identity.user_type,
        action=payload["action"],
        details=payload.get("details") or {},
        ip_address=client_ip(request),
    )
    log_id = log_manager.append(entry)
    return ok({"id": log_id} if log_id else None, "Activity logged")


@router.get("/stats", summary="Activity statistics")
def get_stats(
    log_manager: ActivityLogManagerDep,
    identity: Identity = Depends(get_current_identity),
) -> dict:
    return ok(log_manager.stats())


@router.delete("/cleanup", summary="Delete old activity logs")
def cleanup_logs(
    request: Request,
    log_manager: ActivityLogManagerDep,
    recorder: ActivityRecorderDep,
    days: Optional[str] = Query(None),
    identity: Identity = Depends(is_admin),
) -> dict:
    """Delete entries older than ``days`` (default 30)."""
    if days is None or days.strip() == "":
        older_than = LOG_RETENTION_DAYS
    else:
        try:
            older_than = int(days)
        except ValueError:
            raise ValidationError(["Days must be a positive whole number"])

    deleted = log_manager.cleanup(older_than)
    recorder.record(
        "CLEANUP_LOGS",
        identity,
        details={"days": older_than, "deletedCount": deleted},
        ip_address=client_ip(request),
    )
    return ok(
        {"deletedCount": deleted},
        f"Deleted {deleted} activity logs older than {older_than} days",
    )
