"""User management routes. All endpoints require an admin caller."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from deptrecords.api.responses import client_ip, ok
from deptrecords.api.routes.auth import require
from deptrecords.config import API_PREFIX
from deptrecords.core.dependencies import ActivityRecorderDep, UserManagerDep
from deptrecords.schemas.user import Identity
from deptrecords.utils.permissions import Operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/users", tags=["Users"])

is_admin = require(Operation.ADMIN)


@router.get("", summary="List users")
def list_users(
    user_manager: UserManagerDep,
    user_type: Optional[str] = Query(None, alias="userType"),
    active: Optional[bool] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    identity: Identity = Depends(is_admin),
) -> dict:
    return user_manager.list_users(user_type, active, page, limit).envelope()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a user")
def create_user(
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(is_admin),
) -> dict:
    user = user_manager.create_user(payload)
    recorder.record(
        "CREATE_USER",
        identity,
        details={"targetUser": user.username, "userType": user.user_type},
        ip_address=client_ip(request),
    )
    return ok(user.to_response(), "User created successfully")


@router.get("/{user_id}", summary="Get a user")
def get_user(
    user_id: str,
    user_manager: UserManagerDep,
    identity: Identity = Depends(is_admin),
) -> dict:
    return ok(user_manager.get_user_by_id(user_id).to_response())


@router.put("/{user_id}", summary="Update a user")
def update_user(
    user_id: str,
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(is_admin),
) -> dict:
    """Update profile fields. Passwords are changed through /password."""
    user = user_manager.update_user(user_id, payload)
    recorder.record(
        "UPDATE_USER",
        identity,
        details={
            "targetUser": user.username,
            "updatedFields": sorted(k for k in payload.keys() if k != "password"),
        },
        ip_address=client_ip(request),
    )
    return ok(user.to_response(), "User updated successfully")


@router.put("/{user_id}/password", summary="Set a user's password")
def change_password(
    user_id: str,
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(is_admin),
) -> dict:
    user_manager.change_password(user_id, payload)
    user = user_manager.get_user_by_id(user_id)
    recorder.record(
        "CHANGE_PASSWORD",
        identity,
        details={"targetUser": user.username},
        ip_address=client_ip(request),
    )
    return ok(message="Password changed successfully")


@router.post("/{user_id}/reset-password", summary="Issue a temporary password")
def reset_password(
    user_id: str,
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    identity: Identity = Depends(is_admin),
) -> dict:
    """Replace the password with a single-use temporary one.

    The temporary password appears in this response only. The user must set
    a new password after logging in with it.
    """
    temporary = user_manager.reset_password(user_id)
    user = user_manager.get_user_by_id(user_id)
    recorder.record(
        "RESET_PASSWORD",
        identity,
        details={"targetUser": user.username},
        ip_address=client_ip(request),
    )
    return ok({"temporaryPassword": temporary}, "Password reset successfully")


@router.delete("/{user_id}", summary="Delete a user")
def delete_user(
    user_id: str,
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    identity: Identity = Depends(is_admin),
) -> dict:
    """Delete a user account. Its activity log entries are kept."""
    user = user_manager.get_user_by_id(user_id)
    if user.id == identity.user_id:
        logger.warning("Admin %s is deleting their own account", identity.username)
    user_manager.delete_user(user_id)
    recorder.record(
        "DELETE_USER",
        identity,
        details={"targetUser": user.username},
        ip_address=client_ip(request),
    )
    return ok(message="User deleted successfully")
