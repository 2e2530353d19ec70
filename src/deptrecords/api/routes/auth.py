"""Authentication routes.

This module handles HTTP endpoints for registration, login, logout and the
caller's own profile, and provides the identity dependencies used by the
other routers.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import pytz
from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from deptrecords.api.responses import client_ip, ok
from deptrecords.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    API_PREFIX,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    ROLE_INSTRUCTOR,
)
from deptrecords.core.dependencies import ActivityRecorderDep, UserManagerDep
from deptrecords.core.exceptions import AuthenticationError, AuthorizationError
from deptrecords.schemas.user import Identity, LoginRequest
from deptrecords.utils.converters import model_to_identity, model_to_user
from deptrecords.utils.permissions import Operation, authorize
from deptrecords.utils.validators import (
    ensure_valid,
    parse_payload,
    validate_login,
    validate_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/auth", tags=["Auth"])

# HTTP Bearer token security; missing tokens are handled by the gates
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_manager: UserManagerDep = None,
) -> Optional[Identity]:
    """Resolve the caller from the bearer token, if one was sent.

    The role is read from the stored account, not from the token claims, so
    a role change takes effect on the next request.

    Raises:
        AuthenticationError: If a token was sent but is invalid or expired,
            or its user no longer exists or is disabled.
    """
    if credentials is None:
        return None
    try:
        payload = jwt.decode(
            credentials.credentials, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM]
        )
    except JWTError:
        raise AuthenticationError("Invalid authentication credentials")

    user_id = payload.get("sub")
    model = user_manager.get_user_model(user_id) if user_id else None
    if model is None:
        raise AuthenticationError("User not found")
    if not model.active:
        raise AuthenticationError("Account is disabled")
    return model_to_identity(model, client_ip(request))


def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    """Require an authenticated caller."""
    if identity is None:
        raise AuthenticationError()
    return identity


def require(operation: Operation) -> Callable[..., Optional[Identity]]:
    """Build a dependency that admits callers allowed to perform ``operation``."""

    def dependency(
        identity: Optional[Identity] = Depends(get_optional_identity),
    ) -> Optional[Identity]:
        authorize(identity, operation)
        return identity

    return dependency


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Register a user")
def register(
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> dict:
    """Register a new user.

    Registration requirements:
    - Instructor: open
    - Chairman/Admin: requires an admin caller, except for the very first
      account when no users exist yet

    Raises:
        AuthorizationError: Privileged role requested by a non-admin.
        ValidationError / DuplicateKeyError: From the user manager.
    """
    ensure_valid(validate_user, payload)
    requested_type = payload.get("userType") or ROLE_INSTRUCTOR
    if requested_type != ROLE_INSTRUCTOR and user_manager.count_users() > 0:
        if identity is None or not identity.is_admin:
            raise AuthorizationError(
                "Only administrators can create chairman or admin accounts"
            )

    user = user_manager.create_user(payload)
    recorder.record(
        "REGISTER",
        identity,
        details={"registeredUser": user.username, "userType": user.user_type},
        ip_address=client_ip(request),
    )
    return ok(user.to_response(), "User registered successfully")


@router.post("/login", summary="Log in")
def login(
    request: Request,
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
) -> dict:
    """Login with username and password.

    Returns:
        The user (without credentials) and a bearer token.

    Raises:
        AuthenticationError: If the credentials are not accepted.
    """
    ensure_valid(validate_login, payload)
    login_request = parse_payload(LoginRequest, payload)
    model = user_manager.authenticate(
        login_request.username, login_request.password, login_request.user_type
    )

    access_token = create_access_token(
        data={"sub": model.user_id, "username": model.username, "userType": model.user_type}
    )
    identity = model_to_identity(model, client_ip(request))
    recorder.record("LOGIN", identity, details={"userType": model.user_type})

    return ok(
        {
            "user": model_to_user(model).to_response(),
            "token": access_token,
            "tokenType": "bearer",
            "mustChangePassword": model.must_change_password,
        },
        "Login successful",
    )


@router.get("/profile", summary="Current user")
def get_profile(
    user_manager: UserManagerDep,
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """Get current authenticated user information."""
    user = user_manager.get_user_by_id(identity.user_id)
    return ok(user.to_response())


@router.post("/logout", summary="Log out")
def logout(
    recorder: ActivityRecorderDep,
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """Logout endpoint.

    Tokens are stateless, so the client discards its token; this endpoint
    records the LOGOUT event.
    """
    recorder.record("LOGOUT", identity)
    return ok(message="Logout successful")


@router.put("/password", summary="Change own password")
def change_own_password(
    user_manager: UserManagerDep,
    recorder: ActivityRecorderDep,
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """Change the caller's password (also clears mustChangePassword)."""
    user_manager.change_password(identity.user_id, payload)
    recorder.record("CHANGE_PASSWORD", identity, details={"targetUser": identity.username})
    return ok(message="Password changed successfully")
