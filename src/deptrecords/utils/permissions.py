"""Role-based authorization rules.

Decisions are made from the verified :class:`Identity` only. Roles named in
request bodies or headers are never consulted.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional

from deptrecords.config import (
    ALLOW_ANONYMOUS_READS,
    ROLE_ADMIN,
    ROLE_CHAIRMAN,
    ROLE_INSTRUCTOR,
)
from deptrecords.core.exceptions import AuthenticationError, AuthorizationError
from deptrecords.schemas.user import Identity


class Operation(str, Enum):
    READ = "read"
    WRITE_RECORD = "write_record"
    ADMIN = "admin"


_ALLOWED_ROLES: Dict[Operation, FrozenSet[str]] = {
    Operation.READ: frozenset({ROLE_INSTRUCTOR, ROLE_CHAIRMAN, ROLE_ADMIN}),
    Operation.WRITE_RECORD: frozenset({ROLE_CHAIRMAN, ROLE_ADMIN}),
    Operation.ADMIN: frozenset({ROLE_ADMIN}),
}

_DENIED_MESSAGES: Dict[Operation, str] = {
    Operation.READ: "Authentication required",
    Operation.WRITE_RECORD: "You do not have permission to edit records",
    Operation.ADMIN: "Admin access required",
}


def is_allowed(
    identity: Optional[Identity],
    operation: Operation,
    allow_anonymous_reads: bool = ALLOW_ANONYMOUS_READS,
) -> bool:
    """Return True if the caller may perform the operation class."""
    if identity is None:
        return operation is Operation.READ and allow_anonymous_reads
    return identity.user_type in _ALLOWED_ROLES[operation]


def authorize(
    identity: Optional[Identity],
    operation: Operation,
    allow_anonymous_reads: bool = ALLOW_ANONYMOUS_READS,
) -> None:
    """Raise unless the caller may perform the operation class.

    Raises:
        AuthenticationError: No identity where one is required.
        AuthorizationError: The identity's role is not sufficient.
    """
    if is_allowed(identity, operation, allow_anonymous_reads):
        return
    if identity is None:
        raise AuthenticationError()
    raise AuthorizationError(_DENIED_MESSAGES[operation])
