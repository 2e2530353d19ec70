"""Declarative base and shared column helpers."""

import re
import secrets

from sqlalchemy.orm import declarative_base

from deptrecords.utils.timeutils import utcnow  # noqa: F401

Base = declarative_base()

# Ids are 24 hex characters
_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def new_id() -> str:
    """Generate a new opaque entity id."""
    return secrets.token_hex(12)


def is_valid_id(value) -> bool:
    """Return True if value has the shape of an entity id."""
    return isinstance(value, str) and bool(_ID_PATTERN.match(value))
