"""User schema definitions.

This module defines request and response models for user accounts and the
per-request ``Identity`` claims object.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from deptrecords.config import ROLE_ADMIN, ROLE_CHAIRMAN, ROLE_INSTRUCTOR
from deptrecords.schemas.base import CamelModel


class UserUpdate(CamelModel):
    """Partial user update. Password changes have their own endpoint."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    username: Optional[str] = None
    user_type: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class UserCreate(UserUpdate):
    username: str
    password: str = Field(repr=False)
    user_type: str = ROLE_INSTRUCTOR
    name: str
    email: str
    active: bool = True


class LoginRequest(CamelModel):
    username: str
    password: str = Field(repr=False)
    # Optional; when given it must match the stored account type
    user_type: Optional[str] = None


class PasswordChangeRequest(CamelModel):
    password: str = Field(repr=False)


class User(CamelModel):
    """Outward view of a user. Never carries credential material."""

    id: str
    username: str
    user_type: str
    name: str
    email: str
    active: bool = True
    last_login: Optional[datetime] = None
    must_change_password: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.user_type == ROLE_ADMIN

    @property
    def can_edit(self) -> bool:
        return self.user_type in (ROLE_CHAIRMAN, ROLE_ADMIN)

    def to_response(self) -> dict:
        data = super().to_response()
        data["isAdmin"] = self.is_admin
        data["canEdit"] = self.can_edit
        return data


class Identity(BaseModel):
    """Verified caller claims, resolved once per request."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str
    user_type: str
    name: str = ""
    ip_address: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.user_type == ROLE_ADMIN

    @property
    def can_edit(self) -> bool:
        return self.user_type in (ROLE_CHAIRMAN, ROLE_ADMIN)
