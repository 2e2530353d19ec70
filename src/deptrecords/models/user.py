"""User database model.

This module defines the User database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, DateTime, String

from deptrecords.config import ROLE_ADMIN, ROLE_CHAIRMAN, ROLE_INSTRUCTOR
from .base import Base, new_id, utcnow


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    user_id = Column(String(24), primary_key=True, index=True, default=new_id)
    username = Column(String(50), unique=True, index=True, nullable=False)
    # Salt and bcrypt hash are stored side by side; never serialized outward
    password_salt = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    user_type = Column(String, nullable=False, index=True, default=ROLE_INSTRUCTOR)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    # Set by a password reset until the temporary password is used
    temporary_password = Column(Boolean, nullable=False, default=False)
    must_change_password = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_admin(self) -> bool:
        return self.user_type == ROLE_ADMIN

    @property
    def can_edit(self) -> bool:
        return self.user_type in (ROLE_CHAIRMAN, ROLE_ADMIN)
