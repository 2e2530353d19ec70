"""User management utilities.

This module provides user account storage, credential handling, password
change/reset and login verification.
"""

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from deptrecords.core.database import is_unique_violation
from deptrecords.core.exceptions import (
    AuthenticationError,
    DuplicateKeyError,
    NotFoundError,
)
from deptrecords.models.user import UserModel
from deptrecords.schemas.common import Page, Pagination
from deptrecords.schemas.user import PasswordChangeRequest, User, UserCreate, UserUpdate
from deptrecords.utils import password as credentials
from deptrecords.utils.converters import model_to_user
from deptrecords.utils.query import normalize_paging, paginate
from deptrecords.utils.timeutils import utcnow
from deptrecords.utils.validators import (
    ensure_valid,
    parse_payload,
    validate_password_change,
    validate_user,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    # --- Lookups ---

    def _get_model(self, user_id: str) -> UserModel:
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if not model:
            raise NotFoundError("User", user_id)
        return model

    def get_user_model(self, user_id: str) -> Optional[UserModel]:
        return self.db.query(UserModel).filter(UserModel.user_id == user_id).first()

    def get_user_by_id(self, user_id: str) -> User:
        """Get a user by user ID.

        Raises:
            NotFoundError: If the user does not exist.
        """
        return model_to_user(self._get_model(user_id))

    def get_user_by_username(self, username: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.username == username.strip()).first()
        if model:
            return model_to_user(model)
        return None

    def count_users(self) -> int:
        return self.db.query(UserModel).count()

    def list_users(
        self,
        user_type: Optional[str] = None,
        active: Optional[bool] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page:
        """List users, newest first.

        Args:
            user_type: Optional exact userType filter.
            active: Optional active-flag filter.
            page: 1-based page number.
            limit: Page size.

        Returns:
            Page of User objects.
        """
        page, limit = normalize_paging(page, limit)
        query = self.db.query(UserModel)
        if user_type:
            query = query.filter(UserModel.user_type == user_type)
        if active is not None:
            query = query.filter(UserModel.active == active)

        total = query.count()
        models = paginate(query.order_by(UserModel.created_at.desc()), page, limit).all()
        return Page(
            items=[model_to_user(m) for m in models],
            total=total,
            pagination=Pagination.build(page, limit, total),
        )

    # --- Uniqueness ---

    def _check_unique(
        self, username: Optional[str], email: Optional[str], exclude_id: Optional[str] = None
    ) -> None:
        for field, column, value in (
            ("username", UserModel.username, username),
            ("email", UserModel.email, email),
        ):
            if not value:
                continue
            query = self.db.query(UserModel).filter(column == value)
            if exclude_id:
                query = query.filter(UserModel.user_id != exclude_id)
            if query.first():
                raise DuplicateKeyError(field, value)

    def _commit(self, username: str, email: str) -> None:
        # The unique indexes settle races between concurrent writers
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                raise
            clash = (
                self.db.query(UserModel)
                .filter(or_(UserModel.username == username, UserModel.email == email))
                .first()
            )
            if clash is not None and clash.email == email and clash.username != username:
                raise DuplicateKeyError("email", email) from e
            raise DuplicateKeyError("username", username) from e

    # --- Mutations ---

    def create_user(self, payload: Mapping[str, Any]) -> User:
        """Create a new user.

        Args:
            payload: Raw request body with username, password, name, email
                and optional userType/active.

        Returns:
            Created User object.

        Raises:
            ValidationError: If the payload breaks any field rule.
            DuplicateKeyError: If username or email is already in use.
        """
        ensure_valid(validate_user, payload)
        data = parse_payload(UserCreate, payload)
        self._check_unique(data.username, data.email)

        salt, password_hash = credentials.encrypt_password(data.password)
        model = UserModel(
            username=data.username,
            password_salt=salt,
            password_hash=password_hash,
            user_type=data.user_type,
            name=data.name,
            email=data.email,
            active=data.active,
        )
        self.db.add(model)
        self._commit(data.username, data.email)
        self.db.refresh(model)

        logger.info("Created user: %s (%s)", model.username, model.user_type)
        return model_to_user(model)

    def update_user(self, user_id: str, payload: Mapping[str, Any]) -> User:
        """Update the profile fields present in the payload.

        Raises:
            NotFoundError: If the user does not exist.
            ValidationError: If a supplied field breaks a rule.
            DuplicateKeyError: If the new username/email belongs to another user.
        """
        model = self._get_model(user_id)
        ensure_valid(validate_user, payload, partial=True)
        changes = parse_payload(UserUpdate, payload).model_dump(exclude_unset=True)
        self._check_unique(changes.get("username"), changes.get("email"), exclude_id=user_id)

        for field, value in changes.items():
            setattr(model, field, value)
        self._commit(model.username, model.email)
        self.db.refresh(model)

        logger.info("Updated user: %s", model.username)
        return model_to_user(model)

    def change_password(self, user_id: str, payload: Mapping[str, Any]) -> None:
        """Replace a user's password with a freshly salted hash.

        Raises:
            NotFoundError: If the user does not exist.
            ValidationError: If the new password is missing or too short.
        """
        model = self._get_model(user_id)
        ensure_valid(validate_password_change, payload)
        request = parse_payload(PasswordChangeRequest, payload)
        model.password_salt, model.password_hash = credentials.encrypt_password(
            request.password
        )
        model.temporary_password = False
        model.must_change_password = False
        self.db.commit()
        logger.info("Changed password for user: %s", model.username)

    def reset_password(self, user_id: str) -> str:
        """Replace a user's password with a random temporary one.

        The plaintext is returned here and nowhere else. It authenticates a
        single login; see :meth:`authenticate`.

        Returns:
            The temporary password.

        Raises:
            NotFoundError: If the user does not exist.
        """
        model = self._get_model(user_id)
        temporary = credentials.generate_temporary_password()
        model.password_salt, model.password_hash = credentials.encrypt_password(temporary)
        model.temporary_password = True
        model.must_change_password = False
        self.db.commit()
        logger.info("Reset password for user: %s", model.username)
        return temporary

    def delete_user(self, user_id: str) -> None:
        """Delete a user. Their activity logs are kept.

        Raises:
            NotFoundError: If the user does not exist.
        """
        model = self._get_model(user_id)
        self.db.delete(model)
        self.db.commit()
        logger.info("Deleted user: %s", model.username)

    # --- Authentication ---

    def authenticate(
        self, username: str, password: str, user_type: Optional[str] = None
    ) -> UserModel:
        """Verify a login and record it.

        A temporary password is consumed by its first successful login: the
        stored credential is replaced by an unusable one and the account is
        flagged mustChangePassword.

        Args:
            username: Account username.
            password: Plain text password.
            user_type: When given, the stored account type must match.

        Returns:
            The authenticated UserModel.

        Raises:
            AuthenticationError: Unknown user, wrong password, type mismatch
                or disabled account.
        """
        query = self.db.query(UserModel).filter(UserModel.username == username.strip())
        if user_type:
            query = query.filter(UserModel.user_type == user_type)
        model = query.first()

        if model is None or not credentials.verify_password(
            password, model.password_hash, model.password_salt
        ):
            logger.warning("Failed login attempt for username: %s", username)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not model.active:
            logger.warning("Login attempt for disabled account: %s", username)
            raise AuthenticationError("Account is disabled")

        if model.temporary_password:
            model.password_salt, model.password_hash = credentials.unusable_password()
            model.temporary_password = False
            model.must_change_password = True

        model.last_login = utcnow()
        self.db.commit()
        self.db.refresh(model)
        logger.info("User logged in: %s", model.username)
        return model
