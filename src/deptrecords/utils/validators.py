"""Request payload validation.

Each validator inspects a raw JSON payload and returns every violated rule,
so a caller can fix all problems in a single round-trip. ``ensure_valid``
turns a non-empty list into a :class:`ValidationError`.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from deptrecords.config import (
    MIN_YEAR_COMPLETED,
    PASSWORD_MIN_LENGTH,
    SEMESTER_ALIASES,
    SEMESTERS,
    USER_ROLES,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from deptrecords.core.exceptions import ValidationError
from deptrecords.utils.timeutils import current_year

ModelT = TypeVar("ModelT", bound=BaseModel)

EMAIL_PATTERN = re.compile(r"^\w+([.+-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,})+$")

# camelCase key -> label used in messages
_RECORD_REQUIRED = {
    "studentId": "Student ID",
    "studentName": "Student name",
    "courseCode": "Course code",
    "grade": "Grade",
}
_RECORD_OPTIONAL_TEXT = {
    "courseName": "Course name",
    "instructor": "Instructor",
    "session": "Session",
}
_USER_REQUIRED = {
    "username": "Username",
    "name": "Name",
    "email": "Email",
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _is_text(value: Any) -> bool:
    # Spreadsheet imports send ids as numbers; those are coerced to text
    return isinstance(value, str) or (
        isinstance(value, (int, float)) and not isinstance(value, bool)
    )


def _require_mapping(payload: Any) -> List[str]:
    if not isinstance(payload, Mapping):
        return ["Request body must be a JSON object"]
    return []


def validate_student_record(payload: Any, partial: bool = False) -> List[str]:
    """Validate a student record payload.

    Args:
        payload: Raw request body.
        partial: When True (updates), only fields present are checked, and
            required fields present with an empty value are rejected.

    Returns:
        List of error messages; empty when the payload is valid.
    """
    errors = _require_mapping(payload)
    if errors:
        return errors

    for key, label in _RECORD_REQUIRED.items():
        if key not in payload:
            if not partial:
                errors.append(f"{label} is required")
            continue
        value = payload[key]
        if _is_blank(value):
            errors.append(f"{label} cannot be empty" if partial else f"{label} is required")
        elif not _is_text(value):
            errors.append(f"{label} must be text")

    for key, label in _RECORD_OPTIONAL_TEXT.items():
        value = payload.get(key)
        if value is not None and not _is_text(value):
            errors.append(f"{label} must be text")

    numeric_grade = payload.get("numericGrade")
    if not _is_blank(numeric_grade):
        if not _is_number(numeric_grade):
            errors.append("Numeric grade must be a number")
        elif not 0 <= float(numeric_grade) <= 100:
            errors.append("Numeric grade must be between 0 and 100")

    year_completed = payload.get("yearCompleted")
    if not _is_blank(year_completed):
        max_year = current_year()
        if not _is_number(year_completed):
            errors.append("Year completed must be a number")
        elif float(year_completed) != int(float(year_completed)):
            errors.append("Year completed must be a whole number")
        elif not MIN_YEAR_COMPLETED <= int(float(year_completed)) <= max_year:
            errors.append(
                f"Year completed must be between {MIN_YEAR_COMPLETED} and {max_year}"
            )

    semester = payload.get("semester")
    if not _is_blank(semester):
        text = str(semester).strip()
        if isinstance(semester, bool) or (
            text not in SEMESTERS and text not in SEMESTER_ALIASES
        ):
            errors.append(
                "Semester must be one of: "
                + ", ".join(SEMESTERS + list(SEMESTER_ALIASES))
            )

    return errors


def validate_user(payload: Any, partial: bool = False) -> List[str]:
    """Validate a user payload for creation or (partial) update."""
    errors = _require_mapping(payload)
    if errors:
        return errors

    for key, label in _USER_REQUIRED.items():
        if key not in payload and not partial:
            errors.append(f"{label} is required")
        elif key in payload and _is_blank(payload[key]):
            errors.append(f"{label} cannot be empty" if partial else f"{label} is required")
        elif key in payload and not isinstance(payload[key], str):
            errors.append(f"{label} must be text")

    # Updates never touch the password; it has its own endpoint
    if not partial:
        errors.extend(validate_password_change(payload))

    username = payload.get("username")
    if isinstance(username, str) and username.strip():
        length = len(username.strip())
        if length < USERNAME_MIN_LENGTH:
            errors.append(
                f"Username must be at least {USERNAME_MIN_LENGTH} characters long"
            )
        elif length > USERNAME_MAX_LENGTH:
            errors.append(f"Username cannot exceed {USERNAME_MAX_LENGTH} characters")

    user_type = payload.get("userType")
    if user_type is not None and user_type not in USER_ROLES:
        errors.append("User type must be one of: " + ", ".join(USER_ROLES))

    email = payload.get("email")
    if isinstance(email, str) and email.strip() and not EMAIL_PATTERN.match(email.strip()):
        errors.append("Please provide a valid email address")

    if "active" in payload and not isinstance(payload["active"], bool):
        errors.append("Active must be true or false")

    return errors


def validate_login(payload: Any) -> List[str]:
    errors = _require_mapping(payload)
    if errors:
        return errors
    for key, label in (("username", "Username"), ("password", "Password")):
        value = payload.get(key)
        if _is_blank(value):
            errors.append(f"{label} is required")
        elif not isinstance(value, str):
            errors.append(f"{label} must be text")
    user_type = payload.get("userType")
    if user_type is not None and user_type not in USER_ROLES:
        errors.append("User type must be one of: " + ", ".join(USER_ROLES))
    return errors


def validate_password_change(payload: Any) -> List[str]:
    errors = _require_mapping(payload)
    if errors:
        return errors
    password = payload.get("password")
    if _is_blank(password):
        errors.append("Password is required")
    elif not isinstance(password, str):
        errors.append("Password must be text")
    elif len(password) < PASSWORD_MIN_LENGTH:
        errors.append(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    return errors


def validate_bulk_upload(payload: Any) -> List[str]:
    """Only the envelope is checked here; items are validated one by one."""
    errors = _require_mapping(payload)
    if errors:
        return errors
    records = payload.get("records")
    if not isinstance(records, list) or not records:
        errors.append("Invalid or empty records array")
    return errors


def validate_activity_log(payload: Any) -> List[str]:
    errors = _require_mapping(payload)
    if errors:
        return errors
    if _is_blank(payload.get("action")):
        errors.append("Action is required")
    elif not isinstance(payload["action"], str):
        errors.append("Action must be text")
    if payload.get("details") is not None and not isinstance(payload["details"], dict):
        errors.append("Details must be an object")
    return errors


def ensure_valid(
    validator: Callable[..., List[str]], payload: Any, **kwargs: Any
) -> Dict[str, Any]:
    """Run a validator and raise ValidationError on any violation.

    Returns:
        The payload, for chaining.
    """
    errors = validator(payload, **kwargs)
    if errors:
        raise ValidationError(errors)
    return payload


def parse_payload(schema: Type[ModelT], payload: Mapping[str, Any]) -> ModelT:
    """Coerce a validated payload into a request model.

    Type errors the rule validators did not anticipate are reported as a
    :class:`ValidationError` rather than escaping as pydantic's own.
    """
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        errors = []
        for error in e.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Invalid value")
            errors.append(f"{location}: {message}" if location else message)
        raise ValidationError(errors) from e
