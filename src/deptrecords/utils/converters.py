"""Conversions between ORM models and outward schemas."""

from typing import Dict, Optional

from deptrecords.models.activity_log import ActivityLogModel
from deptrecords.models.student_record import StudentRecordModel
from deptrecords.models.user import UserModel
from deptrecords.schemas.activity_log import ActivityLog, ActivityLogUserInfo
from deptrecords.schemas.student_record import StudentRecord
from deptrecords.schemas.user import Identity, User


def model_to_user(model: UserModel) -> User:
    return User(
        id=model.user_id,
        username=model.username,
        user_type=model.user_type,
        name=model.name,
        email=model.email,
        active=model.active,
        last_login=model.last_login,
        must_change_password=model.must_change_password,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_identity(model: UserModel, ip_address: Optional[str] = None) -> Identity:
    return Identity(
        user_id=model.user_id,
        username=model.username,
        user_type=model.user_type,
        name=model.name,
        ip_address=ip_address,
    )


def model_to_record(model: StudentRecordModel) -> StudentRecord:
    return StudentRecord(
        id=model.record_id,
        student_id=model.student_id,
        student_name=model.student_name,
        course_code=model.course_code,
        course_name=model.course_name,
        grade=model.grade,
        numeric_grade=model.numeric_grade,
        instructor=model.instructor,
        year_completed=model.year_completed,
        semester=model.semester,
        session=model.session,
        updated_by=model.updated_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_activity_log(
    model: ActivityLogModel, users: Optional[Dict[str, UserModel]] = None
) -> ActivityLog:
    """Convert a log row, embedding the referenced user's name when known."""
    user_info = None
    if users and model.user_id in users:
        referenced = users[model.user_id]
        user_info = ActivityLogUserInfo(name=referenced.name, user_type=referenced.user_type)
    return ActivityLog(
        id=model.log_id,
        user=model.user_id,
        user_info=user_info,
        username=model.username,
        user_type=model.user_type,
        action=model.action,
        details=model.details or {},
        ip_address=model.ip_address,
        timestamp=model.timestamp,
    )
