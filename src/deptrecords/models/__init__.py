"""ORM models for users, student records and activity logs."""

from .activity_log import ActivityLogModel
from .student_record import StudentRecordModel
from .user import UserModel

__all__ = ["ActivityLogModel", "StudentRecordModel", "UserModel"]
