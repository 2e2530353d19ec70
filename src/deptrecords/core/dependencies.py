"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
Managers are request-scoped and share the request's database session.
"""

from typing import Annotated

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session, sessionmaker

from deptrecords.core.database import get_db, get_session_factory
from deptrecords.utils import activity_log_manager
from deptrecords.utils import record_manager
from deptrecords.utils import user_manager


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_record_manager(db: Session = Depends(get_db)) -> record_manager.RecordManager:
    """Get RecordManager instance with request-scoped DB session."""
    return record_manager.RecordManager(db)


def get_activity_log_manager(
    db: Session = Depends(get_db),
) -> activity_log_manager.ActivityLogManager:
    """Get ActivityLogManager instance with request-scoped DB session."""
    return activity_log_manager.ActivityLogManager(db)


def get_activity_recorder(
    background_tasks: BackgroundTasks,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> activity_log_manager.ActivityRecorder:
    """Get an ActivityRecorder bound to this request's background tasks."""
    return activity_log_manager.ActivityRecorder(background_tasks, session_factory)


# Type aliases for dependency injection
UserManagerDep = Annotated[user_manager.UserManager, Depends(get_user_manager)]
RecordManagerDep = Annotated[record_manager.RecordManager, Depends(get_record_manager)]
ActivityLogManagerDep = Annotated[
    activity_log_manager.ActivityLogManager, Depends(get_activity_log_manager)
]
ActivityRecorderDep = Annotated[
    activity_log_manager.ActivityRecorder, Depends(get_activity_recorder)
]
