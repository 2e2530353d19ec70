"""Activity log database model.

Entries are append-only. The user column is a plain back-reference with no
foreign key, so deleting a user leaves its history intact.
"""

from sqlalchemy import JSON, Column, DateTime, Index, String

from .base import Base, new_id, utcnow


class ActivityLogModel(Base):
    """Audit trail entry."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_user_timestamp", "user_id", "timestamp"),
    )

    log_id = Column(String(24), primary_key=True, index=True, default=new_id)
    user_id = Column(String(24), nullable=True)
    # Snapshots taken at the time of the action
    username = Column(String, nullable=False)
    user_type = Column(String, nullable=False)
    action = Column(String, nullable=False, index=True)
    details = Column(JSON, nullable=False, default=dict)
    ip_address = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True, default=utcnow)
