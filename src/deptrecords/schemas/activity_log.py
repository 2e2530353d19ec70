"""Activity log schema definitions."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from deptrecords.schemas.base import CamelModel


class ActivityLogEntry(CamelModel):
    """An audit event waiting to be appended."""

    user: Optional[str] = None
    username: str = "unknown"
    user_type: str = "unknown"
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None


class ActivityLogUserInfo(CamelModel):
    name: str
    user_type: str


class ActivityLog(CamelModel):
    """Outward view of a stored audit event."""

    id: str
    user: Optional[str] = None
    user_info: Optional[ActivityLogUserInfo] = None
    username: str
    user_type: str
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    timestamp: datetime
