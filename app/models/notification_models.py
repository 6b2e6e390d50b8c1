"""
In-app notification models
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    REPORT_APPROVED = "report_approved"
    STATUS_CHANGED = "status_changed"
    ADMIN_RESPONSE = "admin_response"
    ADMIN_COMMENT = "admin_comment"
    REPORT_UPVOTED = "report_upvoted"
    REPORT_REJECTED = "report_rejected"


class AppNotification(BaseModel):
    id: Optional[str] = None
    user_id: str
    kind: NotificationKind
    title: str
    message: str
    report_id: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


class UnreadCountResponse(BaseModel):
    unread: int
