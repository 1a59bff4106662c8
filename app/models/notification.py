from enum import Enum
from pydantic import Field

from app.models.base import Document, now_ms


class NotificationType(str, Enum):
    COMMENT = "comment"
    REVISION = "revision"
    APPROVAL = "approval"
    ASSIGNED = "assigned"


class Notification(Document):
    """users/{uid}/notifications/{id}. Never updated after creation except `read`."""
    user_id: str
    type: NotificationType
    title: str
    message: str
    link: str = "#"
    read: bool = False
    created_at: int = Field(default_factory=now_ms)
