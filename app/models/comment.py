from enum import Enum
from pydantic import Field
from typing import List, Optional

from app.core.rbac import UserRole
from app.models.base import Document, now_ms


class CommentStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class CommentReply(Document):
    id: str
    user_id: str
    user_name: str
    user_role: UserRole
    content: str
    created_at: int = Field(default_factory=now_ms)


class Comment(Document):
    """
    projects/{projectId}/comments/{id}, anchored to (projectId, revisionId, timestamp).
    timestamp is seconds into playback of the revision, not wall-clock time.
    """
    id: Optional[str] = None
    project_id: str
    revision_id: str
    user_id: str
    user_name: str
    user_avatar: Optional[str] = None
    user_role: UserRole
    content: str
    timestamp: float = Field(ge=0)
    created_at: int = Field(default_factory=now_ms)
    status: CommentStatus = CommentStatus.OPEN
    replies: List[CommentReply] = []
    attachments: List[str] = []


class GuestSession(Document):
    """guest_sessions/{id}: attribution for an unauthenticated reviewer."""
    id: str
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    project_id: str
    first_seen_at: int = Field(default_factory=now_ms)

    @property
    def attribution_id(self) -> str:
        return f"guest-{self.email}" if self.email else f"guest-{self.id}"


# --- Request bodies ---
class NewComment(Document):
    revision_id: str
    content: str = Field(min_length=1)
    timestamp: float = Field(ge=0)
    guest_session_id: Optional[str] = None
    attachments: List[str] = []


class NewReply(Document):
    content: str = Field(min_length=1)
    guest_session_id: Optional[str] = None


class GuestIdentityRequest(Document):
    project_id: str
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
