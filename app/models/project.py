from enum import Enum
from pydantic import Field
from typing import List, Optional

from app.models.base import Document, now_ms


class ProjectStatus(str, Enum):
    PENDING_ASSIGNMENT = "pending_assignment"
    ACTIVE = "active"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class PaymentStatus(str, Enum):
    PENDING = "pending_payment"
    HALF_PAID = "half_paid"
    FULL_PAID = "full_paid"


class RevisionStatus(str, Enum):
    ACTIVE = "active"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    ARCHIVED = "archived"


class ProjectLogEntry(Document):
    event: str
    user: str
    user_name: str
    timestamp: int = Field(default_factory=now_ms)
    details: Optional[str] = None


class Project(Document):
    """projects/{id}. amountPaid is only ever changed through an increment."""
    id: Optional[str] = None
    name: str
    client_id: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PENDING_ASSIGNMENT
    payment_status: PaymentStatus = PaymentStatus.PENDING
    total_cost: float = 0
    amount_paid: float = 0
    members: List[str] = []
    current_revision_id: Optional[str] = None
    assigned_editor_id: Optional[str] = None
    assigned_pm_id: Optional[str] = Field(None, alias="assignedPMId")
    description: Optional[str] = None
    deadline: Optional[str] = None
    downloads_unlocked: bool = False
    download_unlock_requested: bool = False
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)


class Revision(Document):
    """revisions/{id}: one uploaded cut of the video."""
    id: Optional[str] = None
    project_id: str
    version: int
    video_url: str
    storage_path: Optional[str] = None
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    status: RevisionStatus = RevisionStatus.ACTIVE
    uploaded_by: str
    created_at: int = Field(default_factory=now_ms)
    download_count: int = 0


class CreateProjectRequest(Document):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    deadline: Optional[str] = None
    total_cost: float = Field(0, ge=0)
    client_id: Optional[str] = None   # staff create on behalf of a client


class StatusChangeRequest(Document):
    status: ProjectStatus


class AssignEditorRequest(Document):
    editor_id: str
    editor_price: Optional[float] = None


class AssignmentResponse(Document):
    response: str   # accepted | rejected
    reason: Optional[str] = None
