import uuid
import logging
from dataclasses import dataclass
from typing import Optional

from app.core.errors import NotFoundError, ValidationError
from app.db.firestore import get_db
from app.models.comment import GuestSession

logger = logging.getLogger("editohub.guests")


@dataclass(frozen=True)
class GuestIdentity:
    name: str
    email: Optional[str] = None


def capture_guest_identity(name: Optional[str], email: Optional[str] = None) -> GuestIdentity:
    """Name is required, email optional. No network call happens here."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter your name to start reviewing", field="name")
    email = (email or "").strip() or None
    return GuestIdentity(name=name, email=email)


async def create_guest_session(project_id: str, identity: GuestIdentity, phone_number: Optional[str] = None) -> GuestSession:
    """
    Persists a new session for every call; a returning guest simply gets another one.
    """
    session = GuestSession(
        id=uuid.uuid4().hex,
        name=identity.name,
        email=identity.email,
        phone_number=phone_number,
        project_id=project_id,
    )
    get_db().collection("guest_sessions").document(session.id).set(session.to_document())
    logger.info(f"Guest session {session.id} opened for project {project_id}")
    return session


async def get_guest_session(session_id: str) -> GuestSession:
    doc = get_db().collection("guest_sessions").document(session_id).get()
    if not doc.exists:
        raise NotFoundError("Guest session not found")
    return GuestSession(**doc.to_dict())
