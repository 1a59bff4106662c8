import uuid
import logging
from typing import List, Optional

from firebase_admin import firestore

from app.core.errors import NotFoundError
from app.db.firestore import get_db
from app.models.comment import Comment, CommentReply, CommentStatus

logger = logging.getLogger("editohub.comments")


def _comments(project_id: str):
    return get_db().collection("projects").document(project_id).collection("comments")


async def add_comment(project_id: str, revision_id: str, author: dict, content: str, timestamp: float,
                      attachments: Optional[List[str]] = None) -> Comment:
    """
    `author` carries uid/name/role/avatar of a signed-in user or a guest session.
    Notifying the other members is left to the comment-created trigger.
    """
    comment = Comment(
        id=uuid.uuid4().hex,
        project_id=project_id,
        revision_id=revision_id,
        user_id=author["uid"],
        user_name=author.get("name") or "Guest",
        user_avatar=author.get("picture"),
        user_role=author.get("role", "guest"),
        content=content,
        timestamp=timestamp,
        attachments=attachments or [],
    )
    _comments(project_id).document(comment.id).set(comment.to_document(exclude={"id"}))
    logger.info(f"Comment {comment.id} at {timestamp:.2f}s on revision {revision_id}")
    return comment


async def list_comments(project_id: str, revision_id: str) -> List[Comment]:
    docs = _comments(project_id).where("revisionId", "==", revision_id).stream()
    comments = [Comment(id=doc.id, **doc.to_dict()) for doc in docs]
    return sorted(comments, key=lambda c: (c.timestamp, c.created_at))


async def add_reply(project_id: str, comment_id: str, author: dict, content: str) -> CommentReply:
    ref = _comments(project_id).document(comment_id)
    if not ref.get().exists:
        raise NotFoundError("Comment not found")

    reply = CommentReply(
        id=uuid.uuid4().hex,
        user_id=author["uid"],
        user_name=author.get("name") or "Guest",
        user_role=author.get("role", "guest"),
        content=content,
    )
    ref.update({"replies": firestore.ArrayUnion([reply.to_document()])})
    return reply


async def toggle_status(project_id: str, comment_id: str) -> str:
    """open <-> resolved. The status lives only on the comment."""
    ref = _comments(project_id).document(comment_id)
    doc = ref.get()
    if not doc.exists:
        raise NotFoundError("Comment not found")

    current = doc.to_dict().get("status", CommentStatus.OPEN.value)
    new_status = CommentStatus.RESOLVED if current == CommentStatus.OPEN.value else CommentStatus.OPEN
    ref.update({"status": new_status.value})
    return new_status.value
