import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.api.v1.endpoints.auth import get_optional_user, require
from app.core.errors import AuthenticationError, PermissionDeniedError
from app.core.rbac import Action, UserRole
from app.models.comment import GuestIdentityRequest, NewComment, NewReply
from app.services import comments as comment_service
from app.services.guests import capture_guest_identity, create_guest_session, get_guest_session
from app.services.timeline import build_markers

logger = logging.getLogger("editohub.review")
router = APIRouter()


async def _author(project_id: str, user: Optional[dict], guest_session_id: Optional[str]) -> dict:
    """Signed-in user, or the guest session the reviewer identified with."""
    if user:
        require(user, Action.COMMENT)
        return user
    if not guest_session_id:
        raise AuthenticationError("Sign in or identify as a guest to comment")
    session = await get_guest_session(guest_session_id)
    if session.project_id != project_id:
        raise PermissionDeniedError("This guest session belongs to another project")
    return {"uid": session.attribution_id, "name": session.name, "role": UserRole.GUEST.value}


# --- 1. GUEST IDENTITY ---
@router.post("/guest-session")
async def open_guest_session(body: GuestIdentityRequest):
    identity = capture_guest_identity(body.name, body.email)
    session = await create_guest_session(body.project_id, identity, body.phone_number)
    return {"success": True, "session": session.to_document(), "userId": session.attribution_id}


# --- 2. COMMENTS ---
@router.get("/{project_id}/comments")
async def get_comments(project_id: str, revision_id: str = Query(..., alias="revisionId"),
                       duration: Optional[float] = Query(None)):
    """Comments of one revision, plus timeline markers when the player reports a duration."""
    comments = await comment_service.list_comments(project_id, revision_id)
    markers = build_markers(comments, duration)
    return {
        "comments": [c.to_document() for c in comments],
        "markers": [
            {"commentId": m.comment_id, "timestamp": m.timestamp, "position": m.position,
             "leftPercent": m.left_percent, "color": m.color, "title": m.title}
            for m in markers
        ],
    }


@router.post("/{project_id}/comments")
async def post_comment(project_id: str, body: NewComment, user: Optional[dict] = Depends(get_optional_user)):
    author = await _author(project_id, user, body.guest_session_id)
    comment = await comment_service.add_comment(project_id, body.revision_id, author, body.content,
                                                body.timestamp, body.attachments)
    return {"success": True, "comment": comment.to_document()}


@router.post("/{project_id}/comments/{comment_id}/replies")
async def post_reply(project_id: str, comment_id: str, body: NewReply,
                     user: Optional[dict] = Depends(get_optional_user)):
    author = await _author(project_id, user, body.guest_session_id)
    reply = await comment_service.add_reply(project_id, comment_id, author, body.content)
    return {"success": True, "reply": reply.to_document()}


@router.post("/{project_id}/comments/{comment_id}/toggle")
async def toggle_comment(project_id: str, comment_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """Resolves an open comment or reopens a resolved one. Signed-in reviewers only."""
    if not user:
        raise AuthenticationError("Sign in to resolve comments")
    require(user, Action.COMMENT)
    status = await comment_service.toggle_status(project_id, comment_id)
    return {"success": True, "status": status}
