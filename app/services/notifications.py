import logging
from typing import Iterable, List, Optional

from app.db.firestore import get_db
from app.models.notification import Notification, NotificationType

logger = logging.getLogger("editohub.notifications")


def _inbox(uid: str):
    return get_db().collection("users").document(uid).collection("notifications")


async def send_in_app_notification(target_uid: str, title: str, message: str, link: str = "#",
                                   type: NotificationType = NotificationType.REVISION):
    """
    Creates an in-app notification in Firestore for a specific user.
    """
    try:
        notification = Notification(user_id=target_uid, type=type, title=title, message=message, link=link)
        _inbox(target_uid).add(notification.to_document())
    except Exception as e:
        logger.error(f"Failed to send in-app notification to {target_uid}: {e}")


async def notify_role(role: str, title: str, message: str, link: str,
                      type: NotificationType = NotificationType.APPROVAL):
    """
    Sends a notification to every user holding `role`.
    """
    try:
        users = get_db().collection("users").where("role", "==", role).stream()
        for user in users:
            await send_in_app_notification(user.id, title, message, link, type)
    except Exception as e:
        logger.error(f"Failed to notify {role} users: {e}")


# --- Comment fan-out ---
def comment_recipients(members: Iterable[str], author_id: Optional[str]) -> List[str]:
    """Project members minus the comment author, each member once."""
    seen = set()
    recipients = []
    for uid in members or []:
        if not uid or uid == author_id or uid in seen:
            continue
        seen.add(uid)
        recipients.append(uid)
    return recipients


def review_link(project_id: str, revision_id: str) -> str:
    return f"/dashboard/projects/{project_id}/review/{revision_id}"


async def fan_out_comment(project_id: str, comment_id: str, comment: dict) -> List[str]:
    """
    Notifies every project member except the author of a new comment.
    All writes go out in one batch, so either every recipient is notified or none is.
    The notification id is derived from the comment id; a redelivered event
    rewrites the same documents instead of adding duplicates.
    """
    db = get_db()
    project_doc = db.collection("projects").document(project_id).get()
    if not project_doc.exists:
        logger.info(f"Project {project_id} is gone, skipping notifications for comment {comment_id}")
        return []

    project = project_doc.to_dict()
    recipients = comment_recipients(project.get("members", []), comment.get("userId"))
    if not recipients:
        return []

    logger.info(f"Sending notifications to: {', '.join(recipients)} for new comment on {project.get('name')}")

    batch = db.batch()
    for uid in recipients:
        notification = Notification(
            user_id=uid,
            type=NotificationType.COMMENT,
            title="New Comment",
            message=f"{comment.get('userName', 'Someone')} commented on {project.get('name', 'your project')}",
            link=review_link(project_id, comment.get("revisionId", "")),
        )
        batch.set(_inbox(uid).document(f"comment_{comment_id}"), notification.to_document())
    batch.commit()
    return recipients


# --- Inbox ---
async def list_for_user(uid: str, limit: int = 20) -> List[dict]:
    docs = _inbox(uid).order_by("createdAt", direction="DESCENDING").limit(limit).stream()
    notifications = []
    for doc in docs:
        n = doc.to_dict()
        n["id"] = doc.id
        notifications.append(n)
    return notifications


async def mark_read(uid: str, notification_id: str):
    _inbox(uid).document(notification_id).update({"read": True})


async def delete_notification(uid: str, notification_id: str):
    _inbox(uid).document(notification_id).delete()
