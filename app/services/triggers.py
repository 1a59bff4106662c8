"""
Background handlers for document changes.

The hosting platform delivers create/update events for Firestore documents
(at least once) to POST /api/v1/events. `ChangeFeed` routes each event by
kind and document path pattern. Before running handlers the event id is
claimed in processed_events/{event_id}; a redelivered event finds the claim
and is skipped, so status hooks run at most once per event.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from google.api_core.exceptions import Conflict

from app.db.firestore import get_db
from app.models.base import now_ms
from app.models.notification import NotificationType
from app.services.notifications import fan_out_comment, notify_role
from app.services.whatsapp import notify_client_quietly
from app.services.workflow import StatusHooks

logger = logging.getLogger("editohub.triggers")

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"


@dataclass
class DocumentEvent:
    event_id: str
    kind: str
    path: str
    before: Optional[dict] = None
    after: Optional[dict] = None
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict) -> "DocumentEvent":
        path = payload.get("path") or payload.get("document") or ""
        # Full resource names carry a projects/<gcp>/databases/<db>/documents/ prefix
        if "/documents/" in path:
            path = path.split("/documents/", 1)[1]
        return cls(
            event_id=payload["id"],
            kind=payload.get("type", UPDATED),
            path=path.strip("/"),
            before=payload.get("before"),
            after=payload.get("after"),
        )


def compile_pattern(pattern: str):
    """'projects/{projectId}/comments/{commentId}' -> regex with named groups."""
    regex = re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", pattern.strip("/"))
    return re.compile(f"^{regex}$")


class ChangeFeed:
    def __init__(self):
        self._routes: List[Tuple[str, "re.Pattern", Callable]] = []

    def on(self, kind: str, pattern: str):
        def decorator(fn):
            self._routes.append((kind, compile_pattern(pattern), fn))
            return fn
        return decorator

    def _claim(self, event_id: str) -> bool:
        try:
            get_db().collection("processed_events").document(event_id).create({"processedAt": now_ms()})
            return True
        except Conflict:
            return False

    def _release(self, event_id: str):
        get_db().collection("processed_events").document(event_id).delete()

    async def dispatch(self, event: DocumentEvent) -> int:
        """Runs every matching handler. Returns how many ran (0 for duplicates)."""
        matches = []
        for kind, regex, handler in self._routes:
            m = regex.match(event.path)
            if kind == event.kind and m:
                matches.append((handler, m.groupdict()))
        if not matches:
            return 0

        if not self._claim(event.event_id):
            logger.info(f"Event {event.event_id} already processed, skipping")
            return 0

        try:
            for handler, params in matches:
                event.params = params
                await handler(event)
        except Exception:
            # Let the platform retry the whole event
            self._release(event.event_id)
            raise
        return len(matches)


feed = ChangeFeed()
status_hooks = StatusHooks()


# --- 1. COMMENT CREATED ---
@feed.on(CREATED, "projects/{projectId}/comments/{commentId}")
async def on_comment_created(event: DocumentEvent):
    project_id, comment_id = event.params["projectId"], event.params["commentId"]
    # The stored comment is the source of truth, not the event body
    doc = get_db().collection("projects").document(project_id).collection("comments").document(comment_id).get()
    if not doc.exists:
        logger.info(f"Comment {comment_id} no longer exists, nothing to notify")
        return
    await fan_out_comment(project_id, comment_id, doc.to_dict())


# --- 2. PROJECT UPDATED ---
@feed.on(UPDATED, "projects/{projectId}")
async def on_project_updated(event: DocumentEvent):
    old_status = (event.before or {}).get("status")
    new_status = (event.after or {}).get("status")
    if old_status == new_status:
        return

    project_id = event.params["projectId"]
    # Hooks act on the stored project, never on the event body
    doc = get_db().collection("projects").document(project_id).get()
    if not doc.exists:
        logger.info(f"Project {project_id} no longer exists, skipping status hooks")
        return

    logger.info(f"Project {project_id} status changed from {old_status} to {new_status}")
    await status_hooks.fire(project_id, old_status, new_status, doc.to_dict())


# --- 3. STATUS HOOKS ---
@status_hooks.register(new="active")
@status_hooks.register(new="in_review")
@status_hooks.register(new="completed")
async def whatsapp_status_update(project_id: str, old: str, new: str, project: dict):
    await notify_client_quietly(project_id, new, project)


@status_hooks.register(new="approved")
async def prepare_final_deliverable(project_id: str, old: str, new: str, project: dict):
    # TODO: generate the final deliverable download link once delivery packaging exists
    logger.info(f"Project {project_id} approved; final deliverable pending")


@status_hooks.register(new="approved")
async def notify_managers_of_approval(project_id: str, old: str, new: str, project: dict):
    await notify_role(
        "manager",
        "Project Approved",
        f"{project.get('name', 'A project')} was approved by the client",
        f"/dashboard/projects/{project_id}",
        NotificationType.APPROVAL,
    )
