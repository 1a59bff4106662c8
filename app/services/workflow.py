import logging
from collections import defaultdict
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from app.core.errors import InvalidTransitionError, NotFoundError, PermissionDeniedError, ValidationError
from app.db.firestore import get_db
from app.models.base import now_ms
from app.models.notification import NotificationType
from app.models.project import PaymentStatus, Project, ProjectStatus
from app.services.audit import log_project_event
from app.services.notifications import send_in_app_notification
from app.services.whatsapp import EDITOR_ASSIGNED, notify_client_quietly

logger = logging.getLogger("editohub.workflow")

S = ProjectStatus

# Allowed source -> target pairs. Writing the current status again is always a no-op.
TRANSITIONS: Dict[ProjectStatus, FrozenSet[ProjectStatus]] = {
    S.PENDING_ASSIGNMENT: frozenset({S.ACTIVE, S.ARCHIVED}),
    S.ACTIVE: frozenset({S.IN_REVIEW, S.PENDING_ASSIGNMENT, S.COMPLETED, S.ARCHIVED}),
    S.IN_REVIEW: frozenset({S.ACTIVE, S.APPROVED, S.COMPLETED, S.ARCHIVED}),
    S.APPROVED: frozenset({S.IN_REVIEW, S.COMPLETED, S.ARCHIVED}),
    S.COMPLETED: frozenset({S.ARCHIVED}),
    S.ARCHIVED: frozenset(),
}

ASSIGNMENT_WINDOW_MS = 10 * 60 * 1000

WILDCARD = "*"


def can_transition(current: Optional[str], target: str) -> bool:
    if current is None or current == target:
        return True
    try:
        return ProjectStatus(target) in TRANSITIONS[ProjectStatus(current)]
    except (ValueError, KeyError):
        return False


def ensure_transition(current: Optional[str], target: str):
    if not can_transition(current, target):
        raise InvalidTransitionError(str(current), str(target))


class StatusHooks:
    """
    Side effects keyed on (old_status, new_status). Either side may be "*".
    Hooks run only when the status actually changed.
    """

    def __init__(self):
        self._hooks: Dict[Tuple[str, str], List[Callable]] = defaultdict(list)

    def register(self, old: str = WILDCARD, new: str = WILDCARD):
        def decorator(fn):
            self._hooks[(getattr(old, "value", old), getattr(new, "value", new))].append(fn)
            return fn
        return decorator

    def matching(self, old: str, new: str) -> List[Callable]:
        keys = [(old, new), (WILDCARD, new), (old, WILDCARD), (WILDCARD, WILDCARD)]
        return [fn for key in keys for fn in self._hooks.get(key, [])]

    async def fire(self, project_id: str, old: str, new: str, project: dict) -> int:
        if old == new:
            return 0
        fired = 0
        for hook in self.matching(old, new):
            await hook(project_id, old, new, project)
            fired += 1
        return fired


class ProjectWorkflow:
    @staticmethod
    def get_project_doc(project_id: str):
        doc_ref = get_db().collection("projects").document(project_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise NotFoundError("Project not found")
        return doc_ref, doc.to_dict()

    @staticmethod
    async def transition(project_id: str, target: ProjectStatus, actor_uid: str, actor_name: str = "System",
                         extra: Optional[dict] = None):
        """
        Moves a project to `target` if the transition table allows it.
        """
        doc_ref, project = ProjectWorkflow.get_project_doc(project_id)
        current = project.get("status")
        ensure_transition(current, target.value)

        update_data = {"status": target.value, "updatedAt": now_ms()}
        update_data.update(extra or {})
        doc_ref.update(update_data)

        if current != target.value:
            await log_project_event(project_id, "STATUS_CHANGED", actor_uid, actor_name, f"{current} -> {target.value}")
        return {"status": "success", "from": current, "to": target.value}

    @staticmethod
    async def assign_editor(project_id: str, editor_id: str, editor_price: Optional[float], actor_uid: str, actor_name: str):
        """Offers the project to an editor; the offer is valid for ten minutes."""
        doc_ref, project = ProjectWorkflow.get_project_doc(project_id)
        ensure_transition(project.get("status"), S.PENDING_ASSIGNMENT.value)

        members = list(project.get("members", []))
        if editor_id not in members:
            members.append(editor_id)

        now = now_ms()
        update_data = {
            "assignedEditorId": editor_id,
            "assignmentStatus": "pending",
            "assignmentAt": now,
            "assignmentExpiresAt": now + ASSIGNMENT_WINDOW_MS,
            "status": S.PENDING_ASSIGNMENT.value,
            "members": members,
            "updatedAt": now,
        }
        if editor_price is not None:
            update_data["editorPrice"] = editor_price
        doc_ref.update(update_data)

        await log_project_event(project_id, "EDITOR_ASSIGNED", actor_uid, actor_name, f"Editor {editor_id} assigned.")
        await send_in_app_notification(
            editor_id,
            "New Project Assigned",
            f"You have been offered {project.get('name', 'a project')}. Respond within 10 minutes.",
            f"/dashboard/projects/{project_id}",
            NotificationType.ASSIGNED,
        )
        await notify_client_quietly(project_id, EDITOR_ASSIGNED)
        return {"status": "success", "members": members}

    @staticmethod
    async def respond_to_assignment(project_id: str, editor_id: str, response: str, reason: Optional[str] = None):
        if response not in ("accepted", "rejected"):
            raise ValidationError("Response must be 'accepted' or 'rejected'", field="response")

        doc_ref, project = ProjectWorkflow.get_project_doc(project_id)
        if project.get("assignedEditorId") != editor_id:
            raise ValidationError("This project is not assigned to you")

        target = S.ACTIVE if response == "accepted" else S.PENDING_ASSIGNMENT
        ensure_transition(project.get("status"), target.value)

        update_data = {"assignmentStatus": response, "status": target.value, "updatedAt": now_ms()}
        if response == "rejected" and reason:
            update_data["editorDeclineReason"] = reason
        doc_ref.update(update_data)
        return {"status": "success", "current_state": target.value}

    # --- Creation ---
    @staticmethod
    def _pick_project_manager(client_id: str) -> Optional[str]:
        """The client's own PM, else the first project manager on file (then kept for the client)."""
        users = get_db().collection("users")
        client_doc = users.document(client_id).get()
        client = client_doc.to_dict() if client_doc.exists else {}
        if client.get("managedByPM"):
            return client["managedByPM"]

        pm = next(iter(users.where("role", "==", "project_manager").limit(1).stream()), None)
        if pm is None:
            return None
        if client_doc.exists:
            users.document(client_id).update({"managedByPM": pm.id})
        return pm.id

    @staticmethod
    async def create_project(client_id: str, name: str, total_cost: float = 0, description: Optional[str] = None,
                             deadline: Optional[str] = None) -> dict:
        """
        Creates a project in pending_assignment, hands it to a project manager
        and tells the client the request was received.
        """
        pm_id = ProjectWorkflow._pick_project_manager(client_id)
        project = Project(
            name=name,
            client_id=client_id,
            total_cost=total_cost,
            description=description,
            deadline=deadline,
            members=[client_id],
            assigned_pm_id=pm_id,
        )
        ref = get_db().collection("projects").document()
        ref.set(project.to_document(exclude={"id"}))

        if pm_id:
            details = f"Project created and assigned to PM: {pm_id}"
            await send_in_app_notification(pm_id, "New Project", f"{name} is waiting for an editor",
                                           f"/dashboard/projects/{ref.id}", NotificationType.ASSIGNED)
        else:
            details = "Project created. No PM available for auto-assignment."
        await log_project_event(ref.id, "PROJECT_CREATED", "system", "System", details)
        await notify_client_quietly(ref.id, ProjectStatus.PENDING_ASSIGNMENT.value)
        return {"success": True, "id": ref.id, "assignedPMId": pm_id}

    # --- Downloads ---
    @staticmethod
    async def unlock_downloads(project_id: str, actor_uid: str, actor_name: str) -> dict:
        """
        Manual override once payment is settled outside the gateway:
        marks the project fully paid and completed and enables downloads.
        """
        doc_ref, project = ProjectWorkflow.get_project_doc(project_id)
        update_data = {
            "paymentStatus": PaymentStatus.FULL_PAID.value,
            "downloadsUnlocked": True,
            "downloadUnlockRequested": False,
            "updatedAt": now_ms(),
        }
        current = project.get("status")
        if can_transition(current, S.COMPLETED.value):
            update_data["status"] = S.COMPLETED.value
        else:
            logger.warning(f"Unlocking downloads on {project_id} without moving it from {current} to completed")
        doc_ref.update(update_data)

        # The completed WhatsApp message goes out from the status hook
        await log_project_event(project_id, "DOWNLOADS_UNLOCKED", actor_uid, actor_name, "Downloads unlocked manually")
        return {"success": True, "status": update_data.get("status", current)}

    @staticmethod
    async def request_download_unlock(project_id: str, user_uid: str) -> dict:
        """A project member (usually a pay-later client) asks the PM to unlock downloads."""
        doc_ref, project = ProjectWorkflow.get_project_doc(project_id)
        if user_uid != project.get("clientId") and user_uid not in project.get("members", []):
            raise PermissionDeniedError("You are not a member of this project")

        doc_ref.update({"downloadUnlockRequested": True, "updatedAt": now_ms()})
        if project.get("assignedPMId"):
            await send_in_app_notification(
                project["assignedPMId"],
                "Download Unlock Requested",
                f"The client asked to unlock downloads for {project.get('name', 'a project')}",
                f"/dashboard/projects/{project_id}",
                NotificationType.APPROVAL,
            )
        return {"success": True}
