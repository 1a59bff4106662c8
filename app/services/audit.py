from firebase_admin import firestore
from app.db.firestore import get_db
from app.models.project import ProjectLogEntry
import logging

logger = logging.getLogger("editohub.audit")

async def log_project_event(project_id: str, event: str, actor_uid: str, actor_name: str, details: str = ""):
    """
    Appends an entry to the project's `logs` array in Firestore.
    """
    try:
        entry = ProjectLogEntry(event=event, user=actor_uid, user_name=actor_name, details=details or None)
        get_db().collection("projects").document(project_id).update({
            "logs": firestore.ArrayUnion([entry.to_document()])
        })
    except Exception as e:
        logger.error(f"Failed to write project log for {project_id}: {e}")
