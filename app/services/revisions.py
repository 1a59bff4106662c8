import logging

from app.core.errors import NotFoundError, ValidationError
from app.db.firestore import get_db
from app.models.base import now_ms
from app.models.notification import NotificationType
from app.models.project import ProjectStatus, Revision, RevisionStatus
from app.services.audit import log_project_event
from app.services.notifications import comment_recipients, review_link, send_in_app_notification
from app.services.workflow import ProjectWorkflow, ensure_transition
from app import storage

logger = logging.getLogger("editohub.revisions")

DOWNLOAD_LIMIT = 3


def next_version(project_id: str) -> int:
    docs = get_db().collection("revisions")\
                   .where("projectId", "==", project_id)\
                   .order_by("version", direction="DESCENDING")\
                   .limit(1)\
                   .stream()
    latest = next(iter(docs), None)
    return latest.to_dict().get("version", 0) + 1 if latest else 1


async def upload_revision(project_id: str, file_obj, filename: str, content_type: str, uploaded_by: str,
                          uploader_name: str = "Editor", description: str = "") -> Revision:
    """
    Stores a new cut, points the project at it and puts the project in review.
    """
    if not content_type.startswith("video/"):
        raise ValidationError("Only video files allowed", field="file")

    doc_ref, project = ProjectWorkflow.get_project_doc(project_id)
    # Reject before the upload, not after
    ensure_transition(project.get("status"), ProjectStatus.IN_REVIEW.value)

    version = next_version(project_id)
    blob_name = storage.revision_blob_name(project_id, version, filename)
    video_url = storage.upload_revision_file(file_obj, blob_name, content_type)

    db = get_db()
    ref = db.collection("revisions").document()
    revision = Revision(
        id=ref.id,
        project_id=project_id,
        version=version,
        video_url=video_url,
        storage_path=blob_name,
        description=description or None,
        uploaded_by=uploaded_by,
    )
    ref.set(revision.to_document(exclude={"id"}))

    doc_ref.update({
        "currentRevisionId": ref.id,
        "status": ProjectStatus.IN_REVIEW.value,
        "updatedAt": now_ms(),
    })
    await log_project_event(project_id, "REVISION_UPLOADED", uploaded_by, uploader_name, f"Version {version}")
    for uid in comment_recipients(project.get("members", []), uploaded_by):
        await send_in_app_notification(
            uid,
            "New Revision",
            f"Version {version} of {project.get('name', 'your project')} is ready for review",
            review_link(project_id, ref.id),
            NotificationType.REVISION,
        )
    return revision


async def get_revision(revision_id: str) -> Revision:
    doc = get_db().collection("revisions").document(revision_id).get()
    if not doc.exists:
        raise NotFoundError("Revision not found")
    return Revision(id=doc.id, **doc.to_dict())


async def register_download(revision_id: str) -> dict:
    """
    Each revision can be downloaded DOWNLOAD_LIMIT times; at the limit it is archived.
    """
    ref = get_db().collection("revisions").document(revision_id)
    doc = ref.get()
    if not doc.exists:
        raise NotFoundError("Revision not found")
    data = doc.to_dict()
    count = data.get("downloadCount", 0)

    if count >= DOWNLOAD_LIMIT:
        if data.get("status") != RevisionStatus.ARCHIVED.value:
            ref.update({
                "status": RevisionStatus.ARCHIVED.value,
                "description": (data.get("description") or "") + " [Download Limit Reached]",
            })
        raise ValidationError("Download limit reached for this revision.")

    if data.get("storagePath"):
        download_url = storage.generate_signed_url(data["storagePath"])
    else:
        download_url = data.get("videoUrl")
    if not download_url:
        raise NotFoundError("No video file found for this revision.")

    ref.update({"downloadCount": count + 1})
    return {"success": True, "count": count + 1, "remaining": DOWNLOAD_LIMIT - (count + 1), "downloadUrl": download_url}
