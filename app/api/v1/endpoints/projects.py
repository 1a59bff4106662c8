from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.api.v1.endpoints.auth import get_current_user, require
from app.core.errors import NotFoundError, ValidationError
from app.core.rbac import Action, UserRole
from app.models.project import AssignEditorRequest, AssignmentResponse, CreateProjectRequest, StatusChangeRequest
from app.services import revisions
from app.services.workflow import ProjectWorkflow

router = APIRouter()


@router.post("/")
async def create_project(body: CreateProjectRequest, current_user: dict = Depends(get_current_user)):
    """Clients create their own projects; staff must name the client."""
    require(current_user, Action.CREATE_PROJECT)
    if current_user["role"] == UserRole.CLIENT.value:
        client_id = current_user["uid"]
    elif body.client_id:
        client_id = body.client_id
    else:
        raise ValidationError("clientId is required", field="clientId")
    return await ProjectWorkflow.create_project(client_id, body.name, body.total_cost, body.description, body.deadline)


@router.post("/{project_id}/status")
async def change_status(project_id: str, body: StatusChangeRequest, current_user: dict = Depends(get_current_user)):
    """Moves a project along the transition table; anything else is a 409."""
    require(current_user, Action.CHANGE_STATUS)
    return await ProjectWorkflow.transition(project_id, body.status, current_user["uid"],
                                            current_user.get("name") or current_user.get("email") or "User")


@router.post("/{project_id}/assign")
async def assign_editor(project_id: str, body: AssignEditorRequest, current_user: dict = Depends(get_current_user)):
    require(current_user, Action.ASSIGN_EDITOR)
    return await ProjectWorkflow.assign_editor(project_id, body.editor_id, body.editor_price,
                                               current_user["uid"], current_user.get("name") or "PM")


@router.post("/{project_id}/assignment")
async def respond_to_assignment(project_id: str, body: AssignmentResponse, current_user: dict = Depends(get_current_user)):
    """The assigned editor accepts or declines."""
    require(current_user, Action.UPLOAD_REVISION)
    return await ProjectWorkflow.respond_to_assignment(project_id, current_user["uid"], body.response, body.reason)


@router.post("/{project_id}/revisions")
async def upload_revision(project_id: str, file: UploadFile = File(...), description: str = Form(""),
                          current_user: dict = Depends(get_current_user)):
    require(current_user, Action.UPLOAD_REVISION)
    revision = await revisions.upload_revision(
        project_id, file.file, file.filename, file.content_type or "",
        uploaded_by=current_user["uid"],
        uploader_name=current_user.get("name") or "Editor",
        description=description,
    )
    return {"success": True, "revision": revision.to_document()}


@router.post("/{project_id}/revisions/{revision_id}/download")
async def download_revision(project_id: str, revision_id: str, current_user: dict = Depends(get_current_user)):
    require(current_user, Action.VIEW_DASHBOARD)
    return await revisions.register_download(revision_id)


@router.get("/{project_id}/revisions/{revision_id}")
async def get_revision(project_id: str, revision_id: str, current_user: dict = Depends(get_current_user)):
    require(current_user, Action.VIEW_DASHBOARD)
    revision = await revisions.get_revision(revision_id)
    if revision.project_id != project_id:
        raise NotFoundError("Revision not found")
    return revision.to_document()


# --- Downloads ---
@router.post("/{project_id}/downloads/unlock")
async def unlock_downloads(project_id: str, current_user: dict = Depends(get_current_user)):
    """Admin or PM override after an off-gateway payment."""
    require(current_user, Action.UNLOCK_DOWNLOADS)
    return await ProjectWorkflow.unlock_downloads(project_id, current_user["uid"],
                                                  current_user.get("name") or current_user.get("email") or "PM")


@router.post("/{project_id}/downloads/request-unlock")
async def request_download_unlock(project_id: str, current_user: dict = Depends(get_current_user)):
    return await ProjectWorkflow.request_download_unlock(project_id, current_user["uid"])
