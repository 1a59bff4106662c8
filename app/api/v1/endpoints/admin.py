import logging
from fastapi import APIRouter, Depends

from app.api.v1.endpoints.auth import get_current_user, require
from app.core.rbac import Action
from app.models.user import CreateClientRequest, CreateUserRequest
from app.services import provisioning

logger = logging.getLogger("editohub.admin")
router = APIRouter()

# --- 1. STAFF PROVISIONING ---
@router.post("/admin/create-user")
async def create_user(body: CreateUserRequest, current_user: dict = Depends(get_current_user)):
    """Creates a staff (or client) account with a role. Admins only."""
    require(current_user, Action.MANAGE_USERS)
    return await provisioning.create_user(
        email=body.email,
        password=body.password,
        display_name=body.display_name,
        role=body.role,
        created_by=current_user["uid"],
    )

@router.post("/admin/ensure-admin")
async def ensure_admin():
    """Bootstraps the default admin from configured credentials."""
    return await provisioning.ensure_default_admin()

@router.post("/admin/users/{uid}/reconcile-role")
async def reconcile_role(uid: str, current_user: dict = Depends(get_current_user)):
    """Repairs the role claim from the profile document."""
    require(current_user, Action.MANAGE_USERS)
    return await provisioning.reconcile_role(uid)

# --- 2. SALES ONBOARDING ---
@router.post("/sales/create-client")
async def create_client(body: CreateClientRequest, current_user: dict = Depends(get_current_user)):
    require(current_user, Action.CREATE_CLIENT)
    return await provisioning.create_client(
        email=body.email,
        password=body.password,
        display_name=body.display_name,
        created_by=current_user["uid"],
        phone_number=body.phone_number,
        custom_rates=body.custom_rates,
        allowed_formats=body.allowed_formats,
    )
