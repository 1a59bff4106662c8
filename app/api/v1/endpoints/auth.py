import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header

from app.core.errors import AuthenticationError, PermissionDeniedError
from app.core.rbac import Action, UserRole, check_permission
from app.db.firestore import get_auth, get_db
from app.services.provisioning import reconcile_role

logger = logging.getLogger("editohub.auth")

router = APIRouter()


async def _resolve_user(authorization: str) -> dict:
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid header format")

    token = authorization.split("Bearer ", 1)[1]
    try:
        decoded_token = get_auth().verify_id_token(token)
    except Exception as e:
        logger.error(f"Auth failed: {e}")
        raise AuthenticationError("Invalid or expired token")

    uid = decoded_token["uid"]
    claim_role = decoded_token.get("role")

    # The profile document is authoritative; the claim only covers accounts without one
    user_doc = get_db().collection("users").document(uid).get()
    profile_role = user_doc.to_dict().get("role") if user_doc.exists else None
    role = profile_role or claim_role or UserRole.CLIENT.value

    if profile_role and claim_role != profile_role:
        logger.warning(f"Role claim {claim_role!r} for {uid} disagrees with profile {profile_role!r}")
        try:
            await reconcile_role(uid)
        except Exception as e:
            logger.error(f"Role read-repair for {uid} failed: {e}")

    return {
        "uid": uid,
        "email": decoded_token.get("email"),
        "role": role,
        "name": decoded_token.get("name"),
        "picture": decoded_token.get("picture"),
    }


# --- DEPENDENCIES ---
async def get_current_user(authorization: Optional[str] = Header(None)):
    """
    Verifies the Firebase Bearer Token and resolves the user's role.
    """
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    return await _resolve_user(authorization)


async def get_optional_user(authorization: Optional[str] = Header(None)):
    """Same as get_current_user, but anonymous (guest) callers get None."""
    if not authorization:
        return None
    return await _resolve_user(authorization)


def require(user: dict, action: Action):
    if not check_permission(user["role"], action):
        raise PermissionDeniedError("Permission denied")


# --- ROUTES ---

@router.get("/me")
async def read_users_me(current_user: dict = Depends(get_current_user)):
    """Returns the current user's profile information."""
    return current_user
