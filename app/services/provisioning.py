"""
Account provisioning against Firebase Auth plus the users/{uid} profile.

A user's role lives in two places: the auth custom claim and the profile
document. The platform offers no transaction spanning both, so creation is
three separate writes (account, profile, claim) with no rollback, and
`reconcile_role` repairs drift afterwards. The profile document wins.
"""
import os
import logging
from typing import Dict, Optional

from firebase_admin import auth as firebase_auth

from app.core.errors import ConfigurationError, ConflictError, NotFoundError, PartialFailureError, ValidationError
from app.core.rbac import PROVISIONABLE_ROLES, UserRole
from app.db.firestore import get_auth, get_db
from app.models.user import User

logger = logging.getLogger("editohub.provisioning")


def validate_role(role: Optional[str]) -> str:
    if role not in PROVISIONABLE_ROLES:
        raise ValidationError("Invalid role", field="role")
    return role


def normalize_phone(phone_number: Optional[str]) -> Optional[str]:
    """Identity provider wants E.164; bare 10-digit numbers are Indian."""
    if not phone_number:
        return None
    digits = "".join(ch for ch in phone_number if ch.isdigit())
    if phone_number.startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+91{digits}"
    if len(digits) == 12 and digits.startswith("91"):
        return f"+{digits}"
    raise ValidationError("Invalid phone number", field="phoneNumber")


async def _provision(email: str, password: str, display_name: str, role: str, profile_extra: Dict,
                     phone_number: Optional[str] = None) -> str:
    auth = get_auth()
    completed = []

    # 1. Create User in Firebase Auth
    try:
        user_record = auth.create_user(
            email=email,
            password=password,
            display_name=display_name,
            phone_number=normalize_phone(phone_number),
        )
    except firebase_auth.EmailAlreadyExistsError:
        raise ConflictError("This email is already registered. Please use a different email.",
                            error_code="EMAIL_EXISTS")
    completed.append("auth_account")
    uid = user_record.uid

    # 2. Create User Profile in Firestore
    try:
        profile = User(uid=uid, email=email, display_name=display_name, role=role, **profile_extra)
        get_db().collection("users").document(uid).set(profile.to_document())
        completed.append("profile")

        # 3. Set Custom Claim
        auth.set_custom_user_claims(uid, {"role": role})
        completed.append("role_claim")
    except Exception as e:
        failed_step = "profile" if "profile" not in completed else "role_claim"
        logger.error(f"Provisioning {email} stopped at {failed_step} after {completed}: {e}")
        raise PartialFailureError("Failed to create user", completed=completed, failed_step=failed_step)

    logger.info(f"Provisioned {role} {uid}")
    return uid


async def create_user(email: str, password: str, display_name: str, role: str, created_by: Optional[str] = None) -> dict:
    role = validate_role(role)
    uid = await _provision(email, password, display_name, role, {"created_by": created_by or "admin"})
    return {"success": True, "uid": uid, "message": f"{role} created successfully"}


async def create_client(email: str, password: str, display_name: str, created_by: Optional[str] = None,
                        phone_number: Optional[str] = None, custom_rates: Optional[Dict[str, float]] = None,
                        allowed_formats: Optional[Dict[str, bool]] = None) -> dict:
    extra = {
        "created_by": created_by or "system",
        "managed_by": created_by,
        "phone_number": phone_number,
        "custom_rates": custom_rates,
        "allowed_formats": allowed_formats,
    }
    uid = await _provision(email, password, display_name, UserRole.CLIENT.value, extra, phone_number=phone_number)
    return {"success": True, "uid": uid, "message": "Client created successfully"}


async def ensure_default_admin() -> dict:
    """
    Makes sure the bootstrap admin exists with the configured password, claim and profile.
    Every step converges, so overlapping runs end in the same state; a create
    that loses the race to another run falls back to the account that run made.
    """
    email = os.getenv("DEFAULT_ADMIN_EMAIL")
    password = os.getenv("DEFAULT_ADMIN_PASSWORD")
    display_name = os.getenv("DEFAULT_ADMIN_NAME", "Super Admin")
    if not email or not password:
        raise ConfigurationError("Default admin credentials are not configured")

    auth = get_auth()
    try:
        user_record = auth.get_user_by_email(email)
        auth.update_user(user_record.uid, password=password)
    except firebase_auth.UserNotFoundError:
        try:
            user_record = auth.create_user(email=email, password=password, display_name=display_name)
        except firebase_auth.EmailAlreadyExistsError:
            user_record = auth.get_user_by_email(email)
            auth.update_user(user_record.uid, password=password)

    auth.set_custom_user_claims(user_record.uid, {"role": UserRole.ADMIN.value})

    profile = User(uid=user_record.uid, email=email, display_name=display_name, role=UserRole.ADMIN)
    get_db().collection("users").document(user_record.uid).set(
        profile.to_document(exclude={"created_at", "status"}), merge=True
    )
    logger.info(f"Default admin ensured: {user_record.uid}")
    return {"success": True, "uid": user_record.uid, "message": "Admin account ensured."}


async def reconcile_role(uid: str) -> dict:
    """Read-repair: rewrites the auth claim when it disagrees with the profile document."""
    doc = get_db().collection("users").document(uid).get()
    if not doc.exists:
        raise NotFoundError("User profile not found")
    profile_role = doc.to_dict().get("role")

    auth = get_auth()
    claims = auth.get_user(uid).custom_claims or {}
    if claims.get("role") == profile_role:
        return {"success": True, "repaired": False, "role": profile_role}

    auth.set_custom_user_claims(uid, {**claims, "role": profile_role})
    logger.warning(f"Role claim for {uid} was {claims.get('role')!r}, repaired to {profile_role!r}")
    return {"success": True, "repaired": True, "role": profile_role}
