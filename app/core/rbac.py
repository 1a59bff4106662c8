from enum import Enum
from typing import List, Dict

# --- 1. Define the Roles ---
class UserRole(str, Enum):
    ADMIN = "admin"                       # Everything, including staff provisioning
    MANAGER = "manager"                   # Oversees projects and payments
    PROJECT_MANAGER = "project_manager"   # Assigns editors, unlocks downloads
    SALES_EXECUTIVE = "sales_executive"   # Onboards clients
    EDITOR = "editor"                     # Uploads revisions, replies to review
    CLIENT = "client"                     # Owns projects, pays, reviews
    GUEST = "guest"                       # Unauthenticated reviewer

# Roles an account can be created with. Guests never get an account.
PROVISIONABLE_ROLES = frozenset(r.value for r in UserRole if r != UserRole.GUEST)

# --- 2. Define the Actions (Privileges) ---
class Action(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    COMMENT = "comment"
    UPLOAD_REVISION = "upload_revision"
    ASSIGN_EDITOR = "assign_editor"
    CHANGE_STATUS = "change_status"
    MAKE_PAYMENT = "make_payment"
    CREATE_CLIENT = "create_client"
    MANAGE_USERS = "manage_users"
    CREATE_PROJECT = "create_project"
    UNLOCK_DOWNLOADS = "unlock_downloads"

# --- 3. Role -> Allowed Actions ---
RBAC_POLICY: Dict[UserRole, List[Action]] = {

    UserRole.ADMIN: list(Action),

    UserRole.MANAGER: [
        Action.VIEW_DASHBOARD,
        Action.COMMENT,
        Action.CREATE_PROJECT,
        Action.ASSIGN_EDITOR,
        Action.CHANGE_STATUS,
        Action.MAKE_PAYMENT,
    ],

    UserRole.PROJECT_MANAGER: [
        Action.VIEW_DASHBOARD,
        Action.COMMENT,
        Action.ASSIGN_EDITOR,
        Action.CHANGE_STATUS,
        Action.CREATE_PROJECT,
        Action.UNLOCK_DOWNLOADS,
    ],

    UserRole.SALES_EXECUTIVE: [
        Action.VIEW_DASHBOARD,
        Action.COMMENT,
        Action.CREATE_CLIENT,
        Action.CREATE_PROJECT,
    ],

    UserRole.EDITOR: [
        Action.VIEW_DASHBOARD,
        Action.COMMENT,
        Action.UPLOAD_REVISION,
    ],

    UserRole.CLIENT: [
        Action.VIEW_DASHBOARD,
        Action.COMMENT,
        Action.MAKE_PAYMENT,
        Action.CHANGE_STATUS,
        Action.CREATE_PROJECT,
    ],

    UserRole.GUEST: [
        Action.COMMENT,
    ],
}

def check_permission(role: str, action: Action) -> bool:
    """Helper function to check if a role is allowed to perform an action."""
    # Default to empty list if role is unknown/invalid
    allowed_actions = RBAC_POLICY.get(role, [])
    return action in allowed_actions
