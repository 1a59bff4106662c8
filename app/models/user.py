from pydantic import EmailStr, Field
from typing import Dict, Optional

from app.core.rbac import UserRole
from app.models.base import Document, now_ms


class User(Document):
    """Profile document at users/{uid}. Role mirrors the identity-provider claim."""
    uid: str                      # From Firebase Auth
    email: Optional[EmailStr] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: UserRole
    phone_number: Optional[str] = None
    created_at: int = Field(default_factory=now_ms)
    created_by: Optional[str] = None
    managed_by: Optional[str] = None    # Sales executive managing this client
    managed_by_pm: Optional[str] = Field(None, alias="managedByPM")
    status: str = "active"
    custom_rates: Optional[Dict[str, float]] = None
    allowed_formats: Optional[Dict[str, bool]] = None


class CreateUserRequest(Document):
    email: EmailStr
    password: str = Field(min_length=6)
    display_name: str = Field(min_length=1)
    role: str


class CreateClientRequest(Document):
    email: EmailStr
    password: str = Field(min_length=6)
    display_name: str = Field(min_length=1)
    phone_number: Optional[str] = None
    custom_rates: Optional[Dict[str, float]] = None
    allowed_formats: Optional[Dict[str, bool]] = None
