"""
Pydantic schemas for user profiles mirrored from the identity provider.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Role gating which records and endpoints a user can see."""
    PATIENT = "patient"
    ADMIN = "admin"


class UserProfile(BaseModel):
    """Profile document stored in the users collection."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="User id issued by the identity provider")
    role: Role = Field(Role.PATIENT)
    name: Optional[str] = Field(None, description="Display name")
    created_at: Optional[str] = Field(None, alias="createdAt")
    last_login: Optional[str] = Field(None, alias="lastLogin")


class SessionSync(BaseModel):
    """Body sent by the client right after a successful provider sign-in."""
    name: Optional[str] = Field(None, max_length=200, description="Display name", examples=["سارة أحمد"])


class IdentityErrorMessage(BaseModel):
    """Localized message for an identity-provider error code."""
    code: str
    message: str
