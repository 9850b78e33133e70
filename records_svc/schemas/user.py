"""
Pydantic schemas for staff user API operations.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from core.permissions import Permission, RoleName
from schemas.common import EMAIL_PATTERN


class UserCreate(BaseModel):
    """Schema for creating a staff user.

    ``institution_id`` is required for every role except admin. On routes
    nested under an institution it is taken from the path.
    """

    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)
    role: RoleName
    institution_id: Optional[str] = None
    permissions: List[Permission] = Field(
        default_factory=list,
        description="Explicit grants added on top of the role bundle",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Nora Nurse",
                "email": "nora@cityhospital.example",
                "password": "s3cure-passw0rd",
                "role": "nurse",
                "institution_id": "3f2a9c...",
                "permissions": [],
            }
        }


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: Optional[RoleName] = None
    institution_id: Optional[str] = None
    permissions: Optional[List[Permission]] = None


class UserResponse(BaseModel):
    """Staff user as returned by the API. The password hash is never exposed."""

    id: str
    name: str
    email: str
    role: RoleName
    institution_id: Optional[str] = None
    permissions: List[Permission]
    created_by: Optional[str] = None
    must_change_password: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True
