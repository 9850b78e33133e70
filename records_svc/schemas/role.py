"""
Pydantic schemas for role documents.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from core.permissions import Permission, RoleName


class RoleCreate(BaseModel):
    """A permission bundle for a role name. Stored bundles replace the built-in default."""

    name: RoleName
    display_name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=300)
    permissions: List[Permission] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """Role names are immutable; only the label and bundle can change."""

    display_name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=300)
    permissions: Optional[List[Permission]] = None


class RoleResponse(BaseModel):
    id: str
    name: RoleName
    display_name: str
    description: Optional[str] = None
    permissions: List[Permission]
    is_system: bool
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True
