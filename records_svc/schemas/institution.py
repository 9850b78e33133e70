"""
Pydantic schemas for institution-related API operations.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from models.enums import InstitutionType
from schemas.common import EMAIL_PATTERN


class InstitutionContact(BaseModel):
    address: str = Field(..., min_length=1, max_length=300)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)


class InstitutionCreate(BaseModel):
    """Schema for creating an institution (admin only)."""

    name: str = Field(..., min_length=2, max_length=100, description="Institution name")
    type: InstitutionType = Field(..., description="hospital, clinic, pharmacy or laboratory")
    contact: InstitutionContact
    services: List[str] = Field(default_factory=list, description="Offered services")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "City General Hospital",
                "type": "hospital",
                "contact": {"address": "1 Main Street", "phone": "+1-555-0100"},
                "services": ["emergency", "radiology"],
            }
        }


class InstitutionUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    type: Optional[InstitutionType] = None
    contact: Optional[InstitutionContact] = None
    services: Optional[List[str]] = None


class InstitutionResponse(BaseModel):
    id: str
    name: str
    type: InstitutionType
    contact: InstitutionContact
    services: List[str]
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


class InstitutionDeleteResult(BaseModel):
    """Outcome of an institution deletion."""

    institution_id: str
    cascade_policy: str
    deleted_users: int
