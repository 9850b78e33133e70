"""
Pydantic schemas for doctor API operations.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.common import EMAIL_PATTERN


class DoctorCreate(BaseModel):
    """Schema for registering a doctor.

    A doctor with a password may sign in. ``institution_ids`` defaults to the
    path institution on nested routes.
    """

    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    specialization: str = Field(..., min_length=2, max_length=100)
    license_number: str = Field(..., min_length=3, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=300)
    institution_ids: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Dr. Ada Lovelace",
                "email": "ada@cityhospital.example",
                "specialization": "Cardiology",
                "license_number": "LIC-2024-001",
                "institution_ids": ["3f2a9c..."],
            }
        }


class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    specialization: Optional[str] = Field(None, min_length=2, max_length=100)
    license_number: Optional[str] = Field(None, min_length=3, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=300)
    institution_ids: Optional[List[str]] = None


class DoctorResponse(BaseModel):
    id: str
    name: str
    email: str
    specialization: str
    license_number: str
    phone: Optional[str] = None
    address: Optional[str] = None
    institution_ids: List[str]
    can_sign_in: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True
