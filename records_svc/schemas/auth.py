"""
Pydantic schemas for authentication endpoints.
"""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from core.permissions import Permission, PrincipalKind, RoleName
from models.enums import Gender
from schemas.common import EMAIL_PATTERN
from schemas.patient import ContactInfo, EmergencyContact, not_in_future


class SignInRequest(BaseModel):
    """Staff or doctor sign-in."""

    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)
    kind: Literal["user", "doctor"] = "user"

    class Config:
        json_schema_extra = {
            "example": {"email": "admin@medicalrecords.local", "password": "...", "kind": "user"}
        }


class PatientSignInRequest(BaseModel):
    patient_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class PatientSignUpRequest(BaseModel):
    """Self-registration of a credentialed, institution-less patient."""

    name: str = Field(..., min_length=2, max_length=50)
    date_of_birth: date
    gender: Gender
    password: str = Field(..., min_length=8, max_length=128)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)
    allergies: List[str] = Field(default_factory=list)

    @field_validator("date_of_birth")
    @classmethod
    def check_date_of_birth(cls, value):
        return not_in_future(value)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class PrincipalSummary(BaseModel):
    id: str
    kind: PrincipalKind
    name: str
    email: Optional[str] = None
    role: RoleName
    permissions: List[Permission]
    institution_ids: List[str]
    must_change_password: bool = False
    patient_id: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    principal: PrincipalSummary
