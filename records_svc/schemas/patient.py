"""
Pydantic schemas for patient-related API operations.
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from core.datetime_utils import utc_now
from models.enums import BloodType, Gender, InsuranceType
from schemas.common import EMAIL_PATTERN

PATIENT_ID_PATTERN = r"^[A-Za-z0-9-]{3,30}$"


class ContactInfo(BaseModel):
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    address: Optional[str] = Field(None, max_length=300)


class EmergencyContact(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    relationship: Optional[str] = Field(None, max_length=50)


class InsuranceInfo(BaseModel):
    type: Optional[InsuranceType] = None
    provider: Optional[str] = Field(None, max_length=100)
    policy_number: Optional[str] = Field(None, max_length=50)


def not_in_future(value: Optional[date]) -> Optional[date]:
    if value is not None and value > utc_now().date():
        raise ValueError("date_of_birth cannot be in the future")
    return value


class PatientCreate(BaseModel):
    """Schema for registering a patient.

    ``patient_id`` is generated server-side when omitted. Supplying a
    ``password`` makes the patient credentialed (able to sign in).
    """

    patient_id: Optional[str] = Field(
        None,
        pattern=PATIENT_ID_PATTERN,
        description="Human-readable identifier; generated when omitted",
    )
    name: str = Field(..., min_length=2, max_length=50)
    date_of_birth: date
    gender: Gender
    is_pregnant: Optional[bool] = None
    blood_type: Optional[BloodType] = None
    contact: ContactInfo = Field(default_factory=ContactInfo)
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)
    allergies: List[str] = Field(default_factory=list)
    insurance_info: InsuranceInfo = Field(default_factory=InsuranceInfo)
    institution_id: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)

    @field_validator("date_of_birth")
    @classmethod
    def check_date_of_birth(cls, value):
        return not_in_future(value)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jane Doe",
                "date_of_birth": "1990-05-17",
                "gender": "female",
                "blood_type": "O+",
                "contact": {"phone": "+1-555-0101"},
                "allergies": ["penicillin"],
            }
        }


class PatientUpdate(BaseModel):
    """Partial update. The identifier cannot be changed."""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    is_pregnant: Optional[bool] = None
    blood_type: Optional[BloodType] = None
    contact: Optional[ContactInfo] = None
    emergency_contact: Optional[EmergencyContact] = None
    allergies: Optional[List[str]] = None
    insurance_info: Optional[InsuranceInfo] = None
    institution_id: Optional[str] = None

    @field_validator("date_of_birth")
    @classmethod
    def check_date_of_birth(cls, value):
        return not_in_future(value)


class PatientResponse(BaseModel):
    id: str
    patient_id: str
    name: str
    date_of_birth: date
    age: int
    gender: Gender
    is_pregnant: Optional[bool] = None
    blood_type: Optional[BloodType] = None
    contact: ContactInfo
    emergency_contact: EmergencyContact
    allergies: List[str]
    insurance_info: InsuranceInfo
    institution_id: Optional[str] = None
    is_credentialed: bool
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True
