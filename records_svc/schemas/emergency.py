"""
Pydantic schemas for emergency access.
"""
from typing import List

from pydantic import BaseModel, Field

from schemas.medical_record import MedicalRecordResponse
from schemas.patient import PatientResponse


class EmergencyAccessRequest(BaseModel):
    """Justification is mandatory; a blank one is rejected with 400."""

    justification: str = Field(..., max_length=1000, description="Why normal scoping is bypassed")

    class Config:
        json_schema_extra = {
            "example": {"justification": "Unconscious patient admitted to ER, allergy history needed"}
        }


class EmergencyAccessResponse(BaseModel):
    patient: PatientResponse
    medical_records: List[MedicalRecordResponse]
    audit_id: str
    granted_at: str
