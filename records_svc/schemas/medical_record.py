"""
Pydantic schemas for medical record API operations.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.enums import AttachmentType, Gender, LabResultStatus, VisitType


class VisitInfo(BaseModel):
    type: VisitType
    date: datetime = Field(..., description="When the visit took place (ISO 8601)")
    admission_date: Optional[datetime] = None
    discharge_date: Optional[datetime] = None
    is_emergency: bool = False


class ClinicalData(BaseModel):
    symptoms: List[str] = Field(default_factory=list)
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    notes: Optional[str] = None


class Prescription(BaseModel):
    medication_name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    frequency: str = Field(..., min_length=1)
    duration: Optional[str] = None
    instructions: Optional[str] = None


class LabResult(BaseModel):
    test_name: str = Field(..., min_length=1)
    result: str
    reference_range: Optional[str] = None
    status: LabResultStatus = LabResultStatus.NORMAL


class Attachment(BaseModel):
    file_name: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    file_type: AttachmentType
    description: Optional[str] = None


class MedicalRecordCreate(BaseModel):
    """Schema for creating a medical record.

    The patient (by identifier) and the doctor must already exist. The
    authoring institution defaults to the caller's own institution.
    """

    patient_id: str = Field(..., min_length=1, description="Patient identifier, e.g. PAT123456")
    doctor_id: str = Field(..., min_length=1)
    institution_id: Optional[str] = None
    visit_info: VisitInfo
    clinical_data: ClinicalData = Field(default_factory=ClinicalData)
    prescriptions: List[Prescription] = Field(default_factory=list)
    lab_results: List[LabResult] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "patient_id": "PAT123456",
                "doctor_id": "9b1c...",
                "visit_info": {"type": "consultation", "date": "2025-01-01T10:00:00Z"},
                "clinical_data": {"symptoms": ["cough"], "diagnosis": "Common cold"},
                "prescriptions": [
                    {"medication_name": "Paracetamol", "dosage": "500mg", "frequency": "3x daily"}
                ],
            }
        }


class MedicalRecordUpdate(BaseModel):
    """Partial update. The patient and authoring institution are fixed."""

    doctor_id: Optional[str] = None
    visit_info: Optional[VisitInfo] = None
    clinical_data: Optional[ClinicalData] = None
    prescriptions: Optional[List[Prescription]] = None
    lab_results: Optional[List[LabResult]] = None
    attachments: Optional[List[Attachment]] = None


class MedicalRecordResponse(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    institution_id: Optional[str] = None
    visit_info: VisitInfo
    clinical_data: ClinicalData
    prescriptions: List[Prescription]
    lab_results: List[LabResult]
    attachments: List[Attachment]
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


class PatientSummary(BaseModel):
    patient_id: str
    name: str
    date_of_birth: date
    gender: Gender

    class Config:
        from_attributes = True


class PatientRecordsResponse(BaseModel):
    """A patient's records across institutions, newest first."""
    patient: PatientSummary
    count: int
    medical_records: List[MedicalRecordResponse]
