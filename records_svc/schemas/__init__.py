"""
Pydantic schemas for API request and response validation.
"""
from schemas.audit import AuditEntryResponse
from schemas.auth import (
    ChangePasswordRequest,
    PatientSignInRequest,
    PatientSignUpRequest,
    PrincipalSummary,
    SignInRequest,
    TokenResponse,
)
from schemas.common import ApiResponse, PageParams, Pagination
from schemas.doctor import DoctorCreate, DoctorResponse, DoctorUpdate
from schemas.emergency import EmergencyAccessRequest, EmergencyAccessResponse
from schemas.institution import (
    InstitutionCreate,
    InstitutionDeleteResult,
    InstitutionResponse,
    InstitutionUpdate,
)
from schemas.medical_record import (
    MedicalRecordCreate,
    MedicalRecordResponse,
    MedicalRecordUpdate,
    PatientRecordsResponse,
)
from schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from schemas.role import RoleCreate, RoleResponse, RoleUpdate
from schemas.statistics import Statistics
from schemas.user import UserCreate, UserResponse, UserUpdate

__all__ = [
    "ApiResponse",
    "AuditEntryResponse",
    "ChangePasswordRequest",
    "DoctorCreate",
    "DoctorResponse",
    "DoctorUpdate",
    "EmergencyAccessRequest",
    "EmergencyAccessResponse",
    "InstitutionCreate",
    "InstitutionDeleteResult",
    "InstitutionResponse",
    "InstitutionUpdate",
    "MedicalRecordCreate",
    "MedicalRecordResponse",
    "MedicalRecordUpdate",
    "PageParams",
    "Pagination",
    "PatientCreate",
    "PatientRecordsResponse",
    "PatientResponse",
    "PatientSignInRequest",
    "PatientSignUpRequest",
    "PatientUpdate",
    "PrincipalSummary",
    "RoleCreate",
    "RoleResponse",
    "RoleUpdate",
    "SignInRequest",
    "Statistics",
    "TokenResponse",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
]
