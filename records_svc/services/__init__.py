"""
Service layer - business logic for the Medical Records API.

Services receive repositories through their constructors and raise domain
exceptions from core.exceptions; routers never touch repositories directly.
"""
from services.audit_service import AuditService
from services.auth_service import AuthService
from services.authorization_service import Action, AuthorizationEngine, Decision
from services.bootstrap_service import BootstrapResult, BootstrapService
from services.doctor_service import DoctorService
from services.emergency_service import EmergencyAccessService
from services.institution_service import InstitutionService
from services.medical_record_service import MedicalRecordService
from services.patient_service import PatientService
from services.role_service import RoleService
from services.statistics_service import StatisticsService
from services.user_service import UserService

__all__ = [
    "Action",
    "AuditService",
    "AuthService",
    "AuthorizationEngine",
    "BootstrapResult",
    "BootstrapService",
    "Decision",
    "DoctorService",
    "EmergencyAccessService",
    "InstitutionService",
    "MedicalRecordService",
    "PatientService",
    "RoleService",
    "StatisticsService",
    "UserService",
]
