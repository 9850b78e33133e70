"""
Repository layer - data access for the Medical Records API.

Each repository takes a Database and owns the SQL for one table (or one
table plus its join table). No SQL outside this package.
"""
from repositories.audit_repository import AuditRepository
from repositories.base import Database
from repositories.doctor_repository import DoctorRepository
from repositories.institution_repository import InstitutionRepository
from repositories.medical_record_repository import MedicalRecordRepository, RecordFilters
from repositories.patient_repository import PatientRepository
from repositories.role_repository import RoleRepository
from repositories.user_repository import UserRepository

__all__ = [
    "AuditRepository",
    "Database",
    "DoctorRepository",
    "InstitutionRepository",
    "MedicalRecordRepository",
    "PatientRepository",
    "RecordFilters",
    "RoleRepository",
    "UserRepository",
]
