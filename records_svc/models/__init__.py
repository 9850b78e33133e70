"""
Domain models for the Medical Records API.
"""
from models.audit import AuditEntry
from models.doctor import Doctor
from models.institution import Institution
from models.medical_record import MedicalRecord
from models.patient import (
    CredentialedPatient,
    InstitutionManagedPatient,
    Patient,
    patient_from_row,
)
from models.principal import Principal
from models.role import Role
from models.user import User

__all__ = [
    "AuditEntry",
    "CredentialedPatient",
    "Doctor",
    "Institution",
    "InstitutionManagedPatient",
    "MedicalRecord",
    "Patient",
    "Principal",
    "Role",
    "User",
    "patient_from_row",
]
