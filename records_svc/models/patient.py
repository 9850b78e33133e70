"""
Domain model for patients.

A patient is either credentialed (holds a password and may sign in) or
institution-managed (no credential). ``patient_from_row`` picks the variant
from the stored row.
"""
import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Union

from core.datetime_utils import calculate_age
from models.enums import BloodType, Gender


@dataclass
class _PatientBase:
    id: str
    patient_id: str
    name: str
    date_of_birth: date
    gender: Gender
    is_pregnant: Optional[bool]
    blood_type: Optional[BloodType]
    contact: Dict[str, Any]
    emergency_contact: Dict[str, Any]
    allergies: List[str]
    insurance_info: Dict[str, Any]
    institution_id: Optional[str]
    created_by: Optional[str]
    updated_by: Optional[str]
    last_login: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]

    @property
    def age(self) -> int:
        return calculate_age(self.date_of_birth)

    @property
    def is_credentialed(self) -> bool:
        return False


@dataclass
class InstitutionManagedPatient(_PatientBase):
    """Patient registered by staff, without sign-in credentials."""


@dataclass
class CredentialedPatient(_PatientBase):
    """Patient holding a password hash; may authenticate with their identifier."""

    password_hash: str = ""

    @property
    def is_credentialed(self) -> bool:
        return True


Patient = Union[CredentialedPatient, InstitutionManagedPatient]


def _load_json(value: Optional[str], default):
    return json.loads(value) if value else default


def patient_from_row(row) -> Patient:
    """Create the matching Patient variant from a ``patients`` row."""
    fields = dict(
        id=row["id"],
        patient_id=row["patient_id"],
        name=row["name"],
        date_of_birth=date.fromisoformat(row["date_of_birth"]),
        gender=Gender(row["gender"]),
        is_pregnant=None if row["is_pregnant"] is None else bool(row["is_pregnant"]),
        blood_type=BloodType(row["blood_type"]) if row["blood_type"] else None,
        contact=_load_json(row["contact"], {}),
        emergency_contact=_load_json(row["emergency_contact"], {}),
        allergies=_load_json(row["allergies"], []),
        insurance_info=_load_json(row["insurance_info"], {}),
        institution_id=row["institution_id"],
        created_by=row["created_by"],
        updated_by=row["updated_by"],
        last_login=row["last_login"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
    if row["password_hash"]:
        return CredentialedPatient(password_hash=row["password_hash"], **fields)
    return InstitutionManagedPatient(**fields)
