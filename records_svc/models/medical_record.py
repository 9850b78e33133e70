"""
Domain model for medical records.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class MedicalRecord:
    """
    One visit entry for a patient.

    ``patient_id`` is the patient's human-readable identifier, not the row id.
    ``institution_id`` is the authoring institution.
    """

    id: str
    patient_id: str
    doctor_id: str
    institution_id: Optional[str]
    visit_info: Dict[str, Any]
    clinical_data: Dict[str, Any] = field(default_factory=dict)
    prescriptions: List[Dict[str, Any]] = field(default_factory=list)
    lab_results: List[Dict[str, Any]] = field(default_factory=list)
    attachments: List[Dict[str, Any]] = field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def visit_type(self) -> Optional[str]:
        return self.visit_info.get("type")

    @classmethod
    def from_row(cls, row) -> "MedicalRecord":
        """Create a MedicalRecord from a ``medical_records`` row."""
        return cls(
            id=row["id"],
            patient_id=row["patient_id"],
            doctor_id=row["doctor_id"],
            institution_id=row["institution_id"],
            visit_info=json.loads(row["visit_info"] or "{}"),
            clinical_data=json.loads(row["clinical_data"] or "{}"),
            prescriptions=json.loads(row["prescriptions"] or "[]"),
            lab_results=json.loads(row["lab_results"] or "[]"),
            attachments=json.loads(row["attachments"] or "[]"),
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
