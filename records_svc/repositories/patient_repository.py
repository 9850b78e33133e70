"""
Repository for patient database operations.

Patients are addressed by their human-readable identifier (``patient_id``).
The UNIQUE constraint on that column is the final authority for identifier
uniqueness; ``create`` reports a collision as DuplicateError(field="patient_id").

All SQL is encapsulated in this repository - no SQL in service or API layers.
"""
import json
import logging
import sqlite3
from typing import Iterable, List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from core.exceptions import DuplicateError
from models.patient import CredentialedPatient, Patient, patient_from_row
from repositories.base import Database, is_unique_violation

logger = logging.getLogger(__name__)


def _pregnancy_value(patient: Patient) -> Optional[int]:
    return None if patient.is_pregnant is None else int(patient.is_pregnant)


class PatientRepository:
    """
    Repository for patient CRUD operations.

    It should be instantiated via core.dependencies.get_patient_repository().
    """

    def __init__(self, db: Database):
        """
        Initialize the patient repository.

        Args:
            db: Database instance for data access.
        """
        self._db = db

    def create(self, patient: Patient, conn: Optional[sqlite3.Connection] = None) -> Patient:
        """
        Insert a patient.

        Args:
            patient: The patient to store. Credentialed patients keep their hash.
            conn: Outer transaction to join, if any.

        Raises:
            DuplicateError: If the identifier is already taken.
        """
        now = to_db_string(utc_now())
        patient.created_at = patient.updated_at = now
        password_hash = patient.password_hash if isinstance(patient, CredentialedPatient) else None
        try:
            with self._db.session(conn) as c:
                c.execute(
                    """
                    INSERT INTO patients (id, patient_id, name, date_of_birth, gender, is_pregnant,
                                          blood_type, contact, emergency_contact, allergies,
                                          insurance_info, institution_id, password_hash,
                                          created_by, updated_by, last_login, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        patient.id,
                        patient.patient_id,
                        patient.name,
                        patient.date_of_birth.isoformat(),
                        patient.gender.value,
                        _pregnancy_value(patient),
                        patient.blood_type.value if patient.blood_type else None,
                        json.dumps(patient.contact),
                        json.dumps(patient.emergency_contact),
                        json.dumps(patient.allergies),
                        json.dumps(patient.insurance_info),
                        patient.institution_id,
                        password_hash,
                        patient.created_by,
                        patient.updated_by,
                        patient.last_login,
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, "patients.patient_id"):
                raise DuplicateError(field="patient_id", value=patient.patient_id)
            raise
        return patient

    def get(self, patient_id: str) -> Optional[Patient]:
        """Get a patient by identifier, or None."""
        with self._db.session() as c:
            row = c.execute("SELECT * FROM patients WHERE patient_id = ?", (patient_id,)).fetchone()
        return patient_from_row(row) if row else None

    def identifier_exists(self, patient_id: str) -> bool:
        with self._db.session() as c:
            row = c.execute("SELECT 1 FROM patients WHERE patient_id = ?", (patient_id,)).fetchone()
        return row is not None

    def list(
        self,
        institution_ids: Optional[Iterable[str]] = None,
        include_unaffiliated: bool = False,
        gender: Optional[str] = None,
        blood_type: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Patient], int]:
        """
        List patients, newest first.

        Args:
            institution_ids: Restrict to patients of these institutions; None
                means no restriction.
            include_unaffiliated: With ``institution_ids``, also return patients
                that belong to no institution.
            search: Matches name or identifier.

        Returns:
            The requested page and the total number of matching rows.
        """
        clauses, params = [], []
        if institution_ids is not None:
            ids = list(institution_ids)
            scope = []
            if ids:
                scope.append(f"institution_id IN ({','.join('?' * len(ids))})")
                params.extend(ids)
            if include_unaffiliated:
                scope.append("institution_id IS NULL")
            if not scope:
                return [], 0
            clauses.append(f"({' OR '.join(scope)})")
        if gender:
            clauses.append("gender = ?")
            params.append(gender)
        if blood_type:
            clauses.append("blood_type = ?")
            params.append(blood_type)
        if search:
            clauses.append("(name LIKE ? OR patient_id LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._db.session() as c:
            total = c.execute(f"SELECT COUNT(*) FROM patients {where}", params).fetchone()[0]
            rows = c.execute(
                f"SELECT * FROM patients {where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
                params + [limit, offset],
            ).fetchall()
        return [patient_from_row(r) for r in rows], total

    def update(self, patient: Patient) -> Patient:
        """Persist changes to a patient. The identifier itself never changes."""
        patient.updated_at = to_db_string(utc_now())
        with self._db.session() as c:
            c.execute(
                """
                UPDATE patients
                SET name = ?, date_of_birth = ?, gender = ?, is_pregnant = ?, blood_type = ?,
                    contact = ?, emergency_contact = ?, allergies = ?, insurance_info = ?,
                    institution_id = ?, updated_by = ?, updated_at = ?
                WHERE patient_id = ?
                """,
                (
                    patient.name,
                    patient.date_of_birth.isoformat(),
                    patient.gender.value,
                    _pregnancy_value(patient),
                    patient.blood_type.value if patient.blood_type else None,
                    json.dumps(patient.contact),
                    json.dumps(patient.emergency_contact),
                    json.dumps(patient.allergies),
                    json.dumps(patient.insurance_info),
                    patient.institution_id,
                    patient.updated_by,
                    patient.updated_at,
                    patient.patient_id,
                ),
            )
        return patient

    def record_login(self, patient_id: str) -> str:
        """Stamp ``last_login`` with the current time and return it."""
        now = to_db_string(utc_now())
        with self._db.session() as c:
            c.execute("UPDATE patients SET last_login = ? WHERE patient_id = ?", (now, patient_id))
        return now

    def set_password_hash(self, patient_id: str, password_hash: str) -> None:
        with self._db.session() as c:
            c.execute(
                "UPDATE patients SET password_hash = ?, updated_at = ? WHERE patient_id = ?",
                (password_hash, to_db_string(utc_now()), patient_id),
            )

    def delete(self, patient_id: str) -> bool:
        with self._db.session() as c:
            cursor = c.execute("DELETE FROM patients WHERE patient_id = ?", (patient_id,))
        return cursor.rowcount > 0

    def count(self, institution_id: Optional[str] = None) -> int:
        with self._db.session() as c:
            if institution_id is None:
                return c.execute("SELECT COUNT(*) FROM patients").fetchone()[0]
            return c.execute(
                "SELECT COUNT(*) FROM patients WHERE institution_id = ?", (institution_id,)
            ).fetchone()[0]
