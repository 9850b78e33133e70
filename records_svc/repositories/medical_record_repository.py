"""
Repository for medical record database operations.

Records reference patients by identifier and doctors by id through foreign
keys, so a record can never point at a missing patient or doctor, and a
patient or doctor with records cannot be deleted underneath them.
"""
import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from models.medical_record import MedicalRecord
from repositories.base import Database

logger = logging.getLogger(__name__)


@dataclass
class RecordFilters:
    """Optional filters for record listing. ``None`` means "do not filter"."""

    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    visit_type: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    institution_ids: Optional[Iterable[str]] = None


class MedicalRecordRepository:
    """Repository for medical record CRUD operations."""

    def __init__(self, db: Database):
        self._db = db

    def create(self, record: MedicalRecord) -> MedicalRecord:
        now = to_db_string(utc_now())
        record.created_at = record.updated_at = now
        with self._db.session() as c:
            c.execute(
                """
                INSERT INTO medical_records (id, patient_id, doctor_id, institution_id, visit_type,
                                             visit_date, visit_info, clinical_data, prescriptions,
                                             lab_results, attachments, created_by, updated_by,
                                             created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.patient_id,
                    record.doctor_id,
                    record.institution_id,
                    record.visit_info["type"],
                    record.visit_info["date"],
                    json.dumps(record.visit_info),
                    json.dumps(record.clinical_data),
                    json.dumps(record.prescriptions),
                    json.dumps(record.lab_results),
                    json.dumps(record.attachments),
                    record.created_by,
                    record.updated_by,
                    now,
                    now,
                ),
            )
        return record

    def get(self, record_id: str) -> Optional[MedicalRecord]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM medical_records WHERE id = ?", (record_id,)).fetchone()
        return MedicalRecord.from_row(row) if row else None

    def list(self, filters: RecordFilters, offset: int = 0, limit: int = 10) -> Tuple[List[MedicalRecord], int]:
        """
        List records, most recent visit first.

        Returns:
            The requested page and the total number of matching rows.
        """
        clauses, params = [], []
        if filters.institution_ids is not None:
            ids = list(filters.institution_ids)
            if not ids:
                return [], 0
            clauses.append(f"institution_id IN ({','.join('?' * len(ids))})")
            params.extend(ids)
        if filters.patient_id:
            clauses.append("patient_id = ?")
            params.append(filters.patient_id)
        if filters.doctor_id:
            clauses.append("doctor_id = ?")
            params.append(filters.doctor_id)
        if filters.visit_type:
            clauses.append("visit_type = ?")
            params.append(filters.visit_type)
        if filters.date_from:
            clauses.append("visit_date >= ?")
            params.append(filters.date_from)
        if filters.date_to:
            clauses.append("visit_date <= ?")
            params.append(filters.date_to)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._db.session() as c:
            total = c.execute(f"SELECT COUNT(*) FROM medical_records {where}", params).fetchone()[0]
            rows = c.execute(
                f"SELECT * FROM medical_records {where} "
                "ORDER BY visit_date DESC, rowid DESC LIMIT ? OFFSET ?",
                params + [limit, offset],
            ).fetchall()
        return [MedicalRecord.from_row(r) for r in rows], total

    def list_for_patient(self, patient_id: str) -> List[MedicalRecord]:
        """Every record of a patient, across all institutions."""
        with self._db.session() as c:
            rows = c.execute(
                "SELECT * FROM medical_records WHERE patient_id = ? ORDER BY visit_date DESC, rowid DESC",
                (patient_id,),
            ).fetchall()
        return [MedicalRecord.from_row(r) for r in rows]

    def update(self, record: MedicalRecord) -> MedicalRecord:
        record.updated_at = to_db_string(utc_now())
        with self._db.session() as c:
            c.execute(
                """
                UPDATE medical_records
                SET doctor_id = ?, visit_type = ?, visit_date = ?, visit_info = ?, clinical_data = ?,
                    prescriptions = ?, lab_results = ?, attachments = ?, updated_by = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    record.doctor_id,
                    record.visit_info["type"],
                    record.visit_info["date"],
                    json.dumps(record.visit_info),
                    json.dumps(record.clinical_data),
                    json.dumps(record.prescriptions),
                    json.dumps(record.lab_results),
                    json.dumps(record.attachments),
                    record.updated_by,
                    record.updated_at,
                    record.id,
                ),
            )
        return record

    def delete(self, record_id: str) -> bool:
        with self._db.session() as c:
            cursor = c.execute("DELETE FROM medical_records WHERE id = ?", (record_id,))
        return cursor.rowcount > 0

    def count_for_patient(self, patient_id: str) -> int:
        with self._db.session() as c:
            return c.execute(
                "SELECT COUNT(*) FROM medical_records WHERE patient_id = ?", (patient_id,)
            ).fetchone()[0]

    def count_for_doctor(self, doctor_id: str) -> int:
        with self._db.session() as c:
            return c.execute(
                "SELECT COUNT(*) FROM medical_records WHERE doctor_id = ?", (doctor_id,)
            ).fetchone()[0]

    def count(self, institution_id: Optional[str] = None) -> int:
        with self._db.session() as c:
            if institution_id is None:
                return c.execute("SELECT COUNT(*) FROM medical_records").fetchone()[0]
            return c.execute(
                "SELECT COUNT(*) FROM medical_records WHERE institution_id = ?", (institution_id,)
            ).fetchone()[0]

    def count_by_visit_type(self, institution_id: Optional[str] = None) -> dict:
        """Record counts keyed by visit type."""
        sql = "SELECT visit_type, COUNT(*) AS n FROM medical_records"
        params: list = []
        if institution_id is not None:
            sql += " WHERE institution_id = ?"
            params.append(institution_id)
        sql += " GROUP BY visit_type"
        with self._db.session() as c:
            rows = c.execute(sql, params).fetchall()
        return {r["visit_type"]: r["n"] for r in rows}
