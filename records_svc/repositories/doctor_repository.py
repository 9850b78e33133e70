"""
Repository for doctor database operations.

Affiliations live in ``doctor_institutions``; a doctor row is always read
together with its institution ids.
"""
import logging
import sqlite3
from typing import Iterable, List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from core.exceptions import DuplicateError
from models.doctor import Doctor
from repositories.base import Database, is_unique_violation

logger = logging.getLogger(__name__)

_UNIQUE_FIELDS = (("doctors.email", "email"), ("doctors.license_number", "license_number"))


class DoctorRepository:
    """Repository for doctor CRUD operations."""

    def __init__(self, db: Database):
        self._db = db

    def _affiliations(self, conn: sqlite3.Connection, doctor_id: str) -> List[str]:
        rows = conn.execute(
            "SELECT institution_id FROM doctor_institutions WHERE doctor_id = ? ORDER BY institution_id",
            (doctor_id,),
        ).fetchall()
        return [r["institution_id"] for r in rows]

    def _replace_affiliations(self, conn: sqlite3.Connection, doctor: Doctor) -> None:
        conn.execute("DELETE FROM doctor_institutions WHERE doctor_id = ?", (doctor.id,))
        conn.executemany(
            "INSERT INTO doctor_institutions (doctor_id, institution_id) VALUES (?, ?)",
            [(doctor.id, i) for i in dict.fromkeys(doctor.institution_ids)],
        )

    def _raise_duplicate(self, e: sqlite3.IntegrityError, doctor: Doctor) -> None:
        for column, field in _UNIQUE_FIELDS:
            if is_unique_violation(e, column):
                raise DuplicateError(field=field, value=getattr(doctor, field))

    def create(self, doctor: Doctor) -> Doctor:
        """
        Insert a doctor with its affiliations.

        Raises:
            DuplicateError: If the email or license number is taken.
        """
        now = to_db_string(utc_now())
        doctor.created_at = doctor.updated_at = now
        try:
            with self._db.session() as c:
                c.execute(
                    """
                    INSERT INTO doctors (id, name, email, password_hash, specialization,
                                         license_number, phone, address, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        doctor.id,
                        doctor.name,
                        doctor.email,
                        doctor.password_hash,
                        doctor.specialization,
                        doctor.license_number,
                        doctor.phone,
                        doctor.address,
                        now,
                        now,
                    ),
                )
                self._replace_affiliations(c, doctor)
        except sqlite3.IntegrityError as e:
            self._raise_duplicate(e, doctor)
            raise
        return doctor

    def get(self, doctor_id: str) -> Optional[Doctor]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
            if row is None:
                return None
            return Doctor.from_row(row, self._affiliations(c, doctor_id))

    def get_by_email(self, email: str) -> Optional[Doctor]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM doctors WHERE email = ?", (email,)).fetchone()
            if row is None:
                return None
            return Doctor.from_row(row, self._affiliations(c, row["id"]))

    def list(
        self,
        institution_ids: Optional[Iterable[str]] = None,
        specialization: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Doctor], int]:
        """
        List doctors ordered by name.

        Args:
            institution_ids: Only doctors affiliated with at least one of these;
                None means no restriction.
        """
        clauses, params = [], []
        if institution_ids is not None:
            ids = list(institution_ids)
            if not ids:
                return [], 0
            clauses.append(
                "id IN (SELECT doctor_id FROM doctor_institutions "
                f"WHERE institution_id IN ({','.join('?' * len(ids))}))"
            )
            params.extend(ids)
        if specialization:
            clauses.append("specialization = ?")
            params.append(specialization)
        if search:
            clauses.append("(name LIKE ? OR email LIKE ? OR license_number LIKE ?)")
            params.extend([f"%{search}%"] * 3)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._db.session() as c:
            total = c.execute(f"SELECT COUNT(*) FROM doctors {where}", params).fetchone()[0]
            rows = c.execute(
                f"SELECT * FROM doctors {where} ORDER BY name ASC, id ASC LIMIT ? OFFSET ?",
                params + [limit, offset],
            ).fetchall()
            doctors = [Doctor.from_row(r, self._affiliations(c, r["id"])) for r in rows]
        return doctors, total

    def update(self, doctor: Doctor) -> Doctor:
        """
        Persist changes to a doctor and its affiliations.

        Raises:
            DuplicateError: If the new email or license number is taken.
        """
        doctor.updated_at = to_db_string(utc_now())
        try:
            with self._db.session() as c:
                c.execute(
                    """
                    UPDATE doctors
                    SET name = ?, email = ?, password_hash = ?, specialization = ?,
                        license_number = ?, phone = ?, address = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        doctor.name,
                        doctor.email,
                        doctor.password_hash,
                        doctor.specialization,
                        doctor.license_number,
                        doctor.phone,
                        doctor.address,
                        doctor.updated_at,
                        doctor.id,
                    ),
                )
                self._replace_affiliations(c, doctor)
        except sqlite3.IntegrityError as e:
            self._raise_duplicate(e, doctor)
            raise
        return doctor

    def delete(self, doctor_id: str) -> bool:
        with self._db.session() as c:
            cursor = c.execute("DELETE FROM doctors WHERE id = ?", (doctor_id,))
        return cursor.rowcount > 0

    def count(self, institution_id: Optional[str] = None) -> int:
        with self._db.session() as c:
            if institution_id is None:
                return c.execute("SELECT COUNT(*) FROM doctors").fetchone()[0]
            return c.execute(
                "SELECT COUNT(*) FROM doctor_institutions WHERE institution_id = ?", (institution_id,)
            ).fetchone()[0]
