"""
Repository for institution database operations.

All SQL for institutions is encapsulated here - no SQL in service or API layers.
"""
import json
import logging
import sqlite3
from typing import List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from models.institution import Institution
from repositories.base import Database

logger = logging.getLogger(__name__)


class InstitutionRepository:
    """Repository for institution CRUD operations."""

    def __init__(self, db: Database):
        self._db = db

    def create(self, institution: Institution, conn: Optional[sqlite3.Connection] = None) -> Institution:
        now = to_db_string(utc_now())
        institution.created_at = institution.updated_at = now
        with self._db.session(conn) as c:
            c.execute(
                """
                INSERT INTO institutions (id, name, type, contact, services, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    institution.id,
                    institution.name,
                    institution.type.value,
                    json.dumps(institution.contact),
                    json.dumps(institution.services),
                    institution.created_by,
                    now,
                    now,
                ),
            )
        return institution

    def get(self, institution_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[Institution]:
        with self._db.session(conn) as c:
            row = c.execute("SELECT * FROM institutions WHERE id = ?", (institution_id,)).fetchone()
        return Institution.from_row(row) if row else None

    def exists(self, institution_id: str) -> bool:
        with self._db.session() as c:
            row = c.execute("SELECT 1 FROM institutions WHERE id = ?", (institution_id,)).fetchone()
        return row is not None

    def list(
        self,
        institution_type: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Institution], int]:
        """
        List institutions ordered by name.

        Returns:
            The requested page and the total number of matching rows.
        """
        clauses, params = [], []
        if institution_type:
            clauses.append("type = ?")
            params.append(institution_type)
        if search:
            clauses.append("name LIKE ?")
            params.append(f"%{search}%")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._db.session() as c:
            total = c.execute(f"SELECT COUNT(*) FROM institutions {where}", params).fetchone()[0]
            rows = c.execute(
                f"SELECT * FROM institutions {where} ORDER BY name ASC, id ASC LIMIT ? OFFSET ?",
                params + [limit, offset],
            ).fetchall()
        return [Institution.from_row(r) for r in rows], total

    def update(self, institution: Institution) -> Institution:
        institution.updated_at = to_db_string(utc_now())
        with self._db.session() as c:
            c.execute(
                """
                UPDATE institutions
                SET name = ?, type = ?, contact = ?, services = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    institution.name,
                    institution.type.value,
                    json.dumps(institution.contact),
                    json.dumps(institution.services),
                    institution.updated_at,
                    institution.id,
                ),
            )
        return institution

    def delete(self, institution_id: str, conn: Optional[sqlite3.Connection] = None) -> bool:
        with self._db.session(conn) as c:
            cursor = c.execute("DELETE FROM institutions WHERE id = ?", (institution_id,))
        return cursor.rowcount > 0

    def count(self) -> int:
        with self._db.session() as c:
            return c.execute("SELECT COUNT(*) FROM institutions").fetchone()[0]
