"""
Repository for role documents.
"""
import json
import logging
import sqlite3
from typing import List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from core.exceptions import DuplicateError
from core.permissions import RoleName
from models.role import Role
from repositories.base import Database, is_unique_violation

logger = logging.getLogger(__name__)


class RoleRepository:
    """Repository for role CRUD operations."""

    def __init__(self, db: Database):
        self._db = db

    def create(self, role: Role) -> Role:
        """
        Insert a role.

        Raises:
            DuplicateError: If a role with the same name exists.
        """
        now = to_db_string(utc_now())
        role.created_at = role.updated_at = now
        try:
            with self._db.session() as c:
                c.execute(
                    """
                    INSERT INTO roles (id, name, display_name, description, permissions, is_system,
                                       created_by, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        role.id,
                        role.name.value,
                        role.display_name,
                        role.description,
                        json.dumps([p.value for p in role.permissions]),
                        int(role.is_system),
                        role.created_by,
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, "roles.name"):
                raise DuplicateError(field="name", value=role.name.value)
            raise
        return role

    def get(self, role_id: str) -> Optional[Role]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM roles WHERE id = ?", (role_id,)).fetchone()
        return Role.from_row(row) if row else None

    def get_by_name(self, name: RoleName) -> Optional[Role]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM roles WHERE name = ?", (name.value,)).fetchone()
        return Role.from_row(row) if row else None

    def list(self, offset: int = 0, limit: int = 10) -> Tuple[List[Role], int]:
        with self._db.session() as c:
            total = c.execute("SELECT COUNT(*) FROM roles").fetchone()[0]
            rows = c.execute(
                "SELECT * FROM roles ORDER BY is_system DESC, name ASC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [Role.from_row(r) for r in rows], total

    def update(self, role: Role) -> Role:
        role.updated_at = to_db_string(utc_now())
        with self._db.session() as c:
            c.execute(
                """
                UPDATE roles SET display_name = ?, description = ?, permissions = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    role.display_name,
                    role.description,
                    json.dumps([p.value for p in role.permissions]),
                    role.updated_at,
                    role.id,
                ),
            )
        return role

    def delete(self, role_id: str) -> bool:
        with self._db.session() as c:
            cursor = c.execute("DELETE FROM roles WHERE id = ?", (role_id,))
        return cursor.rowcount > 0
