"""
Repository for staff user database operations.
"""
import json
import logging
import sqlite3
from typing import Iterable, List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from core.exceptions import DuplicateError
from core.permissions import RoleName
from models.user import User
from repositories.base import Database, is_unique_violation

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for staff user CRUD operations."""

    def __init__(self, db: Database):
        self._db = db

    def create(self, user: User, conn: Optional[sqlite3.Connection] = None) -> User:
        """
        Insert a user.

        Raises:
            DuplicateError: If the email is already taken.
        """
        now = to_db_string(utc_now())
        user.created_at = user.updated_at = now
        try:
            with self._db.session(conn) as c:
                c.execute(
                    """
                    INSERT INTO users (id, name, email, password_hash, role, institution_id,
                                       permissions, created_by, must_change_password,
                                       created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.id,
                        user.name,
                        user.email,
                        user.password_hash,
                        user.role.value,
                        user.institution_id,
                        json.dumps([p.value for p in user.permissions]),
                        user.created_by,
                        int(user.must_change_password),
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, "users.email"):
                raise DuplicateError(field="email", value=user.email)
            raise
        return user

    def get(self, user_id: str) -> Optional[User]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return User.from_row(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with self._db.session() as c:
            row = c.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return User.from_row(row) if row else None

    def list(
        self,
        institution_ids: Optional[Iterable[str]] = None,
        role: Optional[RoleName] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        """
        List users ordered by name.

        Args:
            institution_ids: Restrict to these institutions; None means no restriction.
        """
        clauses, params = [], []
        if institution_ids is not None:
            ids = list(institution_ids)
            if not ids:
                return [], 0
            clauses.append(f"institution_id IN ({','.join('?' * len(ids))})")
            params.extend(ids)
        if role is not None:
            clauses.append("role = ?")
            params.append(role.value)
        if search:
            clauses.append("(name LIKE ? OR email LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._db.session() as c:
            total = c.execute(f"SELECT COUNT(*) FROM users {where}", params).fetchone()[0]
            rows = c.execute(
                f"SELECT * FROM users {where} ORDER BY name ASC, id ASC LIMIT ? OFFSET ?",
                params + [limit, offset],
            ).fetchall()
        return [User.from_row(r) for r in rows], total

    def update(self, user: User) -> User:
        """
        Persist changes to a user.

        Raises:
            DuplicateError: If the new email is already taken.
        """
        user.updated_at = to_db_string(utc_now())
        try:
            with self._db.session() as c:
                c.execute(
                    """
                    UPDATE users
                    SET name = ?, email = ?, password_hash = ?, role = ?, institution_id = ?,
                        permissions = ?, must_change_password = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        user.name,
                        user.email,
                        user.password_hash,
                        user.role.value,
                        user.institution_id,
                        json.dumps([p.value for p in user.permissions]),
                        int(user.must_change_password),
                        user.updated_at,
                        user.id,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, "users.email"):
                raise DuplicateError(field="email", value=user.email)
            raise
        return user

    def delete(self, user_id: str) -> bool:
        with self._db.session() as c:
            cursor = c.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cursor.rowcount > 0

    def delete_by_institution(self, institution_id: str, conn: Optional[sqlite3.Connection] = None) -> int:
        """Delete every user affiliated with ``institution_id``; returns the number removed."""
        with self._db.session(conn) as c:
            cursor = c.execute("DELETE FROM users WHERE institution_id = ?", (institution_id,))
        return cursor.rowcount

    def admin_exists(self) -> bool:
        with self._db.session() as c:
            row = c.execute("SELECT 1 FROM users WHERE role = ? LIMIT 1", (RoleName.ADMIN.value,)).fetchone()
        return row is not None

    def count(self, institution_id: Optional[str] = None) -> int:
        with self._db.session() as c:
            if institution_id is None:
                return c.execute("SELECT COUNT(*) FROM users").fetchone()[0]
            return c.execute(
                "SELECT COUNT(*) FROM users WHERE institution_id = ?", (institution_id,)
            ).fetchone()[0]
