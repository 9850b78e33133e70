"""
Append-only store for audit log entries.

Entries are never updated or deleted.
"""
import json
import logging
import sqlite3
from typing import List, Optional, Tuple

from core.datetime_utils import to_db_string, utc_now
from models.audit import AuditEntry
from repositories.base import Database

logger = logging.getLogger(__name__)


class AuditRepository:
    """Repository for audit log writes and reads."""

    def __init__(self, db: Database):
        self._db = db

    def append(self, entry: AuditEntry, conn: Optional[sqlite3.Connection] = None) -> AuditEntry:
        entry.created_at = to_db_string(utc_now())
        with self._db.session(conn) as c:
            c.execute(
                """
                INSERT INTO audit_log (id, actor_id, actor_kind, action, resource_path, method,
                                       outcome, details, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.actor_id,
                    entry.actor_kind,
                    entry.action,
                    entry.resource_path,
                    entry.method,
                    entry.outcome.value,
                    json.dumps(entry.details, default=str),
                    entry.created_at,
                ),
            )
        return entry

    def list(
        self,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[AuditEntry], int]:
        """List entries, newest first."""
        clauses, params = [], []
        if action:
            clauses.append("action = ?")
            params.append(action)
        if actor_id:
            clauses.append("actor_id = ?")
            params.append(actor_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._db.session() as c:
            total = c.execute(f"SELECT COUNT(*) FROM audit_log {where}", params).fetchone()[0]
            rows = c.execute(
                f"SELECT * FROM audit_log {where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
                params + [limit, offset],
            ).fetchall()
        return [AuditEntry.from_row(r) for r in rows], total
