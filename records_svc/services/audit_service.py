"""
Service layer for the audit sink.

Audit writes are fail-closed: if an entry cannot be persisted the caller
gets AuditWriteError and must not complete the guarded action.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import AuditWriteError
from models.audit import AuditEntry
from models.enums import AuditAction, AuditOutcome
from models.principal import Principal
from repositories.audit_repository import AuditRepository
from repositories.base import new_id
from schemas.audit import AuditEntryResponse
from schemas.common import PageParams

logger = logging.getLogger(__name__)


class AuditService:
    """Append and read audit log entries."""

    def __init__(self, audit_repository: AuditRepository):
        self._repo = audit_repository

    def record(
        self,
        action: AuditAction,
        actor: Optional[Principal],
        resource_path: Optional[str] = None,
        method: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        outcome: AuditOutcome = AuditOutcome.SUCCESS,
        conn: Optional[sqlite3.Connection] = None,
    ) -> AuditEntry:
        """
        Append one entry.

        Args:
            conn: Outer transaction to join; the entry then commits or rolls
                back together with the guarded writes.

        Raises:
            AuditWriteError: If the entry could not be stored.
        """
        entry = AuditEntry(
            id=new_id(),
            actor_id=actor.id if actor else None,
            actor_kind=actor.kind.value if actor else None,
            action=action.value,
            resource_path=resource_path,
            method=method,
            outcome=outcome,
            details=details or {},
        )
        try:
            return self._repo.append(entry, conn=conn)
        except sqlite3.Error as e:
            logger.error(
                "Audit write failed",
                extra={"action": action.value, "actor_id": entry.actor_id, "error": str(e)}
            )
            raise AuditWriteError(action=action.value)

    def list_entries(
        self,
        paging: PageParams,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Tuple[List[AuditEntryResponse], int]:
        entries, total = self._repo.list(
            action=action, actor_id=actor_id, offset=paging.offset, limit=paging.limit
        )
        return [AuditEntryResponse.model_validate(e) for e in entries], total
