"""
Domain model for audit log entries.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.enums import AuditOutcome


@dataclass
class AuditEntry:
    """An append-only record of a sensitive action."""

    id: str
    actor_id: Optional[str]
    actor_kind: Optional[str]
    action: str
    resource_path: Optional[str]
    method: Optional[str]
    outcome: AuditOutcome
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "AuditEntry":
        return cls(
            id=row["id"],
            actor_id=row["actor_id"],
            actor_kind=row["actor_kind"],
            action=row["action"],
            resource_path=row["resource_path"],
            method=row["method"],
            outcome=AuditOutcome(row["outcome"]),
            details=json.loads(row["details"] or "{}"),
            created_at=row["created_at"],
        )
