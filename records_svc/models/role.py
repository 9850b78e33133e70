"""
Domain model for stored role documents.
"""
import json
from dataclasses import dataclass, field
from typing import List, Optional

from core.permissions import Permission, RoleName


@dataclass
class Role:
    """A named permission bundle. System roles cannot be deleted or renamed."""

    id: str
    name: RoleName
    display_name: str
    description: Optional[str] = None
    permissions: List[Permission] = field(default_factory=list)
    is_system: bool = False
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Role":
        return cls(
            id=row["id"],
            name=RoleName(row["name"]),
            display_name=row["display_name"],
            description=row["description"],
            permissions=[Permission(p) for p in json.loads(row["permissions"] or "[]")],
            is_system=bool(row["is_system"]),
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
