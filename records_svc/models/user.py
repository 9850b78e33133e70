"""
Domain model for staff users.
"""
import json
from dataclasses import dataclass, field
from typing import List, Optional

from core.permissions import Permission, RoleName


@dataclass
class User:
    """A staff account: system admin or institution-scoped staff."""

    id: str
    name: str
    email: str
    password_hash: str
    role: RoleName
    institution_id: Optional[str] = None
    permissions: List[Permission] = field(default_factory=list)
    created_by: Optional[str] = None
    must_change_password: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "User":
        """
        Create a User from a ``users`` row.

        Raises:
            ValueError: If the row holds a role or permission outside the closed sets.
        """
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=RoleName(row["role"]),
            institution_id=row["institution_id"],
            permissions=[Permission(p) for p in json.loads(row["permissions"] or "[]")],
            created_by=row["created_by"],
            must_change_password=bool(row["must_change_password"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
