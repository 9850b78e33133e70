"""
Domain model for institutions.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.enums import InstitutionType


@dataclass
class Institution:
    """A hospital, clinic, pharmacy or laboratory."""

    id: str
    name: str
    type: InstitutionType
    contact: Dict[str, Any]
    services: List[str] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Institution":
        """Create an Institution from an ``institutions`` row."""
        return cls(
            id=row["id"],
            name=row["name"],
            type=InstitutionType(row["type"]),
            contact=json.loads(row["contact"] or "{}"),
            services=json.loads(row["services"] or "[]"),
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
