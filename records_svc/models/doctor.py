"""
Domain model for doctors.
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Doctor:
    """A doctor affiliated with one or more institutions."""

    id: str
    name: str
    email: str
    specialization: str
    license_number: str
    institution_ids: List[str] = field(default_factory=list)
    phone: Optional[str] = None
    address: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def can_sign_in(self) -> bool:
        return bool(self.password_hash)

    @classmethod
    def from_row(cls, row, institution_ids: List[str]) -> "Doctor":
        """Create a Doctor from a ``doctors`` row and its affiliation rows."""
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            specialization=row["specialization"],
            license_number=row["license_number"],
            institution_ids=list(institution_ids),
            phone=row["phone"],
            address=row["address"],
            password_hash=row["password_hash"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
