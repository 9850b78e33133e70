"""
Domain model for authenticated principals.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from core.permissions import Permission, PrincipalKind, RoleName, TokenKind


@dataclass(frozen=True)
class Principal:
    """
    Any authenticated entity: admin user, institution user, doctor or patient.

    ``kind`` tags the union. ``permissions`` is the effective set (role
    bundle plus explicit grants). ``institution_ids`` is empty for
    institution-less principals; doctors may carry several.
    """

    id: str
    kind: PrincipalKind
    name: str
    role: RoleName
    email: Optional[str] = None
    permissions: FrozenSet[Permission] = frozenset()
    institution_ids: FrozenSet[str] = frozenset()
    must_change_password: bool = False
    patient_identifier: Optional[str] = None
    token_kind: TokenKind = field(default=TokenKind.USER, compare=False)

    @property
    def is_admin(self) -> bool:
        return self.kind is PrincipalKind.ADMIN_USER

    @property
    def is_patient(self) -> bool:
        return self.kind is PrincipalKind.PATIENT

    @property
    def primary_institution_id(self) -> Optional[str]:
        """The single institution of the principal, or None when it has zero or several."""
        if len(self.institution_ids) == 1:
            return next(iter(self.institution_ids))
        return None

    def has_permission(self, permission: Permission) -> bool:
        return self.is_admin or permission in self.permissions

    def belongs_to(self, institution_id: Optional[str]) -> bool:
        return institution_id is not None and institution_id in self.institution_ids
