"""
Closed role and permission vocabulary for the authorization model.

Permissions and roles are Enums so that a typo in a grant fails validation
at the API boundary (or when a row is loaded) instead of silently failing a
check later on.

A role determines a default permission bundle. Explicit grants stored on a
user add to that bundle; they never remove from it.
"""
from enum import Enum
from typing import Dict, FrozenSet, Iterable, NamedTuple, Optional


class Permission(str, Enum):
    """Every permission the system knows about."""

    MANAGE_PATIENTS = "manage_patients"
    MANAGE_DOCTORS = "manage_doctors"
    MANAGE_MEDICAL_RECORDS = "manage_medical_records"
    MANAGE_USERS = "manage_users"
    VIEW_STATISTICS = "view_statistics"
    MANAGE_INSTITUTIONS = "manage_institutions"
    MANAGE_ROLES = "manage_roles"
    CROSS_INSTITUTION_ACCESS = "cross_institution_access"
    CROSS_INSTITUTION_MODIFY = "cross_institution_modify"
    EMERGENCY_OVERRIDE = "emergency_override"


class RoleName(str, Enum):
    """Role tags carried by principals."""

    ADMIN = "admin"
    ADMIN_INSTITUTIONS = "admin_institutions"
    DOCTOR = "doctor"
    NURSE = "nurse"
    RECEPTIONIST = "receptionist"
    PATIENT = "patient"


class PrincipalKind(str, Enum):
    """Tag of the Principal union."""

    ADMIN_USER = "admin_user"
    INSTITUTION_USER = "institution_user"
    DOCTOR = "doctor"
    PATIENT = "patient"


class TokenKind(str, Enum):
    """Credential store a bearer token points into."""

    USER = "user"
    DOCTOR = "doctor"
    PATIENT = "patient"


class Operation(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def is_write(self) -> bool:
        return self is not Operation.READ


class ResourceType(str, Enum):
    INSTITUTION = "institution"
    USER = "user"
    PATIENT = "patient"
    DOCTOR = "doctor"
    MEDICAL_RECORD = "medical_record"
    ROLE = "role"
    STATISTICS = "statistics"
    AUDIT_LOG = "audit_log"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    INSUFFICIENT_PERMISSION = "InsufficientPermission"
    SCOPE_VIOLATION = "ScopeViolation"


class CascadePolicy(str, Enum):
    """What an institution deletion takes with it."""

    USERS_ONLY = "users_only"


# =============================================================================
# ROLE BUNDLES
# =============================================================================

ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

DEFAULT_ROLE_PERMISSIONS: Dict[RoleName, FrozenSet[Permission]] = {
    RoleName.ADMIN: ALL_PERMISSIONS,
    RoleName.ADMIN_INSTITUTIONS: frozenset({
        Permission.MANAGE_PATIENTS,
        Permission.MANAGE_DOCTORS,
        Permission.MANAGE_MEDICAL_RECORDS,
        Permission.MANAGE_USERS,
        Permission.VIEW_STATISTICS,
    }),
    RoleName.DOCTOR: frozenset({
        Permission.MANAGE_PATIENTS,
        Permission.MANAGE_MEDICAL_RECORDS,
    }),
    RoleName.NURSE: frozenset({
        Permission.MANAGE_PATIENTS,
        Permission.MANAGE_MEDICAL_RECORDS,
    }),
    RoleName.RECEPTIONIST: frozenset({Permission.MANAGE_PATIENTS}),
    RoleName.PATIENT: frozenset(),
}

# Seeded at bootstrap and protected from deletion.
SYSTEM_ROLES: Dict[RoleName, str] = {
    RoleName.ADMIN: "System Administrator",
    RoleName.ADMIN_INSTITUTIONS: "Institution Administrator",
    RoleName.DOCTOR: "Doctor",
    RoleName.PATIENT: "Patient",
}

# Roles a non-admin user manager may hand out.
INSTITUTION_ASSIGNABLE_ROLES: FrozenSet[RoleName] = frozenset({
    RoleName.ADMIN_INSTITUTIONS,
    RoleName.NURSE,
    RoleName.RECEPTIONIST,
})

# Roles that can be stored on a staff user row.
STAFF_ROLES: FrozenSet[RoleName] = INSTITUTION_ASSIGNABLE_ROLES | {RoleName.ADMIN}


def resolve_permissions(
    role: RoleName,
    grants: Iterable[Permission] = (),
    bundle: Optional[Iterable[Permission]] = None,
) -> FrozenSet[Permission]:
    """
    Effective permission set: the role bundle plus explicit grants.

    ``bundle`` is a stored Role document's permission list; when absent the
    built-in default for the role is used.
    """
    base = frozenset(bundle) if bundle is not None else DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())
    if role is RoleName.ADMIN:
        base = ALL_PERMISSIONS
    return base | frozenset(grants)


# =============================================================================
# RESOURCE POLICIES
# =============================================================================

class ResourcePolicy(NamedTuple):
    permission: Optional[Permission]
    roles: FrozenSet[RoleName]


MEDICAL_STAFF: FrozenSet[RoleName] = frozenset({
    RoleName.ADMIN_INSTITUTIONS,
    RoleName.DOCTOR,
    RoleName.NURSE,
})

RESOURCE_POLICIES: Dict[ResourceType, ResourcePolicy] = {
    ResourceType.INSTITUTION: ResourcePolicy(Permission.MANAGE_INSTITUTIONS, frozenset({RoleName.ADMIN})),
    ResourceType.USER: ResourcePolicy(Permission.MANAGE_USERS, frozenset({RoleName.ADMIN_INSTITUTIONS})),
    ResourceType.PATIENT: ResourcePolicy(
        Permission.MANAGE_PATIENTS, MEDICAL_STAFF | {RoleName.RECEPTIONIST}
    ),
    ResourceType.DOCTOR: ResourcePolicy(Permission.MANAGE_DOCTORS, frozenset({RoleName.ADMIN_INSTITUTIONS})),
    ResourceType.MEDICAL_RECORD: ResourcePolicy(Permission.MANAGE_MEDICAL_RECORDS, MEDICAL_STAFF),
    ResourceType.ROLE: ResourcePolicy(Permission.MANAGE_ROLES, frozenset({RoleName.ADMIN})),
    ResourceType.STATISTICS: ResourcePolicy(Permission.VIEW_STATISTICS, frozenset({RoleName.ADMIN_INSTITUTIONS})),
    ResourceType.AUDIT_LOG: ResourcePolicy(None, frozenset({RoleName.ADMIN})),
}
