"""
Authorization Engine.

Decides whether a principal may perform an action on a resource. The
decision is a pure function of the principal and the action; it performs no
I/O and holds no state, so services and routers can call it freely.

Decision order (the first matching rule decides a denial):

    0. no principal                       -> Unauthenticated
    1. role admin                         -> allow
    2. required permission missing        -> InsufficientPermission
    3. target institutions disjoint from the principal's and not an own
       resource: reads need cross_institution_access, writes need
       cross_institution_modify           -> otherwise ScopeViolation
    4. role not in the permitted-role set -> InsufficientPermission
"""
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from core.exceptions import ForbiddenError, UnauthenticatedError
from core.permissions import (
    RESOURCE_POLICIES,
    DenyReason,
    Operation,
    Permission,
    ResourceType,
    RoleName,
)
from models.principal import Principal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Action:
    """A requested operation on a resource, with the institutions it touches."""

    operation: Operation
    resource: ResourceType
    required_permission: Optional[Permission]
    permitted_roles: FrozenSet[RoleName]
    target_institution_ids: FrozenSet[str] = frozenset()
    own_resource: bool = False

    @classmethod
    def on(
        cls,
        resource: ResourceType,
        operation: Operation,
        target_institution_ids: Iterable[Optional[str]] = (),
        own_resource: bool = False,
    ) -> "Action":
        """Build an action from the resource policy table. ``None`` targets are ignored."""
        policy = RESOURCE_POLICIES[resource]
        return cls(
            operation=operation,
            resource=resource,
            required_permission=policy.permission,
            permitted_roles=policy.roles,
            target_institution_ids=frozenset(i for i in target_institution_ids if i),
            own_resource=own_resource,
        )


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)


class AuthorizationEngine:
    """Role, permission and institution-scope checks."""

    def decide(self, principal: Optional[Principal], action: Action) -> Decision:
        if principal is None:
            return Decision.deny(DenyReason.UNAUTHENTICATED, "Authentication required")

        if principal.role is RoleName.ADMIN:
            return Decision.allow()

        if action.required_permission is not None and action.required_permission not in principal.permissions:
            return Decision.deny(
                DenyReason.INSUFFICIENT_PERMISSION,
                f"Missing permission '{action.required_permission.value}'",
            )

        if (
            action.target_institution_ids
            and action.target_institution_ids.isdisjoint(principal.institution_ids)
            and not action.own_resource
        ):
            needed = (
                Permission.CROSS_INSTITUTION_MODIFY
                if action.operation.is_write
                else Permission.CROSS_INSTITUTION_ACCESS
            )
            if needed not in principal.permissions:
                return Decision.deny(
                    DenyReason.SCOPE_VIOLATION,
                    f"Resource belongs to another institution; '{needed.value}' required",
                )

        if principal.role not in action.permitted_roles:
            return Decision.deny(
                DenyReason.INSUFFICIENT_PERMISSION,
                f"Role '{principal.role.value}' may not {action.operation.value} {action.resource.value}",
            )

        return Decision.allow()

    def authorize(self, principal: Optional[Principal], action: Action) -> None:
        """
        Raise unless ``principal`` may perform ``action``.

        Raises:
            UnauthenticatedError: No principal.
            ForbiddenError: Any other denial, carrying the deny reason.
        """
        decision = self.decide(principal, action)
        if decision.allowed:
            return
        logger.warning(
            "Authorization denied",
            extra={
                "principal_id": principal.id if principal else None,
                "operation": action.operation.value,
                "resource": action.resource.value,
                "reason": decision.reason.value,
            }
        )
        if decision.reason is DenyReason.UNAUTHENTICATED:
            raise UnauthenticatedError(decision.message)
        raise ForbiddenError(decision.message, reason=decision.reason)

    def can_read_across(self, principal: Principal) -> bool:
        """Whether list endpoints may skip institution filtering for this principal."""
        return principal.is_admin or Permission.CROSS_INSTITUTION_ACCESS in principal.permissions

    def enforce_institution_path(self, principal: Principal, institution_id: str) -> None:
        """
        Gate for routes nested under an institution.

        Admins pass; everyone else must be affiliated with the institution.
        Cross-institution grants do not open nested routes.
        """
        if principal.is_admin or principal.belongs_to(institution_id):
            return
        logger.warning(
            "Institution scope violation",
            extra={"principal_id": principal.id, "institution_id": institution_id}
        )
        raise ForbiddenError(
            "You do not have access to this institution",
            reason=DenyReason.SCOPE_VIOLATION,
        )
