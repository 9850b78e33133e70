"""
Service layer for staff users.

Besides CRUD this enforces the privilege-escalation guard: a non-admin can
only hand out roles from INSTITUTION_ASSIGNABLE_ROLES and permissions it
holds itself, and can never create, edit or promote an admin.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from core.exceptions import (
    DataValidationError,
    ForbiddenError,
    InstitutionNotFoundError,
    UserNotFoundError,
)
from core.permissions import (
    INSTITUTION_ASSIGNABLE_ROLES,
    STAFF_ROLES,
    Operation,
    Permission,
    ResourceType,
    RoleName,
)
from core.security import hash_password
from models.enums import AuditAction
from models.principal import Principal
from models.user import User
from repositories.base import new_id
from repositories.institution_repository import InstitutionRepository
from repositories.user_repository import UserRepository
from schemas.common import PageParams
from schemas.user import UserCreate, UserResponse, UserUpdate
from services.audit_service import AuditService
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


class UserService:
    """Staff user management."""

    def __init__(
        self,
        user_repository: UserRepository,
        institution_repository: InstitutionRepository,
        audit_service: AuditService,
        engine: AuthorizationEngine,
    ):
        self._repo = user_repository
        self._institutions = institution_repository
        self._audit = audit_service
        self._engine = engine

    # =========================================================================
    # GUARDS
    # =========================================================================

    def _guard_escalation(
        self,
        actor: Principal,
        role: Optional[RoleName],
        permissions: Iterable[Permission] = (),
    ) -> None:
        if actor.is_admin:
            return
        if role is RoleName.ADMIN:
            raise ForbiddenError("Only administrators can create or promote admin users")
        if role is not None and role not in INSTITUTION_ASSIGNABLE_ROLES:
            raise ForbiddenError(f"Role '{role.value}' cannot be assigned by institution administrators")
        beyond = set(permissions) - set(actor.permissions)
        if beyond:
            names = ", ".join(sorted(p.value for p in beyond))
            raise ForbiddenError(f"Cannot grant permissions you do not hold: {names}")

    def _check_placement(self, role: RoleName, institution_id: Optional[str]) -> None:
        if role not in STAFF_ROLES:
            raise DataValidationError(f"Role '{role.value}' is not a staff role")
        if role is not RoleName.ADMIN and institution_id is None:
            raise DataValidationError(f"institution_id is required for role '{role.value}'")
        if institution_id is not None and not self._institutions.exists(institution_id):
            raise InstitutionNotFoundError()

    def _get_in_scope(self, user_id: str, institution_id: Optional[str]) -> User:
        user = self._repo.get(user_id)
        if user is None or (institution_id is not None and user.institution_id != institution_id):
            raise UserNotFoundError()
        return user

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def create_user(
        self,
        data: UserCreate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> UserResponse:
        """
        Create a staff user.

        Args:
            institution_id: Path institution on nested routes; overrides the body.

        Raises:
            ForbiddenError: Engine denial or privilege escalation.
            DataValidationError: Missing institution for a non-admin role.
            DuplicateError: Email already in use.
        """
        target = institution_id or data.institution_id
        self._engine.authorize(actor, Action.on(ResourceType.USER, Operation.CREATE, [target]))
        self._guard_escalation(actor, data.role, data.permissions)
        self._check_placement(data.role, target)

        user = User(
            id=new_id(),
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            role=data.role,
            institution_id=target,
            permissions=list(dict.fromkeys(data.permissions)),
            created_by=actor.id,
        )
        self._repo.create(user)
        self._audit.record(
            AuditAction.USER_CREATED,
            actor,
            details={"user_id": user.id, "role": user.role.value, "institution_id": target},
        )
        logger.info("User created", extra={"user_id": user.id, "role": user.role.value, "actor_id": actor.id})
        return UserResponse.model_validate(user)

    def get_user(self, user_id: str, actor: Principal, institution_id: Optional[str] = None) -> UserResponse:
        user = self._get_in_scope(user_id, institution_id)
        self._engine.authorize(actor, Action.on(ResourceType.USER, Operation.READ, [user.institution_id]))
        return UserResponse.model_validate(user)

    def list_users(
        self,
        actor: Principal,
        paging: PageParams,
        institution_id: Optional[str] = None,
        role: Optional[RoleName] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[UserResponse], int]:
        self._engine.authorize(actor, Action.on(ResourceType.USER, Operation.READ, [institution_id]))
        if institution_id is not None:
            scope = [institution_id]
        elif self._engine.can_read_across(actor):
            scope = None
        else:
            scope = sorted(actor.institution_ids)
        users, total = self._repo.list(
            institution_ids=scope, role=role, search=search, offset=paging.offset, limit=paging.limit
        )
        return [UserResponse.model_validate(u) for u in users], total

    def update_user(
        self,
        user_id: str,
        data: UserUpdate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> UserResponse:
        user = self._get_in_scope(user_id, institution_id)
        self._engine.authorize(actor, Action.on(ResourceType.USER, Operation.UPDATE, [user.institution_id]))
        if user.role is RoleName.ADMIN and not actor.is_admin:
            raise ForbiddenError("Only administrators can modify admin users")

        changes = data.model_dump(exclude_unset=True)
        new_role = data.role if data.role is not None else user.role
        new_institution = changes.get("institution_id", user.institution_id)
        if institution_id is not None and new_institution != institution_id:
            raise DataValidationError("A user cannot be moved out of the institution from this route")
        if new_institution != user.institution_id:
            self._engine.authorize(actor, Action.on(ResourceType.USER, Operation.UPDATE, [new_institution]))

        self._guard_escalation(
            actor,
            data.role,
            set(data.permissions or ()) - set(user.permissions),
        )
        self._check_placement(new_role, new_institution)

        if data.name is not None:
            user.name = data.name
        if data.email is not None:
            user.email = data.email
        if data.password is not None:
            user.password_hash = hash_password(data.password)
        if data.permissions is not None:
            user.permissions = list(dict.fromkeys(data.permissions))
        user.role = new_role
        user.institution_id = new_institution

        self._repo.update(user)
        self._audit.record(
            AuditAction.USER_UPDATED,
            actor,
            details={"user_id": user.id, "fields": sorted(changes.keys() - {"password"})},
        )
        logger.info("User updated", extra={"user_id": user_id, "actor_id": actor.id})
        return UserResponse.model_validate(user)

    def delete_user(self, user_id: str, actor: Principal, institution_id: Optional[str] = None) -> None:
        """
        Delete a staff user.

        Raises:
            DataValidationError: Admin accounts and the caller's own account
                cannot be deleted.
        """
        user = self._get_in_scope(user_id, institution_id)
        self._engine.authorize(actor, Action.on(ResourceType.USER, Operation.DELETE, [user.institution_id]))
        if user.role is RoleName.ADMIN:
            raise DataValidationError("Admin users cannot be deleted")
        if user.id == actor.id:
            raise DataValidationError("You cannot delete your own account")
        self._repo.delete(user_id)
        self._audit.record(AuditAction.USER_DELETED, actor, details={"user_id": user_id})
        logger.info("User deleted", extra={"user_id": user_id, "actor_id": actor.id})
