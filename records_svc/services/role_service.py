"""
Service layer for role documents (admin only).

A stored role replaces the built-in permission bundle for its name. System
roles are seeded at bootstrap and cannot be deleted.
"""
import logging
from typing import List, Tuple

from core.exceptions import DataValidationError, RoleNotFoundError
from core.permissions import Operation, ResourceType
from models.enums import AuditAction
from models.principal import Principal
from models.role import Role
from repositories.base import new_id
from repositories.role_repository import RoleRepository
from schemas.common import PageParams
from schemas.role import RoleCreate, RoleResponse, RoleUpdate
from services.audit_service import AuditService
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, role_repository: RoleRepository, audit_service: AuditService, engine: AuthorizationEngine):
        self._repo = role_repository
        self._audit = audit_service
        self._engine = engine

    def _get(self, role_id: str) -> Role:
        role = self._repo.get(role_id)
        if role is None:
            raise RoleNotFoundError()
        return role

    def create_role(self, data: RoleCreate, actor: Principal) -> RoleResponse:
        """
        Raises:
            DuplicateError: A role with this name already exists.
        """
        self._engine.authorize(actor, Action.on(ResourceType.ROLE, Operation.CREATE))
        role = Role(
            id=new_id(),
            name=data.name,
            display_name=data.display_name,
            description=data.description,
            permissions=list(dict.fromkeys(data.permissions)),
            created_by=actor.id,
        )
        self._repo.create(role)
        self._audit.record(AuditAction.ROLE_CREATED, actor, details={"role": role.name.value})
        logger.info("Role created", extra={"role": role.name.value, "actor_id": actor.id})
        return RoleResponse.model_validate(role)

    def get_role(self, role_id: str, actor: Principal) -> RoleResponse:
        self._engine.authorize(actor, Action.on(ResourceType.ROLE, Operation.READ))
        return RoleResponse.model_validate(self._get(role_id))

    def list_roles(self, actor: Principal, paging: PageParams) -> Tuple[List[RoleResponse], int]:
        self._engine.authorize(actor, Action.on(ResourceType.ROLE, Operation.READ))
        roles, total = self._repo.list(offset=paging.offset, limit=paging.limit)
        return [RoleResponse.model_validate(r) for r in roles], total

    def update_role(self, role_id: str, data: RoleUpdate, actor: Principal) -> RoleResponse:
        self._engine.authorize(actor, Action.on(ResourceType.ROLE, Operation.UPDATE))
        role = self._get(role_id)
        if data.display_name is not None:
            role.display_name = data.display_name
        if data.description is not None:
            role.description = data.description
        if data.permissions is not None:
            role.permissions = list(dict.fromkeys(data.permissions))
        self._repo.update(role)
        self._audit.record(
            AuditAction.ROLE_UPDATED,
            actor,
            details={"role": role.name.value, "permissions": [p.value for p in role.permissions]},
        )
        logger.info("Role updated", extra={"role": role.name.value, "actor_id": actor.id})
        return RoleResponse.model_validate(role)

    def delete_role(self, role_id: str, actor: Principal) -> None:
        """
        Raises:
            DataValidationError: The role is a system role.
        """
        self._engine.authorize(actor, Action.on(ResourceType.ROLE, Operation.DELETE))
        role = self._get(role_id)
        if role.is_system:
            raise DataValidationError(f"System role '{role.name.value}' cannot be deleted")
        self._repo.delete(role_id)
        self._audit.record(AuditAction.ROLE_DELETED, actor, details={"role": role.name.value})
        logger.info("Role deleted", extra={"role": role.name.value, "actor_id": actor.id})
