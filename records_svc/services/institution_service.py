"""
Service layer for institutions.

Reads are public. Mutations are admin-only. Deletion follows
``CascadePolicy.USERS_ONLY``: the institution's users go with it, while
patients, doctors and medical records keep their (now dangling) reference.
"""
import logging
from typing import List, Optional, Tuple

from core.exceptions import InstitutionNotFoundError
from core.permissions import CascadePolicy, Operation, ResourceType
from models.enums import AuditAction
from models.institution import Institution
from models.principal import Principal
from repositories.base import Database, new_id
from repositories.institution_repository import InstitutionRepository
from repositories.user_repository import UserRepository
from schemas.common import PageParams
from schemas.institution import (
    InstitutionCreate,
    InstitutionDeleteResult,
    InstitutionResponse,
    InstitutionUpdate,
)
from services.audit_service import AuditService
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


class InstitutionService:
    """Institution CRUD and the users-only cascade delete."""

    cascade_policy = CascadePolicy.USERS_ONLY

    def __init__(
        self,
        db: Database,
        institution_repository: InstitutionRepository,
        user_repository: UserRepository,
        audit_service: AuditService,
        engine: AuthorizationEngine,
    ):
        self._db = db
        self._repo = institution_repository
        self._users = user_repository
        self._audit = audit_service
        self._engine = engine

    def get_model(self, institution_id: str) -> Institution:
        institution = self._repo.get(institution_id)
        if institution is None:
            raise InstitutionNotFoundError()
        return institution

    def create_institution(self, data: InstitutionCreate, actor: Principal) -> InstitutionResponse:
        self._engine.authorize(actor, Action.on(ResourceType.INSTITUTION, Operation.CREATE))
        institution = Institution(
            id=new_id(),
            name=data.name,
            type=data.type,
            contact=data.contact.model_dump(exclude_none=True),
            services=list(data.services),
            created_by=actor.id,
        )
        self._repo.create(institution)
        logger.info("Institution created", extra={"institution_id": institution.id, "actor_id": actor.id})
        return InstitutionResponse.model_validate(institution)

    def get_institution(self, institution_id: str) -> InstitutionResponse:
        return InstitutionResponse.model_validate(self.get_model(institution_id))

    def list_institutions(
        self,
        paging: PageParams,
        institution_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[InstitutionResponse], int]:
        institutions, total = self._repo.list(
            institution_type=institution_type,
            search=search,
            offset=paging.offset,
            limit=paging.limit,
        )
        return [InstitutionResponse.model_validate(i) for i in institutions], total

    def update_institution(
        self, institution_id: str, data: InstitutionUpdate, actor: Principal
    ) -> InstitutionResponse:
        self._engine.authorize(actor, Action.on(ResourceType.INSTITUTION, Operation.UPDATE))
        institution = self.get_model(institution_id)
        if data.name is not None:
            institution.name = data.name
        if data.type is not None:
            institution.type = data.type
        if data.contact is not None:
            institution.contact = data.contact.model_dump(exclude_none=True)
        if data.services is not None:
            institution.services = list(data.services)
        self._repo.update(institution)
        logger.info("Institution updated", extra={"institution_id": institution_id, "actor_id": actor.id})
        return InstitutionResponse.model_validate(institution)

    def delete_institution(
        self,
        institution_id: str,
        actor: Principal,
        resource_path: Optional[str] = None,
        method: Optional[str] = None,
    ) -> InstitutionDeleteResult:
        """
        Delete an institution and its users in one transaction.

        The audit entry is written inside the same transaction; if any step
        fails (including the audit write) nothing is deleted.
        """
        self._engine.authorize(actor, Action.on(ResourceType.INSTITUTION, Operation.DELETE))
        self.get_model(institution_id)

        with self._db.transaction() as conn:
            deleted_users = self._users.delete_by_institution(institution_id, conn=conn)
            self._repo.delete(institution_id, conn=conn)
            self._audit.record(
                AuditAction.INSTITUTION_DELETED,
                actor,
                resource_path=resource_path,
                method=method,
                details={
                    "institution_id": institution_id,
                    "cascade_policy": self.cascade_policy.value,
                    "deleted_users": deleted_users,
                },
                conn=conn,
            )

        logger.warning(
            "Institution deleted",
            extra={"institution_id": institution_id, "deleted_users": deleted_users, "actor_id": actor.id}
        )
        return InstitutionDeleteResult(
            institution_id=institution_id,
            cascade_policy=self.cascade_policy.value,
            deleted_users=deleted_users,
        )
