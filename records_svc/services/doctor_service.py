"""
Service layer for doctors.

A doctor may be affiliated with several institutions; the engine scopes on
that whole set, so a doctor is in scope for anyone sharing at least one of
its institutions.
"""
import logging
from typing import List, Optional, Tuple

from core.exceptions import (
    DataValidationError,
    DoctorNotFoundError,
    InstitutionNotFoundError,
    ReferentialIntegrityError,
)
from core.permissions import Operation, ResourceType
from core.security import hash_password
from models.doctor import Doctor
from models.principal import Principal
from repositories.base import new_id
from repositories.doctor_repository import DoctorRepository
from repositories.institution_repository import InstitutionRepository
from repositories.medical_record_repository import MedicalRecordRepository
from schemas.common import PageParams
from schemas.doctor import DoctorCreate, DoctorResponse, DoctorUpdate
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


class DoctorService:
    """Doctor CRUD."""

    def __init__(
        self,
        doctor_repository: DoctorRepository,
        institution_repository: InstitutionRepository,
        record_repository: MedicalRecordRepository,
        engine: AuthorizationEngine,
    ):
        self._repo = doctor_repository
        self._institutions = institution_repository
        self._records = record_repository
        self._engine = engine

    def get_model(self, doctor_id: str) -> Doctor:
        doctor = self._repo.get(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError()
        return doctor

    def _get_in_scope(self, doctor_id: str, institution_id: Optional[str]) -> Doctor:
        doctor = self.get_model(doctor_id)
        if institution_id is not None and institution_id not in doctor.institution_ids:
            raise DoctorNotFoundError()
        return doctor

    def _check_institutions(self, institution_ids: List[str]) -> None:
        if not institution_ids:
            raise DataValidationError("A doctor must be affiliated with at least one institution")
        for institution_id in institution_ids:
            if not self._institutions.exists(institution_id):
                raise InstitutionNotFoundError(f"Institution '{institution_id}' not found")

    def create_doctor(
        self,
        data: DoctorCreate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> DoctorResponse:
        """
        Register a doctor.

        On nested routes the path institution is always among the affiliations.

        Raises:
            DuplicateError: Email or license number already in use.
        """
        institution_ids = list(dict.fromkeys(data.institution_ids))
        if institution_id is not None and institution_id not in institution_ids:
            institution_ids.insert(0, institution_id)

        self._engine.authorize(actor, Action.on(ResourceType.DOCTOR, Operation.CREATE, institution_ids))
        self._check_institutions(institution_ids)

        doctor = Doctor(
            id=new_id(),
            name=data.name,
            email=data.email,
            specialization=data.specialization,
            license_number=data.license_number,
            institution_ids=institution_ids,
            phone=data.phone,
            address=data.address,
            password_hash=hash_password(data.password) if data.password else None,
        )
        self._repo.create(doctor)
        logger.info("Doctor created", extra={"doctor_id": doctor.id, "actor_id": actor.id})
        return DoctorResponse.model_validate(doctor)

    def get_doctor(self, doctor_id: str, actor: Principal, institution_id: Optional[str] = None) -> DoctorResponse:
        doctor = self._get_in_scope(doctor_id, institution_id)
        self._engine.authorize(
            actor,
            Action.on(ResourceType.DOCTOR, Operation.READ, doctor.institution_ids, own_resource=doctor.id == actor.id),
        )
        return DoctorResponse.model_validate(doctor)

    def list_doctors(
        self,
        actor: Principal,
        paging: PageParams,
        institution_id: Optional[str] = None,
        specialization: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[DoctorResponse], int]:
        self._engine.authorize(actor, Action.on(ResourceType.DOCTOR, Operation.READ, [institution_id]))
        if institution_id is not None:
            scope = [institution_id]
        elif self._engine.can_read_across(actor):
            scope = None
        else:
            scope = sorted(actor.institution_ids)
        doctors, total = self._repo.list(
            institution_ids=scope,
            specialization=specialization,
            search=search,
            offset=paging.offset,
            limit=paging.limit,
        )
        return [DoctorResponse.model_validate(d) for d in doctors], total

    def update_doctor(
        self,
        doctor_id: str,
        data: DoctorUpdate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> DoctorResponse:
        doctor = self._get_in_scope(doctor_id, institution_id)
        self._engine.authorize(
            actor, Action.on(ResourceType.DOCTOR, Operation.UPDATE, doctor.institution_ids)
        )

        if data.institution_ids is not None:
            new_ids = list(dict.fromkeys(data.institution_ids))
            if institution_id is not None and institution_id not in new_ids:
                raise DataValidationError("A doctor cannot be detached from the institution from this route")
            added = [i for i in new_ids if i not in doctor.institution_ids]
            removed = [i for i in doctor.institution_ids if i not in new_ids]
            for changed in (added, removed):
                if changed:
                    self._engine.authorize(actor, Action.on(ResourceType.DOCTOR, Operation.UPDATE, changed))
            self._check_institutions(new_ids)
            doctor.institution_ids = new_ids

        for name in ("name", "email", "specialization", "license_number", "phone", "address"):
            value = getattr(data, name)
            if value is not None:
                setattr(doctor, name, value)
        if data.password is not None:
            doctor.password_hash = hash_password(data.password)

        self._repo.update(doctor)
        logger.info("Doctor updated", extra={"doctor_id": doctor_id, "actor_id": actor.id})
        return DoctorResponse.model_validate(doctor)

    def delete_doctor(self, doctor_id: str, actor: Principal, institution_id: Optional[str] = None) -> None:
        """
        Delete a doctor.

        Raises:
            ReferentialIntegrityError: The doctor still authors medical records.
        """
        doctor = self._get_in_scope(doctor_id, institution_id)
        self._engine.authorize(
            actor, Action.on(ResourceType.DOCTOR, Operation.DELETE, doctor.institution_ids)
        )
        # A delete drops every affiliation.
        foreign = [i for i in doctor.institution_ids if i not in actor.institution_ids]
        if foreign:
            self._engine.authorize(actor, Action.on(ResourceType.DOCTOR, Operation.DELETE, foreign))
        record_count = self._records.count_for_doctor(doctor_id)
        if record_count:
            raise ReferentialIntegrityError(
                f"Doctor has {record_count} medical records and cannot be deleted"
            )
        self._repo.delete(doctor_id)
        logger.info("Doctor deleted", extra={"doctor_id": doctor_id, "actor_id": actor.id})
