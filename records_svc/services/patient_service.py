"""
Service layer for patient operations.

Owns identifier generation, the pregnancy rule and the authorization checks
for patient CRUD.

Architecture:
    API Layer (routers) → PatientService → PatientRepository → Database

Dependency Injection:
    PatientService receives its collaborators via constructor injection.
    Use core.dependencies.get_patient_service() in routers with Depends().
"""
import logging
import secrets
import sqlite3
from typing import List, Optional, Tuple

from core.exceptions import (
    DataValidationError,
    DuplicateError,
    InstitutionNotFoundError,
    InvalidCredentialsError,
    PatientNotFoundError,
    ReferentialIntegrityError,
)
from core.permissions import Operation, ResourceType
from core.security import hash_password, verify_password
from models.enums import Gender
from models.patient import CredentialedPatient, InstitutionManagedPatient, Patient
from models.principal import Principal
from repositories.base import new_id
from repositories.institution_repository import InstitutionRepository
from repositories.medical_record_repository import MedicalRecordRepository
from repositories.patient_repository import PatientRepository
from schemas.auth import PatientSignUpRequest
from schemas.common import PageParams
from schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


def apply_pregnancy_rule(gender: Gender, is_pregnant: Optional[bool]) -> Optional[bool]:
    """
    Normalize ``is_pregnant`` for ``gender``.

    Male patients never carry a pregnancy flag; an explicit ``True`` is
    rejected. Female patients default to ``False``.

    Raises:
        DataValidationError: ``is_pregnant=True`` for a male patient.
    """
    if gender is Gender.MALE:
        if is_pregnant:
            raise DataValidationError("is_pregnant can only be set for female patients")
        return None
    return bool(is_pregnant)


class PatientService:
    """
    Service layer for patient operations.

    Patients are shared resources addressed by their identifier; their
    optional ``institution_id`` is what the Authorization Engine scopes on.
    """

    def __init__(
        self,
        patient_repository: PatientRepository,
        institution_repository: InstitutionRepository,
        record_repository: MedicalRecordRepository,
        engine: AuthorizationEngine,
        id_prefix: str = "PAT",
        id_digits: int = 6,
    ):
        self._repo = patient_repository
        self._institutions = institution_repository
        self._records = record_repository
        self._engine = engine
        self._id_prefix = id_prefix
        self._id_digits = id_digits

    # =========================================================================
    # IDENTIFIERS
    # =========================================================================

    def generate_identifier(self) -> str:
        """Prefix plus a uniformly random, zero-padded numeric suffix, e.g. PAT004217."""
        suffix = secrets.randbelow(10 ** self._id_digits)
        return f"{self._id_prefix}{suffix:0{self._id_digits}d}"

    def _insert(self, patient: Patient, supplied: bool, conn: Optional[sqlite3.Connection] = None) -> Patient:
        """
        Store ``patient``, generating its identifier unless one was supplied.

        A supplied identifier that collides is a conflict. A generated one
        that collides (pre-check or UNIQUE violation) is regenerated.
        """
        if supplied:
            return self._repo.create(patient, conn=conn)

        attempts = 0
        while True:
            attempts += 1
            patient.patient_id = self.generate_identifier()
            if self._repo.identifier_exists(patient.patient_id):
                logger.info("Generated patient identifier already taken, regenerating",
                            extra={"attempt": attempts})
                continue
            try:
                created = self._repo.create(patient, conn=conn)
            except DuplicateError as e:
                if e.field != "patient_id":
                    raise
                logger.info("Patient identifier collided on insert, regenerating",
                            extra={"attempt": attempts})
                continue
            return created

    # =========================================================================
    # HELPERS
    # =========================================================================

    def get_model(self, patient_id: str) -> Patient:
        patient = self._repo.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        return patient

    def _get_in_scope(self, patient_id: str, institution_id: Optional[str]) -> Patient:
        patient = self.get_model(patient_id)
        # On nested routes a patient of another institution does not exist.
        if institution_id is not None and patient.institution_id != institution_id:
            raise PatientNotFoundError(patient_id=patient_id)
        return patient

    def _require_institution(self, institution_id: Optional[str]) -> None:
        if institution_id is not None and not self._institutions.exists(institution_id):
            raise InstitutionNotFoundError()

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def create_patient(
        self,
        data: PatientCreate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> PatientResponse:
        """
        Register a patient.

        Args:
            data: Validated request body.
            actor: Calling principal.
            institution_id: Path institution on nested routes; overrides the body.

        Raises:
            ForbiddenError: Engine denial.
            DataValidationError: Pregnancy rule, or no institution for a non-admin
                affiliated with several.
            DuplicateError: Supplied identifier already in use.
        """
        target = institution_id or data.institution_id
        if target is None and not actor.is_admin:
            target = actor.primary_institution_id
            if target is None and actor.institution_ids:
                raise DataValidationError("institution_id is required")

        self._engine.authorize(actor, Action.on(ResourceType.PATIENT, Operation.CREATE, [target]))
        self._require_institution(target)

        fields = dict(
            id=new_id(),
            patient_id=data.patient_id or "",
            name=data.name,
            date_of_birth=data.date_of_birth,
            gender=data.gender,
            is_pregnant=apply_pregnancy_rule(data.gender, data.is_pregnant),
            blood_type=data.blood_type,
            contact=data.contact.model_dump(exclude_none=True),
            emergency_contact=data.emergency_contact.model_dump(exclude_none=True),
            allergies=list(data.allergies),
            insurance_info=data.insurance_info.model_dump(mode="json", exclude_none=True),
            institution_id=target,
            created_by=actor.id,
            updated_by=actor.id,
            last_login=None,
            created_at=None,
            updated_at=None,
        )
        if data.password:
            patient = CredentialedPatient(password_hash=hash_password(data.password), **fields)
        else:
            patient = InstitutionManagedPatient(**fields)

        created = self._insert(patient, supplied=data.patient_id is not None)
        logger.info(
            "Patient created",
            extra={"patient_id": created.patient_id, "institution_id": target, "actor_id": actor.id}
        )
        return PatientResponse.model_validate(created)

    def register_self(self, request: PatientSignUpRequest, conn: Optional[sqlite3.Connection] = None) -> CredentialedPatient:
        """Create an institution-less credentialed patient from a sign-up request."""
        patient = CredentialedPatient(
            id=new_id(),
            patient_id="",
            name=request.name,
            date_of_birth=request.date_of_birth,
            gender=request.gender,
            is_pregnant=apply_pregnancy_rule(request.gender, None),
            blood_type=None,
            contact=request.contact.model_dump(exclude_none=True),
            emergency_contact=request.emergency_contact.model_dump(exclude_none=True),
            allergies=list(request.allergies),
            insurance_info={},
            institution_id=None,
            created_by=None,
            updated_by=None,
            last_login=None,
            created_at=None,
            updated_at=None,
            password_hash=hash_password(request.password),
        )
        return self._insert(patient, supplied=False, conn=conn)

    def get_patient(self, patient_id: str, actor: Principal, institution_id: Optional[str] = None) -> PatientResponse:
        patient = self._get_in_scope(patient_id, institution_id)
        self._engine.authorize(
            actor, Action.on(ResourceType.PATIENT, Operation.READ, [patient.institution_id])
        )
        return PatientResponse.model_validate(patient)

    def list_patients(
        self,
        actor: Principal,
        paging: PageParams,
        institution_id: Optional[str] = None,
        gender: Optional[str] = None,
        blood_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[PatientResponse], int]:
        """
        List patients visible to ``actor``.

        Nested routes see their institution only. Global listing is limited
        to the actor's institutions plus institution-less patients unless the
        actor may read across institutions.
        """
        self._engine.authorize(
            actor, Action.on(ResourceType.PATIENT, Operation.READ, [institution_id])
        )
        if institution_id is not None:
            scope, include_unaffiliated = [institution_id], False
        elif self._engine.can_read_across(actor):
            scope, include_unaffiliated = None, False
        else:
            scope, include_unaffiliated = sorted(actor.institution_ids), True

        patients, total = self._repo.list(
            institution_ids=scope,
            include_unaffiliated=include_unaffiliated,
            gender=gender,
            blood_type=blood_type,
            search=search,
            offset=paging.offset,
            limit=paging.limit,
        )
        return [PatientResponse.model_validate(p) for p in patients], total

    def update_patient(
        self,
        patient_id: str,
        data: PatientUpdate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> PatientResponse:
        """
        Apply a partial update.

        The pregnancy rule is evaluated on the merged state: switching gender
        to male clears ``is_pregnant``; an explicit ``True`` for a male patient
        is rejected.
        """
        patient = self._get_in_scope(patient_id, institution_id)
        self._engine.authorize(
            actor, Action.on(ResourceType.PATIENT, Operation.UPDATE, [patient.institution_id])
        )

        changes = data.model_dump(exclude_unset=True)
        if "institution_id" in changes and changes["institution_id"] != patient.institution_id:
            if institution_id is not None:
                raise DataValidationError("A patient cannot be moved out of the institution from this route")
            new_institution = changes["institution_id"]
            self._engine.authorize(
                actor, Action.on(ResourceType.PATIENT, Operation.UPDATE, [new_institution])
            )
            self._require_institution(new_institution)
            patient.institution_id = new_institution

        for name in ("name", "date_of_birth", "allergies"):
            if changes.get(name) is not None:
                setattr(patient, name, getattr(data, name))
        if "blood_type" in changes:
            patient.blood_type = data.blood_type
        if data.gender is not None:
            patient.gender = data.gender
        for name in ("contact", "emergency_contact", "insurance_info"):
            value = getattr(data, name)
            if value is not None:
                setattr(patient, name, value.model_dump(mode="json", exclude_none=True))

        requested = data.is_pregnant if "is_pregnant" in changes else patient.is_pregnant
        if patient.gender is Gender.MALE and "is_pregnant" not in changes:
            requested = None
        patient.is_pregnant = apply_pregnancy_rule(patient.gender, requested)

        patient.updated_by = actor.id
        updated = self._repo.update(patient)
        logger.info("Patient updated", extra={"patient_id": patient_id, "actor_id": actor.id})
        return PatientResponse.model_validate(updated)

    def delete_patient(self, patient_id: str, actor: Principal, institution_id: Optional[str] = None) -> None:
        """
        Delete a patient.

        Raises:
            ReferentialIntegrityError: The patient still has medical records.
        """
        patient = self._get_in_scope(patient_id, institution_id)
        self._engine.authorize(
            actor, Action.on(ResourceType.PATIENT, Operation.DELETE, [patient.institution_id])
        )
        record_count = self._records.count_for_patient(patient_id)
        if record_count:
            raise ReferentialIntegrityError(
                f"Patient '{patient_id}' has {record_count} medical records and cannot be deleted"
            )
        self._repo.delete(patient_id)
        logger.info("Patient deleted", extra={"patient_id": patient_id, "actor_id": actor.id})

    def set_password(self, patient_id: str, current_password: str, new_password: str) -> None:
        """Rotate a credentialed patient's password."""
        patient = self.get_model(patient_id)
        if not isinstance(patient, CredentialedPatient) or not verify_password(patient.password_hash, current_password):
            raise InvalidCredentialsError("Current password is incorrect")
        self._repo.set_password_hash(patient_id, hash_password(new_password))
