"""
Service layer for medical records.

Records are scoped by their authoring institution. The authoring doctor
counts as the record's owner, so it can keep working on its records after
moving to another institution.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from core.datetime_utils import to_db_string
from core.exceptions import (
    DataValidationError,
    DoctorNotFoundError,
    ForbiddenError,
    PatientNotFoundError,
    RecordNotFoundError,
)
from core.permissions import DenyReason, Operation, ResourceType
from models.medical_record import MedicalRecord
from models.principal import Principal
from repositories.base import new_id
from repositories.doctor_repository import DoctorRepository
from repositories.medical_record_repository import MedicalRecordRepository, RecordFilters
from repositories.patient_repository import PatientRepository
from schemas.common import PageParams
from schemas.medical_record import (
    MedicalRecordCreate,
    MedicalRecordResponse,
    MedicalRecordUpdate,
    PatientRecordsResponse,
    PatientSummary,
    VisitInfo,
)
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


def visit_info_to_store(visit_info: VisitInfo) -> dict:
    """Serialize visit info with UTC timestamps so stored dates sort and compare as text."""
    data = visit_info.model_dump(mode="json")
    for key in ("date", "admission_date", "discharge_date"):
        data[key] = to_db_string(getattr(visit_info, key))
    return data


class MedicalRecordService:
    """Medical record CRUD and patient self-access."""

    def __init__(
        self,
        record_repository: MedicalRecordRepository,
        patient_repository: PatientRepository,
        doctor_repository: DoctorRepository,
        engine: AuthorizationEngine,
    ):
        self._repo = record_repository
        self._patients = patient_repository
        self._doctors = doctor_repository
        self._engine = engine

    def _get_in_scope(self, record_id: str, institution_id: Optional[str]) -> MedicalRecord:
        record = self._repo.get(record_id)
        if record is None or (institution_id is not None and record.institution_id != institution_id):
            raise RecordNotFoundError()
        return record

    def _action(self, operation: Operation, record: MedicalRecord, actor: Principal) -> Action:
        return Action.on(
            ResourceType.MEDICAL_RECORD,
            operation,
            [record.institution_id],
            own_resource=record.doctor_id == actor.id,
        )

    def create_record(
        self,
        data: MedicalRecordCreate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> MedicalRecordResponse:
        """
        Create a record.

        The authoring institution is the path institution on nested routes,
        otherwise the body value, otherwise the caller's own institution.

        Raises:
            PatientNotFoundError / DoctorNotFoundError: Unknown references.
        """
        target = institution_id or data.institution_id or actor.primary_institution_id
        if target is None and actor.institution_ids:
            raise DataValidationError("institution_id is required")

        self._engine.authorize(actor, Action.on(ResourceType.MEDICAL_RECORD, Operation.CREATE, [target]))

        if self._patients.get(data.patient_id) is None:
            raise PatientNotFoundError(patient_id=data.patient_id)
        if self._doctors.get(data.doctor_id) is None:
            raise DoctorNotFoundError()

        record = MedicalRecord(
            id=new_id(),
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            institution_id=target,
            visit_info=visit_info_to_store(data.visit_info),
            clinical_data=data.clinical_data.model_dump(mode="json"),
            prescriptions=[p.model_dump(mode="json") for p in data.prescriptions],
            lab_results=[r.model_dump(mode="json") for r in data.lab_results],
            attachments=[a.model_dump(mode="json") for a in data.attachments],
            created_by=actor.id,
            updated_by=actor.id,
        )
        self._repo.create(record)
        logger.info(
            "Medical record created",
            extra={"record_id": record.id, "patient_id": record.patient_id, "actor_id": actor.id}
        )
        return MedicalRecordResponse.model_validate(record)

    def get_record(
        self, record_id: str, actor: Principal, institution_id: Optional[str] = None
    ) -> MedicalRecordResponse:
        record = self._get_in_scope(record_id, institution_id)
        self._engine.authorize(actor, self._action(Operation.READ, record, actor))
        return MedicalRecordResponse.model_validate(record)

    def list_records(
        self,
        actor: Principal,
        paging: PageParams,
        institution_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        visit_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Tuple[List[MedicalRecordResponse], int]:
        self._engine.authorize(
            actor, Action.on(ResourceType.MEDICAL_RECORD, Operation.READ, [institution_id])
        )
        if institution_id is not None:
            scope = [institution_id]
        elif self._engine.can_read_across(actor):
            scope = None
        else:
            scope = sorted(actor.institution_ids)

        filters = RecordFilters(
            patient_id=patient_id,
            doctor_id=doctor_id,
            visit_type=visit_type,
            date_from=to_db_string(date_from),
            date_to=f"{date_to.isoformat()}T23:59:59Z" if date_to else None,
            institution_ids=scope,
        )
        records, total = self._repo.list(filters, offset=paging.offset, limit=paging.limit)
        return [MedicalRecordResponse.model_validate(r) for r in records], total

    def list_for_patient(self, patient_id: str, actor: Principal) -> PatientRecordsResponse:
        """
        All records of one patient across institutions, with a short patient summary.

        Only the patient themself (patient token for the same identifier) or
        an admin may use this path.
        """
        is_self = actor.is_patient and actor.patient_identifier == patient_id
        if not (is_self or actor.is_admin):
            logger.warning(
                "Patient record lookup denied",
                extra={"principal_id": actor.id, "patient_id": patient_id}
            )
            raise ForbiddenError("You can only view your own medical records", reason=DenyReason.INSUFFICIENT_PERMISSION)
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        records = [MedicalRecordResponse.model_validate(r) for r in self._repo.list_for_patient(patient_id)]
        return PatientRecordsResponse(
            patient=PatientSummary.model_validate(patient),
            count=len(records),
            medical_records=records,
        )

    def update_record(
        self,
        record_id: str,
        data: MedicalRecordUpdate,
        actor: Principal,
        institution_id: Optional[str] = None,
    ) -> MedicalRecordResponse:
        record = self._get_in_scope(record_id, institution_id)
        self._engine.authorize(actor, self._action(Operation.UPDATE, record, actor))

        if data.doctor_id is not None and data.doctor_id != record.doctor_id:
            if self._doctors.get(data.doctor_id) is None:
                raise DoctorNotFoundError()
            record.doctor_id = data.doctor_id
        if data.visit_info is not None:
            record.visit_info = visit_info_to_store(data.visit_info)
        if data.clinical_data is not None:
            record.clinical_data = data.clinical_data.model_dump(mode="json")
        if data.prescriptions is not None:
            record.prescriptions = [p.model_dump(mode="json") for p in data.prescriptions]
        if data.lab_results is not None:
            record.lab_results = [r.model_dump(mode="json") for r in data.lab_results]
        if data.attachments is not None:
            record.attachments = [a.model_dump(mode="json") for a in data.attachments]
        record.updated_by = actor.id

        self._repo.update(record)
        logger.info("Medical record updated", extra={"record_id": record_id, "actor_id": actor.id})
        return MedicalRecordResponse.model_validate(record)

    def delete_record(self, record_id: str, actor: Principal, institution_id: Optional[str] = None) -> None:
        record = self._get_in_scope(record_id, institution_id)
        self._engine.authorize(actor, self._action(Operation.DELETE, record, actor))
        self._repo.delete(record_id)
        logger.info("Medical record deleted", extra={"record_id": record_id, "actor_id": actor.id})
