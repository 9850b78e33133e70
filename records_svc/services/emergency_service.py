"""
Emergency access override.

A holder of ``emergency_override`` can read one patient's full history
regardless of institution scope. Each grant is a per-request transition
NORMAL -> GRANTED that happens only after the audit entry is stored; if the
audit write fails, no data leaves the service.
"""
import logging
from enum import Enum
from typing import Optional

from core.exceptions import DataValidationError, ForbiddenError, PatientNotFoundError
from core.permissions import DenyReason, Permission
from models.enums import AuditAction
from models.principal import Principal
from repositories.medical_record_repository import MedicalRecordRepository
from repositories.patient_repository import PatientRepository
from schemas.emergency import EmergencyAccessResponse
from schemas.medical_record import MedicalRecordResponse
from schemas.patient import PatientResponse
from services.audit_service import AuditService

logger = logging.getLogger(__name__)


class EmergencyAccessState(str, Enum):
    NORMAL = "normal"
    GRANTED = "granted"


class EmergencyAccessService:
    def __init__(
        self,
        patient_repository: PatientRepository,
        record_repository: MedicalRecordRepository,
        audit_service: AuditService,
    ):
        self._patients = patient_repository
        self._records = record_repository
        self._audit = audit_service

    def request_access(
        self,
        patient_id: str,
        justification: Optional[str],
        actor: Principal,
        resource_path: Optional[str] = None,
        method: Optional[str] = None,
    ) -> EmergencyAccessResponse:
        """
        Grant emergency read access to a patient and all their records.

        Raises:
            ForbiddenError: The actor lacks ``emergency_override`` (403).
            DataValidationError: Blank justification (400).
            PatientNotFoundError: Unknown identifier (404).
            AuditWriteError: The audit entry could not be stored (500).
        """
        state = EmergencyAccessState.NORMAL

        if not actor.has_permission(Permission.EMERGENCY_OVERRIDE):
            logger.warning(
                "Emergency access denied: missing permission",
                extra={"principal_id": actor.id, "patient_id": patient_id}
            )
            raise ForbiddenError(
                "Emergency override permission required",
                reason=DenyReason.INSUFFICIENT_PERMISSION,
            )
        if justification is None or not justification.strip():
            raise DataValidationError("A justification is required for emergency access")

        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        records = self._records.list_for_patient(patient_id)

        entry = self._audit.record(
            AuditAction.EMERGENCY_OVERRIDE,
            actor,
            resource_path=resource_path,
            method=method,
            details={
                "patient_id": patient_id,
                "justification": justification.strip(),
                "record_count": len(records),
                "patient_institution_id": patient.institution_id,
            },
        )
        state = EmergencyAccessState.GRANTED

        logger.warning(
            "Emergency access granted",
            extra={
                "principal_id": actor.id,
                "patient_id": patient_id,
                "audit_id": entry.id,
                "state": state.value,
            }
        )
        return EmergencyAccessResponse(
            patient=PatientResponse.model_validate(patient),
            medical_records=[MedicalRecordResponse.model_validate(r) for r in records],
            audit_id=entry.id,
            granted_at=entry.created_at,
        )
