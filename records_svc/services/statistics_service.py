"""
Entity counts for dashboards.
"""
import logging

from core.permissions import Operation, ResourceType
from models.principal import Principal
from repositories.doctor_repository import DoctorRepository
from repositories.institution_repository import InstitutionRepository
from repositories.medical_record_repository import MedicalRecordRepository
from repositories.patient_repository import PatientRepository
from repositories.user_repository import UserRepository
from schemas.statistics import Statistics
from services.authorization_service import Action, AuthorizationEngine

logger = logging.getLogger(__name__)


class StatisticsService:
    def __init__(
        self,
        institution_repository: InstitutionRepository,
        user_repository: UserRepository,
        patient_repository: PatientRepository,
        doctor_repository: DoctorRepository,
        record_repository: MedicalRecordRepository,
        engine: AuthorizationEngine,
    ):
        self._institutions = institution_repository
        self._users = user_repository
        self._patients = patient_repository
        self._doctors = doctor_repository
        self._records = record_repository
        self._engine = engine

    def for_institution(self, institution_id: str, actor: Principal) -> Statistics:
        self._engine.authorize(actor, Action.on(ResourceType.STATISTICS, Operation.READ, [institution_id]))
        return Statistics(
            institution_id=institution_id,
            users=self._users.count(institution_id),
            patients=self._patients.count(institution_id),
            doctors=self._doctors.count(institution_id),
            medical_records=self._records.count(institution_id),
            records_by_visit_type=self._records.count_by_visit_type(institution_id),
        )

    def system(self, actor: Principal) -> Statistics:
        self._engine.authorize(actor, Action.on(ResourceType.STATISTICS, Operation.READ))
        return Statistics(
            institutions=self._institutions.count(),
            users=self._users.count(),
            patients=self._patients.count(),
            doctors=self._doctors.count(),
            medical_records=self._records.count(),
            records_by_visit_type=self._records.count_by_visit_type(),
        )
