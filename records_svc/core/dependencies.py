"""
FastAPI Dependency Injection configuration for the Medical Records API.

Architecture Flow:
    API Layer (Routers)
         ↓ Depends()
    Service Layer (Business Logic)
         ↓ Depends()
    Repository Layer (Data Access)
         ↓ Depends()
    Database (SQLite Connection)

Every factory below receives its collaborators through ``Depends``, so a
single override of ``get_database`` points the whole chain at another
database.

Usage in Routers:
    from core.dependencies import get_patient_service

    @router.get("/{patient_id}")
    async def get_patient(
        patient_id: str,
        patient_service: PatientService = Depends(get_patient_service)
    ):
        ...

Testing:
    app.dependency_overrides[get_database] = lambda: test_database
"""
import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from core.config import settings
from core.security import TokenService
from repositories import (
    AuditRepository,
    Database,
    DoctorRepository,
    InstitutionRepository,
    MedicalRecordRepository,
    PatientRepository,
    RoleRepository,
    UserRepository,
)
from services import (
    AuditService,
    AuthService,
    AuthorizationEngine,
    BootstrapService,
    DoctorService,
    EmergencyAccessService,
    InstitutionService,
    MedicalRecordService,
    PatientService,
    RoleService,
    StatisticsService,
    UserService,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE DEPENDENCY
# =============================================================================

_database_instance: Optional[Database] = None


def get_database() -> Database:
    """
    Get the database instance (singleton, created on first use).

    Returns:
        Database: The configured database instance.
    """
    global _database_instance

    if _database_instance is None:
        logger.info(f"Initializing database: {settings.database_path}")
        _database_instance = Database(
            db_path=settings.database_path,
            busy_timeout=settings.medrec_db_busy_timeout
        )
        logger.info("Database initialized successfully")

    return _database_instance


# =============================================================================
# STATELESS COMPONENTS
# =============================================================================

@lru_cache()
def get_token_service() -> TokenService:
    """Token service configured from settings."""
    return TokenService(
        secret=settings.medrec_jwt_secret,
        algorithm=settings.medrec_jwt_algorithm,
        issuer=settings.medrec_jwt_issuer,
        audience=settings.medrec_jwt_audience,
        staff_ttl=timedelta(minutes=settings.medrec_staff_token_ttl_minutes),
        patient_ttl=timedelta(minutes=settings.medrec_patient_token_ttl_minutes),
    )


@lru_cache()
def get_authorization_engine() -> AuthorizationEngine:
    return AuthorizationEngine()


# =============================================================================
# REPOSITORY DEPENDENCIES
# =============================================================================

def get_institution_repository(db: Database = Depends(get_database)) -> InstitutionRepository:
    return InstitutionRepository(db=db)


def get_user_repository(db: Database = Depends(get_database)) -> UserRepository:
    return UserRepository(db=db)


def get_doctor_repository(db: Database = Depends(get_database)) -> DoctorRepository:
    return DoctorRepository(db=db)


def get_patient_repository(db: Database = Depends(get_database)) -> PatientRepository:
    return PatientRepository(db=db)


def get_medical_record_repository(db: Database = Depends(get_database)) -> MedicalRecordRepository:
    return MedicalRecordRepository(db=db)


def get_role_repository(db: Database = Depends(get_database)) -> RoleRepository:
    return RoleRepository(db=db)


def get_audit_repository(db: Database = Depends(get_database)) -> AuditRepository:
    return AuditRepository(db=db)


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

def get_audit_service(repo: AuditRepository = Depends(get_audit_repository)) -> AuditService:
    return AuditService(audit_repository=repo)


def get_patient_service(
    patient_repo: PatientRepository = Depends(get_patient_repository),
    institution_repo: InstitutionRepository = Depends(get_institution_repository),
    record_repo: MedicalRecordRepository = Depends(get_medical_record_repository),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> PatientService:
    """
    Get a PatientService with its repositories injected.

    Identifier format comes from settings (prefix and digit count).
    """
    return PatientService(
        patient_repository=patient_repo,
        institution_repository=institution_repo,
        record_repository=record_repo,
        engine=engine,
        id_prefix=settings.medrec_patient_id_prefix,
        id_digits=settings.medrec_patient_id_digits,
    )


def get_auth_service(
    db: Database = Depends(get_database),
    user_repo: UserRepository = Depends(get_user_repository),
    doctor_repo: DoctorRepository = Depends(get_doctor_repository),
    patient_repo: PatientRepository = Depends(get_patient_repository),
    role_repo: RoleRepository = Depends(get_role_repository),
    patient_service: PatientService = Depends(get_patient_service),
    token_service: TokenService = Depends(get_token_service),
    audit_service: AuditService = Depends(get_audit_service),
) -> AuthService:
    return AuthService(
        db=db,
        user_repository=user_repo,
        doctor_repository=doctor_repo,
        patient_repository=patient_repo,
        role_repository=role_repo,
        patient_service=patient_service,
        token_service=token_service,
        audit_service=audit_service,
    )


def get_institution_service(
    db: Database = Depends(get_database),
    institution_repo: InstitutionRepository = Depends(get_institution_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    audit_service: AuditService = Depends(get_audit_service),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> InstitutionService:
    return InstitutionService(
        db=db,
        institution_repository=institution_repo,
        user_repository=user_repo,
        audit_service=audit_service,
        engine=engine,
    )


def get_user_service(
    user_repo: UserRepository = Depends(get_user_repository),
    institution_repo: InstitutionRepository = Depends(get_institution_repository),
    audit_service: AuditService = Depends(get_audit_service),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> UserService:
    return UserService(
        user_repository=user_repo,
        institution_repository=institution_repo,
        audit_service=audit_service,
        engine=engine,
    )


def get_doctor_service(
    doctor_repo: DoctorRepository = Depends(get_doctor_repository),
    institution_repo: InstitutionRepository = Depends(get_institution_repository),
    record_repo: MedicalRecordRepository = Depends(get_medical_record_repository),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> DoctorService:
    return DoctorService(
        doctor_repository=doctor_repo,
        institution_repository=institution_repo,
        record_repository=record_repo,
        engine=engine,
    )


def get_medical_record_service(
    record_repo: MedicalRecordRepository = Depends(get_medical_record_repository),
    patient_repo: PatientRepository = Depends(get_patient_repository),
    doctor_repo: DoctorRepository = Depends(get_doctor_repository),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> MedicalRecordService:
    return MedicalRecordService(
        record_repository=record_repo,
        patient_repository=patient_repo,
        doctor_repository=doctor_repo,
        engine=engine,
    )


def get_role_service(
    role_repo: RoleRepository = Depends(get_role_repository),
    audit_service: AuditService = Depends(get_audit_service),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> RoleService:
    return RoleService(role_repository=role_repo, audit_service=audit_service, engine=engine)


def get_emergency_service(
    patient_repo: PatientRepository = Depends(get_patient_repository),
    record_repo: MedicalRecordRepository = Depends(get_medical_record_repository),
    audit_service: AuditService = Depends(get_audit_service),
) -> EmergencyAccessService:
    return EmergencyAccessService(
        patient_repository=patient_repo,
        record_repository=record_repo,
        audit_service=audit_service,
    )


def get_statistics_service(
    db: Database = Depends(get_database),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> StatisticsService:
    return StatisticsService(
        institution_repository=InstitutionRepository(db=db),
        user_repository=UserRepository(db=db),
        patient_repository=PatientRepository(db=db),
        doctor_repository=DoctorRepository(db=db),
        record_repository=MedicalRecordRepository(db=db),
        engine=engine,
    )


# =============================================================================
# NON-REQUEST FACTORIES
# =============================================================================

def build_bootstrap_service(db: Database) -> BootstrapService:
    """Bootstrap runs from the lifespan, outside any request, so it is built directly."""
    return BootstrapService(
        user_repository=UserRepository(db=db),
        role_repository=RoleRepository(db=db),
        admin_email=settings.medrec_bootstrap_admin_email,
        admin_name=settings.medrec_bootstrap_admin_name,
        admin_password=settings.medrec_bootstrap_admin_password or None,
    )
