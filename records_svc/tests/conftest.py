"""
Shared pytest fixtures for API tests.

Key patterns:

1. Database Isolation: Each test gets a fresh temporary database
2. DI Override: app.dependency_overrides swaps get_database for the temp one;
   every repository and service below it is built from that
3. Real tokens: Principals are authenticated with tokens from the real
   TokenService, so the bearer dependency chain is exercised end to end

Fixture Hierarchy:
    temp_db → repositories → bootstrap → test_app → client
"""
import os
import tempfile
from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set the signing secret before importing config modules
TEST_JWT_SECRET = "test-jwt-secret-for-medical-records-0123456789"
os.environ.setdefault("MEDREC_JWT_SECRET", TEST_JWT_SECRET)

from core import dependencies as deps
from core.exceptions import setup_exception_handlers
from core.middleware import LoggingMiddleware
from core.permissions import RoleName, TokenKind
from core.security import hash_password
from models.doctor import Doctor
from models.enums import Gender, InstitutionType
from models.institution import Institution
from models.medical_record import MedicalRecord
from models.patient import CredentialedPatient, InstitutionManagedPatient
from models.user import User
from repositories import (
    AuditRepository,
    DoctorRepository,
    InstitutionRepository,
    MedicalRecordRepository,
    PatientRepository,
    RoleRepository,
    UserRepository,
)
from repositories.base import Database, new_id
from services.bootstrap_service import BootstrapService

ADMIN_EMAIL = "admin@medicalrecords.test"
ADMIN_PASSWORD = "initial-admin-password"
DEFAULT_PASSWORD = "correct-horse-battery"


@pytest.fixture
def temp_db():
    """
    Create a temporary database for testing.

    A fresh SQLite file per test; WAL side files are removed as well.
    """
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    db = Database(db_path=db_path)
    yield db

    for path in (db_path, db_path + "-wal", db_path + "-shm"):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture
def institution_repo(temp_db):
    return InstitutionRepository(db=temp_db)


@pytest.fixture
def user_repo(temp_db):
    return UserRepository(db=temp_db)


@pytest.fixture
def doctor_repo(temp_db):
    return DoctorRepository(db=temp_db)


@pytest.fixture
def patient_repo(temp_db):
    return PatientRepository(db=temp_db)


@pytest.fixture
def record_repo(temp_db):
    return MedicalRecordRepository(db=temp_db)


@pytest.fixture
def role_repo(temp_db):
    return RoleRepository(db=temp_db)


@pytest.fixture
def audit_repo(temp_db):
    return AuditRepository(db=temp_db)


@pytest.fixture
def bootstrap(user_repo, role_repo):
    """Seed system roles and the initial admin, as the lifespan does."""
    return BootstrapService(
        user_repository=user_repo,
        role_repository=role_repo,
        admin_email=ADMIN_EMAIL,
        admin_name="Test Administrator",
        admin_password=ADMIN_PASSWORD,
    ).run()


@pytest.fixture
def test_app(temp_db, bootstrap):
    """
    Create a FastAPI test app with the real routers.

    Only get_database is overridden; repositories and services are built
    by the production dependency functions on top of it.
    """
    from api.routers import (
        admin_router,
        auth_router,
        doctors_router,
        health_router,
        institution_scoped_router,
        institutions_router,
        medical_records_router,
        patients_router,
    )

    app = FastAPI(title="Medical Records API Test")
    setup_exception_handlers(app)
    app.add_middleware(LoggingMiddleware)
    app.dependency_overrides[deps.get_database] = lambda: temp_db

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(institutions_router)
    app.include_router(institution_scoped_router)
    app.include_router(patients_router)
    app.include_router(doctors_router)
    app.include_router(medical_records_router)
    app.include_router(admin_router)

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)


# =============================================================================
# TOKENS
# =============================================================================

@pytest.fixture
def token_service():
    return deps.get_token_service()


@pytest.fixture
def headers_for(token_service):
    """Bearer headers for a stored user, doctor or patient."""
    def _headers(subject):
        if isinstance(subject, Doctor):
            token = token_service.issue(subject.id, TokenKind.DOCTOR)
        elif isinstance(subject, (CredentialedPatient, InstitutionManagedPatient)):
            token = token_service.issue(subject.patient_id, TokenKind.PATIENT)
        else:
            token = token_service.issue(subject.id, TokenKind.USER)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin(user_repo, bootstrap):
    """The bootstrap admin with its forced password change already done."""
    user = user_repo.get_by_email(ADMIN_EMAIL)
    user.must_change_password = False
    return user_repo.update(user)


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_institution(institution_repo):
    def _make(name="City Hospital", type=InstitutionType.HOSPITAL):
        return institution_repo.create(
            Institution(
                id=new_id(),
                name=name,
                type=type,
                contact={"address": "1 Main Street", "phone": "555-0100"},
                services=["general"],
            )
        )
    return _make


@pytest.fixture
def make_user(user_repo):
    def _make(role=RoleName.NURSE, institution_id=None, permissions=(), email=None, password=DEFAULT_PASSWORD):
        return user_repo.create(
            User(
                id=new_id(),
                name=f"{role.value.title()} User",
                email=email or f"{role.value}-{new_id()[:8]}@example.com",
                password_hash=hash_password(password),
                role=role,
                institution_id=institution_id,
                permissions=list(permissions),
            )
        )
    return _make


@pytest.fixture
def make_doctor(doctor_repo):
    def _make(institution_ids, email=None, license_number=None, password=DEFAULT_PASSWORD):
        suffix = new_id()[:8]
        return doctor_repo.create(
            Doctor(
                id=new_id(),
                name="Dr. Grey",
                email=email or f"doctor-{suffix}@example.com",
                specialization="Cardiology",
                license_number=license_number or f"LIC-{suffix}",
                institution_ids=list(institution_ids),
                password_hash=hash_password(password) if password else None,
            )
        )
    return _make


@pytest.fixture
def make_patient(patient_repo):
    def _make(institution_id=None, patient_id=None, gender=Gender.FEMALE, password=None, name="Jane Roe"):
        fields = dict(
            id=new_id(),
            patient_id=patient_id or f"PAT{new_id()[:6].upper()}",
            name=name,
            date_of_birth=date(1990, 5, 17),
            gender=gender,
            is_pregnant=False if gender is Gender.FEMALE else None,
            blood_type=None,
            contact={"phone": "555-0199"},
            emergency_contact={},
            allergies=["penicillin"],
            insurance_info={},
            institution_id=institution_id,
            created_by=None,
            updated_by=None,
            last_login=None,
            created_at=None,
            updated_at=None,
        )
        if password:
            patient = CredentialedPatient(password_hash=hash_password(password), **fields)
        else:
            patient = InstitutionManagedPatient(**fields)
        return patient_repo.create(patient)
    return _make


@pytest.fixture
def make_record(record_repo):
    def _make(patient_id, doctor_id, institution_id, visit_type="consultation", visit_date="2024-03-01T09:00:00Z"):
        return record_repo.create(
            MedicalRecord(
                id=new_id(),
                patient_id=patient_id,
                doctor_id=doctor_id,
                institution_id=institution_id,
                visit_info={"type": visit_type, "date": visit_date, "is_emergency": False},
                clinical_data={"symptoms": ["cough"], "diagnosis": "Common cold"},
            )
        )
    return _make
