"""
Institution-scoped router - users, patients, doctors, medical records and
statistics nested under /api/v1/institutions/{institution_id}.

Every endpoint first requires the institution to exist (404) and the caller
to be affiliated with it unless the caller is an admin (403 ScopeViolation).
Cross-institution grants do not open these routes. The resource policy is
then applied by the service.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import get_active_principal
from core.dependencies import (
    get_authorization_engine,
    get_doctor_service,
    get_institution_service,
    get_medical_record_service,
    get_patient_service,
    get_statistics_service,
    get_user_service,
)
from core.permissions import RoleName
from models.enums import BloodType, Gender, VisitType
from models.principal import Principal
from schemas import (
    ApiResponse,
    DoctorCreate,
    DoctorResponse,
    DoctorUpdate,
    MedicalRecordCreate,
    MedicalRecordResponse,
    MedicalRecordUpdate,
    PageParams,
    PatientCreate,
    PatientResponse,
    PatientUpdate,
    Statistics,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from services import (
    AuthorizationEngine,
    DoctorService,
    InstitutionService,
    MedicalRecordService,
    PatientService,
    StatisticsService,
    UserService,
)

logger = logging.getLogger(__name__)


async def institution_member(
    institution_id: str,
    principal: Principal = Depends(get_active_principal),
    institution_service: InstitutionService = Depends(get_institution_service),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> Principal:
    """Resolve the caller and check it may enter the institution's routes."""
    institution_service.get_model(institution_id)
    engine.enforce_institution_path(principal, institution_id)
    return principal


router = APIRouter(prefix="/api/v1/institutions/{institution_id}", tags=["Institution resources"])


# =============================================================================
# USERS
# =============================================================================

@router.get("/users", response_model=ApiResponse[List[UserResponse]], summary="List institution users")
async def list_users(
    institution_id: str,
    paging: PageParams = Depends(),
    role: Optional[RoleName] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(institution_member),
    user_service: UserService = Depends(get_user_service)
):
    items, total = user_service.list_users(principal, paging, institution_id=institution_id, role=role, search=search)
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post("/users", response_model=ApiResponse[UserResponse], status_code=201, summary="Create institution user")
async def create_user(
    institution_id: str,
    body: UserCreate,
    principal: Principal = Depends(institution_member),
    user_service: UserService = Depends(get_user_service)
):
    return ApiResponse(message="User created", data=user_service.create_user(body, principal, institution_id))


@router.get("/users/{user_id}", response_model=ApiResponse[UserResponse], summary="Get institution user")
async def get_user(
    institution_id: str,
    user_id: str,
    principal: Principal = Depends(institution_member),
    user_service: UserService = Depends(get_user_service)
):
    return ApiResponse(data=user_service.get_user(user_id, principal, institution_id))


@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse], summary="Update institution user")
async def update_user(
    institution_id: str,
    user_id: str,
    body: UserUpdate,
    principal: Principal = Depends(institution_member),
    user_service: UserService = Depends(get_user_service)
):
    return ApiResponse(message="User updated", data=user_service.update_user(user_id, body, principal, institution_id))


@router.delete("/users/{user_id}", response_model=ApiResponse, summary="Delete institution user")
async def delete_user(
    institution_id: str,
    user_id: str,
    principal: Principal = Depends(institution_member),
    user_service: UserService = Depends(get_user_service)
):
    user_service.delete_user(user_id, principal, institution_id)
    return ApiResponse(message="User deleted")


# =============================================================================
# PATIENTS
# =============================================================================

@router.get("/patients", response_model=ApiResponse[List[PatientResponse]], summary="List institution patients")
async def list_patients(
    institution_id: str,
    paging: PageParams = Depends(),
    gender: Optional[Gender] = Query(None),
    blood_type: Optional[BloodType] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(institution_member),
    patient_service: PatientService = Depends(get_patient_service)
):
    items, total = patient_service.list_patients(
        principal,
        paging,
        institution_id=institution_id,
        gender=gender.value if gender else None,
        blood_type=blood_type.value if blood_type else None,
        search=search,
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post("/patients", response_model=ApiResponse[PatientResponse], status_code=201, summary="Register patient")
async def create_patient(
    institution_id: str,
    body: PatientCreate,
    principal: Principal = Depends(institution_member),
    patient_service: PatientService = Depends(get_patient_service)
):
    return ApiResponse(
        message="Patient created",
        data=patient_service.create_patient(body, principal, institution_id),
    )


@router.get("/patients/{patient_id}", response_model=ApiResponse[PatientResponse], summary="Get institution patient")
async def get_patient(
    institution_id: str,
    patient_id: str,
    principal: Principal = Depends(institution_member),
    patient_service: PatientService = Depends(get_patient_service)
):
    return ApiResponse(data=patient_service.get_patient(patient_id, principal, institution_id))


@router.put("/patients/{patient_id}", response_model=ApiResponse[PatientResponse], summary="Update institution patient")
async def update_patient(
    institution_id: str,
    patient_id: str,
    body: PatientUpdate,
    principal: Principal = Depends(institution_member),
    patient_service: PatientService = Depends(get_patient_service)
):
    return ApiResponse(
        message="Patient updated",
        data=patient_service.update_patient(patient_id, body, principal, institution_id),
    )


@router.delete("/patients/{patient_id}", response_model=ApiResponse, summary="Delete institution patient")
async def delete_patient(
    institution_id: str,
    patient_id: str,
    principal: Principal = Depends(institution_member),
    patient_service: PatientService = Depends(get_patient_service)
):
    patient_service.delete_patient(patient_id, principal, institution_id)
    return ApiResponse(message="Patient deleted")


# =============================================================================
# DOCTORS
# =============================================================================

@router.get("/doctors", response_model=ApiResponse[List[DoctorResponse]], summary="List institution doctors")
async def list_doctors(
    institution_id: str,
    paging: PageParams = Depends(),
    specialization: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(institution_member),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    items, total = doctor_service.list_doctors(
        principal, paging, institution_id=institution_id, specialization=specialization, search=search
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post("/doctors", response_model=ApiResponse[DoctorResponse], status_code=201, summary="Register doctor")
async def create_doctor(
    institution_id: str,
    body: DoctorCreate,
    principal: Principal = Depends(institution_member),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return ApiResponse(message="Doctor created", data=doctor_service.create_doctor(body, principal, institution_id))


@router.get("/doctors/{doctor_id}", response_model=ApiResponse[DoctorResponse], summary="Get institution doctor")
async def get_doctor(
    institution_id: str,
    doctor_id: str,
    principal: Principal = Depends(institution_member),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return ApiResponse(data=doctor_service.get_doctor(doctor_id, principal, institution_id))


@router.put("/doctors/{doctor_id}", response_model=ApiResponse[DoctorResponse], summary="Update institution doctor")
async def update_doctor(
    institution_id: str,
    doctor_id: str,
    body: DoctorUpdate,
    principal: Principal = Depends(institution_member),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return ApiResponse(
        message="Doctor updated",
        data=doctor_service.update_doctor(doctor_id, body, principal, institution_id),
    )


@router.delete("/doctors/{doctor_id}", response_model=ApiResponse, summary="Delete institution doctor")
async def delete_doctor(
    institution_id: str,
    doctor_id: str,
    principal: Principal = Depends(institution_member),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    doctor_service.delete_doctor(doctor_id, principal, institution_id)
    return ApiResponse(message="Doctor deleted")


# =============================================================================
# MEDICAL RECORDS
# =============================================================================

@router.get(
    "/medical-records",
    response_model=ApiResponse[List[MedicalRecordResponse]],
    summary="List institution medical records"
)
async def list_records(
    institution_id: str,
    paging: PageParams = Depends(),
    patient_id: Optional[str] = Query(None),
    doctor_id: Optional[str] = Query(None),
    visit_type: Optional[VisitType] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    principal: Principal = Depends(institution_member),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    items, total = record_service.list_records(
        principal,
        paging,
        institution_id=institution_id,
        patient_id=patient_id,
        doctor_id=doctor_id,
        visit_type=visit_type.value if visit_type else None,
        date_from=date_from,
        date_to=date_to,
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post(
    "/medical-records",
    response_model=ApiResponse[MedicalRecordResponse],
    status_code=201,
    summary="Create institution medical record"
)
async def create_record(
    institution_id: str,
    body: MedicalRecordCreate,
    principal: Principal = Depends(institution_member),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(
        message="Medical record created",
        data=record_service.create_record(body, principal, institution_id),
    )


@router.get(
    "/medical-records/{record_id}",
    response_model=ApiResponse[MedicalRecordResponse],
    summary="Get institution medical record"
)
async def get_record(
    institution_id: str,
    record_id: str,
    principal: Principal = Depends(institution_member),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(data=record_service.get_record(record_id, principal, institution_id))


@router.put(
    "/medical-records/{record_id}",
    response_model=ApiResponse[MedicalRecordResponse],
    summary="Update institution medical record"
)
async def update_record(
    institution_id: str,
    record_id: str,
    body: MedicalRecordUpdate,
    principal: Principal = Depends(institution_member),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(
        message="Medical record updated",
        data=record_service.update_record(record_id, body, principal, institution_id),
    )


@router.delete("/medical-records/{record_id}", response_model=ApiResponse, summary="Delete institution medical record")
async def delete_record(
    institution_id: str,
    record_id: str,
    principal: Principal = Depends(institution_member),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    record_service.delete_record(record_id, principal, institution_id)
    return ApiResponse(message="Medical record deleted")


# =============================================================================
# STATISTICS
# =============================================================================

@router.get("/statistics", response_model=ApiResponse[Statistics], summary="Institution statistics")
async def institution_statistics(
    institution_id: str,
    principal: Principal = Depends(institution_member),
    statistics_service: StatisticsService = Depends(get_statistics_service)
):
    return ApiResponse(data=statistics_service.for_institution(institution_id, principal))
