"""
Patients router - global patient CRUD and emergency access.

Patients are addressed by their human-facing identifier (e.g. P-482913).
Listing is limited to the caller's institutions plus patients registered
without one, unless the caller may read across institutions.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from core.auth import get_active_principal
from core.dependencies import get_emergency_service, get_patient_service
from models.enums import BloodType, Gender
from models.principal import Principal
from schemas import (
    ApiResponse,
    EmergencyAccessRequest,
    EmergencyAccessResponse,
    PageParams,
    PatientCreate,
    PatientResponse,
    PatientUpdate,
)
from services import EmergencyAccessService, PatientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/patients", tags=["Patients"])


@router.get("", response_model=ApiResponse[List[PatientResponse]], summary="List patients")
async def list_patients(
    paging: PageParams = Depends(),
    gender: Optional[Gender] = Query(None),
    blood_type: Optional[BloodType] = Query(None),
    search: Optional[str] = Query(None, max_length=100, description="Name or identifier"),
    principal: Principal = Depends(get_active_principal),
    patient_service: PatientService = Depends(get_patient_service)
):
    items, total = patient_service.list_patients(
        principal,
        paging,
        gender=gender.value if gender else None,
        blood_type=blood_type.value if blood_type else None,
        search=search,
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post(
    "",
    response_model=ApiResponse[PatientResponse],
    status_code=201,
    summary="Register a patient",
    description="A patient identifier is generated when none is supplied."
)
async def create_patient(
    body: PatientCreate,
    principal: Principal = Depends(get_active_principal),
    patient_service: PatientService = Depends(get_patient_service)
):
    return ApiResponse(message="Patient created", data=patient_service.create_patient(body, principal))


@router.get("/{patient_id}", response_model=ApiResponse[PatientResponse], summary="Get a patient")
async def get_patient(
    patient_id: str,
    principal: Principal = Depends(get_active_principal),
    patient_service: PatientService = Depends(get_patient_service)
):
    return ApiResponse(data=patient_service.get_patient(patient_id, principal))


@router.put("/{patient_id}", response_model=ApiResponse[PatientResponse], summary="Update a patient")
async def update_patient(
    patient_id: str,
    body: PatientUpdate,
    principal: Principal = Depends(get_active_principal),
    patient_service: PatientService = Depends(get_patient_service)
):
    return ApiResponse(message="Patient updated", data=patient_service.update_patient(patient_id, body, principal))


@router.delete(
    "/{patient_id}",
    response_model=ApiResponse,
    summary="Delete a patient",
    description="Refused with 409 while medical records reference the patient."
)
async def delete_patient(
    patient_id: str,
    principal: Principal = Depends(get_active_principal),
    patient_service: PatientService = Depends(get_patient_service)
):
    patient_service.delete_patient(patient_id, principal)
    return ApiResponse(message="Patient deleted")


@router.post(
    "/{patient_id}/emergency-access",
    response_model=ApiResponse[EmergencyAccessResponse],
    summary="Emergency access to a patient",
    description=(
        "Requires the emergency_override permission and a justification. "
        "The grant is audited before any data is returned; if the audit "
        "write fails the request fails."
    )
)
async def emergency_access(
    patient_id: str,
    body: EmergencyAccessRequest,
    request: Request,
    principal: Principal = Depends(get_active_principal),
    emergency_service: EmergencyAccessService = Depends(get_emergency_service)
):
    result = emergency_service.request_access(
        patient_id,
        body.justification,
        principal,
        resource_path=request.url.path,
        method=request.method,
    )
    return ApiResponse(message="Emergency access granted", data=result)
