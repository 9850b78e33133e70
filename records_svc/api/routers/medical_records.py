"""
Medical records router - record CRUD with filters and a patient's own view.

Architecture:
    HTTP Request → Router (this file) → MedicalRecordService → Repository → Database
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import get_active_principal
from core.dependencies import get_medical_record_service
from models.enums import VisitType
from models.principal import Principal
from schemas import (
    ApiResponse,
    MedicalRecordCreate,
    MedicalRecordResponse,
    MedicalRecordUpdate,
    PageParams,
    PatientRecordsResponse,
)
from services import MedicalRecordService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/medical-records", tags=["Medical Records"])


@router.get(
    "",
    response_model=ApiResponse[List[MedicalRecordResponse]],
    summary="List medical records",
    description="Filter by patient, doctor, visit type and an inclusive visit date range."
)
async def list_records(
    paging: PageParams = Depends(),
    patient_id: Optional[str] = Query(None),
    doctor_id: Optional[str] = Query(None),
    visit_type: Optional[VisitType] = Query(None),
    date_from: Optional[date] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    principal: Principal = Depends(get_active_principal),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    items, total = record_service.list_records(
        principal,
        paging,
        patient_id=patient_id,
        doctor_id=doctor_id,
        visit_type=visit_type.value if visit_type else None,
        date_from=date_from,
        date_to=date_to,
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.get(
    "/patient/{patient_id}",
    response_model=ApiResponse[PatientRecordsResponse],
    summary="A patient's own records",
    description="Patients may read only their own records; admins may read any."
)
async def list_patient_records(
    patient_id: str,
    principal: Principal = Depends(get_active_principal),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(data=record_service.list_for_patient(patient_id, principal))


@router.post("", response_model=ApiResponse[MedicalRecordResponse], status_code=201, summary="Create a medical record")
async def create_record(
    body: MedicalRecordCreate,
    principal: Principal = Depends(get_active_principal),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(message="Medical record created", data=record_service.create_record(body, principal))


@router.get("/{record_id}", response_model=ApiResponse[MedicalRecordResponse], summary="Get a medical record")
async def get_record(
    record_id: str,
    principal: Principal = Depends(get_active_principal),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(data=record_service.get_record(record_id, principal))


@router.put("/{record_id}", response_model=ApiResponse[MedicalRecordResponse], summary="Update a medical record")
async def update_record(
    record_id: str,
    body: MedicalRecordUpdate,
    principal: Principal = Depends(get_active_principal),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    return ApiResponse(message="Medical record updated", data=record_service.update_record(record_id, body, principal))


@router.delete("/{record_id}", response_model=ApiResponse, summary="Delete a medical record")
async def delete_record(
    record_id: str,
    principal: Principal = Depends(get_active_principal),
    record_service: MedicalRecordService = Depends(get_medical_record_service)
):
    record_service.delete_record(record_id, principal)
    return ApiResponse(message="Medical record deleted")
