"""
Doctors router - global doctor directory and CRUD.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import get_active_principal
from core.dependencies import get_doctor_service
from models.principal import Principal
from schemas import ApiResponse, DoctorCreate, DoctorResponse, DoctorUpdate, PageParams
from services import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/doctors", tags=["Doctors"])


@router.get("", response_model=ApiResponse[List[DoctorResponse]], summary="List doctors")
async def list_doctors(
    paging: PageParams = Depends(),
    specialization: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(get_active_principal),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    items, total = doctor_service.list_doctors(principal, paging, specialization=specialization, search=search)
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post("", response_model=ApiResponse[DoctorResponse], status_code=201, summary="Register a doctor")
async def create_doctor(
    body: DoctorCreate,
    principal: Principal = Depends(get_active_principal),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return ApiResponse(message="Doctor created", data=doctor_service.create_doctor(body, principal))


@router.get("/{doctor_id}", response_model=ApiResponse[DoctorResponse], summary="Get a doctor")
async def get_doctor(
    doctor_id: str,
    principal: Principal = Depends(get_active_principal),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return ApiResponse(data=doctor_service.get_doctor(doctor_id, principal))


@router.put("/{doctor_id}", response_model=ApiResponse[DoctorResponse], summary="Update a doctor")
async def update_doctor(
    doctor_id: str,
    body: DoctorUpdate,
    principal: Principal = Depends(get_active_principal),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return ApiResponse(message="Doctor updated", data=doctor_service.update_doctor(doctor_id, body, principal))


@router.delete("/{doctor_id}", response_model=ApiResponse, summary="Delete a doctor")
async def delete_doctor(
    doctor_id: str,
    principal: Principal = Depends(get_active_principal),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    doctor_service.delete_doctor(doctor_id, principal)
    return ApiResponse(message="Doctor deleted")
