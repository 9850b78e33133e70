"""
Institutions router - public directory and admin-only mutations.

Resources nested under an institution live in institution_scoped.py.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from core.auth import require_admin
from core.dependencies import get_institution_service
from models.enums import InstitutionType
from models.principal import Principal
from schemas import (
    ApiResponse,
    InstitutionCreate,
    InstitutionDeleteResult,
    InstitutionResponse,
    InstitutionUpdate,
    PageParams,
)
from services.institution_service import InstitutionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/institutions", tags=["Institutions"])


@router.get(
    "",
    response_model=ApiResponse[List[InstitutionResponse]],
    summary="List institutions",
    description="Public. Filter by type and by a name search."
)
async def list_institutions(
    paging: PageParams = Depends(),
    type: Optional[InstitutionType] = Query(None, description="Institution type"),
    search: Optional[str] = Query(None, max_length=100),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    items, total = institution_service.list_institutions(
        paging, institution_type=type.value if type else None, search=search
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.get("/{institution_id}", response_model=ApiResponse[InstitutionResponse], summary="Get an institution")
async def get_institution(
    institution_id: str,
    institution_service: InstitutionService = Depends(get_institution_service)
):
    return ApiResponse(data=institution_service.get_institution(institution_id))


@router.post("", response_model=ApiResponse[InstitutionResponse], status_code=201, summary="Create an institution")
async def create_institution(
    body: InstitutionCreate,
    principal: Principal = Depends(require_admin),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    return ApiResponse(message="Institution created", data=institution_service.create_institution(body, principal))


@router.put("/{institution_id}", response_model=ApiResponse[InstitutionResponse], summary="Update an institution")
async def update_institution(
    institution_id: str,
    body: InstitutionUpdate,
    principal: Principal = Depends(require_admin),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    return ApiResponse(
        message="Institution updated",
        data=institution_service.update_institution(institution_id, body, principal),
    )


@router.delete(
    "/{institution_id}",
    response_model=ApiResponse[InstitutionDeleteResult],
    summary="Delete an institution",
    description="Deletes the institution and its users. Patients, doctors and records are kept."
)
async def delete_institution(
    institution_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    result = institution_service.delete_institution(
        institution_id, principal, resource_path=request.url.path, method=request.method
    )
    return ApiResponse(message="Institution deleted", data=result)
