"""
Admin router - system-wide management for admin users.

Every endpoint requires an active admin principal. Users here are not bound
to a path institution; admins may place them anywhere.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from core.auth import require_admin
from core.dependencies import (
    get_audit_service,
    get_institution_service,
    get_role_service,
    get_statistics_service,
    get_user_service,
)
from core.permissions import RoleName
from models.enums import AuditAction, InstitutionType
from models.principal import Principal
from schemas import (
    ApiResponse,
    AuditEntryResponse,
    InstitutionCreate,
    InstitutionDeleteResult,
    InstitutionResponse,
    InstitutionUpdate,
    PageParams,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    Statistics,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from services import AuditService, InstitutionService, RoleService, StatisticsService, UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


# =============================================================================
# USERS
# =============================================================================

@router.get("/users", response_model=ApiResponse[List[UserResponse]], summary="List all users")
async def list_users(
    paging: PageParams = Depends(),
    institution_id: Optional[str] = Query(None),
    role: Optional[RoleName] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    items, total = user_service.list_users(principal, paging, institution_id=institution_id, role=role, search=search)
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post("/users", response_model=ApiResponse[UserResponse], status_code=201, summary="Create a user")
async def create_user(
    body: UserCreate,
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    return ApiResponse(message="User created", data=user_service.create_user(body, principal))


@router.get("/users/{user_id}", response_model=ApiResponse[UserResponse], summary="Get a user")
async def get_user(
    user_id: str,
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    return ApiResponse(data=user_service.get_user(user_id, principal))


@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse], summary="Update a user")
async def update_user(
    user_id: str,
    body: UserUpdate,
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    return ApiResponse(message="User updated", data=user_service.update_user(user_id, body, principal))


@router.delete("/users/{user_id}", response_model=ApiResponse, summary="Delete a user")
async def delete_user(
    user_id: str,
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    user_service.delete_user(user_id, principal)
    return ApiResponse(message="User deleted")


# =============================================================================
# ROLES
# =============================================================================

@router.get("/roles", response_model=ApiResponse[List[RoleResponse]], summary="List roles")
async def list_roles(
    paging: PageParams = Depends(),
    principal: Principal = Depends(require_admin),
    role_service: RoleService = Depends(get_role_service)
):
    items, total = role_service.list_roles(principal, paging)
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post(
    "/roles",
    response_model=ApiResponse[RoleResponse],
    status_code=201,
    summary="Create a role",
    description="Stores a permission bundle for one of the fixed role names."
)
async def create_role(
    body: RoleCreate,
    principal: Principal = Depends(require_admin),
    role_service: RoleService = Depends(get_role_service)
):
    return ApiResponse(message="Role created", data=role_service.create_role(body, principal))


@router.get("/roles/{role_id}", response_model=ApiResponse[RoleResponse], summary="Get a role")
async def get_role(
    role_id: str,
    principal: Principal = Depends(require_admin),
    role_service: RoleService = Depends(get_role_service)
):
    return ApiResponse(data=role_service.get_role(role_id, principal))


@router.put(
    "/roles/{role_id}",
    response_model=ApiResponse[RoleResponse],
    summary="Update a role",
    description="Changing the permission bundle affects every principal holding the role on its next request."
)
async def update_role(
    role_id: str,
    body: RoleUpdate,
    principal: Principal = Depends(require_admin),
    role_service: RoleService = Depends(get_role_service)
):
    return ApiResponse(message="Role updated", data=role_service.update_role(role_id, body, principal))


@router.delete("/roles/{role_id}", response_model=ApiResponse, summary="Delete a role")
async def delete_role(
    role_id: str,
    principal: Principal = Depends(require_admin),
    role_service: RoleService = Depends(get_role_service)
):
    role_service.delete_role(role_id, principal)
    return ApiResponse(message="Role deleted")


# =============================================================================
# INSTITUTIONS
# =============================================================================

@router.get("/institutions", response_model=ApiResponse[List[InstitutionResponse]], summary="List institutions")
async def list_institutions(
    paging: PageParams = Depends(),
    type: Optional[InstitutionType] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(require_admin),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    items, total = institution_service.list_institutions(
        paging, institution_type=type.value if type else None, search=search
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.post(
    "/institutions",
    response_model=ApiResponse[InstitutionResponse],
    status_code=201,
    summary="Create an institution"
)
async def create_institution(
    body: InstitutionCreate,
    principal: Principal = Depends(require_admin),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    return ApiResponse(message="Institution created", data=institution_service.create_institution(body, principal))


@router.get("/institutions/{institution_id}", response_model=ApiResponse[InstitutionResponse], summary="Get an institution")
async def get_institution(
    institution_id: str,
    principal: Principal = Depends(require_admin),
    institution_service: InstitutionService = Depends(get_institution_service)
):
    return ApiResponse(data=institution_service.get_institution(institution_id))


@router.put(
    "/institutions/{institution_id}",
    response_model=ApiResponse[InstitutionResponse],
    summary="Update an institution"
)
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
    "/institutions/{institution_id}",
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


# =============================================================================
# AUDIT AND STATISTICS
# =============================================================================

@router.get("/audit-logs", response_model=ApiResponse[List[AuditEntryResponse]], summary="Audit trail")
async def list_audit_logs(
    paging: PageParams = Depends(),
    action: Optional[AuditAction] = Query(None),
    actor_id: Optional[str] = Query(None),
    principal: Principal = Depends(require_admin),
    audit_service: AuditService = Depends(get_audit_service)
):
    items, total = audit_service.list_entries(
        paging, action=action.value if action else None, actor_id=actor_id
    )
    return ApiResponse(data=items, pagination=paging.pagination(total))


@router.get("/statistics", response_model=ApiResponse[Statistics], summary="System statistics")
async def system_statistics(
    principal: Principal = Depends(require_admin),
    statistics_service: StatisticsService = Depends(get_statistics_service)
):
    return ApiResponse(data=statistics_service.system(principal))
