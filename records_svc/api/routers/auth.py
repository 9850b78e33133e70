"""
Auth router - sign-in, patient sign-up, sign-out and password rotation.

Architecture:
    HTTP Request → Router (this file) → AuthService → repositories → Database
"""
import logging

from fastapi import APIRouter, Depends

from core.auth import get_active_principal, get_current_principal
from core.dependencies import get_auth_service
from models.principal import Principal
from schemas import (
    ApiResponse,
    ChangePasswordRequest,
    PatientSignInRequest,
    PatientSignUpRequest,
    PrincipalSummary,
    SignInRequest,
    TokenResponse,
)
from services.auth_service import AuthService, summarize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post(
    "/sign-in",
    response_model=ApiResponse[TokenResponse],
    summary="Staff or doctor sign-in",
    description="Returns a bearer token. Unknown email gives 404, wrong password 401."
)
async def sign_in(
    body: SignInRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    token = auth_service.sign_in(body.email, body.password, body.kind)
    return ApiResponse(message="Signed in", data=token)


@router.post(
    "/patient/sign-in",
    response_model=ApiResponse[TokenResponse],
    summary="Patient sign-in by identifier"
)
async def patient_sign_in(
    body: PatientSignInRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    token = auth_service.sign_in_patient(body.patient_id, body.password)
    return ApiResponse(message="Signed in", data=token)


@router.post(
    "/patient/sign-up",
    response_model=ApiResponse[TokenResponse],
    status_code=201,
    summary="Patient self-registration",
    description="Creates a credentialed patient without an institution and signs them in."
)
async def patient_sign_up(
    body: PatientSignUpRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    token = auth_service.sign_up_patient(body)
    return ApiResponse(message="Patient registered", data=token)


@router.post("/sign-out", response_model=ApiResponse, summary="Sign out")
async def sign_out(
    principal: Principal = Depends(get_current_principal),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Tokens are stateless; clients discard theirs."""
    auth_service.sign_out(principal)
    return ApiResponse(message="Signed out")


@router.post(
    "/change-password",
    response_model=ApiResponse,
    summary="Change own password",
    description="Available even while a password change is pending."
)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.change_password(principal, body.current_password, body.new_password)
    return ApiResponse(message="Password changed")


@router.get("/me", response_model=ApiResponse[PrincipalSummary], summary="Current principal")
async def me(principal: Principal = Depends(get_active_principal)):
    return ApiResponse(data=summarize(principal))
