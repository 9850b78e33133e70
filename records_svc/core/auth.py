"""
Bearer authentication dependencies.

One bearer scheme serves every principal kind: the token's ``kind`` claim
says whether ``sub`` is a user, doctor or patient, and AuthService loads the
matching Principal.

Dependencies, from weakest to strongest:
    get_current_principal  - any valid token
    get_active_principal   - valid token, no pending forced password change
    require_admin          - active admin user
    require_patient        - active patient
"""
import logging
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.dependencies import get_auth_service, get_token_service
from core.exceptions import ForbiddenError, UnauthenticatedError
from core.logging_config import bind_principal
from core.permissions import DenyReason
from core.security import TokenService
from models.principal import Principal
from services.auth_service import AuthService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(
    auto_error=False,  # Missing credentials are reported through our own error envelope
    description="Token from /api/v1/auth/sign-in or /api/v1/auth/patient/sign-in.",
)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
    auth_service: AuthService = Depends(get_auth_service),
) -> Principal:
    """
    Resolve the bearer token to a Principal.

    Raises:
        UnauthenticatedError: No bearer token.
        InvalidTokenError: Bad, expired or orphaned token.
    """
    if credentials is None:
        logger.info("Request without bearer token", extra={"path": request.url.path})
        raise UnauthenticatedError()

    claims = token_service.verify(credentials.credentials)
    principal = auth_service.load_principal(claims)
    request.state.principal_id = principal.id
    bind_principal(principal.id)
    return principal


async def get_active_principal(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Reject principals that must rotate their password first."""
    if principal.must_change_password:
        raise ForbiddenError(
            "Password change required before using the API",
            reason=DenyReason.INSUFFICIENT_PERMISSION,
        )
    return principal


async def require_admin(principal: Principal = Depends(get_active_principal)) -> Principal:
    if not principal.is_admin:
        logger.warning("Admin route denied", extra={"principal_id": principal.id})
        raise ForbiddenError("Administrator access required")
    return principal


async def require_patient(principal: Principal = Depends(get_active_principal)) -> Principal:
    if not principal.is_patient:
        raise ForbiddenError("Patient access required")
    return principal
