"""
Credential hashing and bearer token handling.

Password hashing is delegated to werkzeug.security and treated as a black
box: ``hash_password`` produces a salted one-way hash, ``verify_password``
checks a presented secret against it.

``TokenService`` issues and verifies signed, time-limited JWTs (python-jose).
Every token embeds the principal id (``sub``) and the credential store it
belongs to (``kind``), so a single bearer dependency can dispatch staff,
doctor and patient tokens.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from core.datetime_utils import utc_now
from core.exceptions import InvalidTokenError
from core.permissions import TokenKind

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str) -> str:
    """Return a salted one-way hash of ``password``."""
    return generate_password_hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    """Check ``password`` against a stored hash. A missing hash never matches."""
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


# =============================================================================
# TOKENS
# =============================================================================

@dataclass(frozen=True)
class TokenClaims:
    """Identity recovered from a verified token."""

    principal_id: str
    kind: TokenKind


class TokenService:
    """
    Issue and verify signed bearer tokens.

    Tokens for staff users and doctors share one lifetime, patient tokens
    have their own. Verification fails with InvalidTokenError on a bad
    signature, a malformed payload, an unknown kind, a wrong issuer or
    audience, or an elapsed expiry. There is no refresh; callers sign in
    again.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "medical-records-api",
        audience: str = "medical-records-clients",
        staff_ttl: timedelta = timedelta(days=1),
        patient_ttl: timedelta = timedelta(days=7),
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self._ttls: Dict[TokenKind, timedelta] = {
            TokenKind.USER: staff_ttl,
            TokenKind.DOCTOR: staff_ttl,
            TokenKind.PATIENT: patient_ttl,
        }

    def ttl_for(self, kind: TokenKind) -> timedelta:
        return self._ttls[kind]

    def issue(self, principal_id: str, kind: TokenKind, ttl: Optional[timedelta] = None) -> str:
        """
        Produce a signed token for ``principal_id``.

        Args:
            principal_id: Opaque id of the user, doctor or patient.
            kind: Credential store the id belongs to.
            ttl: Lifetime override; defaults to the kind's configured lifetime.
        """
        now = utc_now()
        claims = {
            "sub": principal_id,
            "kind": kind.value,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.ttl_for(kind)),
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify ``token`` and return the identity it carries.

        Raises:
            InvalidTokenError: If the token cannot be trusted.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
            )
        except JWTError as e:
            logger.info("Rejected bearer token", extra={"error": str(e)})
            raise InvalidTokenError()

        principal_id = payload.get("sub")
        if not isinstance(principal_id, str) or not principal_id:
            raise InvalidTokenError("Token payload is missing a subject")
        try:
            kind = TokenKind(payload.get("kind"))
        except ValueError:
            raise InvalidTokenError("Token payload has an unknown kind")

        return TokenClaims(principal_id=principal_id, kind=kind)
