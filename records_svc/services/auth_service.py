"""
Service layer for authentication.

Handles sign-in for staff users, doctors and patients, patient
self-registration, password rotation, and turning verified token claims
back into a Principal.

Architecture:
    API Layer (routers/auth.py, core/auth.py) → AuthService → repositories
"""
import logging
from typing import Optional

from core.exceptions import (
    DoctorNotFoundError,
    InvalidCredentialsError,
    InvalidTokenError,
    PatientNotFoundError,
    UserNotFoundError,
)
from core.permissions import PrincipalKind, RoleName, TokenKind, resolve_permissions
from core.security import TokenClaims, TokenService, hash_password, verify_password
from models.doctor import Doctor
from models.enums import AuditAction
from models.patient import CredentialedPatient, Patient
from models.principal import Principal
from models.user import User
from repositories.base import Database
from repositories.doctor_repository import DoctorRepository
from repositories.patient_repository import PatientRepository
from repositories.role_repository import RoleRepository
from repositories.user_repository import UserRepository
from schemas.auth import PatientSignUpRequest, PrincipalSummary, TokenResponse
from services.audit_service import AuditService
from services.patient_service import PatientService

logger = logging.getLogger(__name__)


class AuthService:
    """
    Credential checks and principal loading.

    Dependency Injection:
        Use core.dependencies.get_auth_service() in routers with Depends().
    """

    def __init__(
        self,
        db: Database,
        user_repository: UserRepository,
        doctor_repository: DoctorRepository,
        patient_repository: PatientRepository,
        role_repository: RoleRepository,
        patient_service: PatientService,
        token_service: TokenService,
        audit_service: AuditService,
    ):
        self._db = db
        self._users = user_repository
        self._doctors = doctor_repository
        self._patients = patient_repository
        self._roles = role_repository
        self._patient_service = patient_service
        self._tokens = token_service
        self._audit = audit_service

    # =========================================================================
    # PRINCIPALS
    # =========================================================================

    def _bundle(self, role: RoleName):
        stored = self._roles.get_by_name(role)
        return stored.permissions if stored is not None else None

    def principal_for_user(self, user: User) -> Principal:
        kind = PrincipalKind.ADMIN_USER if user.role is RoleName.ADMIN else PrincipalKind.INSTITUTION_USER
        return Principal(
            id=user.id,
            kind=kind,
            name=user.name,
            email=user.email,
            role=user.role,
            permissions=resolve_permissions(user.role, user.permissions, self._bundle(user.role)),
            institution_ids=frozenset({user.institution_id}) if user.institution_id else frozenset(),
            must_change_password=user.must_change_password,
            token_kind=TokenKind.USER,
        )

    def principal_for_doctor(self, doctor: Doctor) -> Principal:
        return Principal(
            id=doctor.id,
            kind=PrincipalKind.DOCTOR,
            name=doctor.name,
            email=doctor.email,
            role=RoleName.DOCTOR,
            permissions=resolve_permissions(RoleName.DOCTOR, bundle=self._bundle(RoleName.DOCTOR)),
            institution_ids=frozenset(doctor.institution_ids),
            token_kind=TokenKind.DOCTOR,
        )

    def principal_for_patient(self, patient: Patient) -> Principal:
        # Patient tokens carry the human-readable identifier as subject.
        return Principal(
            id=patient.patient_id,
            kind=PrincipalKind.PATIENT,
            name=patient.name,
            email=patient.contact.get("email"),
            role=RoleName.PATIENT,
            permissions=resolve_permissions(RoleName.PATIENT, bundle=self._bundle(RoleName.PATIENT)),
            institution_ids=frozenset({patient.institution_id}) if patient.institution_id else frozenset(),
            patient_identifier=patient.patient_id,
            token_kind=TokenKind.PATIENT,
        )

    def load_principal(self, claims: TokenClaims) -> Principal:
        """
        Load the principal a verified token points at.

        Raises:
            InvalidTokenError: If the principal no longer exists.
        """
        if claims.kind is TokenKind.USER:
            user = self._users.get(claims.principal_id)
            if user is not None:
                return self.principal_for_user(user)
        elif claims.kind is TokenKind.DOCTOR:
            doctor = self._doctors.get(claims.principal_id)
            if doctor is not None:
                return self.principal_for_doctor(doctor)
        else:
            patient = self._patients.get(claims.principal_id)
            if patient is not None and patient.is_credentialed:
                return self.principal_for_patient(patient)
        raise InvalidTokenError("Token subject no longer exists")

    # =========================================================================
    # SIGN-IN
    # =========================================================================

    def _token_response(self, principal: Principal) -> TokenResponse:
        ttl = self._tokens.ttl_for(principal.token_kind)
        return TokenResponse(
            access_token=self._tokens.issue(principal.id, principal.token_kind),
            expires_in=int(ttl.total_seconds()),
            principal=summarize(principal),
        )

    def sign_in(self, email: str, password: str, kind: str = "user") -> TokenResponse:
        """
        Staff or doctor sign-in.

        Raises:
            UserNotFoundError / DoctorNotFoundError: Unknown email (404).
            InvalidCredentialsError: Wrong password (401).
        """
        if kind == TokenKind.DOCTOR.value:
            doctor = self._doctors.get_by_email(email)
            if doctor is None:
                raise DoctorNotFoundError(f"No doctor registered with email '{email}'")
            if not verify_password(doctor.password_hash, password):
                logger.warning("Failed doctor sign-in", extra={"doctor_id": doctor.id})
                raise InvalidCredentialsError()
            principal = self.principal_for_doctor(doctor)
        else:
            user = self._users.get_by_email(email)
            if user is None:
                raise UserNotFoundError(f"No user registered with email '{email}'")
            if not verify_password(user.password_hash, password):
                logger.warning("Failed user sign-in", extra={"user_id": user.id})
                raise InvalidCredentialsError()
            principal = self.principal_for_user(user)

        logger.info("Signed in", extra={"principal_id": principal.id, "kind": principal.kind.value})
        return self._token_response(principal)

    def sign_in_patient(self, patient_id: str, password: str) -> TokenResponse:
        """
        Patient sign-in by identifier. Stamps ``last_login``.

        Raises:
            PatientNotFoundError: Unknown identifier (404).
            InvalidCredentialsError: No credential on file or wrong password (401).
        """
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        if not isinstance(patient, CredentialedPatient) or not verify_password(patient.password_hash, password):
            logger.warning("Failed patient sign-in", extra={"patient_id": patient_id})
            raise InvalidCredentialsError()

        patient.last_login = self._patients.record_login(patient_id)
        logger.info("Patient signed in", extra={"patient_id": patient_id})
        return self._token_response(self.principal_for_patient(patient))

    def sign_up_patient(self, request: PatientSignUpRequest) -> TokenResponse:
        """
        Register a credentialed, institution-less patient and sign them in.

        The insert and the token issuance share one transaction: if the
        token cannot be produced the patient row is rolled back.
        """
        with self._db.transaction() as conn:
            patient = self._patient_service.register_self(request, conn=conn)
            response = self._token_response(self.principal_for_patient(patient))
        logger.info("Patient self-registered", extra={"patient_id": patient.patient_id})
        return response

    def sign_out(self, principal: Principal) -> None:
        """Tokens are stateless; sign-out is acknowledged and logged."""
        logger.info("Signed out", extra={"principal_id": principal.id, "kind": principal.kind.value})

    # =========================================================================
    # PASSWORDS
    # =========================================================================

    def change_password(self, principal: Principal, current_password: str, new_password: str) -> None:
        """
        Rotate the caller's own password and clear ``must_change_password``.

        Raises:
            InvalidCredentialsError: If ``current_password`` does not match.
        """
        if principal.token_kind is TokenKind.USER:
            account = self._users.get(principal.id)
            if account is None:
                raise InvalidTokenError("Token subject no longer exists")
            self._check_current(account.password_hash, current_password, principal)
            account.password_hash = hash_password(new_password)
            account.must_change_password = False
            self._users.update(account)
        elif principal.token_kind is TokenKind.DOCTOR:
            doctor = self._doctors.get(principal.id)
            if doctor is None:
                raise InvalidTokenError("Token subject no longer exists")
            self._check_current(doctor.password_hash, current_password, principal)
            doctor.password_hash = hash_password(new_password)
            self._doctors.update(doctor)
        else:
            self._patient_service.set_password(
                principal.patient_identifier, current_password, new_password
            )

        self._audit.record(AuditAction.PASSWORD_CHANGED, principal)
        logger.info("Password changed", extra={"principal_id": principal.id})

    def _check_current(self, password_hash: Optional[str], password: str, principal: Principal) -> None:
        if not verify_password(password_hash, password):
            logger.warning("Password change with wrong current password", extra={"principal_id": principal.id})
            raise InvalidCredentialsError("Current password is incorrect")


def summarize(principal: Principal) -> PrincipalSummary:
    return PrincipalSummary(
        id=principal.id,
        kind=principal.kind,
        name=principal.name,
        email=principal.email,
        role=principal.role,
        permissions=sorted(principal.permissions, key=lambda p: p.value),
        institution_ids=sorted(principal.institution_ids),
        must_change_password=principal.must_change_password,
        patient_id=principal.patient_identifier,
    )
