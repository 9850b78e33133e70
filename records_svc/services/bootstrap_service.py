"""
First-start provisioning: system roles and the initial administrator.

``BootstrapService.run()`` is called once from the application lifespan and
is safe to call again; it only creates what is missing.
"""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from core.exceptions import DuplicateError
from core.permissions import DEFAULT_ROLE_PERMISSIONS, SYSTEM_ROLES, RoleName
from core.security import hash_password
from models.role import Role
from models.user import User
from repositories.base import new_id
from repositories.role_repository import RoleRepository
from repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    roles_created: int
    admin_created: bool
    admin_email: Optional[str] = None


class BootstrapService:
    """Seed system roles and make sure an administrator exists."""

    def __init__(
        self,
        user_repository: UserRepository,
        role_repository: RoleRepository,
        admin_email: str,
        admin_name: str,
        admin_password: Optional[str] = None,
    ):
        self._users = user_repository
        self._roles = role_repository
        self._admin_email = admin_email
        self._admin_name = admin_name
        self._admin_password = admin_password

    def run(self) -> BootstrapResult:
        roles_created = self._seed_roles()

        if self._users.admin_exists():
            logger.info("Administrator present, skipping admin bootstrap")
            return BootstrapResult(roles_created=roles_created, admin_created=False)

        password = self._admin_password
        if not password:
            password = secrets.token_urlsafe(16)
            logger.warning(
                "Generated initial administrator password; it must be changed at first sign-in",
                extra={"admin_email": self._admin_email, "initial_password": password}
            )

        admin = User(
            id=new_id(),
            name=self._admin_name,
            email=self._admin_email,
            password_hash=hash_password(password),
            role=RoleName.ADMIN,
            must_change_password=True,
        )
        try:
            self._users.create(admin)
        except DuplicateError:
            # Another worker finished bootstrap first.
            logger.info("Administrator created concurrently, skipping")
            return BootstrapResult(roles_created=roles_created, admin_created=False)

        logger.info("Bootstrap administrator created", extra={"admin_email": self._admin_email})
        return BootstrapResult(roles_created=roles_created, admin_created=True, admin_email=self._admin_email)

    def _seed_roles(self) -> int:
        created = 0
        for name, display_name in SYSTEM_ROLES.items():
            if self._roles.get_by_name(name) is not None:
                continue
            role = Role(
                id=new_id(),
                name=name,
                display_name=display_name,
                description=f"Built-in {display_name.lower()} role",
                permissions=sorted(DEFAULT_ROLE_PERMISSIONS[name], key=lambda p: p.value),
                is_system=True,
            )
            try:
                self._roles.create(role)
                created += 1
            except DuplicateError:
                continue
        if created:
            logger.info(f"Seeded {created} system roles")
        return created
