"""
Configuration module for the Medical Records API.
Uses Pydantic BaseSettings for validation - app fails fast if required config is missing.
"""
import logging
from pathlib import Path
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.
    Required fields will cause the app to fail fast if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration
    medrec_db_dir: str = Field(default="data", description="Database directory")
    medrec_db_file: str = Field(default="medical_records.db", description="Database filename")
    medrec_db_busy_timeout: int = Field(default=5000, description="SQLite busy timeout in milliseconds")

    # API Configuration
    medrec_host: str = Field(default="0.0.0.0", description="API host")
    medrec_port: int = Field(default=8000, description="API port")
    medrec_reload: bool = Field(default=False, description="Enable hot reload")
    medrec_cors_origins: str = Field(default="*", description="Allowed CORS origins (comma-separated)")

    # Token Configuration
    medrec_jwt_secret: str = Field(
        ...,  # Required - no default means fail fast if missing
        description="Secret used to sign bearer tokens",
        min_length=32,
    )
    medrec_jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    medrec_jwt_issuer: str = Field(default="medical-records-api", description="JWT issuer claim")
    medrec_jwt_audience: str = Field(default="medical-records-clients", description="JWT audience claim")
    medrec_staff_token_ttl_minutes: int = Field(default=1440, ge=1, description="Staff/doctor token lifetime")
    medrec_patient_token_ttl_minutes: int = Field(default=10080, ge=1, description="Patient token lifetime")

    # Patient identifier generation
    medrec_patient_id_prefix: str = Field(default="PAT", min_length=1, description="Prefix of generated patient identifiers")
    medrec_patient_id_digits: int = Field(default=6, ge=4, le=12, description="Numeric suffix length")

    # Default admin bootstrap
    medrec_bootstrap_admin_email: str = Field(default="admin@medicalrecords.local", description="Bootstrap admin email")
    medrec_bootstrap_admin_name: str = Field(default="System Administrator", description="Bootstrap admin display name")
    medrec_bootstrap_admin_password: str = Field(
        default="",
        description="Initial admin password. Generated randomly when empty; rotation is always forced.",
    )

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Warn about weak but technically valid configuration."""
        if self.medrec_bootstrap_admin_password and len(self.medrec_bootstrap_admin_password) < 8:
            logger.warning(
                "MEDREC_BOOTSTRAP_ADMIN_PASSWORD is shorter than 8 characters - "
                "the account will still be forced to rotate it on first sign-in"
            )
        if not self.medrec_jwt_algorithm.startswith("HS"):
            logger.warning(
                "MEDREC_JWT_ALGORITHM is not an HMAC algorithm; MEDREC_JWT_SECRET must hold a private key"
            )
        return self

    @property
    def database_path(self) -> str:
        """Get the full database path."""
        return str(Path(self.medrec_db_dir) / self.medrec_db_file)

    @property
    def cors_origins_list(self) -> List[str]:
        """Get the allowed CORS origins as a list."""
        return [o.strip() for o in self.medrec_cors_origins.split(",") if o.strip()]

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.medrec_db_dir).mkdir(parents=True, exist_ok=True)


# Create global settings instance - fails fast if required config is missing
settings = Settings()

# Ensure directories exist on import
settings.ensure_directories()

DATABASE_PATH = settings.database_path
DATABASE_BUSY_TIMEOUT = settings.medrec_db_busy_timeout

API_HOST = settings.medrec_host
API_PORT = settings.medrec_port
API_RELOAD = settings.medrec_reload
