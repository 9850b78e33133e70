"""
API routers module.

This module contains all API route definitions organized by domain.
"""
from api.routers.health import router as health_router
from api.routers.auth import router as auth_router
from api.routers.institutions import router as institutions_router
from api.routers.institution_scoped import router as institution_scoped_router
from api.routers.patients import router as patients_router
from api.routers.doctors import router as doctors_router
from api.routers.medical_records import router as medical_records_router
from api.routers.admin import router as admin_router

__all__ = [
    "health_router",
    "auth_router",
    "institutions_router",
    "institution_scoped_router",
    "patients_router",
    "doctors_router",
    "medical_records_router",
    "admin_router",
]
