"""
Medical Records API application.

Wires the request pipeline: LoggingMiddleware (outermost) binds the request id,
CORSMiddleware answers preflight requests, the exception handlers render every
MedicalRecordsError as the error envelope, and the routers under api/routers/
mount the public, institution-scoped and admin endpoints.

On startup the SQLite schema is created and the bootstrap seeds the system
roles plus an initial administrator when the user table is empty.

Run locally:
    python main.py            # uvicorn on MEDREC_HOST:MEDREC_PORT
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from core.config import API_HOST, API_PORT, API_RELOAD, settings
from core.dependencies import build_bootstrap_service, get_database
from core.exceptions import setup_exception_handlers
from core.logging_config import setup_logging
from core.middleware import LoggingMiddleware
from api.routers import (
    admin_router,
    auth_router,
    doctors_router,
    health_router,
    institution_scoped_router,
    institutions_router,
    medical_records_router,
    patients_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging, open the database and run the first-start bootstrap."""
    setup_logging(level="INFO", json_format=True)

    logger = logging.getLogger(__name__)
    logger.info("Starting Medical Records API...")

    db = get_database()
    logger.info("Database initialized", extra={"db_path": db.db_path})

    result = build_bootstrap_service(db).run()
    logger.info(
        "Bootstrap complete",
        extra={"roles_created": result.roles_created, "admin_created": result.admin_created}
    )

    yield

    logger.info("Medical Records API shutting down...")


app = FastAPI(
    title="Medical Records API",
    description="Multi-tenant medical records service. Institutions, staff, doctors, patients and "
                "their medical records behind a role and permission model with audited emergency access.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

setup_exception_handlers(app)

# Registered inner to outer.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(institutions_router)
app.include_router(institution_scoped_router)
app.include_router(patients_router)
app.include_router(doctors_router)
app.include_router(medical_records_router)
app.include_router(admin_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_RELOAD
    )
