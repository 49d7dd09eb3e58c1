"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from aidcrm.core.config import settings
from aidcrm.core.errors import CoreError, FieldError, InternalError, ValidationFailedError
from aidcrm.core.structured_logging import configure_logging
from aidcrm.db.session import engine

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Aid CRM API",
    description="Beneficiary, case and service records for aid organizations",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ============================================================================
# Error Handlers
# ============================================================================

async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/path parameters use the same envelope as core validation."""
    errors = [
        FieldError(
            field=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
            code=err["type"],
        )
        for err in exc.errors()
    ]
    error = ValidationFailedError(errors)
    return JSONResponse(status_code=error.http_status, content=error.to_response())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error")
    error = InternalError()
    return JSONResponse(status_code=error.http_status, content=error.to_response())


app.add_exception_handler(CoreError, core_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# ============================================================================
# Routers
# ============================================================================

from aidcrm.routers import audit, beneficiaries, cases, dashboard, services  # noqa: E402

app.include_router(beneficiaries.router, prefix="/beneficiaries", tags=["beneficiaries"])
app.include_router(cases.router, prefix="/cases", tags=["cases"])
app.include_router(services.router, prefix="/services", tags=["services"])

# Audit Trail (Admin+)
app.include_router(audit.router)

# Dashboard statistics
app.include_router(dashboard.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
