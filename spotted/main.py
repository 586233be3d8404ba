import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from spotted.api.v1.routers import auth, evidence, profile, reports, violations
from spotted.core import database
from spotted.core.config import settings
from spotted.core.exceptions import (
    AuthorizationDenied,
    InvalidStateChange,
    RecordNotFound,
    StorageUnavailable,
    ValidationFailed,
)
from spotted.services.catalog import seed_violation_types

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and make sure the violation catalog is seeded."""
    await database.init_db()
    if settings.SEED_CATALOG_ON_STARTUP:
        async with database.AsyncSessionLocal() as db:
            await seed_violation_types(db)
    yield


app = FastAPI(
    title="Spotted",
    description="Crowdsourced parking-violation reporting with per-user rewards.",
    version=VERSION,
    lifespan=lifespan,
)

# CORS origins from settings (comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

for module in (auth, profile, violations, reports, evidence):
    app.include_router(module.router, prefix="/api/v1")


# ── Error handlers ─────────────────────────────────────────────────────────────

@app.exception_handler(AuthorizationDenied)
async def authorization_denied_handler(request: Request, exc: AuthorizationDenied):
    return JSONResponse(status_code=403, content={"detail": "Operation not permitted"})


@app.exception_handler(RecordNotFound)
async def not_found_handler(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    status_code = {"DUPLICATE_FIELD": 409, "FILE_TOO_LARGE": 413}.get(exc.code, 422)
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": {
                "message": "Request could not be processed",
                "errors": [{"field": exc.field, "message": exc.message, "code": exc.code}],
            }
        },
    )


@app.exception_handler(InvalidStateChange)
async def invalid_state_handler(request: Request, exc: InvalidStateChange):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Conflict with existing data"})


@app.exception_handler(StorageUnavailable)
@app.exception_handler(OperationalError)
@app.exception_handler(DBAPIError)
async def storage_error_handler(request: Request, exc: Exception):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage temporarily unavailable", "retryable": True},
    )


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": VERSION}
