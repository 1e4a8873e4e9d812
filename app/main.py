"""
Udyog Jagat API - Main Application

FastAPI backend with:
- MongoDB for user, referrer and access-code documents
- GridFS for resumes
- JWT authentication

Run: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError, WriteError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import AppError, InternalError, ValidationError
from app.db.mongodb import init_mongo_indexes, test_mongo_connection

# Fails fast when JWT_SECRET_KEY is missing or a placeholder
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DOCUMENT_VALIDATION_FAILURE = 121


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.error(f"MongoDB index initialization failed: {e}")
    yield
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Udyog Jagat API",
    description="""
    Multi-role job board backend.

    ## Features
    - **Authentication**: JWT login with password or one-time access code
    - **Users**: Admin-managed accounts for job seekers, job posters, referrers and admins
    - **Referrers**: Referrer onboarding with organisation hierarchy
    - **Referral codes**: Time-limited access codes for candidates
    - **Resumes**: Upload/download via GridFS
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    debug=settings.debug
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(exc: AppError) -> dict:
    body = {"detail": exc.detail, "error": exc.error_code}
    if exc.errors:
        body["errors"] = exc.errors
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    error = ValidationError(errors=errors)
    return JSONResponse(status_code=error.status_code, content=_error_body(error))


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    # Collection $jsonSchema rejections (DocumentValidationFailure) are client errors
    if isinstance(exc, WriteError) and exc.code == DOCUMENT_VALIDATION_FAILURE:
        details = (exc.details or {}).get("errInfo", {}).get("details", {})
        errors = [
            {"field": prop.get("propertyName", ""), "message": str(prop.get("details", "invalid"))}
            for rule in details.get("schemaRulesNotSatisfied", [])
            for prop in rule.get("propertiesNotSatisfied", [])
        ]
        error = ValidationError("Document failed validation", errors=errors or None)
        return JSONResponse(status_code=error.status_code, content=_error_body(error))

    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=_error_body(error))


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
