"""
UniForm - University Admission Platform - Main Application

FastAPI backend with:
- PostgreSQL for all data (SQLite for tests)
- JWT authentication for students, institution admins and system admins
- Eligibility checks against per-unit requirement rows

Run: uvicorn uniform.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from uniform import __version__
from uniform.api import api_router
from uniform.core.config import get_settings
from uniform.core.errors import AuthenticationError, UniformError
from uniform.db.database import init_db, test_database_connection

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="UniForm",
    description="""
    Centralized university admission platform.

    ## Features
    - **Authentication**: JWT-based auth for students, institution admins and system admins
    - **Students**: Profile with NATIONAL (SSC/HSC) or MADRASHA (Dakhil/Alim) academic record
    - **Explore**: Institutions and units the student is eligible for
    - **Applications**: Apply, track, withdraw, admit card
    - **Units**: Requirement rows, deadlines, application caps, exam schedule
    - **Review**: Approve (seat numbers) or cancel applications
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(UniformError)
async def uniform_error_handler(request: Request, exc: UniformError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = "Something went wrong"
    if settings.debug:
        detail = f"{detail}: {exc}"
    return JSONResponse(status_code=500, content={"detail": detail})


# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create missing tables on startup."""
    init_db()


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "UniForm", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if test_database_connection() else "disconnected"
    }
