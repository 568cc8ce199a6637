"""
Alumni Placement Portal - Main Application

FastAPI backend with:
- PostgreSQL for alumni, jobs and applications
- JWT authentication
- Placement-policy eligibility engine (services/eligibility.py)

Run: uvicorn alumni_portal.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from alumni_portal.api.routes import api_router
from alumni_portal.core.config import get_settings
from alumni_portal.core.logging import configure_logging
from alumni_portal.services.eligibility import InvalidInputError
from alumni_portal.services.repository import MalformedJobError

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Alumni Placement Portal",
    description="""
    Campus placement portal for alumni.

    ## Features
    - **Authentication**: JWT-based auth for alumni and admins
    - **Jobs**: Eligibility-filtered job listings and applications
    - **Placement policy**: Internship / FTE tiers (X, A1, A2, none)
    - **Admin**: Application history and eligibility diagnostics per alumni
    """,
    version="1.0.0",
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

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Incomplete alumni record reached the eligibility engine: a server-side bug."""
    logger.error("Eligibility evaluated on incomplete data: %s", exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Incomplete alumni record"})


@app.exception_handler(MalformedJobError)
async def malformed_job_handler(request: Request, exc: MalformedJobError):
    """A job row failed validation (e.g. non-integer eligible_courses)."""
    logger.warning("Rejected request on malformed job %s: %s", exc.job_id, exc)
    return JSONResponse(status_code=422, content={"detail": f"Job {exc.job_id} has malformed data"})


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    from alumni_portal.db.postgres import test_postgres_connection

    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected"
    }
