"""
SchoolTalk Backend - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps service errors to JSON error responses
5. Registers all API route handlers

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: Credentials, roster, session flow, roster transfer
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schooltalk import __version__
from schooltalk.config import DATABASE_URL
from schooltalk.database import create_tables
from schooltalk.errors import SchoolTalkError
from schooltalk.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from schooltalk.routes import auth, students, roster

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

# ──────────────────────────────────────────────────────────────
# Create FastAPI application
# ──────────────────────────────────────────────────────────────
app = FastAPI(
    title="SchoolTalk Backend",
    description=(
        "Teacher accounts, per-account student rosters looked up by code, "
        "and roster transfer between accounts."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# ──────────────────────────────────────────────────────────────
# CORS Middleware
#
# The web client runs on a different origin during development.
# In production, restrict origins to the actual frontend domain.
# ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a unique UUID per incoming request and:
# 1. Stores it in a context variable (available to all log entries)
# 2. Returns it in the X-Request-ID response header
# 3. Logs request start/end with latency measurement
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every request with a UUID and log its start, end and latency."""
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    # Credentials travel in headers; only the account id is logged
    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id, "account_id": request.headers.get("x-account-id", "")},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Error mapping
#
# Services raise SchoolTalkError subclasses; each carries its own
# HTTP status. Storage failures come back as 503 with retryable=true.
# ──────────────────────────────────────────────────────────────
@app.exception_handler(SchoolTalkError)
async def schooltalk_error_handler(request: Request, exc: SchoolTalkError):
    level = "ERROR" if exc.status_code >= 500 else "INFO"
    log_with_context(logger, level,
        f"{exc.__class__.__name__}: {exc.detail}",
        extra_data={"path": request.url.path, "status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(auth.router, tags=["Auth"])
app.include_router(students.router, tags=["Students"])
app.include_router(roster.router, tags=["Roster"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "schooltalk-backend", "version": __version__}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "SchoolTalk Backend",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "identify": "POST /api/auth/identify",
            "register": "POST /api/auth/register",
            "verify": "POST /api/auth/verify",
            "rotate": "POST /api/auth/rotate",
            "students_list": "GET /api/students",
            "student_add": "POST /api/students",
            "student_lookup": "GET /api/students/lookup?code=",
            "student_detail": "GET /api/students/{id}",
            "student_progress": "PATCH /api/students/{id}/progress",
            "student_remove": "DELETE /api/students/{id}",
            "transfer": "POST /api/roster/transfer"
        }
    }
