"""
Complaint Desk - Main Application
==================================

Farmer complaint lifecycle service.

Modules:
- Access: Role and zone/branch scoped authorization
- Complaints: Ticketing, SLA deadlines, status lifecycle, call logs

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services, ports and DTOs
- Domain: Entities, value objects and the access policy
- Infrastructure: Database (SQLAlchemy) and in-memory adapters
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from complaintdesk.config import settings
from complaintdesk.core import ApplicationException

# Infrastructure
from complaintdesk.infrastructure.database import init_database, close_database, create_tables

# Module Routers
from complaintdesk.complaints.interfaces import complaints_router

# Shared
from complaintdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)
from complaintdesk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Complaint Desk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use migrations in production)
    # If the database is not reachable the server still starts, but
    # complaint endpoints will fail until it is
    logger.info("Creating database tables")
    try:
        await create_tables()
        app.state.database = "connected"
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")
        app.state.database = "unavailable"

    logger.info("Complaint Desk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Complaint Desk")
    await close_database()
    logger.info("Complaint Desk shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Complaint Desk API",
    description="""
    ## Farmer Complaint Lifecycle Service

    Ticketing for farmer complaints with SLA deadlines, phone follow-ups
    and zone/branch scoped access.

    ---

    ### Complaints

    **Endpoints:**
    - `POST /complaints` - Create a complaint
    - `GET /complaints` - List complaints in the caller's scope
    - `GET /complaints/{id}` - Complaint with SLA state
    - `PUT /complaints/{id}` - Edit content or priority
    - `PUT /complaints/{id}/status` - Change status
    - `POST /complaints/{id}/call-logs` - Record a call (may change status)
    - `GET /complaints/sla-summary` - SLA compliance per priority

    ---

    ### SLA Windows

    | Priority | Window |
    |----------|--------|
    | Critical | 30 minutes |
    | Urgent   | 2 hours |
    | Normal   | 8 hours |

    A complaint is breached while unresolved past its deadline. Closing it
    clears the breach; reopening it restores the breach if the deadline has
    passed.

    ---

    ### Acting User

    Every request carries `X-User-Id`. Admins may do everything; executives
    act within their granted permissions and zone/branch.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)
app.state.settings = settings

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(complaints_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {"database": "connected"}
                }
            }
        }
    }
})
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Reports whether table creation reached the database at startup.
    """
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {"database": getattr(app.state, "database", "unknown")}
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Complaint Desk",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "complaints": {
                "prefix": "/complaints",
                "endpoints": [
                    "POST /complaints - Create complaint",
                    "GET /complaints - List complaints",
                    "GET /complaints/{id} - Get complaint",
                    "PUT /complaints/{id} - Edit complaint",
                    "PUT /complaints/{id}/status - Change status",
                    "PUT /complaints/{id}/assign - Assign complaint",
                    "GET /complaints/{id}/history - Status history",
                    "POST /complaints/{id}/call-logs - Record call",
                    "GET /complaints/{id}/call-logs - List calls",
                    "GET /complaints/{id}/default-status - Default call status",
                    "GET /complaints/call-logs/recent - Recent calls",
                    "GET /complaints/sla-summary - SLA summary"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "complaintdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
