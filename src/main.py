"""
Ticket Ops - Main Application
==============================

IT ticketing back-office API: tickets with SLA status, filterable
listings and dashboard statistics.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, SLA/query/stats logic
- Infrastructure: Database, in-memory store, SLA policy file
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from src.config import settings
from src.core import ApplicationException

# Infrastructure
from src.infrastructure.database import init_database, close_database, create_tables

# Ticket module
from src.tickets.infrastructure import (
    SLAPolicyManager,
    InMemoryTicketRepository,
    InMemoryUserDirectory,
    load_user_profiles,
)
from src.tickets.interfaces import tickets_router

# Logging and middleware
from src.shared.infrastructure.logging import setup_logging, get_logger
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load SLA policy and start watching it
    3. Initialize the ticket store (database or in-memory)

    SHUTDOWN:
    1. Stop policy watcher
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Ticket Ops", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "ticket_store": settings.ticket_store
    })
    app.state.settings = settings

    logger.info("Loading SLA policy")
    policy_manager = SLAPolicyManager()
    policy_manager.load(settings.sla_policy_path)
    if settings.watch_sla_policy:
        policy_manager.start_watching()
    app.state.sla_policy = policy_manager

    if settings.ticket_store == "database":
        logger.info("Initializing database")
        init_database()
        # Development convenience; use migrations in production
        await create_tables()
    else:
        logger.info("Using in-memory ticket store")
        app.state.ticket_repository = InMemoryTicketRepository()
        app.state.user_directory = InMemoryUserDirectory(
            load_user_profiles(settings.user_directory_path)
        )

    logger.info("Ticket Ops started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Ticket Ops")
    policy_manager.stop_watching()
    if settings.ticket_store == "database":
        await close_database()
    logger.info("Ticket Ops shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Ticket Ops API",
    description="""
    ## IT Ticketing Back-Office

    **Endpoints:**
    - `GET /tickets` - List tickets with SLA status (filterable, sortable)
    - `GET /tickets/stats` - Counts, SLA histogram, compliance
    - `GET /tickets/overdue` - RED tickets still being worked
    - `GET /tickets/{id}` - Single ticket with SLA status
    - `POST /tickets`, `PATCH /tickets/{id}`, `DELETE /tickets/{id}`
    - `PATCH /tickets/{id}/assign`, `PATCH /tickets/{id}/escalate`
    - `POST /tickets/{id}/notes`, `POST /tickets/bulk-status`, `POST /tickets/bulk-update`

    **SLA Status** is derived on every read from `createdAt`, `slaMinutes`
    and `slaWarningPercent`: `GREEN` → `YELLOW` at the warning threshold →
    `RED` once the budget is used up. Resolved and closed tickets are `GREEN`.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

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
app.include_router(tickets_router)


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
                    "checks": {
                        "ticket_store": "memory",
                        "sla_policy": "loaded"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.
    """
    checks = {
        "ticket_store": settings.ticket_store,
        "sla_policy": "loaded" if hasattr(request.app.state, "sla_policy") else "not_loaded",
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Ticket Ops",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {
                "prefix": "/tickets",
                "endpoints": [
                    "GET /tickets - List tickets with SLA status",
                    "GET /tickets/stats - Ticket statistics",
                    "GET /tickets/overdue - Overdue tickets",
                    "GET /tickets/{id} - Get ticket",
                    "POST /tickets - Create ticket",
                    "PATCH /tickets/{id} - Update ticket",
                    "DELETE /tickets/{id} - Delete ticket"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
