"""FastAPI application entry point.

This module creates and configures the FastAPI application instance with:
- Middleware (CORS, RequestID, Timing, ErrorLogging, SecurityHeaders)
- Exception handlers (APIException, HTTPException, ValidationError, general)
- API routers (v1)
- Health check endpoints (/health, /ready)
- Startup/shutdown lifecycle management (database, scheduling collaborators)
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_core.api.v1.router import router as v1_router
from booking_core.auth.jwt import JWTTokenHandler
from booking_core.auth.revocation import InMemoryTokenRevocationStore
from booking_core.config import Settings, get_settings
from booking_core.database import Database, check_connection, close_db, create_engine, init_db
from booking_core.exceptions import APIException
from booking_core.middleware import setup_middleware
from booking_core.scheduling import PolicyResolver, SlotLockRegistry
from booking_core.scheduling.availability import Clock, utcnow
from booking_core.services.notifications_service import DatabaseNotificationSink
from booking_core.utils.logging import get_logger, log_error, setup_logging

logger = get_logger("main")


def init_app_state(app: FastAPI, database: Database, settings: Settings, clock: Clock = utcnow) -> None:
    """Attach the per-application collaborators the request dependencies read."""
    app.state.settings = settings
    app.state.database = database
    app.state.policy_resolver = PolicyResolver(settings.booking)
    app.state.slot_locks = SlotLockRegistry()
    app.state.notifier = DatabaseNotificationSink(database.session_factory)
    app.state.revocation_store = InMemoryTokenRevocationStore()
    app.state.jwt_handler = JWTTokenHandler(settings.jwt)
    app.state.clock = clock


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Handles startup and shutdown of:
    - Database engine and session factory
    - Scheduling collaborators (policy resolver, slot locks, notification sink)
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name}...")

    owns_database = not hasattr(app.state, "database")
    if owns_database:
        init_app_state(app, Database(create_engine(settings)), settings)

    try:
        await init_db(app.state.database)
        logger.info(f"{settings.app_name} started successfully")
        yield
    finally:
        logger.info(f"Shutting down {settings.app_name}...")
        if owns_database:
            await close_db(app.state.database)
        logger.info(f"{settings.app_name} shut down successfully")


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
        """Handle custom API exceptions."""
        context = {
            "method": request.method,
            "path": request.url.path,
            "status_code": exc.status_code,
            "code": exc.code,
        }
        if exc.status_code >= 500:
            log_error(exc, context=context)
        else:
            logger.info(f"{exc.code}: {exc.message}", extra={"extra_fields": context})
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions (404, 405, etc.)."""
        logger.warning(f"{exc.status_code}: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "message": exc.detail,
                    "code": "HTTP_ERROR",
                    "status_code": exc.status_code,
                    "details": {},
                }
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors."""
        errors = [
            {
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "message": error.get("msg"),
                "type": error.get("type"),
            }
            for error in exc.errors()
        ]
        logger.warning(
            f"Validation error: {request.method} {request.url.path}",
            extra={"extra_fields": {"validation_errors": errors}},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {
                    "message": "Validation failed",
                    "code": "VALIDATION_ERROR",
                    "status_code": 422,
                    "details": {"validation_errors": errors},
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        log_error(exc, context={"method": request.method, "path": request.url.path, "unhandled": True})

        # Don't expose internal error details in production
        message = "An internal server error occurred" if settings.is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "message": message,
                    "code": "INTERNAL_SERVER_ERROR",
                    "status_code": 500,
                    "details": {} if settings.is_production else {"exception_type": type(exc).__name__},
                }
            },
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Salon Booking Core",
        description=(
            "Scheduling core for a multi-tenant salon booking platform: slot availability, "
            "appointment booking, lifecycle transitions and reschedules."
        ),
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        debug=settings.debug,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "slots", "description": "Slot availability for a service on a day"},
            {"name": "appointments", "description": "Booking, status transitions and reschedules"},
            {"name": "salons", "description": "Salon booking policy and operating hours"},
            {"name": "notifications", "description": "In-app notification inbox"},
            {"name": "auth", "description": "Token introspection and logout"},
        ],
    )
    app.state.settings = settings

    setup_middleware(app, settings)
    app.include_router(v1_router)
    register_exception_handlers(app, settings)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app_name": settings.app_name,
            "environment": settings.environment.value,
        }

    @app.get("/ready")
    async def readiness_check(request: Request):
        """Readiness check endpoint with database connectivity check."""
        database: Optional[Database] = getattr(request.app.state, "database", None)
        db_connected = database is not None and await check_connection(database.engine)

        body = {
            "status": "ready" if db_connected else "not_ready",
            "app_name": settings.app_name,
            "environment": settings.environment.value,
            "database": "connected" if db_connected else "disconnected",
        }
        if not db_connected:
            logger.warning("Readiness check failed: database not connected")
            return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
        return body

    return app


app = create_app()
