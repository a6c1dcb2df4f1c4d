"""FastAPI application entry point."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from family_dinner.config import Settings
from family_dinner.database import Base, create_db_engine, create_session_factory, register_models
from family_dinner.errors import DomainError, ErrorCode
from family_dinner.schemas.common import failure, ok
from family_dinner.services.notifications import LoggingNotifier

# Import routers
from family_dinner.routers import users, events, reservations, polls

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION: 400,
    ErrorCode.TOO_LATE_TO_CANCEL: 400,
    ErrorCode.DEADLINE_PASSED: 400,
    ErrorCode.INVALID_PROPOSED_DATE: 400,
    ErrorCode.RESERVATION_CLOSED: 400,
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.DUPLICATE_RESERVATION: 409,
    ErrorCode.EVENT_FULL: 409,
    ErrorCode.EVENT_NOT_BOOKABLE: 409,
    ErrorCode.ALREADY_CANCELLED: 409,
    ErrorCode.POLL_ALREADY_ENABLED: 409,
    ErrorCode.POLL_NOT_ACTIVE: 409,
    ErrorCode.EMAIL_IN_USE: 409,
}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        status_code = STATUS_BY_CODE.get(exc.code, 400)
        if status_code >= 409 or exc.code == ErrorCode.FORBIDDEN:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(failure(exc.message, exc.code.value), status_code=status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            failure(_validation_message(exc), ErrorCode.VALIDATION.value),
            status_code=400,
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        # A unique index caught a write that raced past the service checks
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(failure("Request conflicts with existing data", "CONFLICT"), status_code=409)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(failure(detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error while processing %s %s", request.method, request.url.path)
        return JSONResponse(failure("Internal server error"), status_code=500)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app with its own engine, session factory and notifier."""
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    register_models()
    engine = create_db_engine(settings.DATABASE_URL)

    app = FastAPI(
        title="Family Dinner",
        description="Hosted family-style dinners: seat reservations with a waitlist, and date polls",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.notifier = LoggingNotifier(settings.FROM_EMAIL, enabled=settings.NOTIFICATIONS_ENABLED)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    # Register routers
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(events.router, prefix="/api/events", tags=["Events"])
    app.include_router(polls.router, prefix="/api/events", tags=["Polls"])
    app.include_router(reservations.router, prefix="/api/reservations", tags=["Reservations"])

    @app.on_event("startup")
    def on_startup():
        """Create database tables on startup (for SQLite dev mode)."""
        if settings.DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)

    @app.on_event("shutdown")
    def on_shutdown():
        engine.dispose()

    @app.get("/api/health")
    def health_check():
        return ok({"status": "ok"})

    return app


app = create_app()
