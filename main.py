import logging

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from apps.auth.router import router as auth_router
from apps.dashboard.router import router as dashboard_router
from apps.inventory.router import router as inventory_router
from apps.invitations.router import router as invitations_router
from apps.purchase_orders.router import router as purchase_orders_router
from apps.reorder_email.router import router as reorder_email_router
from apps.suppliers.router import router as suppliers_router
from apps.workspaces.router import router as workspaces_router
from common.exceptions import DomainError, ExternalServiceError
from common.responses import error_response
from models.base import Base, engine
from settings.config import get_settings
from utils.logging import setup_logging

# Import models so their tables are registered on Base.metadata
from models import inventory_item, purchase_order, supplier, user, workspace  # noqa: F401

logger = logging.getLogger(__name__)


def _default_rate_limit(requests: int, window_seconds: int) -> str:
    units = {1: "second", 60: "minute", 3600: "hour", 86400: "day"}
    if window_seconds in units:
        return f"{requests}/{units[window_seconds]}"
    return f"{requests} per {window_seconds} seconds"


def create_app() -> FastAPI:
    """
    Application factory to build a FastAPI app with all middlewares and routers.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version="1.0.0",
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Authorization"],
    )

    # Security headers middleware (helmet-like)
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        return response

    if settings.ENABLE_RATE_LIMITER:
        limiter = Limiter(
            key_func=get_remote_address,
            default_limits=[_default_rate_limit(settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)],
            storage_uri=settings.RATE_LIMIT_STORAGE_URI or None,
        )
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
        app.add_middleware(SlowAPIMiddleware)

    # Every categorized failure is rendered with its own status and code
    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError):
        details = exc.details
        if isinstance(exc, ExternalServiceError):
            details = {**(details or {}), "reason": exc.reason}
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.message, exc.code, details))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response("Invalid request.", "validation_error", jsonable_encoder(exc.errors())),
        )

    # Routers
    app.include_router(auth_router)
    app.include_router(workspaces_router)
    app.include_router(invitations_router)
    app.include_router(suppliers_router)
    app.include_router(inventory_router)
    app.include_router(purchase_orders_router)
    app.include_router(reorder_email_router)
    app.include_router(dashboard_router)

    # Create tables only when explicitly enabled (local/dev). Everywhere else, use Alembic migrations.
    @app.on_event("startup")
    async def on_startup():
        if settings.AUTO_CREATE_TABLES:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created from metadata")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
