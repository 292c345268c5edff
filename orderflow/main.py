"""
FastAPI Application Entry Point

Restaurant order service with real-time synchronization.

Endpoints:
    - /api/orders...: Order mutation API (create, bulk create, update, delete, list)
    - /api/foods...: Menu CRUD
    - WS /ws: Live channel (disabled in serverless mode)
    - GET /health: System health check

Run with:
    uvicorn orderflow.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from orderflow.core.config import Settings, get_settings, setup_logging
from orderflow.core.exceptions import OrderFlowError
from orderflow.database import Database
from orderflow.realtime import endpoint as realtime_endpoint
from orderflow.realtime.broadcaster import EventBroadcaster
from orderflow.realtime.hub import RealtimeHub
from orderflow.routes import foods, orders
from orderflow.schemas import HealthResponse
from orderflow.services.notifications import get_notification_service
from orderflow.services.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(f"   Live channel: {'disabled (serverless)' if settings.serverless_mode else '/ws'}")
    logger.info("=" * 60)

    # Initialize database
    await app.state.db.create_all()
    logger.info("✅ Database initialized")

    if settings.notifications_enabled:
        logger.info(f"✅ Notification Service: {get_notification_service().provider_name}")
    else:
        logger.info("✅ Notifications disabled")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await app.state.broadcaster.drain()
    await app.state.db.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and its long-lived collaborators.

    Everything shared between requests (database, hub, broadcaster) hangs
    off ``app.state``, so tests can build isolated apps from their own
    settings.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Restaurant order service. Order mutations are pushed to admins and "
            "customers over a live channel, with polling as the fallback."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    hub = None if settings.serverless_mode else RealtimeHub()
    notifier = NotificationDispatcher() if settings.notifications_enabled else None

    app.state.settings = settings
    app.state.db = Database(settings.database_url, echo=settings.database_echo)
    app.state.hub = hub
    app.state.broadcaster = EventBroadcaster(hub, notifier)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(orders.router)
    app.include_router(foods.router)
    if hub is not None:
        app.include_router(realtime_endpoint.router)

    register_exception_handlers(app)
    register_system_routes(app)
    return app


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

def _check_redis(url: str) -> str:
    try:
        r = redis.Redis.from_url(url, socket_timeout=2, socket_connect_timeout=2)
        r.ping()
        r.close()
        return "healthy"
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return f"unhealthy: {str(e)}"


def register_system_routes(app: FastAPI) -> None:

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, Any]:
        """API root with navigation links."""
        settings: Settings = app.state.settings
        return {
            "message": f"🍕 Welcome to {settings.app_name}",
            "restaurant": settings.restaurant_name,
            "version": settings.app_version,
            "environment": settings.env_mode.value,
            "liveChannel": None if settings.serverless_mode else "/ws",
            "documentation": "/docs",
            "health": "/health",
        }

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="System Health Check",
    )
    async def health_check() -> HealthResponse:
        """Verify all system components are operational."""
        settings: Settings = app.state.settings

        # Check database
        db_status = "healthy"
        try:
            await app.state.db.ping()
        except Exception as e:
            db_status = f"unhealthy: {str(e)}"
            logger.error(f"Database health check failed: {e}")

        # Check Redis (blocking client)
        redis_status = await asyncio.to_thread(_check_redis, settings.redis_url)

        # Check notification service
        if settings.notifications_enabled:
            service = get_notification_service()
            notification_status = "healthy" if await service.health_check() else "unhealthy"
        else:
            notification_status = "disabled"

        overall = "operational" if all(
            s in ("healthy", "disabled") for s in [db_status, redis_status, notification_status]
        ) else "degraded"

        hub: Optional[RealtimeHub] = app.state.hub
        return HealthResponse(
            status=overall,
            database=db_status,
            redis=redis_status,
            notification_service=notification_status,
            live_connections=len(hub) if hub is not None else 0,
            timestamp=datetime.now(timezone.utc),
        )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(OrderFlowError)
    async def order_flow_error_handler(request: Request, exc: OrderFlowError) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            message = str(err.get("msg", "Invalid value"))
            errors.append({"field": field, "message": message.removeprefix("Value error, ")})
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": str(exc) if app.state.settings.debug else "An unexpected error occurred",
            },
        )


setup_logging()
app = create_app()
