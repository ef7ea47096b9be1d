"""
Octodon - FastAPI Application

Main entry point for the Octodon service: a single-owner, Mastodon-compatible
API serving posts from a compiled snapshot, with sign-in bridged to GitHub.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.common.http_errors import (
    register_octodon_exception_handlers,
    unexpected_exception_handler,
)
from services.common.logging_config import (
    create_request_logging_middleware,
    get_logger,
    log_service_shutdown,
    log_service_startup,
    setup_service_logging,
)
from services.octodon import __version__
from services.octodon.routers import (
    accounts_router,
    apps_router,
    instance_router,
    oauth_router,
    statuses_router,
    timelines_router,
)
from services.octodon.schemas.instance import HealthStatus
from services.octodon.settings import get_settings

# Set up centralized logging - will be initialized in lifespan
logger = get_logger(__name__)

ENDPOINTS = [
    "POST /api/v1/apps",
    "GET /oauth/authorize",
    "POST /oauth/token",
    "GET /api/v1/instance",
    "GET /api/v1/accounts/verify_credentials",
    "GET /api/v1/accounts/:id",
    "GET /api/v1/accounts/:id/statuses",
    "GET /api/v1/timelines/public",
    "GET /api/v1/timelines/home",
    "GET /api/v1/statuses/:id",
    "POST /api/v1/statuses",
    "GET /api/v1/preferences",
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Configures logging and refuses to start without the state signing secret.
    """
    settings = get_settings()

    setup_service_logging(
        service_name=settings.service_name,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )

    log_service_startup(
        settings.service_name,
        environment=settings.environment,
        debug=settings.debug,
        snapshot_source=settings.snapshot_source,
        identity_provider="configured" if settings.provider_configured else "missing",
        owner_login="configured" if settings.owner_login else "missing",
        write_enabled=settings.write_enabled,
        commit_credential="owner token"
        if settings.commits_with_owner_token
        else "store token",
    )

    # Validate required configuration
    if not settings.oauth_state_secret:
        logger.error("OAUTH_STATE_SECRET is required but not configured")
        logger.error(
            "Set the OAUTH_STATE_SECRET environment variable or configure it in settings"
        )
        raise RuntimeError("OAUTH_STATE_SECRET is required but not configured")

    if settings.provider_configured and not settings.owner_login:
        logger.warning(
            "OWNER_LOGIN is not configured; every sign-in will be refused"
        )

    yield

    log_service_shutdown(settings.service_name)


def create_app() -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    This prevents initialization during module import and allows for proper
    configuration based on available settings.
    """
    settings = get_settings()

    app = FastAPI(
        title="Octodon",
        description="Single-owner Mastodon-compatible API backed by a static snapshot",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Add centralized request logging middleware; unexpected errors are
    # answered here so the CORS middleware still wraps the 500
    app.middleware("http")(
        create_request_logging_middleware(
            error_handler=unexpected_exception_handler
        )
    )

    # Added last so it is the outermost middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Link"],
    )

    # Register exception handlers
    register_octodon_exception_handlers(app)

    app.include_router(apps_router)
    app.include_router(oauth_router)
    app.include_router(instance_router)
    app.include_router(accounts_router)
    app.include_router(timelines_router)
    app.include_router(statuses_router)

    @app.get("/", tags=["Health"], summary="Service information")
    async def root() -> Dict[str, Any]:
        return {
            "name": settings.instance_title,
            "version": settings.instance_version,
            "description": settings.instance_description,
            "endpoints": ENDPOINTS,
        }

    @app.get(
        "/health",
        tags=["Health"],
        summary="Service health check",
        description="Basic health check for load balancer liveness probes",
        response_model=HealthStatus,
    )
    async def health_check() -> HealthStatus:
        return HealthStatus(
            status="healthy",
            service=settings.service_name,
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=settings.environment,
        )

    return app


# Global app instance - will be created lazily
_app: FastAPI | None = None


def get_app() -> FastAPI:
    """Get the FastAPI application instance, creating it if necessary."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


class AppProxy:
    """Proxy object that creates the FastAPI app on first access."""

    def __getattr__(self, name: str) -> Any:
        return getattr(get_app(), name)

    async def __call__(self, scope: Any, receive: Any, send: Any) -> Any:
        """ASGI callable interface."""
        app_instance = get_app()
        return await app_instance(scope, receive, send)


# For uvicorn compatibility, we need an app variable at module level
app = AppProxy()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "services.octodon.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=False,  # request logging is done by the middleware
    )
