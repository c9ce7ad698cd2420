# ============================================================
# SPDX-License-Identifier: GPL-3.0-or-later
# This program was generated as part of the AgentFoundry project.
# Copyright (C) 2025  John Brosnihan
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# ============================================================
"""FastAPI ASGI application factory for the Session Guard service.

This module provides the main FastAPI application with:
- Request ID middleware for correlation
- Session guard middleware validating every guarded request
- Health check endpoint
- Lifespan management for proper resource cleanup
- Uvicorn entrypoint
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse

from session_guard import __service_name__, __version__
from session_guard.config import ConfigurationError, Settings, get_settings
from session_guard.dependencies import DependencyContainer
from session_guard.logging import configure_logging, get_logger, request_id_ctx
from session_guard.middleware import SessionGuardMiddleware

REQUEST_ID_HEADER = b"x-request-id"


class RequestIDMiddleware:
    """Middleware that generates and attaches request IDs.

    This middleware:
    1. Generates a UUID4 request ID for each incoming request
    2. Sets the request ID in the structlog context for downstream logging
    3. Adds the request ID to the response headers

    Implemented as a pure ASGI middleware to ensure context is preserved
    through exception handling.
    """

    def __init__(self, app: Any) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
        """
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Process the request and attach request ID.

        Args:
            scope: The ASGI connection scope.
            receive: The receive callable.
            send: The send callable.
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        request_id_token = request_id_ctx.set(request_id)

        scope["state"] = scope.get("state", {})
        scope["state"]["request_id"] = request_id

        async def send_with_request_id(message: dict[str, Any]) -> None:
            """Wrapper to add request ID to response headers."""
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_ctx.reset(request_id_token)


def create_health_router(container: DependencyContainer) -> APIRouter:
    """Create a router with the health check endpoint.

    Args:
        container: The dependency container for health checks.

    Returns:
        A FastAPI APIRouter with the health endpoint.
    """
    router = APIRouter()
    logger = get_logger(__name__)

    @router.get("/healthz")
    async def health_check() -> JSONResponse:
        """Health check endpoint.

        - 200 OK with status "healthy": store reachable (or in-memory)
        - 200 OK with status "degraded": store unreachable
        - 503 Service Unavailable: dependencies failed to initialize
        """
        dep_health = container.health_check()
        if not dep_health["healthy"]:
            logger.error("Health check failed", dependencies=dep_health)
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "service": __service_name__,
                    "version": __version__,
                    "error": "Dependency initialization failed",
                },
            )

        backend_status = await container.health_check_backends(timeout_seconds=2.0)
        backends_healthy = all(
            status in ("ok", "in_memory") for status in backend_status.values()
        )

        if not backends_healthy:
            logger.warning("Health check degraded", backends=backend_status)

        return JSONResponse(
            status_code=200,
            content={
                "status": "healthy" if backends_healthy else "degraded",
                "service": __service_name__,
                "version": __version__,
                "backends": backend_status,
            },
        )

    return router


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the ASGI application factory. It:
    1. Validates configuration (fails fast if invalid)
    2. Configures structured logging
    3. Initializes dependencies
    4. Sets up middleware and lifespan management
    5. Mounts routers

    Args:
        settings: Optional settings instance. If not provided,
                  will be loaded from environment variables.

    Returns:
        The configured FastAPI application.

    Raises:
        ConfigurationError: If configuration or dependencies are invalid.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings)
    logger = get_logger(__name__)

    logger.info(
        "Starting Session Guard",
        version=__version__,
        environment=settings.guard_environment,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
    logger.debug("Configuration loaded", config=settings.get_redacted_config_dict())

    container = DependencyContainer(settings)

    dep_health = container.health_check()
    if not dep_health["healthy"]:
        logger.error("Dependencies failed to initialize", health=dep_health)
        raise ConfigurationError(
            f"Failed to initialize dependencies: {dep_health.get('error', 'Unknown error')}"
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Close the session store when the application shuts down."""
        logger.info("Application lifespan started")
        yield
        logger.info("Application shutting down, closing dependencies...")
        await container.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Session Guard",
        description="Session binding and anti-replay token rotation",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.container = container

    # Added first so it runs innermost, after the request ID is set
    app.add_middleware(SessionGuardMiddleware, container=container)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(create_health_router(container))

    from session_guard.routes.session import create_session_router

    app.include_router(create_session_router(container))

    logger.info("Session Guard started successfully")

    return app


def main() -> None:
    """Uvicorn entrypoint for running the service.

    This function is called when running `session-guard` from the command
    line or `python -m session_guard.app`.
    """
    import uvicorn

    try:
        settings = get_settings()

        uvicorn.run(
            "session_guard.app:create_app",
            factory=True,
            host=settings.service_host,
            port=settings.service_port,
            log_level=settings.log_level.lower(),
            reload=False,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
