"""
Main FastAPI application entry point.
Configures the application, middleware, and routes.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from planify.api.errors import register_exception_handlers
from planify.api.rate_limit import RateLimiter, RateLimitMiddleware
from planify.api.routes import auth, health, root, users
from planify.core.config import Settings, settings
from planify.core.errors import AppError
from planify.core.logging import (
    CORRELATION_HEADER,
    bind_correlation_id,
    clear_correlation_id,
    get_logger,
    setup_logging,
)
from planify.db.session import Database
from planify.models.user import UserRole
from planify.services.credential_store import CredentialStore

# Setup logging
setup_logging()
logger = get_logger(__name__)


def bootstrap_superuser(database: Database, app_settings: Settings) -> None:
    """Create the first admin account if it is configured and missing."""
    email = app_settings.FIRST_SUPERUSER_EMAIL
    password = app_settings.FIRST_SUPERUSER_PASSWORD
    if not email or not password:
        logger.info("No first superuser configured, skipping bootstrap")
        return

    with database.session() as session:
        store = CredentialStore(session)
        if store.find_by_email(email) is not None:
            return

        logger.info("Creating first superuser...")
        try:
            store.create(
                {
                    "email": email,
                    "password": password,
                    "first_name": "Admin",
                    "last_name": "User",
                    "role": UserRole.ADMIN,
                }
            )
        except AppError as e:
            logger.error(f"Failed to create superuser: {e.message} {e.errors or ''}")
            return
        logger.info(f"Superuser created: {email}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.
    Initializes the database at startup. At shutdown the pool is disposed
    only when the app built the database itself; an injected one belongs to
    its caller.
    """
    app_settings: Settings = app.state.settings
    database: Database = app.state.database

    logger.info(f"Starting {app_settings.PROJECT_NAME} v{app_settings.VERSION} ({app_settings.ENVIRONMENT})")
    database.init()
    bootstrap_superuser(database, app_settings)
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    if app.state.owns_database:
        database.dispose()


def create_app(app_settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    Args:
        app_settings: Settings to use (defaults to the environment-loaded settings)
        database: Database to use (defaults to one built from the settings).
            An injected database is left open at shutdown.

    Returns:
        Configured FastAPI application
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.VERSION,
        openapi_url=f"{app_settings.API_PREFIX}/openapi.json",
        docs_url=f"{app_settings.API_PREFIX}/docs",
        redoc_url=f"{app_settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.owns_database = database is None
    app.state.database = database or Database.from_settings()

    register_exception_handlers(app, debug=app_settings.DEBUG)

    if app_settings.RATE_LIMIT_ENABLED:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=RateLimiter(app_settings.RATE_LIMIT_REQUESTS, app_settings.RATE_LIMIT_WINDOW_SECONDS),
            path_prefix=app_settings.API_PREFIX,
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Tag the request with a correlation ID and log its outcome and duration."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        bind_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms")
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()

    # CORS for the web client
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", CORRELATION_HEADER],
        expose_headers=[CORRELATION_HEADER, "Retry-After"],
    )

    app.include_router(root.router)
    app.include_router(health.router, prefix=app_settings.API_PREFIX)
    app.include_router(auth.router, prefix=app_settings.API_PREFIX)
    app.include_router(users.router, prefix=app_settings.API_PREFIX)

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured port."""
    import uvicorn

    uvicorn.run("planify.main:app", host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
