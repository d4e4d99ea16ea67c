"""
WISMON Backend - FastAPI Application

University backend core: one MySQL pool per logical database and a dual-token
JWT authority, wired together for the authentication and health routes.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wismon.config import Settings, get_settings
from wismon.core.exception_handlers import register_exception_handlers
from wismon.core.rate_limit import RateLimiter
from wismon.core.security import TokenAuthority
from wismon.database.connections import ConnectionManager
from wismon.database.registry import enforce_startup_policy, parse_databases
from wismon.errors import ConfigurationError
from wismon.routers import auth, health

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[ConnectionManager] = None,
    tokens: Optional[TokenAuthority] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use instead of the environment
        manager: Pre-built connection manager; built from settings when omitted
        tokens: Pre-built token authority; built from settings when omitted
        rate_limiter: Limiter for the auth endpoints; a fresh in-memory one when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup:
        - Validate secrets and database configuration
        - Probe every database and apply the startup policy

        Shutdown:
        - Close all database pools
        """
        app_settings = settings or get_settings()
        configure_logging(app_settings.log_level)
        logger.info("Starting up WISMON Backend (%s)...", app_settings.environment)

        authority = tokens or TokenAuthority.from_settings(app_settings)
        db = manager or await ConnectionManager.from_settings(app_settings)

        try:
            try:
                essential = parse_databases(app_settings.essential_database_names)
            except ValueError as e:
                raise ConfigurationError(str(e)) from None

            results = await db.test_connections()
            mode = enforce_startup_policy(results, essential)
        except Exception:
            await db.close()
            raise

        app.state.settings = app_settings
        app.state.db = db
        app.state.tokens = authority
        app.state.started_at = time.monotonic()
        app.state.startup_status = mode
        logger.info("Server ready on port %d (%s mode)", app_settings.port, mode)

        yield

        logger.info("Shutting down WISMON Backend...")
        await db.close()

    app = FastAPI(
        title="WISMON API",
        description="""
## WISMON University Backend API

Student authentication and database health for the WISMON services.

### Authentication
Protected endpoints require an access token in the Authorization header:
```
Authorization: Bearer <access_token>
```

Obtain a token pair via `POST /api/auth/login`; rotate it via
`POST /api/auth/refresh` using the `refreshToken` cookie.
        """,
        version=health.API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^http://localhost:\d+$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.rate_limiter = rate_limiter or RateLimiter()

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "WISMON API",
            "version": health.API_VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    return app
