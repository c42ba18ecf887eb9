import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI

from app.api.dependencies import get_connection_manager, optional_identity
from app.api.errors import register_exception_handlers
from app.api.middleware import register_middleware
from app.api.routes import auth
from app.core.config import Settings, settings as default_settings
from app.core.database import ConnectionManager
from app.core.scheduler import ConnectionSupervisor
from app.core.security import AuthenticatedIdentity, PasswordHasher, TokenService
from app.services.auth_service import AuthService

API_TITLE = "Aura API"
API_VERSION_STRING = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        stream=sys.stdout,
    )
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    db = ConnectionManager(settings)
    supervisor = ConnectionSupervisor(db)
    # Lost connections are handed to the background scheduler, never to the request
    db.on_disconnect = supervisor.request_reconnect

    tokens = TokenService.from_settings(settings)
    hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage app lifecycle events.

        Startup: connect to the database in the background; requests are
        accepted immediately even if the database is still unreachable
        Shutdown: stop the scheduler and close the pool
        """
        supervisor.start()
        logger.info(f"{API_TITLE} {settings.API_VERSION} started ({settings.ENVIRONMENT})")
        yield
        supervisor.stop()
        db.close()

    app = FastAPI(
        title=API_TITLE,
        description="Authentication API for the Aura marketing dashboard",
        version=API_VERSION_STRING,
        lifespan=lifespan,
    )
    app.state.db = db
    app.state.tokens = tokens
    app.state.auth_service = AuthService(db, hasher, tokens)

    register_middleware(app, settings)
    register_exception_handlers(app, settings)

    api_prefix = settings.api_prefix
    app.include_router(auth.router, prefix=api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint - API information"""
        return {
            "message": f"Welcome to {API_TITLE}",
            "version": API_VERSION_STRING,
            "documentation": api_prefix,
        }

    @app.get("/health")
    def health(db: ConnectionManager = Depends(get_connection_manager)):
        """Liveness probe - always 200, database state reported as a sub-status"""
        return {
            "status": "ok",
            "message": f"{API_TITLE} is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.ENVIRONMENT,
            "version": API_VERSION_STRING,
            "database": "connected" if db.health_check() else "disconnected",
        }

    @app.get(api_prefix)
    async def api_index(identity: Optional[AuthenticatedIdentity] = Depends(optional_identity)):
        """API version index; mentions the caller when a valid token is sent"""
        body = {
            "message": f"{API_TITLE} {settings.API_VERSION}",
            "version": API_VERSION_STRING,
            "endpoints": {
                "health": "/health",
                "register": f"{api_prefix}/auth/register",
                "login": f"{api_prefix}/auth/login",
                "me": f"{api_prefix}/auth/me",
            },
        }
        if identity is not None:
            body["authenticated_as"] = identity.email
        return body

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level="debug" if default_settings.DEBUG else "info",
    )
