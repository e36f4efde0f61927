"""Community Portal - residential community management API."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from community_portal.config import Settings, get_settings
from community_portal.database import create_session_factory, create_tables
from community_portal.gate import AuthorizationGate
from community_portal.logging_config import setup_logging
from community_portal.services.container import build_auth_services
from community_portal.services.oauth import GoogleOAuthClient
from community_portal.services.tokens import TokenCodec

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker | None = None,
    *,
    codec: TokenCodec | None = None,
    oauth: GoogleOAuthClient | None = None,
) -> FastAPI:
    """Build the application with its auth components wired in."""
    settings = settings or get_settings()
    session_factory = session_factory or create_session_factory(settings.database_url, echo=settings.debug)
    auth = build_auth_services(settings, session_factory, codec=codec, oauth=oauth)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        setup_logging(settings.log_level)
        create_tables(session_factory)
        logger.info(f"{settings.app_name} started ({settings.app_env})")
        yield

    app = FastAPI(
        title=settings.app_name,
        description="Residential community management",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.auth = auth

    app.add_middleware(AuthorizationGate, codec=auth.codec, issuer=auth.issuer, settings=settings)
    # CORS for frontend; outermost so preflight requests never reach the gate
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name}

    from community_portal.api import admin, auth as auth_routes, pages

    app.include_router(auth_routes.router, prefix=settings.api_prefix)
    app.include_router(admin.router, prefix=settings.api_prefix)
    app.include_router(pages.router)

    return app


def run() -> None:
    import uvicorn

    uvicorn.run("community_portal.main:create_app", factory=True, host="0.0.0.0", port=8000)
