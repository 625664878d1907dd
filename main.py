"""VortexStream - Main application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from vortexstream.api import (
    comments_router,
    dashboard_router,
    health_router,
    likes_router,
    playlists_router,
    subscriptions_router,
    tweets_router,
    users_router,
    videos_router,
)
from vortexstream.config import get_settings
from vortexstream.db.session import init_models
from vortexstream.errors import register_exception_handlers
from vortexstream.logging import setup_logging


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking attacks
        response.headers["X-Frame-Options"] = "DENY"

        # JSON API: nothing should be loaded from our responses
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    settings = get_settings()
    setup_logging(settings)
    if settings.create_tables_on_startup:
        await init_models()
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="VortexStream",
        description="Video sharing backend: videos, comments, likes, subscriptions, playlists and tweets",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Add security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # Cookies carry the session, so credentials must be allowed for the frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(videos_router)
    app.include_router(comments_router)
    app.include_router(likes_router)
    app.include_router(subscriptions_router)
    app.include_router(playlists_router)
    app.include_router(tweets_router)
    app.include_router(dashboard_router)

    return app


app = create_app()


def main():
    """Entry point for running the application."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().env == "dev",
    )


if __name__ == "__main__":
    main()
