"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.api.routes import auth, health, notifications, resources, reviews
from app.api.routes import settings as settings_routes
from app.db.session import Database
from app.services.image_storage import upload_root

logger = logging.getLogger(__name__)


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """Build the app with its own connection pool.

    The pool is created here (process start), tables are created on startup,
    and the pool is disposed at shutdown.
    """
    setup_logging()
    database = Database(database_url or settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle: schema check and pool disposal."""
        database.create_all()
        if not settings.jwt_secret_key:
            logger.error("JWT_SECRET is not set: login and authenticated routes will return 503")
        logger.info("%s started (db=%s)", settings.app_name, database.engine.url.render_as_string(hide_password=True))
        yield
        database.dispose()
        logger.info("%s stopped; connection pool disposed", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials="*" not in settings.allowed_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    register_exception_handlers(app)

    # Include API routers
    app.include_router(health.router)
    app.include_router(auth.router, prefix="/api")
    app.include_router(resources.router, prefix="/api")
    app.include_router(reviews.router, prefix="/api")
    app.include_router(settings_routes.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")

    # Uploaded images (resource photos, avatars)
    uploads = upload_root()
    uploads.mkdir(parents=True, exist_ok=True)
    app.mount(settings.upload_url_prefix, StaticFiles(directory=str(uploads)), name="uploads")

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"name": settings.app_name, "status": "running"}

    return app


app = create_app()
