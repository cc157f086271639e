from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from feedback_intel.config import settings
from feedback_intel.routers import feedback, health, views
from feedback_intel.core.database import init_db, close_db
from feedback_intel.core.structured_logging import APP_VERSION, setup_logging
from feedback_intel.core.errors import FeedbackIntelError
from feedback_intel.core.errors.registry import error_registry
from feedback_intel.core.errors.middleware import feedback_intel_error_handler
from feedback_intel.core.log_middleware import CorrelationMiddleware
from feedback_intel.dependencies import shutdown_dependencies

# Initialize structured logging before any logger calls
setup_logging(log_dir=settings.log_dir, log_file=settings.log_file, log_level=settings.log_level)

logger = logging.getLogger(__name__)

API_TITLE = settings.app_name
API_DESCRIPTION = """
Dashboard backend for customer feedback: sentiment-tagged ingestion and
cached aggregate views (stats, top issues, repeat users, longest
unresolved, AI insights).
"""

TAGS_METADATA = [
    {"name": "health", "description": "Liveness and component checks"},
    {"name": "views", "description": "Dashboard views over stored feedback"},
    {"name": "feedback", "description": "Feedback ingestion and demo seeding"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting %s v%s (cache=%s)", API_TITLE, APP_VERSION, settings.cache_backend)

    error_registry.load()

    init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down %s...", API_TITLE)
    await shutdown_dependencies()
    close_db()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=APP_VERSION,
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (request_id + correlation_id in every log)
    app.add_middleware(CorrelationMiddleware)

    # Structured error handler for FeedbackIntelError
    app.add_exception_handler(FeedbackIntelError, feedback_intel_error_handler)

    # Catch-all handler so unhandled exceptions return JSON (not bare text)
    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error"},
        )

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(views.router, prefix="/api", tags=["views"])
    app.include_router(feedback.router, prefix="/api", tags=["feedback"])

    @app.get("/", tags=["health"], summary="API Root")
    async def root():
        return {
            "name": API_TITLE,
            "version": APP_VERSION,
            "status": "running",
            "docs": {"swagger": "/docs", "redoc": "/redoc", "openapi": "/openapi.json"},
        }

    return app


# Create the app instance
app = create_app()
