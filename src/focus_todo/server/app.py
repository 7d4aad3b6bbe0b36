"""FastAPI resource server for focus-todo."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_config
from ..errors import FocusTodoError
from ..storage.database import get_db
from .deps import reset_llm_client
from .routes import (
    ai_router,
    analytics_router,
    categories_router,
    focus_sessions_router,
    goals_router,
    task_lists_router,
    tasks_router,
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Opens the database on startup and releases the language model client
    on shutdown.
    """
    config = get_config()
    logging.getLogger().setLevel(config.log_level.upper())
    logger.info("Starting focus-todo resource server")

    db = get_db()
    logger.info(f"Database initialized at {db.db_path}")

    yield

    logger.info("Shutting down focus-todo resource server")
    reset_llm_client()


def create_app() -> FastAPI:
    """Build the resource server application."""
    app = FastAPI(
        title="focus-todo",
        description="Tasks, recurring series, focus sessions and analytics",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_config().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tasks_router)
    app.include_router(task_lists_router)
    app.include_router(categories_router)
    app.include_router(focus_sessions_router)
    app.include_router(goals_router)
    app.include_router(analytics_router)
    app.include_router(ai_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "focus-todo", "version": __version__}

    @app.exception_handler(FocusTodoError)
    async def application_error_handler(request: Request, exc: FocusTodoError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "type": exc.error_type},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_errors(exc), "type": "validation_error"},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "type": "internal_error"},
        )

    return app


def jsonable_errors(exc: RequestValidationError):
    """Validation errors without the raw input values."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


app = create_app()
