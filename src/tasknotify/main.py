from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Optional
from zoneinfo import ZoneInfo

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .context import AppContext, build_context
from .logging_setup import setup_logging
from .routers import sweeps as sweeps_router
from .routers import tasks as tasks_router
from .routers import users as users_router
from .routers import validation as validation_router
from .scheduler import run_daily_sweeps
from .settings import get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "CRUD operations on the caller's tasks, ordered by due date."},
    {"name": "users", "description": "Identity directory: register, look up and remove accounts."},
    {"name": "validation", "description": "Input validation helpers used by the web client."},
    {"name": "sweeps", "description": "Manual trigger of the overdue-task notification sweep."},
]


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    context: AppContext = app.state.context
    scheduler: Optional[asyncio.Task] = None
    if context.settings.enable_sweep_scheduler:
        # an unknown zone must fail startup, not the background task
        ZoneInfo(context.settings.sweep_timezone)
        scheduler = asyncio.create_task(run_daily_sweeps(context), name="overdue-sweep-scheduler")
        logger.info("Daily overdue sweep scheduler started")
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await scheduler
            logger.info("Daily overdue sweep scheduler stopped")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


# PUBLIC_INTERFACE
def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the FastAPI application around an AppContext.

    When no context is given one is built from environment settings. The
    context is kept on app.state and shared by every request.
    """
    if context is None:
        context = build_context(get_settings())
    settings = context.settings

    app = FastAPI(
        title="Task Notify Backend",
        description="Task management API with scheduled email notifications for overdue tasks.",
        version="0.2.0",
        openapi_tags=openapi_tags,
        lifespan=_lifespan,
    )
    app.state.context = context

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and configured backends.
        """
        return {
            "message": "Healthy",
            "backend": settings.persistence_backend,
            "email_backend": settings.email_backend,
            "scheduler": settings.enable_sweep_scheduler,
        }

    app.include_router(users_router.router)
    app.include_router(tasks_router.router)
    app.include_router(validation_router.router)
    app.include_router(sweeps_router.router)
    return app


app = create_app()


# PUBLIC_INTERFACE
def serve() -> None:
    """Entry point of the `tasknotify-api` console script: configure logging and run the module app."""
    settings = app.state.context.settings
    setup_logging(settings.log_level)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
