"""taskquest - gamified to-do list backend."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskquest.core.config import constants
from taskquest.core.db_client import close_connection, init_db
from taskquest.core.errors import (
    DatabaseError,
    RecordNotFoundError,
    TaskQuestError,
    ValidationError,
    classify_error_with_response,
)
from taskquest.core.logging import configure_logfire, instrument_fastapi
from taskquest.interface.tasks_router import router as tasks_router


logger = logging.getLogger(__name__)


def _status_for(exc: TaskQuestError) -> int:
    if isinstance(exc, ValidationError):
        return constants.HTTP_UNPROCESSABLE
    if isinstance(exc, RecordNotFoundError):
        return constants.HTTP_NOT_FOUND
    return constants.HTTP_SERVER_ERROR


async def handle_taskquest_error(_request: Request, exc: Exception) -> JSONResponse:
    """Render a TaskQuestError as a structured ErrorResponse."""
    response = classify_error_with_response(exc)
    status_code = _status_for(exc) if isinstance(exc, TaskQuestError) else constants.HTTP_SERVER_ERROR
    if isinstance(exc, DatabaseError):
        logger.error("request_failed", extra={"error": str(exc), "code": response.code})
    else:
        logger.info("request_rejected", extra={"error": str(exc), "code": response.code})
    return JSONResponse(content=response.model_dump(mode="json"), status_code=status_code)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    configure_logfire()
    await init_db()
    logger.info("Database initialized")
    yield
    await close_connection()


app = FastAPI(
    title="taskquest",
    description="Gamified to-do list with experience, levels and streaks",
    version="0.1.0",
    lifespan=lifespan,
)

instrument_fastapi(app)

app.add_exception_handler(TaskQuestError, handle_taskquest_error)
app.include_router(tasks_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)
