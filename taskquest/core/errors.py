"""Error taxonomy and classification for task operations."""

from enum import Enum

from pydantic import BaseModel


class TaskQuestError(Exception):
    """Base class for errors raised by taskquest operations."""


class ValidationError(TaskQuestError, ValueError):
    """Input rejected before any write (empty title, bad estimate, unknown enum value)."""


class DatabaseError(TaskQuestError, RuntimeError):
    """Storage operation failed."""


class RecordNotFoundError(TaskQuestError, KeyError):
    """Record does not exist in the requested collection."""

    def __str__(self) -> str:
        # KeyError wraps its message in quotes
        return str(self.args[0]) if self.args else ""


class TaskNotFoundError(RecordNotFoundError):
    """Operation references a task id that does not exist."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class StatsNotFoundError(RecordNotFoundError):
    """User has no stats record yet (they have never created a task)."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No stats recorded for user: {user_id}")
        self.user_id = user_id


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_STATS_NOT_FOUND = "ERR_STATS_NOT_FOUND"
    ERR_DATABASE = "ERR_DATABASE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception) or "The request was invalid.",
            suggestion="Check the task fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, TaskNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="I couldn't find that task.",
            suggestion="Refresh your task list; it may have been deleted.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, StatsNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_STATS_NOT_FOUND,
            message="No stats yet for this user.",
            suggestion="Create a task first to start tracking stats.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, DatabaseError):
        return ErrorResponse(
            code=ErrorCode.ERR_DATABASE,
            message="Storage error occurred.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
