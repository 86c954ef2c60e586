"""
Virtual filesystem error taxonomy and the handlers that turn every failure
into the same JSON error envelope.
"""
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cloudfs.core.config import settings
from cloudfs.core.logger import get_logger
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = get_logger(__name__)


class BaseAPIException(Exception):
    """Base exception class for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationException(BaseAPIException):
    """Exception for authentication errors."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTHENTICATION_ERROR"
        )


class FileSystemError(BaseAPIException):
    """Base class for every virtual filesystem failure."""


class InvalidPathError(FileSystemError):
    """Malformed path, or a path the caller may not act on.

    Raised by local validation before any store call is issued.
    """

    def __init__(self, path: str, reason: str = "malformed path"):
        self.path = path
        self.reason = reason
        super().__init__(
            message=f"Invalid path '{path}': {reason}",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="INVALID_PATH",
            details={"path": path, "reason": reason}
        )


class AlreadyExistsError(FileSystemError):
    """An object already occupies the requested path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            message=f"Object '{path}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            error_code="ALREADY_EXISTS",
            details={"path": path}
        )


class NotFoundError(FileSystemError):
    """No object exists at the requested path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            message=f"Object '{path}' not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details={"path": path}
        )


class NotAFolderError(FileSystemError):
    """A folder path was expected."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            message=f"'{path}' is not a folder",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="NOT_A_FOLDER",
            details={"path": path}
        )


class NotAFileError(FileSystemError):
    """A file path was expected."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            message=f"'{path}' is not a file",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="NOT_A_FILE",
            details={"path": path}
        )


class StoreOperationError(FileSystemError):
    """A call to the backing object store failed.

    The original client exception is kept on ``cause`` (and chained as
    ``__cause__`` by the drivers).
    """

    def __init__(
        self,
        operation: str,
        key: str,
        cause: Optional[BaseException] = None,
        message: Optional[str] = None,
        error_code: str = "STORE_OPERATION_FAILED",
        details: Optional[Dict[str, Any]] = None
    ):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(
            message=message or f"Object store {operation} failed for '{key}'",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=error_code,
            details={"operation": operation, "key": key, **(details or {})}
        )


class PartialOperationError(StoreOperationError):
    """A multi-object operation stopped part-way.

    The store is left in the partially mutated state described by
    ``completed`` (keys already processed) and ``failed`` (key -> cause).
    Nothing is rolled back.
    """

    def __init__(
        self,
        operation: str,
        key: str,
        completed: List[str],
        failed: Dict[str, str],
        cause: Optional[BaseException] = None
    ):
        self.completed = completed
        self.failed = failed
        super().__init__(
            operation=operation,
            key=key,
            cause=cause,
            message=(
                f"Folder {operation} of '{key}' partially failed: "
                f"{len(failed)} object(s) failed, {len(completed)} completed"
            ),
            error_code="PARTIAL_OPERATION",
            details={"completed": completed, "failed": failed}
        )


def create_error_response(
    message: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Build the ``{"error": {...}}`` envelope shared by every failure response."""
    body: Dict[str, Any] = {
        "message": message,
        "code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    if request_id:
        body["request_id"] = request_id
    return {"error": body}


def _error_json(
    request: Request,
    status_code: int,
    message: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Request failed",
        status_code=status_code,
        error_code=error_code,
        error_message=message,
        path=request.url.path,
        method=request.method
    )
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(message, error_code, details, request_id),
        headers=headers
    )


async def api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    return _error_json(request, exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_json(request, exc.status_code, str(exc.detail), "HTTP_ERROR")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten pydantic errors to ``field``/``message``/``type`` triples."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_json(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": errors}
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort; internals are only exposed in development."""
    logger.error(
        "Unhandled exception",
        exception_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc
    )

    details = None
    message = "Internal server error"
    if settings.is_development:
        message = f"{message}: {exc}"
        details = {"traceback": "".join(traceback.format_exception(exc))}

    return _error_json(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        message,
        "INTERNAL_SERVER_ERROR",
        details
    )


EXCEPTION_HANDLERS = (
    (BaseAPIException, api_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (Exception, unhandled_exception_handler),
)


def setup_exception_handlers(app) -> None:
    """Register the error envelope handlers on ``app``."""
    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)
