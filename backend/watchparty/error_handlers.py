"""
Error handling for WatchParty

HTTP failures become the JSON envelope
{"success": false, "error", "message", "status_code", "details"?};
WebSocket failures become {"type": "error", ...} frames on the socket.
"""

from traceback import format_exc
from typing import Any, Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from watchparty.config import settings
from watchparty.exceptions import AppException, ErrorCode
from watchparty.utils.logging_config import fastapi_logger, websocket_logger


HTTP_ERROR_CODES = {
    404: ErrorCode.NOT_FOUND,
    422: ErrorCode.VALIDATION_ERROR,
}


def error_envelope(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "success": False,
        "error": code.value,
        "message": message,
        "status_code": status_code,
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def validation_errors(errors, skip_location: bool = False) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts into {field, message, type} entries."""
    result = []
    for error in errors:
        loc = error["loc"][1:] if skip_location else error["loc"]
        result.append({
            "field": ".".join(str(part) for part in loc),
            "message": error["msg"],
            "type": error["type"],
        })
    return result


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on the application."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        fastapi_logger.warning(
            "Request failed",
            extra={"path": request.url.path, "error": exc.code.value, "details": exc.details}
        )
        return error_envelope(exc.code, exc.message, exc.status_code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.INTERNAL_SERVER_ERROR)
        fastapi_logger.warning(
            "HTTP error",
            extra={"path": request.url.path, "status_code": exc.status_code}
        )
        return error_envelope(code, str(exc.detail) if exc.detail else "HTTP error", exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = validation_errors(exc.errors(), skip_location=True)
        fastapi_logger.warning(
            "Request validation failed",
            extra={"path": request.url.path, "validation_errors": errors}
        )
        return error_envelope(
            ErrorCode.VALIDATION_ERROR,
            "Validation error - please check your input",
            422,
            {"validation_errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        fastapi_logger.exception("Unhandled error", extra={"path": request.url.path})

        details = None
        message = "An unexpected error occurred. Please try again later."
        if settings.DEBUG:
            message = f"{type(exc).__name__}: {exc}"
            details = {"traceback": format_exc()}
        return error_envelope(ErrorCode.INTERNAL_SERVER_ERROR, message, 500, details)


# ==================== WebSocket ====================

async def send_error_frame(websocket: WebSocket, exc: AppException) -> bool:
    """Send exc as an error frame; False if the socket is already gone."""
    try:
        await websocket.send_json({"type": "error", **exc.to_dict()})
        return True
    except Exception as e:
        log_send_failure(e, message_type="error")
        return False


def log_send_failure(
    error: Exception,
    connection_id: Optional[str] = None,
    room_id: Optional[str] = None,
    message_type: Optional[str] = None,
) -> None:
    websocket_logger.warning(
        "WebSocket send failed",
        extra={
            "error_type": type(error).__name__,
            "error_message": str(error),
            "connection_id": connection_id,
            "room_id": room_id,
            "message_type": message_type,
        }
    )
