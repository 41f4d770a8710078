"""Maps failure kinds to HTTP statuses and the {success: false, ...} envelope."""
import asyncio

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core import errors
from app.schemas.envelope import ErrorEnvelope

# Most specific class first; lookup walks the exception's MRO
STATUS_CODES: dict[type[errors.AppError], int] = {
    errors.ValidationError: status.HTTP_400_BAD_REQUEST,
    errors.Conflict: status.HTTP_400_BAD_REQUEST,
    errors.UnsupportedMediaType: status.HTTP_400_BAD_REQUEST,
    errors.Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    errors.Forbidden: status.HTTP_403_FORBIDDEN,
    errors.NotFound: status.HTTP_404_NOT_FOUND,
    errors.PayloadTooLarge: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    errors.UploadFailed: status.HTTP_502_BAD_GATEWAY,
    errors.StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

HTTP_REASONS = {
    400: "validation_error",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
}


def status_for(exc: errors.AppError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, message: str, reason: str, error: str | None = None, headers=None) -> JSONResponse:
    body = ErrorEnvelope(message=message, reason=reason, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


def _log(msg: str, *args):
    print(f"[Error] {msg}", *args)


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    @app.exception_handler(errors.AppError)
    async def app_error_handler(request: Request, exc: errors.AppError):
        status_code = status_for(exc)
        if status_code >= 500:
            _log(f"{request.method} {request.url.path}:", exc.reason, exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return error_response(status_code, exc.message, exc.reason, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg", "Invalid request")
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            f"{loc}: {msg}" if loc else msg,
            errors.ValidationError.reason,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = "Endpoint not found"
        reason = HTTP_REASONS.get(exc.status_code, "internal" if exc.status_code >= 500 else "http_error")
        return error_response(exc.status_code, message, reason, headers=getattr(exc, "headers", None))

    # Driver connect failures (refused, reset, DNS, timeout) arrive unwrapped as OSError
    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    @app.exception_handler(OSError)
    @app.exception_handler(asyncio.TimeoutError)
    async def store_unavailable_handler(request: Request, exc: Exception):
        _log("Database unavailable:", type(exc).__name__)
        unavailable = errors.StoreUnavailable()
        return error_response(status_for(unavailable), unavailable.message, unavailable.reason)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        _log(f"{request.method} {request.url.path}:", repr(exc))
        internal = errors.Internal("Internal server error")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            internal.message,
            internal.reason,
            error=str(exc) if debug else None,
        )
