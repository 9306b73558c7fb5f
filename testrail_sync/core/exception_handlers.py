"""
Global Exception Handlers
Turns TestRail failures, request errors and crashes into JSON error bodies
of the form {"error", "code", "details", "suggestion"}.
"""

from typing import Any, Dict, Optional

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import httpx
import logging

from testrail_sync.utils.errors import BaseAPIException, ErrorCode, log_error

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: ErrorCode.INVALID_INPUT,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    422: ErrorCode.VALIDATION_ERROR,
    502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    503: ErrorCode.TESTRAIL_UNAVAILABLE,
}


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


def _error_body(
    error: str,
    code: ErrorCode,
    details: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> Dict[str, Any]:
    return {"error": error, "code": code.value, "details": details, "suggestion": suggestion}


async def base_api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    """Lookup and upload failures carry their own status and code."""
    log_error(exc, _where(request), {"status_code": exc.status_code, "error_code": exc.code.value})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def transport_exception_handler(request: Request, exc: httpx.TransportError) -> JSONResponse:
    """TestRail could not be contacted at all."""
    log_error(exc, _where(request), {"exception_type": type(exc).__name__})
    return JSONResponse(
        status_code=503,
        content=_error_body(
            "Unable to connect to TestRail.",
            ErrorCode.TESTRAIL_UNAVAILABLE,
            details=str(exc),
            suggestion="Please check the TestRail host and your network connection.",
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    log_error(exc, _where(request), {"status_code": exc.status_code})
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        code = STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        content = _error_body(str(exc.detail), code)
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """A malformed request body, usually a broken report tree."""
    problems = [
        {
            "field": " -> ".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    log_error(exc, _where(request), {"validation_errors": problems})

    content = _error_body(
        "The request contains invalid data.",
        ErrorCode.VALIDATION_ERROR,
        details=f"Found {len(problems)} validation error(s).",
    )
    content["validation_errors"] = problems
    return JSONResponse(status_code=422, content=content)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(exc, _where(request), {"exception_type": type(exc).__name__})
    return JSONResponse(
        status_code=500,
        content=_error_body("An unexpected error occurred. Please try again.", ErrorCode.INTERNAL_ERROR),
    )


def setup_exception_handlers(app):
    """Register every handler on the FastAPI app."""
    app.add_exception_handler(BaseAPIException, base_api_exception_handler)
    app.add_exception_handler(httpx.TransportError, transport_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
