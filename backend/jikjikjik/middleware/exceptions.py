"""Error taxonomy and exception handlers for consistent error responses.

Every failure a user can trigger maps onto one of:

  ValidationError        local input problem, never reaches the network
  ConflictError          backend says the resource already exists
  BadRequestError        backend rejected the request (400 or unmapped status)
  AuthenticationError    backend refused the login credentials
  TransientServiceError  backend is rate limiting or failing (429 / 5xx)
  ConnectivityError      request could not be sent or no response arrived
  ProtocolError          response arrived but could not be understood

Each carries the user-facing message that the client displays verbatim.
"""

import logging
import traceback
from typing import Optional, Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from jikjikjik import messages

logger = logging.getLogger(__name__)

# The 422 constant name differs across starlette releases
HTTP_422 = 422


class JikjikjikException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(JikjikjikException):
    """Field-level input problem detected before any network call."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            status_code=HTTP_422,
            error_code="VALIDATION_ERROR",
        )
        self.field = field


class ConflictError(JikjikjikException):
    """The backend reports a duplicate phone number or account."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=code or "CONFLICT",
        )


class BadRequestError(JikjikjikException):
    """The backend rejected the request as invalid."""

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BAD_REQUEST",
        )
        self.upstream_status = upstream_status


class AuthenticationError(JikjikjikException):
    """The backend refused the supplied login credentials."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTHENTICATION_FAILED",
        )


class TransientServiceError(JikjikjikException):
    """The backend is rate limiting or failing; the user should retry later."""

    def __init__(self, message: str, upstream_status: int | None = None):
        rate_limited = upstream_status == status.HTTP_429_TOO_MANY_REQUESTS
        super().__init__(
            message=message,
            status_code=(
                status.HTTP_429_TOO_MANY_REQUESTS
                if rate_limited
                else status.HTTP_503_SERVICE_UNAVAILABLE
            ),
            error_code="RATE_LIMITED" if rate_limited else "SERVICE_UNAVAILABLE",
        )
        self.upstream_status = upstream_status


class ConnectivityError(JikjikjikException):
    """The backend could not be reached."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="BACKEND_UNREACHABLE",
        )


class ProtocolError(JikjikjikException):
    """The backend answered with something we cannot parse."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="BAD_BACKEND_RESPONSE",
        )


class RequestInProgressError(JikjikjikException):
    """A governed action was triggered while another one is still in flight."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="REQUEST_IN_PROGRESS",
        )


class ResourceNotFoundError(JikjikjikException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


# ── Envelope ────────────────────────────────────────────────

def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    extra: Optional[dict] = None,
) -> JSONResponse:
    """Render the error envelope shared by every failure response:

        {"error": {"code": "VALIDATION_ERROR",
                   "message": "전화번호 인증을 완료해주세요.",
                   "details": {"field": "phoneNumber"}}}

    ``details`` is left out when empty. ``extra`` adds top-level keys
    next to ``error``.
    """
    error: dict = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    content = {"error": error}
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def application_error_response(
    exc: JikjikjikException, extra: Optional[dict] = None
) -> JSONResponse:
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=_error_details(exc),
        extra=extra,
    )


def _error_details(exc: JikjikjikException) -> dict | None:
    if isinstance(exc, ValidationError):
        return {"field": exc.field} if exc.field else None
    upstream = getattr(exc, "upstream_status", None)
    if upstream is not None and upstream != exc.status_code:
        return {"upstream_status": upstream}
    return None


def _field_path(loc: tuple) -> str:
    # ("body", "code") -> "code"; query and path parameters keep their source
    parts = [str(p) for p in loc]
    if parts and parts[0] == "body":
        parts = parts[1:]
    return ".".join(parts) or "body"


# ── Handlers ────────────────────────────────────────────────

async def jikjikjik_exception_handler(
    request: Request,
    exc: JikjikjikException,
) -> JSONResponse:
    """Render a typed application error with its user-facing message."""
    logger.warning(
        "%s on %s %s: %s",
        exc.error_code,
        request.method,
        request.url.path,
        exc.message,
    )
    return application_error_response(exc)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s %s: %s", exc.status_code, request.method, request.url.path, exc.detail)

    response = create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, PydanticValidationError],
) -> JSONResponse:
    """Request bodies that fail schema validation, one entry per problem."""
    problems = exc.errors()
    logger.warning(
        "Rejected request body on %s %s: %d problem(s)",
        request.method,
        request.url.path,
        len(problems),
    )
    errors = [
        {"field": _field_path(p["loc"]), "message": p["msg"], "type": p["type"]}
        for p in problems
    ]
    return create_error_response(
        status_code=HTTP_422,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Last resort: log the traceback, answer with a generic message."""
    logger.error(
        "Unhandled %s on %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        extra={"traceback": traceback.format_exc()},
        exc_info=exc,
    )
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=messages.GENERIC_SERVER_ERROR,
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(JikjikjikException, jikjikjik_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
