"""
Shared HTTP error classes and utilities for Octodon services.

Provides:
- Base exception class for API errors
- Subclasses for each error kind the service surfaces
- Shared error response model
- Utility to convert exceptions to error responses
- FastAPI exception handler registration

Basic usage:
>>> from services.common.http_errors import BadRequestError, NotFoundError
>>>
>>> raise BadRequestError("redirect_uri is required", field="redirect_uri")
>>> raise NotFoundError("Status", "1737796500000")

FastAPI integration:
>>> from fastapi import FastAPI
>>> from services.common.http_errors import register_octodon_exception_handlers
>>>
>>> app = FastAPI()
>>> register_octodon_exception_handlers(app)

Error responses always carry an ``error`` string, which is what Mastodon
clients display. Token endpoint errors use the RFC 6749 error string
(``invalid_request``) there and move the human message into
``error_description``.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.common.logging_config import get_logger, log_http_error, request_id_var

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    """
    Machine-readable error codes.

    Grouped by the HTTP status they are normally returned with.
    """

    # 400 Bad Request
    BAD_REQUEST = "BAD_REQUEST"  # Malformed or missing input parameters
    STATE_INVALID = "STATE_INVALID"  # Bridge state signature mismatch or garbage
    STATE_EXPIRED = "STATE_EXPIRED"  # Bridge state older than its lifetime
    INVALID_GRANT = "INVALID_GRANT"  # Token endpoint grant rejected

    # 401 Unauthorized
    AUTH_FAILED = "AUTH_FAILED"  # Missing, malformed or rejected bearer token

    # 403 Forbidden
    ACCESS_DENIED = "ACCESS_DENIED"  # Authenticated identity is not the owner
    WRITE_DISABLED = "WRITE_DISABLED"  # Write support switched off

    # 404 Not Found
    NOT_FOUND = "NOT_FOUND"

    # 500 Internal Server Error
    PROVIDER_AUTH_FAILED = "PROVIDER_AUTH_FAILED"  # Identity provider exchange failed
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"  # Snapshot or content store failed
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """
    Standardized error response body.

    Attributes:
        error: Message shown by clients (or an OAuth error string)
        error_description: Human-readable detail for OAuth-style errors
        type: Error category (e.g. "validation_error", "auth_error")
        code: Value from ErrorCode
        details: Optional additional context
        timestamp: ISO 8601 time the error occurred
        request_id: Identifier for correlating with logs
    """

    error: str
    error_description: Optional[str] = None
    type: str
    code: str
    details: Optional[Dict[str, Any]] = None
    timestamp: str
    request_id: str


def _current_request_id() -> str:
    request_id = request_id_var.get()
    if not request_id or request_id == "uninitialized":
        return str(uuid.uuid4())
    return request_id


class OctodonAPIException(Exception):
    """
    Base exception class for all Octodon API errors.

    Args:
        message: The error message to display to users
        details: Optional dictionary with additional error context
        error_type: Error category string (defaults to "internal_error")
        error_code: Specific error code from ErrorCode enum
        status_code: HTTP status code (defaults to 500)
        oauth_error: RFC 6749 error string to expose as ``error`` instead of
            the message
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_type: str = "internal_error",
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        oauth_error: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.error_type = error_type
        self.error_code = error_code
        self.status_code = status_code
        self.oauth_error = oauth_error
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert the exception to an ErrorResponse model."""
        return ErrorResponse(
            error=self.oauth_error or self.message,
            error_description=self.message if self.oauth_error else None,
            type=self.error_type,
            code=self.error_code.value,
            details=self.details or None,
            timestamp=self.timestamp,
            request_id=_current_request_id(),
        )


class BadRequestError(OctodonAPIException):
    """
    Malformed input parameters (HTTP 400).

    >>> BadRequestError("redirect_uri is required", field="redirect_uri")
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        bad_details = details or {}
        if field:
            bad_details["field"] = field
        super().__init__(
            message=message,
            details=bad_details,
            error_type="validation_error",
            error_code=ErrorCode.BAD_REQUEST,
            status_code=400,
        )
        self.field = field


class StateInvalidError(OctodonAPIException):
    """Bridge state was tampered with or could not be decoded (HTTP 400)."""

    def __init__(self, message: str = "Invalid state signature"):
        super().__init__(
            message=message,
            error_type="state_error",
            error_code=ErrorCode.STATE_INVALID,
            status_code=400,
        )


class StateExpiredError(OctodonAPIException):
    """Bridge state is older than its allowed lifetime (HTTP 400)."""

    def __init__(self, message: str = "State expired"):
        super().__init__(
            message=message,
            error_type="state_error",
            error_code=ErrorCode.STATE_EXPIRED,
            status_code=400,
        )


class InvalidGrantError(OctodonAPIException):
    """
    Token endpoint rejected the grant (HTTP 400).

    The body's ``error`` is ``invalid_request`` so OAuth clients can parse it.
    """

    def __init__(
        self,
        message: str = "Invalid grant",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="oauth_error",
            error_code=ErrorCode.INVALID_GRANT,
            status_code=400,
            oauth_error="invalid_request",
        )


class AuthError(OctodonAPIException):
    """
    Missing or rejected bearer credential (HTTP 401).

    >>> AuthError("The access token is invalid")
    """

    def __init__(
        self,
        message: str = "The access token is invalid",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="auth_error",
            error_code=ErrorCode.AUTH_FAILED,
            status_code=401,
        )


class ForbiddenError(OctodonAPIException):
    """
    Authenticated, but not allowed (HTTP 403).

    Used when the provider login is not the instance owner, and when writes
    are switched off.
    """

    def __init__(
        self,
        message: str = "Forbidden: not the instance owner",
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.ACCESS_DENIED,
    ):
        super().__init__(
            message=message,
            details=details,
            error_type="access_error",
            error_code=code,
            status_code=403,
        )


class NotFoundError(OctodonAPIException):
    """
    Referenced record is absent (HTTP 404).

    The client-facing message is always "Record not found", matching
    Mastodon; the resource and identifier go into details.

    >>> NotFoundError("Status", "1737796500000").message
    'Record not found'
    """

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None,
        message: str = "Record not found",
    ):
        super().__init__(
            message=message,
            details={"resource": resource, "identifier": identifier},
            error_type="not_found",
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
        )
        self.resource = resource
        self.identifier = identifier


class ProviderAuthError(OctodonAPIException):
    """
    The identity provider exchange failed (HTTP 500).

    Args:
        message: Description of the failure
        provider: Name of the provider (e.g. "github")
        response_body: Raw provider response, kept for debugging
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        response_body: Optional[str] = None,
    ):
        provider_details = details or {}
        if provider:
            provider_details["provider"] = provider
        if response_body:
            provider_details["response_body"] = response_body
        super().__init__(
            message=message,
            details=provider_details,
            error_type="provider_error",
            error_code=ErrorCode.PROVIDER_AUTH_FAILED,
            status_code=500,
        )
        self.provider = provider
        self.response_body = response_body


class StorageUnavailableError(OctodonAPIException):
    """
    Snapshot or content store collaborator failed (HTTP 500).

    >>> StorageUnavailableError("Data not found", store="snapshot")
    """

    def __init__(
        self,
        message: str,
        store: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        storage_details = details or {}
        if store:
            storage_details["store"] = store
        super().__init__(
            message=message,
            details=storage_details,
            error_type="storage_error",
            error_code=ErrorCode.STORAGE_UNAVAILABLE,
            status_code=500,
        )


def exception_to_response(exc: Exception) -> ErrorResponse:
    """
    Convert any exception to an ErrorResponse.

    1. OctodonAPIException: uses its own to_error_response()
    2. HTTPException: keeps the status detail as the message
    3. Anything else: a generic internal error, carrying only the message

    >>> exception_to_response(ValueError("boom")).error
    'Internal server error'
    """
    if isinstance(exc, OctodonAPIException):
        return exc.to_error_response()

    now = datetime.now(timezone.utc).isoformat()
    if isinstance(exc, HTTPException):
        detail = exc.detail if isinstance(exc.detail, dict) else None
        message = (
            detail.get("message", "HTTP error") if detail else str(exc.detail)
        )
        if exc.status_code == 404 and message == "Not Found":
            message = "Not found"
        return ErrorResponse(
            error=message,
            type="http_error",
            code=ErrorCode.NOT_FOUND.value
            if exc.status_code == 404
            else ErrorCode.BAD_REQUEST.value,
            details=detail,
            timestamp=now,
            request_id=_current_request_id(),
        )

    return ErrorResponse(
        error="Internal server error",
        error_description=str(exc),
        type="internal_error",
        code=ErrorCode.INTERNAL_ERROR.value,
        details={"error_type": type(exc).__name__},
        timestamp=now,
        request_id=_current_request_id(),
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Generic 500 for an exception no other handler claimed."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content=exception_to_response(exc).model_dump(exclude_none=True),
    )


def register_octodon_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers so every error leaves as an ErrorResponse.

    - OctodonAPIException: the exception's own status code and body
    - HTTPException (including Starlette's 404/405): normalized body
    - Any other exception: 500 with a generic message

    Starlette answers the catch-all from outside every middleware, so apps
    that need CORS headers on that 500 should also pass
    unexpected_exception_handler to the request logging middleware.
    """

    @app.exception_handler(OctodonAPIException)
    async def octodon_api_exception_handler(
        request: Request, exc: OctodonAPIException
    ) -> JSONResponse:
        log_http_error(
            exc.error_type,
            exc.message,
            exc.status_code,
            code=exc.error_code.value,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_error_response().model_dump(exclude_none=True),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        http_exc = HTTPException(status_code=exc.status_code, detail=exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=exception_to_response(http_exc).model_dump(exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    app.add_exception_handler(Exception, unexpected_exception_handler)
