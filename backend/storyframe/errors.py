from __future__ import annotations
"""Error taxonomy and FastAPI exception handlers.

Every failure a handler can surface maps to one ``PipelineError`` subclass
carrying its HTTP status and a stable machine-readable code. Unexpected
exceptions are logged and rendered as a generic 500.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base error for all request-level failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "PIPELINE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        extra: dict[str, Any] | None = None,
    ):
        self.message = message
        self.reason = reason
        self.extra = extra or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.reason:
            body["reason"] = self.reason
        body.update(self.extra)
        return body


class ValidationError(PipelineError):
    """400 - malformed or incomplete request."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class AuthenticationError(PipelineError):
    """401 - missing, malformed, expired or anonymous credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, reason: str):
        super().__init__("Unauthorized", reason=reason)


class AuthorizationError(PipelineError):
    """403 - the resource exists but belongs to someone else."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(PipelineError):
    """404 - missing, or not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, detail: str = "not found or access denied"):
        super().__init__(f"{resource} {detail}")
        self.resource = resource


class ProviderError(PipelineError):
    """502 - the upstream image provider could not produce a result."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PROVIDER_ERROR"

    def __init__(self, provider: str, message: str, **kwargs: Any):
        self.provider = provider
        super().__init__(f"[{provider}] {message}", **kwargs)


class PersistenceError(PipelineError):
    """500 - storage or metadata write failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_ERROR"


class FeatureDisabledError(PipelineError):
    """501 - the requested capability is not enabled on this deployment."""

    status_code = status.HTTP_501_NOT_IMPLEMENTED
    code = "NOT_IMPLEMENTED"


async def pipeline_error_handler(request: Request, exc: PipelineError) -> Response:
    if isinstance(exc, AuthorizationError):
        # No job or entity content leaks across owners
        return Response(status_code=exc.status_code)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    reason = f"{location}: {first.get('msg')}" if location else first.get("msg")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "code": ValidationError.code, "reason": reason},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
