"""Error types shared by the services and the HTTP layer.

Each error carries a human-readable message, a machine-readable code and
the HTTP status it maps to, so endpoint code never has to build an
``HTTPException`` by hand for an access or validation failure.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class NoterError(Exception):
    """Base class for all application errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    status_code = 500
    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code}] {self.message} ({detail_str})"
        return f"[{self.code}] {self.message}"


class NotFoundError(NoterError):
    """The requested resource id does not resolve to a stored row."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Any = None, message: Optional[str] = None):
        super().__init__(
            message or f"{resource.capitalize()} not found",
            details={"resource": resource, "id": resource_id} if resource_id is not None else None,
        )
        self.resource = resource
        self.resource_id = resource_id


class UnauthenticatedError(NoterError):
    """The operation needs an identity and none was supplied."""

    status_code = 401
    code = "unauthenticated"

    def __init__(self, message: str = "You must be signed in to do this"):
        super().__init__(message)


class ForbiddenError(NoterError):
    """An identity was supplied but it lacks ownership or visibility rights."""

    status_code = 403
    code = "forbidden"

    def __init__(self, message: str = "You do not have permission to do this"):
        super().__init__(message)


class ValidationFailure(NoterError):
    status_code = 400
    code = "validation_failed"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class IntegrityHazard(NoterError):
    """Stored data violates a structural invariant (e.g. cyclic folder ancestry)."""

    status_code = 500
    code = "integrity_hazard"


async def noter_error_handler(request: Request, exc: NoterError) -> JSONResponse:
    if isinstance(exc, IntegrityHazard):
        logger.error(f"Integrity hazard on {request.method} {request.url.path}: {exc}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NoterError, noter_error_handler)
