"""
API Error Classes and Exception Handlers.

Provides a consistent error handling framework with typed exceptions,
error response models, and FastAPI exception handlers.
"""

from enum import Enum
from typing import Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Bootstrap errors
    BOOTSTRAP_INCOMPLETE = "BOOTSTRAP_INCOMPLETE"
    DEGRADED_MODE = "DEGRADED_MODE"
    RESOURCE_UNAVAILABLE = "RESOURCE_UNAVAILABLE"


class ErrorDetail(BaseModel):
    """Detailed error information for a specific field or issue."""

    field: Optional[str] = Field(
        default=None, description="Field path where error occurred"
    )
    message: str = Field(..., description="Human-readable error message")


class ErrorResponse(BaseModel):
    """Standardized API error response model."""

    code: ErrorCode = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[List[ErrorDetail]] = Field(
        default=None, description="Additional error details"
    )
    request_id: Optional[str] = Field(
        default=None, description="Request correlation ID for debugging"
    )

    model_config = {"json_schema_extra": {"example": {
        "code": "DEGRADED_MODE",
        "message": "Database unavailable: no URI provided",
        "details": None,
        "request_id": "req_abc123",
    }}}


class APIError(Exception):
    """Base exception class for all API errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[ErrorDetail]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Initialize API error.

        Args:
            message: Human-readable error message
            code: Error code for programmatic handling
            status_code: HTTP status code
            details: Additional error details
            headers: Optional response headers
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        self.headers = headers

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details,
            request_id=request_id,
        )


class ServiceUnavailableError(APIError):
    """A capability the request needs is not available in this process."""

    def __init__(
        self,
        message: str = "Service unavailable",
        code: ErrorCode = ErrorCode.RESOURCE_UNAVAILABLE,
        details: Optional[List[ErrorDetail]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
        )


class DegradedModeError(ServiceUnavailableError):
    """Capability disabled because the process started in degraded mode."""

    def __init__(self, component: str, reason: Optional[str]) -> None:
        super().__init__(
            message=f"{component.capitalize()} unavailable: {reason or 'unknown reason'}",
            code=ErrorCode.DEGRADED_MODE,
            details=[ErrorDetail(field=component, message=reason or "unknown reason")],
        )
        self.component = component
        self.reason = reason


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    request_id = getattr(request.state, "correlation_id", None)
    response = exc.to_response(request_id=request_id)
    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(mode="json", exclude_none=True),
        headers=exc.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(APIError, api_error_handler)
