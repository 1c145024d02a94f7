"""
Shared error handling for the Hybrid Authorization Service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AuthzException(Exception):
    """Base exception for authorization services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AuthzException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ServiceError(AuthzException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)


class ExternalServiceError(AuthzException):
    """External service errors."""

    status_code = 503

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class HierarchyError(AuthzException):
    """The authorization hierarchy could not be parsed."""

    status_code = 500

    def __init__(self, message: str = "Invalid authorization hierarchy", details: Optional[Dict[str, Any]] = None):
        super().__init__("HIERARCHY_ERROR", message, details)


class UnknownItemError(AuthzException):
    """An authorization item is not part of the hierarchy."""

    status_code = 404

    def __init__(self, item_name: str):
        super().__init__(
            "UNKNOWN_ITEM",
            f"Authorization item '{item_name}' does not exist",
            {"item_name": item_name}
        )


class DuplicateAssignmentError(AuthzException):
    """The item is already assigned to the user."""

    status_code = 409

    def __init__(self, item_name: str, user_id: Any):
        super().__init__(
            "DUPLICATE_ASSIGNMENT",
            f"Authorization item '{item_name}' is already assigned to user '{user_id}'",
            {"item_name": item_name, "user_id": str(user_id)}
        )


class AssignmentNotFoundError(AuthzException):
    """No assignment exists for the item and user."""

    status_code = 404

    def __init__(self, item_name: str, user_id: Any):
        super().__init__(
            "ASSIGNMENT_NOT_FOUND",
            f"Authorization item '{item_name}' is not assigned to user '{user_id}'",
            {"item_name": item_name, "user_id": str(user_id)}
        )
