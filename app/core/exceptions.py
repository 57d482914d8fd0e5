"""
Application Error Taxonomy

Services raise these; the handlers registered in app.main turn them
into ``{"success": false, "error": <code>, "message": <text>}`` bodies
with the matching HTTP status.
"""

from typing import Optional


class AppError(Exception):
    """Base class for all expected, request-scoped failures."""

    status_code: int = 500
    error_code: str = "internal_error"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the JSON error body."""
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
        }


class InputValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request"


class EmptyCartError(InputValidationError):
    """Checkout attempted with nothing in the cart."""
    error_code = "empty_cart"
    default_message = "Cart is empty"


class UnauthorizedError(AppError):
    """Bad credentials or missing/invalid token."""
    status_code = 401
    error_code = "unauthorized"
    default_message = "Not Authorized Login Again"


class ForbiddenError(AppError):
    """Authenticated, but not allowed to call this endpoint."""
    status_code = 403
    error_code = "forbidden"
    default_message = "Admin access required"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"
    default_message = "Resource already exists"


class UpstreamFailureError(AppError):
    """Payment gateway unreachable or rejected the request."""
    status_code = 502
    error_code = "upstream_failure"
    default_message = "Payment service temporarily unavailable"
