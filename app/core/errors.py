from typing import Any, Dict, Optional


class EditoHubError(Exception):
    """
    Base error for the platform. Handlers map it to a JSON body
    {"error": message, "code": error_code, ...details} with status_code.
    """
    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


# --- Client-correctable ---
class ValidationError(EditoHubError):
    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)


class AuthenticationError(EditoHubError):
    status_code = 401
    default_code = "AUTHENTICATION_ERROR"


class PermissionDeniedError(EditoHubError):
    status_code = 403
    default_code = "PERMISSION_DENIED"


class SignatureError(EditoHubError):
    """Gateway callback signature did not match. Treated as adversarial input."""
    status_code = 400
    default_code = "INVALID_SIGNATURE"


class NotFoundError(EditoHubError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(EditoHubError):
    status_code = 409
    default_code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    default_code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move project from '{current}' to '{target}'",
            details={"from": current, "to": target},
        )
        self.current = current
        self.target = target


# --- Server-side ---
class ConfigurationError(EditoHubError):
    """A required setting is missing. Never fail open on this."""
    status_code = 500
    default_code = "CONFIGURATION_ERROR"


class GatewayError(EditoHubError):
    status_code = 502
    default_code = "GATEWAY_ERROR"


class PartialFailureError(EditoHubError):
    """
    A later step of a multi-write sequence failed after earlier steps were
    committed. Nothing is rolled back; `completed` lists what already happened.
    """
    status_code = 500
    default_code = "PARTIAL_FAILURE"

    def __init__(self, message: str, completed: list, failed_step: str):
        super().__init__(message, details={"completed": completed, "failed_step": failed_step})
        self.completed = completed
        self.failed_step = failed_step
