from typing import Any, Dict, List, Optional


class SubscriptionError(Exception):
    """Base error for the subscription API. Carries the HTTP status and a public message."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(SubscriptionError):
    """Malformed input. `errors` holds one entry per violated field."""

    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class AuthError(SubscriptionError):
    status_code = 401
    message = "Admin key required"


class NotFoundError(SubscriptionError):
    status_code = 404
    message = "Not found"


class ConflictError(SubscriptionError):
    status_code = 409
    message = "Conflict"


class StoreError(SubscriptionError):
    """Storage failure. The message goes to the client, so keep internals in the log."""

    status_code = 500
    message = "Database error occurred"
