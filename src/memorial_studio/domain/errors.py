"""Domain error taxonomy with stable codes for API clients."""


class MemorialError(Exception):
    """Base error carrying a machine-readable code and HTTP status."""

    code = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, **details: object) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, object]:
        """Return the JSON body for this error."""
        return {"error": self.message, "code": self.code, **self.details}


class ValidationFailedError(MemorialError):
    """Field-scoped validation errors that block publish."""

    code = "validation_failed"
    status_code = 422
    default_message = "Please complete all required fields"

    def __init__(self, errors: dict[str, str], message: str | None = None) -> None:
        super().__init__(message, errors=errors)
        self.errors = errors


class AuthenticationRequiredError(MemorialError):
    code = "auth_required"
    status_code = 401
    default_message = "Sign in required"


class AccessDeniedError(MemorialError):
    code = "access_denied"
    status_code = 403
    default_message = "Access denied"


class PasswordRequiredError(MemorialError):
    code = "password_required"
    status_code = 401
    default_message = "Password required"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, requires_password=True)


class NotFoundError(MemorialError):
    code = "not_found"
    status_code = 404
    default_message = "Memorial not found"


class ConflictError(MemorialError):
    """Conflicts the UI can offer a targeted remedy for."""

    code = "conflict"
    status_code = 409
    default_message = "Conflict"

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class AlreadyPaidError(ConflictError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__("already_paid", message or "Memorial has already been paid for")


class RateLimitedError(MemorialError):
    code = "rate_limited"
    status_code = 429
    default_message = "Too many requests, please wait before trying again"


class ServiceUnavailableError(MemorialError):
    code = "service_unavailable"
    status_code = 503
    default_message = "Service temporarily unavailable"


class PaymentError(MemorialError):
    """Payment-provider errors, kept distinct from generic save errors."""

    code = "payment_error"
    status_code = 400
    default_message = "Payment failed"


class PaymentNotConfiguredError(PaymentError):
    code = "payment_not_configured"
    status_code = 503
    default_message = "Payment processing is not configured"


class PaymentProviderError(PaymentError):
    code = "payment_provider_error"
    status_code = 502
    default_message = "Payment provider request failed"


class PaymentNotCompletedError(PaymentError):
    """Checkout session is not paid yet; nothing was changed."""

    code = "payment_not_completed"
    default_message = "Payment not completed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, verified=False)


class SessionMismatchError(PaymentError):
    code = "session_mismatch"
    default_message = "Memorial ID mismatch"


class InvalidSignatureError(PaymentError):
    code = "invalid_signature"
    default_message = "Invalid signature"


class RemoteApiError(MemorialError):
    """Error reported by the memorial API to a remote client."""

    code = "remote_error"
    default_message = "Request failed"

    def __init__(self, status_code: int, code: str, message: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class SaveAbortedError(Exception):
    """Raised by a transport when a superseded save request was aborted."""
