"""
Custom exceptions for identity and session handling.

Every component raises these exceptions so callers can handle
validation, server, transport and storage failures uniformly.
"""


class IdentityError(Exception):
    """Base exception for all identity and session errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(IdentityError):
    """Raised when required input is missing or empty.

    Always raised before any network call is issued.
    """

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class PreconditionError(IdentityError):
    """Raised when an operation needs state the identity does not have yet."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Cannot {operation}: {reason}",
            {"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason


class RequestError(IdentityError):
    """Raised when the server rejects a request."""

    def __init__(self, status: int, code: int | None = None, error: str | None = None):
        details: dict = {"status": status}
        if code is not None:
            details["code"] = code
        if error:
            details["error"] = error
        message = f"Request failed with HTTP {status}"
        if code is not None:
            message += f" (code {code})"
        if error:
            message += f": {error}"
        super().__init__(message, details)
        self.status = status
        self.code = code
        self.error = error


class TransportConnectionError(IdentityError):
    """Raised when the server cannot be reached.

    Note: Named TransportConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class StorageIOError(IdentityError):
    """Raised when a durable storage operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class ConfigurationError(IdentityError):
    """Raised when configuration is missing or malformed."""

    def __init__(self, setting: str, reason: str):
        super().__init__(
            f"Invalid configuration for {setting}: {reason}",
            {"setting": setting, "reason": reason},
        )
        self.setting = setting
        self.reason = reason


class AuthenticationRequiredError(IdentityError):
    """Raised when a provider has no way to authenticate interactively."""

    def __init__(self, auth_type: str, message: str | None = None):
        super().__init__(
            message or f"Authentication required for provider {auth_type}",
            {"auth_type": auth_type},
        )
        self.auth_type = auth_type


class UnknownProviderError(IdentityError):
    """Raised when an auth provider id is not registered."""

    def __init__(self, auth_type: str):
        super().__init__(f"Unknown auth provider: {auth_type}", {"auth_type": auth_type})
        self.auth_type = auth_type
