from __future__ import annotations


class PortalError(Exception):
    """Base class for failures that end up in the page's error banner."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(PortalError):
    status_code = 500


class ProviderUnavailableError(PortalError):
    status_code = 503


class NotInitializedError(PortalError):
    status_code = 503

    def __init__(self) -> None:
        super().__init__("Authentication service not initialized. Please refresh the page.")


class InputValidationError(PortalError):
    status_code = 400


class AuthenticationError(PortalError):
    status_code = 401

    def __init__(
        self, message: str, *, error_type: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.error_type = error_type
