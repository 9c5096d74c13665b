"""Exceptions raised by the API layer itself."""


class APIError(Exception):
    """Base exception for request-level errors."""

    code = "API_ERROR"


class AuthenticationRequiredError(APIError):
    """Request carries no usable caller identity."""

    code = "UNAUTHENTICATED"


class RoleNotAllowedError(APIError):
    """Caller's role may not use this endpoint."""

    code = "FORBIDDEN"
