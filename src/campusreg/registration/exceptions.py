"""Exceptions for the registration workflows."""


class RegistrationError(Exception):
    """Base exception for registration workflow errors."""

    code = "REGISTRATION_ERROR"


class ValidationError(RegistrationError):
    """Request is malformed (empty course list, unknown status, ...)."""

    code = "VALIDATION_FAILED"


class ForbiddenError(RegistrationError):
    """Caller does not own the registration."""

    code = "FORBIDDEN"


class RegistrationClosedError(RegistrationError):
    """Semester registration window is not open."""

    code = "REGISTRATION_CLOSED"


class DropWindowClosedError(RegistrationError):
    """Semester registration window has closed, so courses can no longer be dropped."""

    code = "DROP_WINDOW_CLOSED"
