"""REST API for campus course registration."""

from campusreg.api.app import app, create_app
from campusreg.api.models import (
    APIResponse,
    RegisterRequest,
    RegistrationResponse,
    SemesterCreate,
    SemesterResponse,
)

__all__ = [
    "APIResponse",
    "RegisterRequest",
    "RegistrationResponse",
    "SemesterCreate",
    "SemesterResponse",
    "app",
    "create_app",
]
