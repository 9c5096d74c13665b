"""Registration package - Course registration workflows and reporting."""

from campusreg.registration.exceptions import (
    DropWindowClosedError,
    ForbiddenError,
    RegistrationClosedError,
    RegistrationError,
    ValidationError,
)
from campusreg.registration.models import (
    AvailableCourse,
    RegistrationListing,
    RegistrationStatistics,
    RegistrationView,
    SemesterSummary,
)
from campusreg.registration.service import RegistrationService
from campusreg.registration.statistics import StatisticsAggregator

__all__ = [
    "AvailableCourse",
    "DropWindowClosedError",
    "ForbiddenError",
    "RegistrationClosedError",
    "RegistrationError",
    "RegistrationListing",
    "RegistrationService",
    "RegistrationStatistics",
    "RegistrationView",
    "SemesterSummary",
    "StatisticsAggregator",
    "ValidationError",
]
