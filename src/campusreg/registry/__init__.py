"""Registry - Persistent storage for semesters, courses, students and registrations."""

from campusreg.registry.catalog import CourseRepository, SemesterRepository, StudentRepository
from campusreg.registry.exceptions import (
    AlreadyDroppedError,
    ConcurrentUpdateError,
    CourseExistsError,
    CourseNotFoundError,
    DuplicateRegistrationError,
    InvalidGradeError,
    RegistrationNotFoundError,
    RegistryError,
    SemesterHasCoursesError,
    SemesterHasRegistrationsError,
    SemesterNotFoundError,
    SemesterValidationError,
    StudentExistsError,
    StudentNotFoundError,
)
from campusreg.registry.grading import grade_points
from campusreg.registry.ledger import RegistrationLedger
from campusreg.registry.models import (
    ACTIVE_STATUSES,
    Course,
    CourseCount,
    CourseRegistration,
    GradeStats,
    RegistrationDetail,
    RegistrationPage,
    RegistrationStatus,
    Semester,
    Student,
)
from campusreg.registry.queries import CourseFilter, RegistrationQuery
from campusreg.registry.store import Registry
from campusreg.registry.window import is_registration_open

__all__ = [
    "ACTIVE_STATUSES",
    "AlreadyDroppedError",
    "ConcurrentUpdateError",
    "Course",
    "CourseCount",
    "CourseExistsError",
    "CourseFilter",
    "CourseNotFoundError",
    "CourseRegistration",
    "CourseRepository",
    "DuplicateRegistrationError",
    "GradeStats",
    "InvalidGradeError",
    "RegistrationDetail",
    "RegistrationLedger",
    "RegistrationNotFoundError",
    "RegistrationPage",
    "RegistrationQuery",
    "RegistrationStatus",
    "Registry",
    "RegistryError",
    "Semester",
    "SemesterHasCoursesError",
    "SemesterHasRegistrationsError",
    "SemesterNotFoundError",
    "SemesterRepository",
    "SemesterValidationError",
    "Student",
    "StudentExistsError",
    "StudentNotFoundError",
    "StudentRepository",
    "grade_points",
    "is_registration_open",
]
