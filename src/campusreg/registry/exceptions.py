"""Custom exceptions for the registry (storage) layer."""

from __future__ import annotations

from collections.abc import Iterable


class RegistryError(Exception):
    """Base exception for registry errors."""

    code = "INTERNAL_ERROR"


class StudentNotFoundError(RegistryError):
    """Student with given ID or user ID does not exist."""

    code = "STUDENT_NOT_FOUND"


class StudentExistsError(RegistryError):
    """Student for this user account or student number already exists."""

    code = "STUDENT_EXISTS"


class SemesterNotFoundError(RegistryError):
    """Semester with given ID does not exist."""

    code = "SEMESTER_NOT_FOUND"


class SemesterValidationError(RegistryError):
    """Semester dates are inconsistent."""

    code = "VALIDATION_FAILED"


class SemesterHasRegistrationsError(RegistryError):
    """Cannot delete a semester that registrations still reference."""

    code = "SEMESTER_HAS_REGISTRATIONS"


class SemesterHasCoursesError(RegistryError):
    """Cannot delete a semester that courses still belong to."""

    code = "SEMESTER_HAS_COURSES"


class CourseNotFoundError(RegistryError):
    """One or more courses do not exist (in the requested semester)."""

    code = "COURSE_NOT_FOUND"

    def __init__(self, message: str, missing_ids: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing_ids = list(missing_ids)


class CourseExistsError(RegistryError):
    """Course with given code already exists."""

    code = "COURSE_EXISTS"


class RegistrationNotFoundError(RegistryError):
    """Course registration with given ID does not exist."""

    code = "REGISTRATION_NOT_FOUND"


class DuplicateRegistrationError(RegistryError):
    """A registration for the same student, course and semester already exists."""

    code = "DUPLICATE_REGISTRATION"

    def __init__(
        self,
        message: str,
        course_ids: Iterable[str] = (),
        course_names: Iterable[str] = (),
    ) -> None:
        super().__init__(message)
        self.course_ids = list(course_ids)
        self.course_names = list(course_names)


class AlreadyDroppedError(RegistryError):
    """Registration is already dropped."""

    code = "ALREADY_DROPPED"


class InvalidGradeError(RegistryError):
    """Grade is not a number in [0, 100]."""

    code = "INVALID_GRADE"


class ConcurrentUpdateError(RegistryError):
    """Registration kept changing underneath an update."""

    code = "CONCURRENT_UPDATE"
