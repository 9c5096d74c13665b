"""Typed query objects passed from the HTTP layer into the registry."""

from __future__ import annotations

from dataclasses import dataclass

from campusreg.registry.models import RegistrationStatus


@dataclass(frozen=True)
class RegistrationQuery:
    """Filter and page selection for registration listings.

    Every filter is optional; unset filters match everything.

    Attributes:
        semester_id: Only registrations in this semester.
        status: Only registrations in this status.
        course_id: Only registrations for this course.
        student_id: Only registrations of this student.
        department: Only registrations for courses of this department.
        search: Case-insensitive substring over student name, student number,
            course name and course code.
        page: 1-based page number.
        limit: Page size.
    """

    semester_id: str | None = None
    status: RegistrationStatus | None = None
    course_id: str | None = None
    student_id: str | None = None
    department: str | None = None
    search: str | None = None
    page: int = 1
    limit: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CourseFilter:
    """Optional filters for course catalog lookups.

    Attributes:
        department: Exact department match.
        search: Case-insensitive substring over course name, code and description.
    """

    department: str | None = None
    search: str | None = None


def like_pattern(text: str) -> str:
    """Build a LIKE pattern matching ``text`` literally anywhere in a value.

    Use with ``escape="\\\\"``.
    """
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
