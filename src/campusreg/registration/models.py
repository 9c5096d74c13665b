"""Data models for the registration workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - dataclass field types
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from campusreg.registry import Course, CourseCount, GradeStats, RegistrationDetail


@dataclass
class RegistrationView:
    """A registration with the course, semester and student fields shown to users."""

    id: str
    student_id: str
    course_id: str
    semester_id: str
    status: str
    registration_date: datetime
    drop_date: datetime | None
    grade: float | None
    grade_points: float | None
    notes: str | None
    approved_by: str | None
    approval_date: datetime | None
    course_code: str
    course_name: str
    credits: int
    department: str
    instructor: str
    semester_name: str
    academic_year: str
    student_name: str
    student_number: str

    @classmethod
    def from_detail(cls, detail: RegistrationDetail) -> RegistrationView:
        registration = detail.registration
        return cls(
            id=registration.id,
            student_id=registration.student_id,
            course_id=registration.course_id,
            semester_id=registration.semester_id,
            status=registration.status,
            registration_date=registration.registration_date,
            drop_date=registration.drop_date,
            grade=registration.grade,
            grade_points=registration.grade_points,
            notes=registration.notes,
            approved_by=registration.approved_by,
            approval_date=registration.approval_date,
            course_code=detail.course.code,
            course_name=detail.course.name,
            credits=detail.course.credits,
            department=detail.course.department,
            instructor=detail.course.instructor,
            semester_name=detail.semester.name,
            academic_year=detail.semester.academic_year,
            student_name=detail.student.full_name,
            student_number=detail.student.student_number,
        )


@dataclass
class AvailableCourse:
    """A course offered in a semester, flagged if the student already holds it.

    Attributes:
        is_registered: The student has a registered, approved or pending row.
        registration_open: The semester's registration window is open now.
    """

    id: str
    code: str
    name: str
    description: str
    credits: int
    department: str
    instructor: str
    semester_id: str
    is_registered: bool
    registration_open: bool

    @classmethod
    def from_course(
        cls, course: Course, is_registered: bool, registration_open: bool
    ) -> AvailableCourse:
        return cls(
            id=course.id,
            code=course.code,
            name=course.name,
            description=course.description,
            credits=course.credits,
            department=course.department,
            instructor=course.instructor,
            semester_id=course.semester_id,
            is_registered=is_registered,
            registration_open=registration_open,
        )


@dataclass
class RegistrationListing:
    """One page of the administrative registration listing."""

    registrations: list[RegistrationView]
    page: int
    limit: int
    total: int
    total_pages: int


@dataclass
class RegistrationStatistics:
    """Registration figures, optionally scoped to one semester.

    Attributes:
        status_counts: Number of registrations per status present.
        course_counts: Most registered courses, highest first.
        total_students: Distinct students with at least one non-dropped registration.
        grade_stats: Average grade over graded registrations.
    """

    status_counts: dict[str, int]
    course_counts: list[CourseCount]
    total_students: int
    grade_stats: GradeStats


@dataclass
class SemesterSummary:
    """Overview of one semester's catalog and registrations."""

    semester_id: str
    semester_name: str
    course_count: int
    total_students: int
    status_counts: dict[str, int] = field(default_factory=dict)
    popular_courses: list[CourseCount] = field(default_factory=list)
