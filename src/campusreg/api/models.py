"""Pydantic models for REST API."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from campusreg.registry import RegistrationStatus

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper.

    ``code`` is a stable machine-readable error code, set together with ``error``.
    """

    data: T | None = None
    error: str | None = None
    code: str | None = None


class PaginationResponse(BaseModel):
    """Pagination metadata for list responses."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


# Registration models


class RegisterRequest(BaseModel):
    """Request model for registering for courses."""

    course_ids: list[str] = Field(..., min_length=1, max_length=50)
    semester_id: str = Field(..., min_length=1, max_length=36)


class StatusUpdateRequest(BaseModel):
    """Request model for an administrative status update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: RegistrationStatus
    notes: str | None = Field(default=None, max_length=2000)


class GradeRequest(BaseModel):
    """Request model for recording a grade.

    The range is checked by the service so out-of-range grades report INVALID_GRADE.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    grade: float
    notes: str | None = Field(default=None, max_length=2000)


class RegistrationResponse(BaseModel):
    """Response model for a course registration."""

    model_config = ConfigDict(from_attributes=True)

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


def registration_to_response(registration: Any) -> RegistrationResponse:
    """Convert a RegistrationView to RegistrationResponse."""
    return RegistrationResponse.model_validate(registration)


class RegistrationListResponse(BaseModel):
    """Response model for the administrative registration listing."""

    registrations: list[RegistrationResponse]
    pagination: PaginationResponse


def listing_to_response(listing: Any) -> RegistrationListResponse:
    """Convert a RegistrationListing to RegistrationListResponse."""
    return RegistrationListResponse(
        registrations=[registration_to_response(r) for r in listing.registrations],
        pagination=PaginationResponse(
            current_page=listing.page,
            total_pages=listing.total_pages,
            total_items=listing.total,
            items_per_page=listing.limit,
        ),
    )


class AvailableCourseResponse(BaseModel):
    """Response model for a course offered for registration."""

    model_config = ConfigDict(from_attributes=True)

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


def available_course_to_response(course: Any) -> AvailableCourseResponse:
    """Convert an AvailableCourse to AvailableCourseResponse."""
    return AvailableCourseResponse.model_validate(course)


# Statistics models


class StatusCountResponse(BaseModel):
    """Number of registrations in one status."""

    status: str
    count: int


class CourseCountResponse(BaseModel):
    """Number of registrations for one course."""

    model_config = ConfigDict(from_attributes=True)

    course_id: str
    course_code: str
    course_name: str
    registration_count: int


class GradeStatsResponse(BaseModel):
    """Grade average over graded registrations."""

    model_config = ConfigDict(from_attributes=True)

    average_grade: float
    total_graded: int


class RegistrationStatisticsResponse(BaseModel):
    """Response model for registration statistics."""

    status_stats: list[StatusCountResponse]
    course_stats: list[CourseCountResponse]
    total_students: int
    grade_stats: GradeStatsResponse


def statistics_to_response(stats: Any) -> RegistrationStatisticsResponse:
    """Convert RegistrationStatistics to RegistrationStatisticsResponse."""
    return RegistrationStatisticsResponse(
        status_stats=[
            StatusCountResponse(status=status, count=count)
            for status, count in stats.status_counts.items()
        ],
        course_stats=[CourseCountResponse.model_validate(c) for c in stats.course_counts],
        total_students=stats.total_students,
        grade_stats=GradeStatsResponse.model_validate(stats.grade_stats),
    )


# Semester models


class SemesterCreate(BaseModel):
    """Request model for creating a semester."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    academic_year: str = Field(..., min_length=1, max_length=20)
    start_date: datetime
    end_date: datetime
    registration_start: datetime
    registration_end: datetime
    is_registration_open: bool = False
    is_active: bool = False
    description: str | None = Field(default=None, max_length=2000)


class SemesterUpdate(BaseModel):
    """Request model for updating a semester (partial update).

    Activation is a separate action.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    academic_year: str | None = Field(default=None, min_length=1, max_length=20)
    start_date: datetime | None = None
    end_date: datetime | None = None
    registration_start: datetime | None = None
    registration_end: datetime | None = None
    is_registration_open: bool | None = None
    description: str | None = Field(default=None, max_length=2000)


class SemesterResponse(BaseModel):
    """Response model for a semester."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    academic_year: str
    start_date: datetime
    end_date: datetime
    registration_start: datetime
    registration_end: datetime
    is_registration_open: bool
    is_active: bool
    registration_currently_open: bool
    description: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime


def semester_to_response(semester: Any) -> SemesterResponse:
    """Convert a Semester model to SemesterResponse."""
    return SemesterResponse.model_validate(semester)


class SemesterListResponse(BaseModel):
    """Response model for a page of semesters."""

    semesters: list[SemesterResponse]
    pagination: PaginationResponse


class SemesterSummaryResponse(BaseModel):
    """Response model for a semester overview."""

    model_config = ConfigDict(from_attributes=True)

    semester_id: str
    semester_name: str
    course_count: int
    total_students: int
    status_counts: dict[str, int]
    popular_courses: list[CourseCountResponse]


def semester_summary_to_response(summary: Any) -> SemesterSummaryResponse:
    """Convert a SemesterSummary to SemesterSummaryResponse."""
    return SemesterSummaryResponse.model_validate(summary)


# Catalog models


class CourseCreate(BaseModel):
    """Request model for creating a course."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    semester_id: str = Field(..., min_length=1, max_length=36)
    credits: int = Field(..., ge=1, le=10)
    department: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    instructor: str = Field(default="", max_length=255)


class CourseResponse(BaseModel):
    """Response model for a course."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: str
    description: str
    credits: int
    department: str
    instructor: str
    semester_id: str
    created_at: datetime


def course_to_response(course: Any) -> CourseResponse:
    """Convert a Course model to CourseResponse."""
    return CourseResponse.model_validate(course)


class StudentCreate(BaseModel):
    """Request model for creating a student profile."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1, max_length=36)
    full_name: str = Field(..., min_length=1, max_length=255)
    student_number: str = Field(..., min_length=1, max_length=50)


class StudentResponse(BaseModel):
    """Response model for a student profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    full_name: str
    student_number: str
    created_at: datetime


def student_to_response(student: Any) -> StudentResponse:
    """Convert a Student model to StudentResponse."""
    return StudentResponse.model_validate(student)
