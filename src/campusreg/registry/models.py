"""SQLAlchemy models for the registry."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)

from campusreg.registry.window import is_registration_open, utcnow


class RegistrationStatus(StrEnum):
    """Course registration status enum."""

    REGISTERED = "registered"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DROPPED = "dropped"


# Statuses that hold a seat and block a new registration for the same course.
ACTIVE_STATUSES = (
    RegistrationStatus.REGISTERED,
    RegistrationStatus.APPROVED,
    RegistrationStatus.PENDING,
)


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Semester(Base):
    """Semester model - academic term with its registration window."""

    __tablename__ = "semesters"
    __table_args__ = (
        Index("ix_semesters_year_active", "academic_year", "is_active"),
        Index("ix_semesters_registration_window", "registration_start", "registration_end"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    registration_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    registration_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_registration_open: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        name: str,
        academic_year: str,
        start_date: datetime,
        end_date: datetime,
        registration_start: datetime,
        registration_end: datetime,
        id: str | None = None,
        is_registration_open: bool = False,
        is_active: bool = False,
        description: str | None = None,
        created_by: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.academic_year = academic_year
        self.start_date = start_date
        self.end_date = end_date
        self.registration_start = registration_start
        self.registration_end = registration_end
        self.is_registration_open = is_registration_open
        self.is_active = is_active
        self.description = description
        self.created_by = created_by

    @property
    def registration_currently_open(self) -> bool:
        """Whether the registration window is open right now."""
        return is_registration_open(self, utcnow())

    def __repr__(self) -> str:
        return (
            f"<Semester(id={self.id!r}, name={self.name!r}, "
            f"academic_year={self.academic_year!r})>"
        )


class Course(Base):
    """Course model - catalog entry offered in one semester."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    instructor: Mapped[str] = mapped_column(String(255), nullable=False)
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __init__(
        self,
        name: str,
        code: str,
        semester_id: str,
        credits: int,
        department: str,
        id: str | None = None,
        description: str = "",
        instructor: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.code = code.strip().upper()
        self.semester_id = semester_id
        self.credits = credits
        self.department = department
        self.description = description
        self.instructor = instructor

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, code={self.code!r}, semester_id={self.semester_id!r})>"


class Student(Base):
    """Student model - profile linked to a user account."""

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    student_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __init__(
        self,
        user_id: str,
        full_name: str,
        student_number: str,
        id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.user_id = user_id
        self.full_name = full_name
        self.student_number = student_number

    def __repr__(self) -> str:
        return f"<Student(id={self.id!r}, student_number={self.student_number!r})>"


class CourseRegistration(Base):
    """Course registration model - one ledger row per student, course and semester."""

    __tablename__ = "course_registrations"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "course_id", "semester_id", name="uq_registration_triple"
        ),
        Index("ix_registrations_semester_status", "semester_id", "status"),
        Index("ix_registrations_student_status", "student_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("students.id"), nullable=False)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    registration_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    drop_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    grade_points: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approval_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    def __init__(
        self,
        student_id: str,
        course_id: str,
        semester_id: str,
        registration_date: datetime,
        id: str | None = None,
        status: str | None = None,
        notes: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.student_id = student_id
        self.course_id = course_id
        self.semester_id = semester_id
        self.registration_date = registration_date
        self.status = status if status is not None else RegistrationStatus.REGISTERED.value
        self.notes = notes

    @property
    def registration_status(self) -> RegistrationStatus:
        """Get status as RegistrationStatus enum."""
        return RegistrationStatus(self.status)

    @property
    def triple(self) -> tuple[str, str, str]:
        """The (student_id, course_id, semester_id) key."""
        return (self.student_id, self.course_id, self.semester_id)

    def __repr__(self) -> str:
        return (
            f"<CourseRegistration(id={self.id!r}, student_id={self.student_id!r}, "
            f"course_id={self.course_id!r}, status={self.status!r})>"
        )


@dataclass
class RegistrationDetail:
    """A registration resolved with the rows it references."""

    registration: CourseRegistration
    course: Course
    semester: Semester
    student: Student


@dataclass
class RegistrationPage:
    """One page of a filtered registration listing."""

    items: list[RegistrationDetail] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return -(-self.total // self.limit)


@dataclass
class CourseCount:
    """Registration count for one course."""

    course_id: str
    course_code: str
    course_name: str
    registration_count: int


@dataclass
class GradeStats:
    """Aggregated grade figures over graded registrations."""

    average_grade: float = 0.0
    total_graded: int = 0
