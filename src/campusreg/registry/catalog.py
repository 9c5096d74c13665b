"""Catalog repositories - students, courses and semesters.

These rows are reference data for the registration core: it reads them but
never changes them. Semester administration lives here too.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from campusreg.registry.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    SemesterHasCoursesError,
    SemesterHasRegistrationsError,
    SemesterNotFoundError,
    SemesterValidationError,
    StudentExistsError,
    StudentNotFoundError,
)
from campusreg.registry.models import Course, CourseRegistration, Semester, Student
from campusreg.registry.queries import CourseFilter, like_pattern
from campusreg.registry.window import to_storage

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from campusreg.registry.database import Database

logger = logging.getLogger(__name__)

_SEMESTER_DATE_FIELDS = ("start_date", "end_date", "registration_start", "registration_end")
_SEMESTER_UPDATABLE = (
    "name",
    "academic_year",
    *_SEMESTER_DATE_FIELDS,
    "is_registration_open",
    "description",
)


def validate_semester_dates(
    start_date: datetime,
    end_date: datetime,
    registration_start: datetime,
    registration_end: datetime,
) -> None:
    """Check the ordering of a semester's dates.

    Raises:
        SemesterValidationError: If the semester or its registration window is
            empty, or registration closes after the semester ends.
    """
    if start_date >= end_date:
        raise SemesterValidationError("End date must be after start date")
    if registration_start >= registration_end:
        raise SemesterValidationError(
            "Registration end date must be after registration start date"
        )
    if registration_end > end_date:
        raise SemesterValidationError(
            "Registration end date cannot be after semester end date"
        )


class StudentRepository:
    """Student profiles keyed by their owning user account."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, user_id: str, full_name: str, student_number: str) -> Student:
        """Create a student profile.

        Raises:
            StudentExistsError: If the user or student number already has a profile
        """
        session = self._db.get_session()
        try:
            student = Student(user_id=user_id, full_name=full_name, student_number=student_number)
            session.add(student)
            session.commit()
            session.refresh(student)
            return student
        except IntegrityError as e:
            session.rollback()
            if "UNIQUE constraint failed" in str(e.orig):
                raise StudentExistsError(
                    f"Student for user '{user_id}' or number '{student_number}' already exists"
                ) from e
            raise
        finally:
            session.close()

    def find_by_user_id(self, user_id: str) -> Student | None:
        session = self._db.get_session()
        try:
            stmt = select(Student).where(Student.user_id == user_id)
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()

    def get(self, student_id: str) -> Student:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")
            return student
        finally:
            session.close()


class CourseRepository:
    """Course catalog, one course per semester offering."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        name: str,
        code: str,
        semester_id: str,
        credits: int,
        department: str,
        description: str = "",
        instructor: str = "",
    ) -> Course:
        """Create a course in a semester.

        Raises:
            SemesterNotFoundError: If semester doesn't exist
            CourseExistsError: If a course with the same code exists
        """
        session = self._db.get_session()
        try:
            if session.get(Semester, semester_id) is None:
                raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")

            course = Course(
                name=name,
                code=code,
                semester_id=semester_id,
                credits=credits,
                department=department,
                description=description,
                instructor=instructor,
            )
            session.add(course)
            session.commit()
            session.refresh(course)
            return course
        except IntegrityError as e:
            session.rollback()
            if "UNIQUE constraint failed" in str(e.orig):
                raise CourseExistsError(
                    f"Course with code '{code.strip().upper()}' already exists"
                ) from e
            raise
        finally:
            session.close()

    def get(self, course_id: str) -> Course:
        """Get course by ID.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(
                    f"Course with id '{course_id}' not found", missing_ids=[course_id]
                )
            return course
        finally:
            session.close()

    def find_many_by_ids_and_semester(
        self, course_ids: Iterable[str], semester_id: str
    ) -> list[Course]:
        """Courses among ``course_ids`` that belong to the semester."""
        course_ids = list(course_ids)
        if not course_ids:
            return []
        session = self._db.get_session()
        try:
            stmt = select(Course).where(
                Course.id.in_(course_ids), Course.semester_id == semester_id
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def find_many_by_semester(
        self, semester_id: str | None, course_filter: CourseFilter | None = None
    ) -> list[Course]:
        """Courses of a semester (or all semesters), ordered by code."""
        course_filter = course_filter or CourseFilter()
        session = self._db.get_session()
        try:
            stmt = select(Course)
            if semester_id is not None:
                stmt = stmt.where(Course.semester_id == semester_id)
            if course_filter.department is not None:
                stmt = stmt.where(Course.department == course_filter.department)
            if course_filter.search:
                pattern = like_pattern(course_filter.search)
                stmt = stmt.where(
                    or_(
                        Course.name.ilike(pattern, escape="\\"),
                        Course.code.ilike(pattern, escape="\\"),
                        Course.description.ilike(pattern, escape="\\"),
                    )
                )
            stmt = stmt.order_by(Course.code)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def count_by_semester(self, semester_id: str) -> int:
        session = self._db.get_session()
        try:
            stmt = select(func.count(Course.id)).where(Course.semester_id == semester_id)
            return session.execute(stmt).scalar_one()
        finally:
            session.close()


class SemesterRepository:
    """Semesters and their registration windows.

    At most one semester is active. Only ``activate_semester`` (and ``create``
    with ``is_active=True``) changes which one, inside a single transaction.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        name: str,
        academic_year: str,
        start_date: datetime,
        end_date: datetime,
        registration_start: datetime,
        registration_end: datetime,
        is_registration_open: bool = False,
        is_active: bool = False,
        description: str | None = None,
        created_by: str | None = None,
    ) -> Semester:
        """Create a semester.

        Args:
            name: Display name, e.g. "Fall 2026"
            academic_year: Academic year label, e.g. "2026/2027"
            start_date: First day of the semester
            end_date: Last day of the semester
            registration_start: Registration window opening time
            registration_end: Registration window closing time
            is_registration_open: Administrative switch for the window
            is_active: Make this the single active semester
            description: Free text
            created_by: User ID of the creating administrator

        Returns:
            Created Semester with generated ID

        Raises:
            SemesterValidationError: If the dates are inconsistent
        """
        dates = [
            to_storage(d) for d in (start_date, end_date, registration_start, registration_end)
        ]
        validate_semester_dates(*dates)

        session = self._db.get_session()
        try:
            semester = Semester(
                name=name,
                academic_year=academic_year,
                start_date=dates[0],
                end_date=dates[1],
                registration_start=dates[2],
                registration_end=dates[3],
                is_registration_open=is_registration_open,
                is_active=is_active,
                description=description,
                created_by=created_by,
            )
            session.add(semester)
            if is_active:
                session.flush()
                self._deactivate_others(session, semester.id)
            session.commit()
            session.refresh(semester)
            logger.info("Created semester %s (%s)", semester.id, semester.name)
            return semester
        finally:
            session.close()

    def find_by_id(self, semester_id: str) -> Semester | None:
        session = self._db.get_session()
        try:
            return session.get(Semester, semester_id)
        finally:
            session.close()

    def get(self, semester_id: str) -> Semester:
        """Get semester by ID.

        Raises:
            SemesterNotFoundError: If semester doesn't exist
        """
        semester = self.find_by_id(semester_id)
        if semester is None:
            raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")
        return semester

    def get_active(self) -> Semester:
        """Get the active semester.

        Raises:
            SemesterNotFoundError: If no semester is active
        """
        session = self._db.get_session()
        try:
            stmt = select(Semester).where(Semester.is_active.is_(True))
            semester = session.execute(stmt).scalars().first()
            if semester is None:
                raise SemesterNotFoundError("No active semester found")
            return semester
        finally:
            session.close()

    def list_semesters(
        self,
        academic_year: str | None = None,
        is_active: bool | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Semester]:
        """List semesters, most recent academic year and start date first."""
        session = self._db.get_session()
        try:
            stmt = self._where(select(Semester), academic_year, is_active)
            stmt = stmt.order_by(Semester.academic_year.desc(), Semester.start_date.desc())
            stmt = stmt.limit(limit).offset(offset)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def count(self, academic_year: str | None = None, is_active: bool | None = None) -> int:
        session = self._db.get_session()
        try:
            stmt = self._where(select(func.count(Semester.id)), academic_year, is_active)
            return session.execute(stmt).scalar_one()
        finally:
            session.close()

    def update(self, semester_id: str, **changes: Any) -> Semester:
        """Update semester fields. Only provided (non-None) fields are updated.

        ``is_active`` is not accepted here; use ``activate_semester``.

        Raises:
            SemesterNotFoundError: If semester doesn't exist
            SemesterValidationError: If the resulting dates are inconsistent
        """
        unknown = set(changes) - set(_SEMESTER_UPDATABLE)
        if unknown:
            raise TypeError(f"Cannot update semester field(s): {', '.join(sorted(unknown))}")

        session = self._db.get_session()
        try:
            semester = session.get(Semester, semester_id)
            if semester is None:
                raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")

            for name, value in changes.items():
                if value is None:
                    continue
                if name in _SEMESTER_DATE_FIELDS:
                    value = to_storage(value)
                setattr(semester, name, value)

            validate_semester_dates(
                semester.start_date,
                semester.end_date,
                semester.registration_start,
                semester.registration_end,
            )
            session.commit()
            session.refresh(semester)
            return semester
        except SemesterValidationError:
            session.rollback()
            raise
        finally:
            session.close()

    def delete(self, semester_id: str) -> None:
        """Delete a semester. Fails while registrations or courses reference it.

        Raises:
            SemesterNotFoundError: If semester doesn't exist
            SemesterHasRegistrationsError: If any registration references it
            SemesterHasCoursesError: If any course belongs to it
        """
        session = self._db.get_session()
        try:
            semester = session.get(Semester, semester_id)
            if semester is None:
                raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")

            registrations = session.execute(
                select(func.count(CourseRegistration.id)).where(
                    CourseRegistration.semester_id == semester_id
                )
            ).scalar_one()
            if registrations > 0:
                raise SemesterHasRegistrationsError(
                    "Cannot delete semester with existing course registrations"
                )

            courses = session.execute(
                select(func.count(Course.id)).where(Course.semester_id == semester_id)
            ).scalar_one()
            if courses > 0:
                raise SemesterHasCoursesError("Cannot delete semester that still has courses")

            session.delete(semester)
            session.commit()
            logger.info("Deleted semester %s", semester_id)
        finally:
            session.close()

    def activate_semester(self, semester_id: str) -> Semester:
        """Make a semester the only active one, atomically.

        Raises:
            SemesterNotFoundError: If semester doesn't exist (nothing changes)
        """
        session = self._db.get_session()
        try:
            semester = session.get(Semester, semester_id)
            if semester is None:
                raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")

            self._deactivate_others(session, semester_id)
            semester.is_active = True
            session.commit()
            session.refresh(semester)
            logger.info("Activated semester %s", semester_id)
            return semester
        finally:
            session.close()

    @staticmethod
    def _deactivate_others(session: Session, semester_id: str) -> None:
        session.execute(
            update(Semester)
            .where(Semester.id != semester_id, Semester.is_active.is_(True))
            .values(is_active=False)
        )

    @staticmethod
    def _where(stmt: Any, academic_year: str | None, is_active: bool | None) -> Any:
        if academic_year is not None:
            stmt = stmt.where(Semester.academic_year == academic_year)
        if is_active is not None:
            stmt = stmt.where(Semester.is_active.is_(is_active))
        return stmt
