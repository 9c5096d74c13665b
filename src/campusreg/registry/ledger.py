"""RegistrationLedger - Composite-unique storage of course registrations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from campusreg.registry.exceptions import (
    AlreadyDroppedError,
    ConcurrentUpdateError,
    DuplicateRegistrationError,
    RegistrationNotFoundError,
)
from campusreg.registry.grading import grade_points
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
from campusreg.registry.queries import RegistrationQuery, like_pattern

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy import Select
    from sqlalchemy.orm import Session

    from campusreg.registry.database import Database

logger = logging.getLogger(__name__)


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return "UNIQUE constraint failed" in message or "uq_registration_triple" in message


def _is_lock_conflict(error: OperationalError) -> bool:
    return "database is locked" in str(error.orig)


def _status_values(statuses: Iterable[RegistrationStatus | str]) -> list[str]:
    return [RegistrationStatus(s).value for s in statuses]


class RegistrationLedger:
    """Durable store of CourseRegistration rows.

    At most one row exists per (student_id, course_id, semester_id). The
    database's unique constraint is the authority for that rule; the
    ``find_conflicts`` pre-check only gives better error messages.

    Updates are guarded by the row's version column. An update that lost a
    race is re-read and re-applied up to ``max_update_retries`` times.
    """

    def __init__(self, db: Database, max_update_retries: int = 3) -> None:
        """Initialize the ledger.

        Args:
            db: Database the ledger reads and writes.
            max_update_retries: Attempts per update before ConcurrentUpdateError.
        """
        self._db = db
        self._max_update_retries = max_update_retries

    # --- Writes ---

    def insert_batch(self, rows: Sequence[CourseRegistration]) -> list[CourseRegistration]:
        """Insert registrations atomically.

        Args:
            rows: New registration rows.

        Returns:
            The inserted rows, refreshed from the database.

        Raises:
            DuplicateRegistrationError: If any row repeats a triple of another row
                in the batch or in storage. Nothing is inserted in that case.
        """
        rows = list(rows)
        if not rows:
            return []

        seen: set[tuple[str, str, str]] = set()
        repeated: list[str] = []
        for row in rows:
            if row.triple in seen:
                repeated.append(row.course_id)
            seen.add(row.triple)
        if repeated:
            raise DuplicateRegistrationError(
                f"Batch repeats course(s): {', '.join(repeated)}", course_ids=repeated
            )

        session = self._db.get_session()
        try:
            session.add_all(rows)
            session.commit()
            for row in rows:
                session.refresh(row)
            logger.info(
                "Inserted %d registration(s) for student %s in semester %s",
                len(rows),
                rows[0].student_id,
                rows[0].semester_id,
            )
            return rows
        except IntegrityError as e:
            session.rollback()
            if not _is_unique_violation(e):
                raise
            colliding = self._colliding_course_ids(session, rows)
            logger.warning(
                "Insert rejected by uniqueness constraint for student %s in semester %s: %s",
                rows[0].student_id,
                rows[0].semester_id,
                ", ".join(colliding),
            )
            raise DuplicateRegistrationError(
                "Registration already exists for course(s): " + ", ".join(colliding),
                course_ids=colliding,
            ) from e
        finally:
            session.close()

    def update_status(
        self,
        registration_id: str,
        status: RegistrationStatus,
        notes: str | None,
        approved_by: str | None,
        approval_date: datetime,
    ) -> CourseRegistration:
        """Set status and review metadata.

        Raises:
            RegistrationNotFoundError: If registration doesn't exist
        """

        def apply(registration: CourseRegistration) -> None:
            registration.status = RegistrationStatus(status).value
            registration.notes = notes
            registration.approved_by = approved_by
            registration.approval_date = approval_date

        return self._apply_update(registration_id, apply, "update_status")

    def set_grade(
        self, registration_id: str, grade: float, notes: str | None = None
    ) -> CourseRegistration:
        """Store a grade together with its grade points.

        Args:
            registration_id: The registration's unique ID
            grade: Percentage grade in [0, 100]
            notes: Replaces existing notes when provided

        Returns:
            The updated registration

        Raises:
            InvalidGradeError: If grade is not a number in [0, 100]
            RegistrationNotFoundError: If registration doesn't exist
        """
        points = grade_points(grade)
        value = float(grade)

        def apply(registration: CourseRegistration) -> None:
            registration.grade = value
            registration.grade_points = points
            if notes is not None:
                registration.notes = notes

        return self._apply_update(registration_id, apply, "set_grade")

    def mark_dropped(self, registration_id: str, drop_date: datetime) -> CourseRegistration:
        """Transition a registration to dropped.

        Raises:
            RegistrationNotFoundError: If registration doesn't exist
            AlreadyDroppedError: If registration is already dropped
        """

        def apply(registration: CourseRegistration) -> None:
            if registration.status == RegistrationStatus.DROPPED.value:
                raise AlreadyDroppedError(f"Registration '{registration_id}' is already dropped")
            registration.status = RegistrationStatus.DROPPED.value
            registration.drop_date = drop_date

        return self._apply_update(registration_id, apply, "mark_dropped")

    def _apply_update(
        self,
        registration_id: str,
        apply: Callable[[CourseRegistration], None],
        operation: str,
    ) -> CourseRegistration:
        for attempt in range(1, self._max_update_retries + 1):
            session = self._db.get_session()
            try:
                registration = session.get(CourseRegistration, registration_id)
                if registration is None:
                    raise RegistrationNotFoundError(
                        f"Registration with id '{registration_id}' not found"
                    )
                apply(registration)
                session.commit()
                session.refresh(registration)
                logger.debug("%s applied to registration %s", operation, registration_id)
                return registration
            except (StaleDataError, OperationalError) as e:
                session.rollback()
                if isinstance(e, OperationalError) and not _is_lock_conflict(e):
                    raise
                logger.warning(
                    "%s lost a concurrent update on registration %s (attempt %d/%d)",
                    operation,
                    registration_id,
                    attempt,
                    self._max_update_retries,
                )
            finally:
                session.close()

        raise ConcurrentUpdateError(
            f"Registration '{registration_id}' changed concurrently during {operation}"
        )

    # --- Reads ---

    def get(self, registration_id: str) -> CourseRegistration:
        """Get registration by ID.

        Raises:
            RegistrationNotFoundError: If registration doesn't exist
        """
        session = self._db.get_session()
        try:
            registration = session.get(CourseRegistration, registration_id)
            if registration is None:
                raise RegistrationNotFoundError(
                    f"Registration with id '{registration_id}' not found"
                )
            return registration
        finally:
            session.close()

    def find_by_student_and_semester(
        self,
        student_id: str,
        semester_id: str | None = None,
        status: RegistrationStatus | None = None,
    ) -> list[CourseRegistration]:
        """List a student's registrations, most recent first."""
        session = self._db.get_session()
        try:
            stmt = select(CourseRegistration).where(CourseRegistration.student_id == student_id)
            if semester_id is not None:
                stmt = stmt.where(CourseRegistration.semester_id == semester_id)
            if status is not None:
                stmt = stmt.where(CourseRegistration.status == RegistrationStatus(status).value)
            stmt = stmt.order_by(
                CourseRegistration.registration_date.desc(), CourseRegistration.id
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def find_conflicts(
        self,
        student_id: str,
        course_ids: Iterable[str],
        semester_id: str,
        statuses: Iterable[RegistrationStatus] = ACTIVE_STATUSES,
    ) -> list[CourseRegistration]:
        """Find existing rows for the student, any of the courses and the semester.

        Only rows whose status is in ``statuses`` are returned.
        """
        course_ids = list(course_ids)
        if not course_ids:
            return []
        session = self._db.get_session()
        try:
            stmt = select(CourseRegistration).where(
                CourseRegistration.student_id == student_id,
                CourseRegistration.course_id.in_(course_ids),
                CourseRegistration.semester_id == semester_id,
                CourseRegistration.status.in_(_status_values(statuses)),
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def load_details(self, registration_ids: Sequence[str]) -> list[RegistrationDetail]:
        """Resolve registrations with their course, semester and student rows.

        Returns:
            Details in the order of ``registration_ids``; unknown IDs are skipped.
        """
        if not registration_ids:
            return []
        session = self._db.get_session()
        try:
            stmt = self._joined(
                select(CourseRegistration, Course, Semester, Student)
            ).where(CourseRegistration.id.in_(list(registration_ids)))
            by_id = {
                row.CourseRegistration.id: RegistrationDetail(
                    registration=row.CourseRegistration,
                    course=row.Course,
                    semester=row.Semester,
                    student=row.Student,
                )
                for row in session.execute(stmt)
            }
            return [by_id[rid] for rid in registration_ids if rid in by_id]
        finally:
            session.close()

    def search(self, query: RegistrationQuery) -> RegistrationPage:
        """Filtered, paginated listing, most recent registrations first."""
        session = self._db.get_session()
        try:
            stmt = self._filtered(
                self._joined(select(CourseRegistration, Course, Semester, Student)), query
            )
            stmt = stmt.order_by(
                CourseRegistration.registration_date.desc(), CourseRegistration.id
            )
            stmt = stmt.limit(query.limit).offset(query.offset)
            items = [
                RegistrationDetail(
                    registration=row.CourseRegistration,
                    course=row.Course,
                    semester=row.Semester,
                    student=row.Student,
                )
                for row in session.execute(stmt)
            ]
            total = self._count(session, query)
            return RegistrationPage(items=items, total=total, page=query.page, limit=query.limit)
        finally:
            session.close()

    # --- Reporting primitives ---

    def count(self, query: RegistrationQuery | None = None) -> int:
        """Count registrations matching a query (pagination is ignored)."""
        session = self._db.get_session()
        try:
            return self._count(session, query or RegistrationQuery())
        finally:
            session.close()

    def count_for_semester(self, semester_id: str) -> int:
        """Count registrations referencing a semester, in any status."""
        session = self._db.get_session()
        try:
            stmt = select(func.count(CourseRegistration.id)).where(
                CourseRegistration.semester_id == semester_id
            )
            return session.execute(stmt).scalar_one()
        finally:
            session.close()

    def distinct_students(
        self,
        semester_id: str | None = None,
        statuses: Iterable[RegistrationStatus] | None = None,
    ) -> int:
        """Count distinct students with at least one matching registration."""
        session = self._db.get_session()
        try:
            stmt = select(func.count(func.distinct(CourseRegistration.student_id)))
            stmt = self._scoped(stmt, semester_id, statuses)
            return session.execute(stmt).scalar_one()
        finally:
            session.close()

    def aggregate_by_status(self, semester_id: str | None = None) -> dict[str, int]:
        """Count registrations per status value."""
        session = self._db.get_session()
        try:
            stmt = select(
                CourseRegistration.status, func.count(CourseRegistration.id).label("count")
            )
            stmt = self._scoped(stmt, semester_id, None)
            stmt = stmt.group_by(CourseRegistration.status).order_by(CourseRegistration.status)
            return {row.status: row.count for row in session.execute(stmt)}
        finally:
            session.close()

    def aggregate_by_course(
        self,
        semester_id: str | None = None,
        limit: int = 10,
        statuses: Iterable[RegistrationStatus] | None = None,
    ) -> list[CourseCount]:
        """Top courses by registration count, ties ordered by course code."""
        session = self._db.get_session()
        try:
            registration_count = func.count(CourseRegistration.id).label("registration_count")
            stmt = (
                select(Course.id, Course.code, Course.name, registration_count)
                .select_from(CourseRegistration)
                .join(Course, Course.id == CourseRegistration.course_id)
            )
            stmt = self._scoped(stmt, semester_id, statuses)
            stmt = (
                stmt.group_by(Course.id, Course.code, Course.name)
                .order_by(registration_count.desc(), Course.code)
                .limit(limit)
            )
            return [
                CourseCount(
                    course_id=row.id,
                    course_code=row.code,
                    course_name=row.name,
                    registration_count=row.registration_count,
                )
                for row in session.execute(stmt)
            ]
        finally:
            session.close()

    def grade_summary(self, semester_id: str | None = None) -> GradeStats:
        """Average grade and graded-row count over rows that carry a grade."""
        session = self._db.get_session()
        try:
            stmt = select(
                func.avg(CourseRegistration.grade).label("average"),
                func.count(CourseRegistration.id).label("graded"),
            ).where(CourseRegistration.grade.is_not(None))
            stmt = self._scoped(stmt, semester_id, None)
            result = session.execute(stmt).one()
            return GradeStats(
                average_grade=float(result.average or 0.0),
                total_graded=result.graded or 0,
            )
        finally:
            session.close()

    # --- Helpers ---

    @staticmethod
    def _joined(stmt: Select[Any]) -> Select[Any]:
        return (
            stmt.join(Course, Course.id == CourseRegistration.course_id)
            .join(Semester, Semester.id == CourseRegistration.semester_id)
            .join(Student, Student.id == CourseRegistration.student_id)
        )

    @staticmethod
    def _filtered(stmt: Select[Any], query: RegistrationQuery) -> Select[Any]:
        if query.semester_id is not None:
            stmt = stmt.where(CourseRegistration.semester_id == query.semester_id)
        if query.status is not None:
            stmt = stmt.where(CourseRegistration.status == RegistrationStatus(query.status).value)
        if query.course_id is not None:
            stmt = stmt.where(CourseRegistration.course_id == query.course_id)
        if query.student_id is not None:
            stmt = stmt.where(CourseRegistration.student_id == query.student_id)
        if query.department is not None:
            stmt = stmt.where(Course.department == query.department)
        if query.search:
            pattern = like_pattern(query.search)
            stmt = stmt.where(
                or_(
                    Student.full_name.ilike(pattern, escape="\\"),
                    Student.student_number.ilike(pattern, escape="\\"),
                    Course.name.ilike(pattern, escape="\\"),
                    Course.code.ilike(pattern, escape="\\"),
                )
            )
        return stmt

    @staticmethod
    def _scoped(
        stmt: Select[Any],
        semester_id: str | None,
        statuses: Iterable[RegistrationStatus] | None,
    ) -> Select[Any]:
        if semester_id is not None:
            stmt = stmt.where(CourseRegistration.semester_id == semester_id)
        if statuses is not None:
            stmt = stmt.where(CourseRegistration.status.in_(_status_values(statuses)))
        return stmt

    def _count(self, session: Session, query: RegistrationQuery) -> int:
        stmt = self._joined(
            select(func.count(CourseRegistration.id)).select_from(CourseRegistration)
        )
        stmt = self._filtered(stmt, query)
        return session.execute(stmt).scalar_one()

    @staticmethod
    def _colliding_course_ids(session: Session, rows: Sequence[CourseRegistration]) -> list[str]:
        conditions = [
            and_(
                CourseRegistration.student_id == row.student_id,
                CourseRegistration.course_id == row.course_id,
                CourseRegistration.semester_id == row.semester_id,
            )
            for row in rows
        ]
        stmt = select(CourseRegistration.course_id).where(or_(*conditions))
        found = set(session.execute(stmt).scalars().all())
        return [row.course_id for row in rows if row.course_id in found]
