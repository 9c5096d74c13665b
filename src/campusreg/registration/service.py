"""RegistrationService - Course registration, drop, review and grading workflows."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from campusreg.registration.exceptions import (
    DropWindowClosedError,
    ForbiddenError,
    RegistrationClosedError,
    ValidationError,
)
from campusreg.registration.models import (
    AvailableCourse,
    RegistrationListing,
    RegistrationView,
)
from campusreg.registry import (
    ACTIVE_STATUSES,
    AlreadyDroppedError,
    CourseFilter,
    CourseNotFoundError,
    CourseRegistration,
    DuplicateRegistrationError,
    RegistrationQuery,
    RegistrationStatus,
    SemesterNotFoundError,
    StudentNotFoundError,
    is_registration_open,
)
from campusreg.registry.grading import validate_grade
from campusreg.registry.window import to_storage, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from campusreg.registry import (
        CourseRepository,
        RegistrationLedger,
        Registry,
        Semester,
        SemesterRepository,
        Student,
        StudentRepository,
    )

logger = logging.getLogger(__name__)


class RegistrationService:
    """Runs registration workflows against the ledger and the catalog.

    Every check that can be answered before writing is answered first, in a
    fixed order, so callers get the most specific error. The ledger's
    uniqueness constraint still has the final word on duplicates.
    """

    def __init__(
        self,
        ledger: RegistrationLedger,
        students: StudentRepository,
        courses: CourseRepository,
        semesters: SemesterRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the service.

        Args:
            ledger: Registration storage.
            students: Student lookup by user account.
            courses: Course catalog.
            semesters: Semester lookup.
            clock: Source of the current time (aware UTC).
        """
        self.ledger = ledger
        self.students = students
        self.courses = courses
        self.semesters = semesters
        self._clock = clock

    @classmethod
    def from_registry(
        cls, registry: Registry, clock: Callable[[], datetime] = utcnow
    ) -> RegistrationService:
        return cls(
            ledger=registry.ledger,
            students=registry.students,
            courses=registry.courses,
            semesters=registry.semesters,
            clock=clock,
        )

    # --- Student workflows ---

    def register_for_courses(
        self, user_id: str, course_ids: Iterable[str], semester_id: str
    ) -> list[RegistrationView]:
        """Register the caller's student profile for courses in a semester.

        Args:
            user_id: Authenticated user account of the student.
            course_ids: Courses to register for. Repeated IDs count once.
            semester_id: Semester the courses belong to.

        Returns:
            The created registrations, in request order.

        Raises:
            ValidationError: If no course ID is given.
            StudentNotFoundError: If the user has no student profile.
            SemesterNotFoundError: If the semester doesn't exist.
            RegistrationClosedError: If the registration window is not open.
            CourseNotFoundError: If any course is missing from the semester.
            DuplicateRegistrationError: If the student already holds any of the courses.
        """
        requested = list(dict.fromkeys(course_ids))
        if not requested:
            raise ValidationError("At least one course ID is required")

        student = self._require_student(user_id)
        semester = self._require_semester(semester_id)

        now = self._clock()
        if not is_registration_open(semester, now):
            raise RegistrationClosedError(
                "Course registration is not currently open for this semester"
            )

        courses = self.courses.find_many_by_ids_and_semester(requested, semester_id)
        if len(courses) != len(requested):
            found = {course.id for course in courses}
            missing = [course_id for course_id in requested if course_id not in found]
            raise CourseNotFoundError(
                "Course(s) not found or not offered in this semester: " + ", ".join(missing),
                missing_ids=missing,
            )
        names_by_id = {course.id: course.name for course in courses}

        conflicts = self.ledger.find_conflicts(student.id, requested, semester_id, ACTIVE_STATUSES)
        if conflicts:
            held = {registration.course_id for registration in conflicts}
            conflict_ids = [course_id for course_id in requested if course_id in held]
            raise DuplicateRegistrationError(
                "Already registered for: "
                + ", ".join(names_by_id[course_id] for course_id in conflict_ids),
                course_ids=conflict_ids,
                course_names=[names_by_id[course_id] for course_id in conflict_ids],
            )

        registration_date = to_storage(now)
        rows = [
            CourseRegistration(
                student_id=student.id,
                course_id=course_id,
                semester_id=semester_id,
                registration_date=registration_date,
            )
            for course_id in requested
        ]
        try:
            created = self.ledger.insert_batch(rows)
        except DuplicateRegistrationError as e:
            # Lost a race with a concurrent request, or the triple is held by a dropped row
            names = [names_by_id.get(course_id, course_id) for course_id in e.course_ids]
            raise DuplicateRegistrationError(
                "Registration already exists for: " + ", ".join(names),
                course_ids=e.course_ids,
                course_names=names,
            ) from e

        logger.info(
            "Student %s registered for %d course(s) in semester %s",
            student.id,
            len(created),
            semester_id,
        )
        return self._views([registration.id for registration in created])

    def list_my_registrations(
        self,
        user_id: str,
        semester_id: str | None = None,
        status: RegistrationStatus | None = None,
    ) -> list[RegistrationView]:
        """List the caller's registrations, most recent first.

        Raises:
            StudentNotFoundError: If the user has no student profile.
        """
        student = self._require_student(user_id)
        registrations = self.ledger.find_by_student_and_semester(
            student.id, semester_id=semester_id, status=status
        )
        return self._views([registration.id for registration in registrations])

    def drop_course(self, user_id: str, registration_id: str) -> RegistrationView:
        """Drop one of the caller's registrations while the window is open.

        Raises:
            StudentNotFoundError: If the user has no student profile.
            RegistrationNotFoundError: If the registration doesn't exist.
            ForbiddenError: If the registration belongs to another student.
            DropWindowClosedError: If the semester's window is not open.
            AlreadyDroppedError: If the registration is already dropped.
        """
        student = self._require_student(user_id)
        registration = self.ledger.get(registration_id)
        if registration.student_id != student.id:
            logger.warning(
                "Student %s attempted to drop registration %s owned by another student",
                student.id,
                registration_id,
            )
            raise ForbiddenError("Course registration belongs to another student")

        semester = self.semesters.find_by_id(registration.semester_id)
        now = self._clock()
        if not is_registration_open(semester, now):
            raise DropWindowClosedError("Course drop period has ended for this semester")

        if registration.status == RegistrationStatus.DROPPED.value:
            raise AlreadyDroppedError("Course already dropped")

        self.ledger.mark_dropped(registration_id, to_storage(now))
        logger.info("Student %s dropped registration %s", student.id, registration_id)
        return self._view(registration_id)

    def list_available_courses(
        self,
        user_id: str,
        semester_id: str,
        course_filter: CourseFilter | None = None,
    ) -> list[AvailableCourse]:
        """Courses of a semester, each flagged if the caller already holds it.

        Raises:
            StudentNotFoundError: If the user has no student profile.
            SemesterNotFoundError: If the semester doesn't exist.
        """
        student = self._require_student(user_id)
        semester = self._require_semester(semester_id)

        courses = self.courses.find_many_by_semester(semester_id, course_filter)
        held = {
            registration.course_id
            for registration in self.ledger.find_by_student_and_semester(student.id, semester_id)
            if registration.status in ACTIVE_STATUSES
        }
        window_open = is_registration_open(semester, self._clock())
        return [
            AvailableCourse.from_course(
                course, is_registered=course.id in held, registration_open=window_open
            )
            for course in courses
        ]

    # --- Administrative workflows ---

    def review_or_update_status(
        self,
        registration_id: str,
        new_status: RegistrationStatus | str,
        notes: str | None,
        reviewer_id: str,
    ) -> RegistrationView:
        """Set any status on a registration and stamp the reviewer.

        There is no restriction on the source status.

        Raises:
            ValidationError: If the status is not a known value.
            RegistrationNotFoundError: If the registration doesn't exist.
        """
        try:
            status = RegistrationStatus(new_status)
        except ValueError as e:
            raise ValidationError(f"Unknown registration status '{new_status}'") from e

        self.ledger.update_status(
            registration_id,
            status,
            notes=notes,
            approved_by=reviewer_id,
            approval_date=to_storage(self._clock()),
        )
        logger.info(
            "Registration %s set to %s by %s", registration_id, status.value, reviewer_id
        )
        return self._view(registration_id)

    def add_grade(
        self, registration_id: str, grade: float, notes: str | None = None
    ) -> RegistrationView:
        """Record a grade; grade points are derived from it.

        Raises:
            InvalidGradeError: If the grade is not a number in [0, 100].
            RegistrationNotFoundError: If the registration doesn't exist.
        """
        validate_grade(grade)
        self.ledger.set_grade(registration_id, grade, notes)
        logger.info("Grade recorded for registration %s", registration_id)
        return self._view(registration_id)

    def list_registrations(self, query: RegistrationQuery) -> RegistrationListing:
        """Filtered, paginated listing of all registrations."""
        page = self.ledger.search(query)
        return RegistrationListing(
            registrations=[RegistrationView.from_detail(detail) for detail in page.items],
            page=page.page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
        )

    # --- Helpers ---

    def _require_student(self, user_id: str) -> Student:
        student = self.students.find_by_user_id(user_id)
        if student is None:
            raise StudentNotFoundError("Student profile not found")
        return student

    def _require_semester(self, semester_id: str) -> Semester:
        semester = self.semesters.find_by_id(semester_id)
        if semester is None:
            raise SemesterNotFoundError(f"Semester with id '{semester_id}' not found")
        return semester

    def _views(self, registration_ids: list[str]) -> list[RegistrationView]:
        return [
            RegistrationView.from_detail(detail)
            for detail in self.ledger.load_details(registration_ids)
        ]

    def _view(self, registration_id: str) -> RegistrationView:
        return self._views([registration_id])[0]
