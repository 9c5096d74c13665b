"""Unit tests for RegistrationService."""

from datetime import UTC, datetime, timedelta

import pytest

from campusreg.registration import (
    DropWindowClosedError,
    ForbiddenError,
    RegistrationClosedError,
    RegistrationService,
    ValidationError,
)
from campusreg.registry import (
    AlreadyDroppedError,
    Course,
    CourseFilter,
    CourseNotFoundError,
    DuplicateRegistrationError,
    InvalidGradeError,
    RegistrationNotFoundError,
    RegistrationQuery,
    RegistrationStatus,
    Registry,
    Semester,
    SemesterNotFoundError,
    Student,
    StudentNotFoundError,
)


@pytest.mark.unit
class TestRegisterForCourses:
    """Tests for register_for_courses."""

    def test_registers_in_request_order(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        created = service.register_for_courses(
            student.user_id, [courses[1].id, courses[0].id], semester.id
        )

        assert [r.course_code for r in created] == ["MATH201", "CS101"]
        assert all(r.status == "registered" for r in created)
        assert all(r.student_number == "S1001" for r in created)
        assert created[0].semester_name == "Fall 2026"
        assert created[0].registration_date == datetime(2026, 9, 1, 12, 0)

    def test_repeated_ids_count_once(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        created = service.register_for_courses(
            student.user_id, [courses[0].id, courses[0].id], semester.id
        )
        assert len(created) == 1

    def test_empty_course_list(
        self, service: RegistrationService, student: Student, semester: Semester
    ) -> None:
        with pytest.raises(ValidationError):
            service.register_for_courses(student.user_id, [], semester.id)

    def test_unknown_student(
        self, service: RegistrationService, semester: Semester, courses: list[Course]
    ) -> None:
        with pytest.raises(StudentNotFoundError, match="Student profile not found"):
            service.register_for_courses("nobody", [courses[0].id], semester.id)

    def test_unknown_semester(
        self, service: RegistrationService, student: Student, courses: list[Course]
    ) -> None:
        with pytest.raises(SemesterNotFoundError):
            service.register_for_courses(student.user_id, [courses[0].id], "missing")

    def test_closed_window_writes_nothing(
        self,
        service: RegistrationService,
        registry: Registry,
        clock,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        clock.now = datetime(2026, 9, 15, tzinfo=UTC) + timedelta(seconds=1)

        with pytest.raises(RegistrationClosedError):
            service.register_for_courses(student.user_id, [courses[0].id], semester.id)
        assert registry.ledger.count() == 0

    def test_flag_off_is_closed(
        self,
        service: RegistrationService,
        registry: Registry,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        registry.semesters.update(semester.id, is_registration_open=False)
        with pytest.raises(RegistrationClosedError):
            service.register_for_courses(student.user_id, [courses[0].id], semester.id)

    def test_missing_course_reports_ids(
        self,
        service: RegistrationService,
        registry: Registry,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        with pytest.raises(CourseNotFoundError) as exc_info:
            service.register_for_courses(
                student.user_id, [courses[0].id, "missing"], semester.id
            )
        assert exc_info.value.missing_ids == ["missing"]
        assert registry.ledger.count() == 0

    def test_duplicate_names_conflicting_courses(
        self,
        service: RegistrationService,
        registry: Registry,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        service.register_for_courses(student.user_id, [courses[0].id], semester.id)

        with pytest.raises(DuplicateRegistrationError) as exc_info:
            service.register_for_courses(
                student.user_id, [courses[1].id, courses[0].id], semester.id
            )

        assert str(exc_info.value) == "Already registered for: Intro to Programming"
        assert exc_info.value.course_ids == [courses[0].id]
        assert registry.ledger.count() == 1

    def test_reregister_after_drop_rejected(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        """The dropped row keeps its triple, so the insert is refused."""
        [created] = service.register_for_courses(student.user_id, [courses[0].id], semester.id)
        service.drop_course(student.user_id, created.id)

        with pytest.raises(DuplicateRegistrationError, match="Registration already exists for"):
            service.register_for_courses(student.user_id, [courses[0].id], semester.id)

    def test_lost_insert_race_reports_duplicate(
        self,
        service: RegistrationService,
        registry: Registry,
        student: Student,
        semester: Semester,
        courses: list[Course],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """When the pre-check misses a concurrent insert, the constraint still rejects it."""
        service.register_for_courses(student.user_id, [courses[0].id], semester.id)
        monkeypatch.setattr(registry.ledger, "find_conflicts", lambda *args, **kwargs: [])

        with pytest.raises(DuplicateRegistrationError) as exc_info:
            service.register_for_courses(
                student.user_id, [courses[0].id, courses[1].id], semester.id
            )

        assert exc_info.value.course_names == ["Intro to Programming"]
        assert registry.ledger.count() == 1


@pytest.mark.unit
class TestDropCourse:
    """Tests for drop_course."""

    @pytest.fixture
    def registration_id(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> str:
        return service.register_for_courses(student.user_id, [courses[0].id], semester.id)[0].id

    def test_drop(
        self, service: RegistrationService, clock, student: Student, registration_id: str
    ) -> None:
        clock.advance(days=2)
        dropped = service.drop_course(student.user_id, registration_id)

        assert dropped.status == "dropped"
        assert dropped.drop_date == datetime(2026, 9, 3, 12, 0)

    def test_drop_twice(
        self, service: RegistrationService, student: Student, registration_id: str
    ) -> None:
        service.drop_course(student.user_id, registration_id)
        with pytest.raises(AlreadyDroppedError, match="Course already dropped"):
            service.drop_course(student.user_id, registration_id)

    def test_drop_after_window(
        self,
        service: RegistrationService,
        registry: Registry,
        clock,
        student: Student,
        registration_id: str,
    ) -> None:
        clock.now = datetime(2026, 10, 1, tzinfo=UTC)
        with pytest.raises(DropWindowClosedError, match="drop period has ended"):
            service.drop_course(student.user_id, registration_id)
        assert registry.ledger.get(registration_id).status == "registered"

    def test_drop_other_students_registration(
        self,
        service: RegistrationService,
        other_student: Student,
        registration_id: str,
    ) -> None:
        with pytest.raises(ForbiddenError):
            service.drop_course(other_student.user_id, registration_id)

    def test_drop_unknown(self, service: RegistrationService, student: Student) -> None:
        with pytest.raises(RegistrationNotFoundError):
            service.drop_course(student.user_id, "missing")

    def test_drop_without_profile(self, service: RegistrationService, registration_id: str) -> None:
        with pytest.raises(StudentNotFoundError):
            service.drop_course("nobody", registration_id)


@pytest.mark.unit
class TestStudentListings:
    """Tests for list_my_registrations and list_available_courses."""

    def test_my_registrations(
        self,
        service: RegistrationService,
        clock,
        student: Student,
        other_student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        service.register_for_courses(student.user_id, [courses[0].id], semester.id)
        clock.advance(minutes=5)
        service.register_for_courses(student.user_id, [courses[1].id], semester.id)
        service.register_for_courses(other_student.user_id, [courses[2].id], semester.id)

        mine = service.list_my_registrations(student.user_id)
        assert [r.course_code for r in mine] == ["MATH201", "CS101"]

        service.drop_course(student.user_id, mine[1].id)
        dropped = service.list_my_registrations(
            student.user_id, semester_id=semester.id, status=RegistrationStatus.DROPPED
        )
        assert [r.course_code for r in dropped] == ["CS101"]

    def test_available_courses_flags_held(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        service.register_for_courses(student.user_id, [courses[0].id], semester.id)
        [dropped] = service.register_for_courses(student.user_id, [courses[1].id], semester.id)
        service.drop_course(student.user_id, dropped.id)

        available = service.list_available_courses(student.user_id, semester.id)
        flags = {c.code: c.is_registered for c in available}
        assert flags == {"CS101": True, "CS205": False, "MATH201": False}
        assert all(c.registration_open for c in available)

    def test_available_courses_filter(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        available = service.list_available_courses(
            student.user_id, semester.id, CourseFilter(department="Computer Science")
        )
        assert [c.code for c in available] == ["CS101", "CS205"]

    def test_available_courses_unknown_semester(
        self, service: RegistrationService, student: Student
    ) -> None:
        with pytest.raises(SemesterNotFoundError):
            service.list_available_courses(student.user_id, "missing")


@pytest.mark.unit
class TestAdministrativeWorkflows:
    """Tests for status review, grading and listing."""

    @pytest.fixture
    def registration_id(
        self,
        service: RegistrationService,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> str:
        return service.register_for_courses(student.user_id, [courses[0].id], semester.id)[0].id

    def test_review_stamps_reviewer(
        self, service: RegistrationService, clock, registration_id: str
    ) -> None:
        reviewed = service.review_or_update_status(
            registration_id, "approved", "Prerequisites met", reviewer_id="admin-1"
        )
        assert reviewed.status == "approved"
        assert reviewed.approved_by == "admin-1"
        assert reviewed.notes == "Prerequisites met"
        assert reviewed.approval_date == datetime(2026, 9, 1, 12, 0)

    def test_review_unknown_status(
        self, service: RegistrationService, registration_id: str
    ) -> None:
        with pytest.raises(ValidationError):
            service.review_or_update_status(registration_id, "expelled", None, "admin-1")

    def test_review_ignores_window(
        self, service: RegistrationService, clock, registration_id: str
    ) -> None:
        clock.now = datetime(2027, 1, 1, tzinfo=UTC)
        reviewed = service.review_or_update_status(
            registration_id, RegistrationStatus.REJECTED, None, "admin-1"
        )
        assert reviewed.status == "rejected"

    def test_add_grade(self, service: RegistrationService, registration_id: str) -> None:
        graded = service.add_grade(registration_id, 90, notes="Excellent")
        assert graded.grade == 90
        assert graded.grade_points == 4.0
        assert graded.notes == "Excellent"

    @pytest.mark.parametrize("grade", [101, -1])
    def test_add_grade_out_of_range(
        self, service: RegistrationService, registry: Registry, registration_id: str, grade: int
    ) -> None:
        with pytest.raises(InvalidGradeError):
            service.add_grade(registration_id, grade)
        assert registry.ledger.get(registration_id).grade is None

    def test_add_grade_unknown(self, service: RegistrationService) -> None:
        with pytest.raises(RegistrationNotFoundError):
            service.add_grade("missing", 90)

    def test_list_registrations(
        self,
        service: RegistrationService,
        other_student: Student,
        semester: Semester,
        courses: list[Course],
        registration_id: str,
    ) -> None:
        service.register_for_courses(other_student.user_id, [courses[1].id], semester.id)

        listing = service.list_registrations(RegistrationQuery(limit=1))
        assert listing.total == 2
        assert listing.total_pages == 2
        assert len(listing.registrations) == 1

        searched = service.list_registrations(RegistrationQuery(search="dana"))
        assert [r.id for r in searched.registrations] == [registration_id]


@pytest.mark.unit
class TestEndToEndScenario:
    """Register, duplicate, grade, drop and report."""

    def test_scenario(
        self,
        service: RegistrationService,
        statistics,
        student: Student,
        semester: Semester,
        courses: list[Course],
    ) -> None:
        c1, c2 = courses[0], courses[1]

        created = service.register_for_courses(student.user_id, [c1.id, c2.id], semester.id)
        assert [r.status for r in created] == ["registered", "registered"]

        with pytest.raises(DuplicateRegistrationError):
            service.register_for_courses(student.user_id, [c1.id], semester.id)

        graded = service.add_grade(created[0].id, 90)
        assert graded.grade_points == 4.0

        service.drop_course(student.user_id, created[1].id)

        stats = statistics.registration_statistics(semester.id)
        assert stats.status_counts == {"registered": 1, "dropped": 1}
        assert stats.total_students == 1
        assert stats.grade_stats.average_grade == 90
        assert stats.grade_stats.total_graded == 1
