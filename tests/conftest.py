"""Shared pytest fixtures and configuration."""

from datetime import UTC, datetime, timedelta

import pytest

from campusreg.registration import RegistrationService, StatisticsAggregator
from campusreg.registry import Course, Registry, Semester, Student


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Inside the registration window of the ``semester`` fixture.
NOW = datetime(2026, 9, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for services that take a ``clock`` callable."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# Shared fixtures


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen inside the open registration window."""
    return FakeClock()


@pytest.fixture
def registry():
    """Create an in-memory Registry."""
    r = Registry(":memory:")
    yield r
    r.close()


@pytest.fixture
def semester(registry: Registry) -> Semester:
    """Active semester whose registration window is open from Aug 1 to Sep 15 2026."""
    return registry.semesters.create(
        name="Fall 2026",
        academic_year="2026/2027",
        start_date=datetime(2026, 8, 15, tzinfo=UTC),
        end_date=datetime(2026, 12, 20, tzinfo=UTC),
        registration_start=datetime(2026, 8, 1, tzinfo=UTC),
        registration_end=datetime(2026, 9, 15, tzinfo=UTC),
        is_registration_open=True,
        is_active=True,
    )


@pytest.fixture
def student(registry: Registry) -> Student:
    """Student profile owned by user 'user-1'."""
    return registry.students.create(
        user_id="user-1", full_name="Dana Levi", student_number="S1001"
    )


@pytest.fixture
def other_student(registry: Registry) -> Student:
    """Student profile owned by user 'user-2'."""
    return registry.students.create(
        user_id="user-2", full_name="Omer Katz", student_number="S1002"
    )


@pytest.fixture
def courses(registry: Registry, semester: Semester) -> list[Course]:
    """Three courses offered in the semester: CS101, MATH201, CS205."""
    return [
        registry.courses.create(
            name="Intro to Programming",
            code="CS101",
            semester_id=semester.id,
            credits=3,
            department="Computer Science",
            instructor="Dr. Cohen",
        ),
        registry.courses.create(
            name="Linear Algebra",
            code="MATH201",
            semester_id=semester.id,
            credits=4,
            department="Mathematics",
            description="Vector spaces and linear maps",
        ),
        registry.courses.create(
            name="Data Structures",
            code="CS205",
            semester_id=semester.id,
            credits=3,
            department="Computer Science",
        ),
    ]


@pytest.fixture
def service(registry: Registry, clock: FakeClock) -> RegistrationService:
    """RegistrationService over the in-memory registry and the fake clock."""
    return RegistrationService.from_registry(registry, clock=clock)


@pytest.fixture
def statistics(registry: Registry) -> StatisticsAggregator:
    """StatisticsAggregator over the in-memory registry."""
    return StatisticsAggregator.from_registry(registry)
