"""Integration tests for the registry database."""

import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError, OperationalError

from campusreg.registry.database import Database
from campusreg.registry.models import (
    Course,
    CourseRegistration,
    RegistrationStatus,
    Semester,
    Student,
)


@pytest.fixture
def temp_db_path() -> str:
    """Create a temporary database path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        return f.name


@pytest.fixture
def database(temp_db_path: str) -> Database:
    """Create a database instance with tables."""
    db = Database(temp_db_path)
    db.create_tables()
    yield db
    db.close()
    Path(temp_db_path).unlink(missing_ok=True)
    Path(f"{temp_db_path}-wal").unlink(missing_ok=True)
    Path(f"{temp_db_path}-shm").unlink(missing_ok=True)


def _seed(database: Database) -> tuple[str, str, str]:
    session = database.get_session()
    semester = Semester(
        name="Fall 2026",
        academic_year="2026/2027",
        start_date=datetime(2026, 8, 15),
        end_date=datetime(2026, 12, 20),
        registration_start=datetime(2026, 8, 1),
        registration_end=datetime(2026, 9, 15),
        is_registration_open=True,
    )
    session.add(semester)
    session.flush()
    course = Course(
        name="Intro to Programming",
        code="cs101",
        semester_id=semester.id,
        credits=3,
        department="Computer Science",
    )
    student = Student(user_id="user-1", full_name="Dana Levi", student_number="S1001")
    session.add_all([course, student])
    session.commit()
    ids = (student.id, course.id, semester.id)
    session.close()
    return ids


@pytest.mark.integration
class TestDatabaseSetup:
    """Tests for database setup."""

    def test_database_creates_file(self, temp_db_path: str) -> None:
        """SQLite file created at specified path."""
        db = Database(temp_db_path)
        db.create_tables()
        assert Path(temp_db_path).exists()
        db.close()

    def test_database_creates_parent_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "reg.db"
        db = Database(str(db_path))
        db.create_tables()
        assert db_path.exists()
        db.close()

    def test_database_creates_tables(self, database: Database) -> None:
        """All four tables exist after init."""
        tables = inspect(database.engine).get_table_names()
        assert sorted(tables) == ["course_registrations", "courses", "semesters", "students"]

    def test_database_wal_mode(self, database: Database) -> None:
        """WAL mode is enabled."""
        assert database.is_wal_mode()

    def test_database_foreign_keys_enabled(self, database: Database) -> None:
        """Foreign keys are enabled."""
        with database.engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_database_busy_timeout(self, temp_db_path: str) -> None:
        db = Database(temp_db_path, busy_timeout=7)
        with db.engine.connect() as conn:
            assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 7000
        db.close()

    def test_create_tables_is_idempotent(self, database: Database) -> None:
        database.create_tables()
        assert len(inspect(database.engine).get_table_names()) == 4

    def test_errors_hide_bound_parameters(self, database: Database) -> None:
        """Failed statements never echo their bound values."""
        with pytest.raises(OperationalError) as excinfo, database.engine.begin() as conn:
            conn.execute(
                text("UPDATE missing_table SET grade=:g, grade_points=:p WHERE id=:i"),
                {"g": 91.5, "p": 4.0, "i": "r1"},
            )

        message = str(excinfo.value)
        assert "missing_table" in message
        assert "91.5" not in message
        assert "hidden" in message


@pytest.mark.integration
class TestModelRoundtrip:
    """Tests for model persistence."""

    def test_registration_roundtrip(self, database: Database) -> None:
        student_id, course_id, semester_id = _seed(database)

        session = database.get_session()
        registration = CourseRegistration(
            student_id=student_id,
            course_id=course_id,
            semester_id=semester_id,
            registration_date=datetime(2026, 9, 1, 12, 0),
        )
        session.add(registration)
        session.commit()
        registration_id = registration.id

        session.expunge_all()
        retrieved = session.get(CourseRegistration, registration_id)

        assert retrieved is not None
        assert retrieved.status == RegistrationStatus.REGISTERED.value
        assert retrieved.version == 1
        assert retrieved.grade is None
        assert retrieved.created_at is not None
        session.close()

    def test_course_code_stored_upper(self, database: Database) -> None:
        _, course_id, _ = _seed(database)

        session = database.get_session()
        assert session.get(Course, course_id).code == "CS101"
        session.close()

    def test_version_increments_on_update(self, database: Database) -> None:
        student_id, course_id, semester_id = _seed(database)

        session = database.get_session()
        registration = CourseRegistration(
            student_id=student_id,
            course_id=course_id,
            semester_id=semester_id,
            registration_date=datetime(2026, 9, 1, 12, 0),
        )
        session.add(registration)
        session.commit()

        registration.status = RegistrationStatus.APPROVED.value
        session.commit()

        assert registration.version == 2
        session.close()


@pytest.mark.integration
class TestConstraints:
    """Tests for uniqueness and foreign keys."""

    def test_triple_is_unique(self, database: Database) -> None:
        student_id, course_id, semester_id = _seed(database)

        session = database.get_session()
        for _ in range(2):
            session.add(
                CourseRegistration(
                    student_id=student_id,
                    course_id=course_id,
                    semester_id=semester_id,
                    registration_date=datetime(2026, 9, 1, 12, 0),
                )
            )
        with pytest.raises(IntegrityError, match="UNIQUE constraint failed"):
            session.commit()
        session.rollback()
        session.close()

    def test_registration_requires_existing_student(self, database: Database) -> None:
        _, course_id, semester_id = _seed(database)

        session = database.get_session()
        session.add(
            CourseRegistration(
                student_id="ghost",
                course_id=course_id,
                semester_id=semester_id,
                registration_date=datetime(2026, 9, 1, 12, 0),
            )
        )
        with pytest.raises(IntegrityError, match="FOREIGN KEY constraint failed"):
            session.commit()
        session.rollback()
        session.close()


@pytest.mark.integration
class TestInMemoryDatabase:
    """Tests for in-memory database."""

    def test_in_memory_database(self) -> None:
        """In-memory database works correctly."""
        db = Database(":memory:")
        db.create_tables()

        session = db.get_session()
        session.add(Student(user_id="user-9", full_name="Test", student_number="S9"))
        session.commit()

        students = session.query(Student).all()
        assert len(students) == 1
        assert students[0].full_name == "Test"

        session.close()
        db.close()
