"""Registry - Owns the database and the repositories built on it."""

from __future__ import annotations

from campusreg.registry.catalog import CourseRepository, SemesterRepository, StudentRepository
from campusreg.registry.database import Database
from campusreg.registry.ledger import RegistrationLedger


class Registry:
    """Entry point to persistent registration state.

    Creates the database and tables on construction and exposes the
    registration ledger and the catalog repositories that share it.
    """

    def __init__(
        self,
        db_path: str = "campusreg.db",
        max_update_retries: int = 3,
        busy_timeout: int = 30,
    ) -> None:
        """Initialize the registry with a SQLite database.

        Args:
            db_path: Path to SQLite database file (":memory:" for in-memory)
            max_update_retries: Attempts for a registration update that races
            busy_timeout: Seconds a writer waits on a locked database
        """
        self._db = Database(db_path, busy_timeout=busy_timeout)
        self._db.create_tables()
        self.ledger = RegistrationLedger(self._db, max_update_retries=max_update_retries)
        self.students = StudentRepository(self._db)
        self.courses = CourseRepository(self._db)
        self.semesters = SemesterRepository(self._db)

    @property
    def database(self) -> Database:
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()
