"""StatisticsAggregator - Read-only registration reporting."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from campusreg.registration.models import RegistrationStatistics, SemesterSummary
from campusreg.registry import RegistrationStatus

if TYPE_CHECKING:
    from campusreg.registry import (
        CourseRepository,
        RegistrationLedger,
        Registry,
        SemesterRepository,
    )

logger = logging.getLogger(__name__)

# Statuses counted as holding a seat in a semester summary
_ENROLLED_STATUSES = (RegistrationStatus.REGISTERED, RegistrationStatus.APPROVED)

_NOT_DROPPED_STATUSES = tuple(s for s in RegistrationStatus if s is not RegistrationStatus.DROPPED)

POPULAR_COURSES_LIMIT = 5


class StatisticsAggregator:
    """Computes registration distributions from the ledger.

    Never writes. Figures come from separate queries, so under concurrent
    writes they may reflect slightly different moments.
    """

    def __init__(
        self,
        ledger: RegistrationLedger,
        courses: CourseRepository,
        semesters: SemesterRepository,
        top_courses_limit: int = 10,
    ) -> None:
        self.ledger = ledger
        self.courses = courses
        self.semesters = semesters
        self.top_courses_limit = top_courses_limit

    @classmethod
    def from_registry(cls, registry: Registry, top_courses_limit: int = 10) -> StatisticsAggregator:
        return cls(
            ledger=registry.ledger,
            courses=registry.courses,
            semesters=registry.semesters,
            top_courses_limit=top_courses_limit,
        )

    def registration_statistics(self, semester_id: str | None = None) -> RegistrationStatistics:
        """Status distribution, top courses, student count and grade average.

        Args:
            semester_id: Restrict to one semester (None = all semesters).
        """
        logger.debug("Computing registration statistics (semester=%s)", semester_id)
        return RegistrationStatistics(
            status_counts=self.ledger.aggregate_by_status(semester_id),
            course_counts=self.ledger.aggregate_by_course(
                semester_id, limit=self.top_courses_limit
            ),
            total_students=self.ledger.distinct_students(
                semester_id, statuses=_NOT_DROPPED_STATUSES
            ),
            grade_stats=self.ledger.grade_summary(semester_id),
        )

    def semester_summary(self, semester_id: str) -> SemesterSummary:
        """Catalog size, enrollment and most popular courses of one semester.

        Raises:
            SemesterNotFoundError: If semester doesn't exist
        """
        semester = self.semesters.get(semester_id)
        return SemesterSummary(
            semester_id=semester.id,
            semester_name=semester.name,
            course_count=self.courses.count_by_semester(semester_id),
            total_students=self.ledger.distinct_students(
                semester_id, statuses=_ENROLLED_STATUSES
            ),
            status_counts=self.ledger.aggregate_by_status(semester_id),
            popular_courses=self.ledger.aggregate_by_course(
                semester_id, limit=POPULAR_COURSES_LIMIT, statuses=_ENROLLED_STATUSES
            ),
        )
