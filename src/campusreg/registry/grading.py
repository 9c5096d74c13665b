"""Grade to grade-point conversion."""

from __future__ import annotations

import math
from numbers import Number
from typing import Any

from campusreg.registry.exceptions import InvalidGradeError

MIN_GRADE = 0.0
MAX_GRADE = 100.0

# (inclusive lower bound, grade points), checked top-down; first match wins.
GRADE_BANDS: tuple[tuple[float, float], ...] = (
    (85.0, 4.0),
    (80.0, 3.7),
    (75.0, 3.5),
    (70.0, 3.0),
    (65.0, 2.3),
    (60.0, 2.0),
    (50.0, 1.0),
)
FAILING_POINTS = 0.0


def validate_grade(grade: Any) -> float:
    """Check that a grade is a real number in [0, 100].

    Any numeric type with a real value is accepted (int, float, Decimal, Fraction).

    Args:
        grade: Candidate grade.

    Returns:
        The grade as a float.

    Raises:
        InvalidGradeError: If the grade is not numeric, is NaN, or is out of range.
    """
    if isinstance(grade, bool | complex) or not isinstance(grade, Number):
        raise InvalidGradeError(f"Grade must be a number, got {type(grade).__name__}")
    try:
        value = float(grade)
    except (TypeError, ValueError) as e:
        raise InvalidGradeError("Grade must be a finite number") from e
    if math.isnan(value) or not MIN_GRADE <= value <= MAX_GRADE:
        raise InvalidGradeError("Grade must be between 0 and 100")
    return value


def grade_points(grade: Any) -> float:
    """Convert a percentage grade to grade points on the 4.0 scale.

    Raises:
        InvalidGradeError: If the grade is not a number in [0, 100].
    """
    value = validate_grade(grade)
    for lower_bound, points in GRADE_BANDS:
        if value >= lower_bound:
            return points
    return FAILING_POINTS
