"""Fixed percentage to letter-grade and GPA conversion table."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GradeBand:
    min_percentage: float
    max_percentage: float
    grade: str
    gpa: float


@dataclass(frozen=True)
class GradeConversion:
    percentage: str
    grade: str
    gpa: float
    valid: bool = True


# Ordered from the highest band down. Percentages are rounded to two decimals and
# then belong to the first band whose lower bound they reach.
GRADE_BANDS: tuple[GradeBand, ...] = (
    GradeBand(80.0, 100.0, "A+", 4.00),
    GradeBand(75.0, 79.99, "A", 3.75),
    GradeBand(70.0, 74.99, "A-", 3.50),
    GradeBand(65.0, 69.99, "B+", 3.25),
    GradeBand(60.0, 64.99, "B", 3.00),
    GradeBand(55.0, 59.99, "B-", 2.75),
    GradeBand(50.0, 54.99, "C+", 2.50),
    GradeBand(45.0, 49.99, "C", 2.25),
    GradeBand(40.0, 44.99, "D", 2.00),
    GradeBand(0.0, 39.99, "F", 0.00),
)

INVALID_GRADE = "Invalid"


def convert_to_grade(percentage: float) -> GradeConversion:
    """Map a percentage to its grade band.

    Out-of-range or non-numeric input never raises; it yields a conversion with
    ``valid=False``, grade ``"Invalid"`` and a GPA of 0.00.
    """
    if percentage is None or isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
        return GradeConversion(percentage="N/A", grade=INVALID_GRADE, gpa=0.0, valid=False)
    if math.isnan(percentage) or percentage < 0 or percentage > 100:
        formatted = "N/A" if math.isnan(percentage) else f"{percentage:.2f}"
        return GradeConversion(percentage=formatted, grade=INVALID_GRADE, gpa=0.0, valid=False)

    rounded = round(percentage, 2)
    for band in GRADE_BANDS:
        if rounded >= band.min_percentage:
            return GradeConversion(percentage=f"{rounded:.2f}", grade=band.grade, gpa=band.gpa)
    raise AssertionError("grade bands must cover 0-100")
