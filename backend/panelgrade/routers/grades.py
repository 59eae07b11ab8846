"""Grade table lookups."""

from __future__ import annotations

from fastapi import APIRouter, Query

from panelgrade.grading.scale import GRADE_BANDS, convert_to_grade
from panelgrade.schemas import GradeBandRead, GradeConversionRead

router = APIRouter(prefix="/grades", tags=["grades"])


@router.get("/scale", response_model=list[GradeBandRead])
def grade_scale() -> list[GradeBandRead]:
    return [
        GradeBandRead(min_percentage=band.min_percentage, max_percentage=band.max_percentage, grade=band.grade, gpa=band.gpa)
        for band in GRADE_BANDS
    ]


@router.get("/convert", response_model=GradeConversionRead)
def convert(percentage: float = Query(...)) -> GradeConversionRead:
    conversion = convert_to_grade(percentage)
    return GradeConversionRead(
        percentage=conversion.percentage,
        grade=conversion.grade,
        gpa=conversion.gpa,
        valid=conversion.valid,
    )
