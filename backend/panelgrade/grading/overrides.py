"""Apply admin grade overrides on top of the raw faculty results."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from panelgrade.errors import EvaluationValidationError, StaleOverrideError
from panelgrade.grading.aggregation import summarize_team
from panelgrade.grading.scale import convert_to_grade
from panelgrade.schemas import FacultyResults, FinalResults, GradeOverrideIn, IndividualResult


def check_overrides(
    faculty_results: FacultyResults,
    overrides: Sequence[GradeOverrideIn],
    *,
    strict: bool = True,
    tolerance: float = 0.005,
) -> dict[str, GradeOverrideIn]:
    """Index overrides by student and reject ones that do not match the stored results.

    With ``strict`` on, an ``original_mark`` that differs from the stored raw
    ``final_mark`` means the client reviewed an outdated snapshot.
    """
    indexed: dict[str, GradeOverrideIn] = {}
    for position, override in enumerate(overrides):
        stored = faculty_results.result_for(override.student_id)
        if stored is None:
            raise EvaluationValidationError(
                message=f"Student '{override.student_id}' has no faculty result to override",
                field=f"modified_grades[{position}].student_id",
            )
        if strict and abs(stored.final_mark - override.original_mark) > tolerance:
            raise StaleOverrideError(
                message=(
                    f"original_mark {override.original_mark:.2f} for student '{override.student_id}' does not match "
                    f"the stored mark {stored.final_mark:.2f}; reload the session and retry"
                ),
                field=f"modified_grades[{position}].original_mark",
            )
        indexed[override.student_id] = override
    return indexed


def _apply_override(result: IndividualResult, override: GradeOverrideIn) -> IndividualResult:
    modified_mark = round(override.modified_mark, 2)
    conversion = convert_to_grade(modified_mark)
    adjustment = round(modified_mark - override.original_mark, 2)
    breakdown = result.breakdown.model_copy(
        update={
            "admin_adjustment": adjustment,
            "final_calculation": (
                f"{result.breakdown.final_calculation}; admin override "
                f"{override.original_mark:.2f} -> {modified_mark:.2f} ({adjustment:+.2f})"
            ),
        }
    )
    return result.model_copy(
        update={
            "final_mark": modified_mark,
            "grade": conversion.grade,
            "gpa": conversion.gpa,
            "is_modified": True,
            "modification_reason": override.modification_reason,
            "breakdown": breakdown,
        }
    )


def apply_overrides(faculty_results: FacultyResults, overrides: Mapping[str, GradeOverrideIn]) -> FinalResults:
    """Pure recomputation: the same faculty results and overrides always give the same output."""
    individual_results: list[IndividualResult] = []
    for result in faculty_results.individual_results:
        override = overrides.get(result.student_id)
        if override is None:
            individual_results.append(result.model_copy(update={"is_modified": False, "modification_reason": None}, deep=True))
        else:
            individual_results.append(_apply_override(result, override))
    return FinalResults(individual_results=individual_results, **summarize_team(individual_results))
