"""Aggregate submitted scorecards into per-student and team results."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from panelgrade.grading.scale import convert_to_grade
from panelgrade.schemas import (
    FacultyResults,
    IndividualEvaluation,
    IndividualResult,
    ResultBreakdown,
    RosterEntry,
    TeamEvaluation,
)

logger = logging.getLogger(__name__)

SUPERVISOR_AND_PANEL = "supervisor_and_panel"
MEAN_OF_CONTRIBUTIONS = "mean_of_contributions"
NO_CONTRIBUTING_MARKS = "no_contributing_marks"


@dataclass
class Contributions:
    supervisor_mark: float | None = None
    panel_marks: list[float] = field(default_factory=list)

    @property
    def all_marks(self) -> list[float]:
        marks = list(self.panel_marks)
        if self.supervisor_mark is not None:
            marks.append(self.supervisor_mark)
        return marks


def mean(values: Iterable[float]) -> float:
    """Order-independent mean; 0 for an empty input."""
    ordered = sorted(values)
    if not ordered:
        return 0.0
    return math.fsum(ordered) / len(ordered)


def _format_marks(marks: Sequence[float]) -> str:
    return "[" + ", ".join(f"{mark:.2f}" for mark in sorted(marks)) + "]"


def collect_contributions(
    evaluations: Mapping[str, TeamEvaluation | IndividualEvaluation],
    student_id: str,
) -> Contributions:
    contributions = Contributions()
    # Raters are visited in id order so a second supervisor-flagged scorecard
    # (supervisor changed between submissions) always falls into the panel bucket.
    for rater_id in sorted(evaluations):
        evaluation = evaluations[rater_id]
        mark = evaluation.mark_for(student_id)
        if mark is None:
            continue
        if evaluation.is_supervisor and contributions.supervisor_mark is None:
            contributions.supervisor_mark = mark
        else:
            contributions.panel_marks.append(mark)
    contributions.panel_marks.sort()
    return contributions


def score_student(student: RosterEntry, contributions: Contributions) -> IndividualResult:
    board_average = round(mean(contributions.panel_marks), 2)
    supervisor_mark = contributions.supervisor_mark

    if supervisor_mark is not None and contributions.panel_marks:
        final_mark = round((mean(contributions.panel_marks) + supervisor_mark) / 2, 2)
        calculation = (
            f"{SUPERVISOR_AND_PANEL}: (board_average {board_average:.2f} of {_format_marks(contributions.panel_marks)}"
            f" + supervisor_mark {supervisor_mark:.2f}) / 2 = {final_mark:.2f}"
        )
    elif contributions.all_marks:
        final_mark = round(mean(contributions.all_marks), 2)
        calculation = f"{MEAN_OF_CONTRIBUTIONS}: mean({_format_marks(contributions.all_marks)}) = {final_mark:.2f}"
    else:
        final_mark = 0.0
        calculation = f"{NO_CONTRIBUTING_MARKS}: no rater scored this student; final_mark defaults to 0.00"
        logger.warning("student has no contributing marks", extra={"student_id": student.student_id})

    conversion = convert_to_grade(final_mark)
    return IndividualResult(
        student_id=student.student_id,
        student_name=student.student_name,
        final_mark=final_mark,
        grade=conversion.grade,
        gpa=conversion.gpa,
        breakdown=ResultBreakdown(
            board_average=board_average,
            supervisor_mark=supervisor_mark if supervisor_mark is not None else 0.0,
            final_calculation=calculation,
            no_contributing_marks=not contributions.all_marks,
        ),
    )


def summarize_team(individual_results: Sequence[IndividualResult]) -> dict[str, float | str]:
    team_average = round(mean(result.final_mark for result in individual_results), 2)
    conversion = convert_to_grade(team_average)
    return {"team_average": team_average, "team_grade": conversion.grade, "team_gpa": conversion.gpa}


def aggregate_evaluations(
    evaluations: Mapping[str, TeamEvaluation | IndividualEvaluation],
    roster: Sequence[RosterEntry],
) -> FacultyResults:
    """Compute raw results for every rostered student.

    The output depends only on the set of scorecards and the roster, never on the
    order either was supplied in.
    """
    ordered_roster = sorted(roster, key=lambda entry: entry.student_id)
    individual_results = [
        score_student(student, collect_contributions(evaluations, student.student_id)) for student in ordered_roster
    ]
    return FacultyResults(individual_results=individual_results, **summarize_team(individual_results))
