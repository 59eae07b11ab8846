from __future__ import annotations

from datetime import datetime, timezone

from panelgrade.grading.aggregation import aggregate_evaluations, mean
from panelgrade.schemas import IndividualEvaluation, IndividualMark, RosterEntry, TeamEvaluation

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)

ROSTER = [RosterEntry(student_id="S1", student_name="Ada"), RosterEntry(student_id="S2", student_name="Bo")]


def team(rater_id: str, mark: float, supervisor: bool = False) -> TeamEvaluation:
    return TeamEvaluation(rater_id=rater_id, is_supervisor=supervisor, team_mark=mark, submitted_at=NOW, last_modified=NOW)


def individual(rater_id: str, marks: dict[str, float], supervisor: bool = False) -> IndividualEvaluation:
    return IndividualEvaluation(
        rater_id=rater_id,
        is_supervisor=supervisor,
        individual_marks=[IndividualMark(student_id=sid, mark=mark) for sid, mark in marks.items()],
        submitted_at=NOW,
        last_modified=NOW,
    )


def test_supervisor_and_panel_team_marks_average_with_board() -> None:
    evaluations = {"F2": team("F2", 70), "F3": team("F3", 80), "F1": team("F1", 90, supervisor=True)}

    results = aggregate_evaluations(evaluations, ROSTER)

    for result in results.individual_results:
        assert result.breakdown.board_average == 75
        assert result.breakdown.supervisor_mark == 90
        assert result.final_mark == 82.5
        assert result.grade == "A+"
        assert result.breakdown.final_calculation.startswith("supervisor_and_panel")
    assert results.team_average == 82.5
    assert results.team_grade == "A+"
    assert results.team_gpa == 4.0


def test_mixed_individual_and_team_scorecards() -> None:
    evaluations = {
        "F1": individual("F1", {"S1": 85, "S2": 75}, supervisor=True),
        "F2": team("F2", 70),
        "F3": team("F3", 80),
    }

    results = aggregate_evaluations(evaluations, ROSTER)
    by_student = {r.student_id: r for r in results.individual_results}

    assert by_student["S1"].final_mark == 80
    assert by_student["S1"].grade == "A+"
    assert by_student["S2"].final_mark == 75
    assert by_student["S2"].grade == "A"
    assert results.team_average == 77.5
    assert results.team_grade == "A"


def test_panel_only_and_supervisor_only_use_plain_mean() -> None:
    panel_only = aggregate_evaluations({"F2": team("F2", 60), "F3": team("F3", 71)}, ROSTER)
    supervisor_only = aggregate_evaluations({"F1": team("F1", 66, supervisor=True)}, ROSTER)

    assert panel_only.individual_results[0].final_mark == 65.5
    assert panel_only.individual_results[0].breakdown.supervisor_mark == 0
    assert panel_only.individual_results[0].breakdown.final_calculation.startswith("mean_of_contributions")
    assert supervisor_only.individual_results[0].final_mark == 66
    assert supervisor_only.individual_results[0].breakdown.board_average == 0


def test_student_without_contributions_is_flagged_not_failed() -> None:
    evaluations = {"F2": individual("F2", {"S1": 90})}

    results = aggregate_evaluations(evaluations, ROSTER)
    by_student = {r.student_id: r for r in results.individual_results}

    assert by_student["S2"].final_mark == 0
    assert by_student["S2"].grade == "F"
    assert by_student["S2"].breakdown.no_contributing_marks is True
    assert by_student["S1"].breakdown.no_contributing_marks is False
    assert results.team_average == 45


def test_result_is_independent_of_input_order() -> None:
    evaluations = [team("F2", 70.1), team("F3", 80.3), team("F4", 66.7), individual("F1", {"S1": 91.9}, supervisor=True)]
    roster = list(ROSTER)

    forward = aggregate_evaluations({e.rater_id: e for e in evaluations}, roster)
    backward = aggregate_evaluations({e.rater_id: e for e in reversed(evaluations)}, list(reversed(roster)))

    assert forward.model_dump_json() == backward.model_dump_json()


def test_second_supervisor_flag_counts_as_panel_mark() -> None:
    evaluations = {"F1": team("F1", 90, supervisor=True), "F9": team("F9", 70, supervisor=True)}

    result = aggregate_evaluations(evaluations, ROSTER[:1]).individual_results[0]

    assert result.breakdown.supervisor_mark == 90
    assert result.breakdown.board_average == 70
    assert result.final_mark == 80


def test_mean_of_empty_input_is_zero() -> None:
    assert mean([]) == 0.0
    assert mean([0.1, 0.2, 0.3]) == mean([0.3, 0.1, 0.2])
