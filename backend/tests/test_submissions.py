from __future__ import annotations

import pytest

pytest.importorskip("httpx")

from sqlmodel import Session

from conftest import individual_payload, submission_url, team_payload
from panelgrade import session_store
from panelgrade.models import Phase
from panelgrade.pipeline import submit as submit_module
from panelgrade.schemas import TeamEvaluationIn


def test_first_submission_creates_session_with_frozen_panel_size(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2", "F3"], ["S1", "S2"], supervisor="F1")

    response = client.post(submission_url(board_id, team_id, "F2"), json=team_payload(70, "solid"))

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "in_progress"
    assert payload["total_evaluators"] == 3
    assert payload["submitted_evaluations"] == 1
    assert payload["faculty_results"] is None
    assert payload["final_results"] is None
    assert payload["evaluations"][0]["rater_id"] == "F2"
    assert payload["evaluations"][0]["rater_name"] == "Dr. F2"
    assert payload["evaluations"][0]["is_supervisor"] is False


def test_resubmission_replaces_previous_entry(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2", "F3"], ["S1", "S2"], supervisor="F1")

    first = client.post(submission_url(board_id, team_id, "F2"), json=team_payload(60)).json()
    second = client.post(submission_url(board_id, team_id, "F2"), json=individual_payload({"S1": 72})).json()

    assert second["submitted_evaluations"] == 1
    assert len(second["evaluations"]) == 1
    entry = second["evaluations"][0]
    assert entry["evaluation_type"] == "individual"
    assert entry["individual_marks"][0]["mark"] == 72
    assert entry["submitted_at"] == first["evaluations"][0]["submitted_at"]
    assert "team_mark" not in entry


def test_quorum_moves_session_to_pending_review_and_signals_once(client, seed, notifier) -> None:
    board_id, team_id = seed(["F1", "F2", "F3"], ["S1", "S2"], supervisor="F1")

    client.post(submission_url(board_id, team_id, "F2"), json=team_payload(70))
    client.post(submission_url(board_id, team_id, "F3"), json=team_payload(80))
    before_quorum = client.get(f"/api/evaluations/boards/{board_id}/teams/{team_id}/phases/A").json()
    final = client.post(submission_url(board_id, team_id, "F1"), json=team_payload(90)).json()

    assert before_quorum["status"] == "in_progress"
    assert before_quorum["submitted_evaluations"] == 2
    assert final["status"] == "pending_admin_review"
    assert final["submitted_evaluations"] == final["total_evaluators"] == 3
    assert final["is_completed"] is True
    assert final["completed_at"] is not None
    assert final["final_results"] is None
    results = final["faculty_results"]
    assert results["team_average"] == 82.5
    assert results["team_grade"] == "A+"
    assert {r["final_mark"] for r in results["individual_results"]} == {82.5}

    ready = notifier.of_kind("evaluation_ready")
    assert len(ready) == 1
    assert ready[0]["recipient_id"] == "admin"
    assert ready[0]["data"]["session_id"] == final["id"]


def test_late_submission_after_quorum_is_rejected(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2"], ["S1"], supervisor="F1")
    client.post(submission_url(board_id, team_id, "F1"), json=team_payload(80))
    client.post(submission_url(board_id, team_id, "F2"), json=team_payload(70))

    response = client.post(submission_url(board_id, team_id, "F2"), json=team_payload(99))

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "submission_closed"
    stored = client.get(f"/api/evaluations/boards/{board_id}/teams/{team_id}/phases/A").json()
    assert [e["team_mark"] for e in stored["evaluations"]] == [80, 70]


def test_non_panel_member_cannot_submit(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2"], ["S1"])

    response = client.post(submission_url(board_id, team_id, "F9"), json=team_payload(80))

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "not_panel_member"
    missing = client.get(f"/api/evaluations/boards/{board_id}/teams/{team_id}/phases/A")
    assert missing.status_code == 404


def test_unknown_board_or_team_returns_not_found(client, seed) -> None:
    board_id, team_id = seed(["F1"], ["S1"])

    assert client.post(submission_url(999, team_id, "F1"), json=team_payload(80)).status_code == 404
    assert client.post(submission_url(board_id, 999, "F1"), json=team_payload(80)).status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"evaluation_type": "team", "team_mark": 101},
        {"evaluation_type": "team", "team_mark": -0.5},
        {"evaluation_type": "team", "team_mark": True},
        {"evaluation_type": "team", "team_mark": "85"},
        {"evaluation_type": "individual", "individual_marks": [{"student_id": "S1", "mark": "80"}]},
        {"evaluation_type": "team"},
        {"evaluation_type": "individual", "individual_marks": []},
        {"evaluation_type": "individual", "individual_marks": [{"student_id": "S1", "mark": 120}]},
        {"evaluation_type": "individual", "team_mark": 80, "individual_marks": [{"student_id": "S1", "mark": 80}]},
        {"evaluation_type": "team", "team_mark": 80, "individual_marks": [{"student_id": "S1", "mark": 80}]},
        {"evaluation_type": "panel", "team_mark": 80},
        {
            "evaluation_type": "individual",
            "individual_marks": [{"student_id": "S1", "mark": 80}, {"student_id": "S1", "mark": 70}],
        },
    ],
)
def test_invalid_scorecards_are_rejected_without_side_effects(client, seed, body) -> None:
    board_id, team_id = seed(["F1", "F2"], ["S1"])

    response = client.post(submission_url(board_id, team_id, "F1"), json=body)

    assert response.status_code == 422
    assert response.json()["detail"]
    assert client.get(f"/api/evaluations/boards/{board_id}/teams/{team_id}/phases/A").status_code == 404


def test_marks_for_students_outside_the_roster_are_rejected(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2"], ["S1"])

    response = client.post(submission_url(board_id, team_id, "F1"), json=individual_payload({"S1": 80, "S7": 60}))

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "validation_error"
    assert detail["field"] == "individual_marks[1].student_id"


def test_total_evaluators_is_frozen_when_panel_changes(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2", "F3"], ["S1"])
    client.post(submission_url(board_id, team_id, "F1"), json=team_payload(80))

    replaced = client.put(
        f"/api/boards/{board_id}/members",
        json=[{"faculty_id": "F1"}, {"faculty_id": "F2"}, {"faculty_id": "F3"}, {"faculty_id": "F4"}],
    )
    assert replaced.status_code == 200
    newcomer = client.post(submission_url(board_id, team_id, "F4"), json=team_payload(50))
    session = client.get(f"/api/evaluations/boards/{board_id}/teams/{team_id}/phases/A").json()

    assert newcomer.status_code == 403
    assert session["total_evaluators"] == 3
    assert session["submitted_evaluations"] == 1


def test_supervisor_flag_is_snapshotted_at_submission(client, seed) -> None:
    board_id, team_id = seed(["F1", "F2", "F3"], ["S1"], supervisor="F1")
    client.post(submission_url(board_id, team_id, "F1"), json=team_payload(90))

    client.put(f"/api/teams/{team_id}/supervisor", json={"supervisor_id": "F2"})
    session = client.post(submission_url(board_id, team_id, "F3"), json=team_payload(70)).json()

    flags = {e["rater_id"]: e["is_supervisor"] for e in session["evaluations"]}
    assert flags == {"F1": True, "F3": False}


def test_phases_are_evaluated_independently(client, seed) -> None:
    board_id, team_id = seed(["F1"], ["S1"])

    phase_a = client.post(submission_url(board_id, team_id, "F1", phase="A"), json=team_payload(80)).json()
    phase_b = client.post(submission_url(board_id, team_id, "F1", phase="B"), json=team_payload(60)).json()

    assert phase_a["id"] != phase_b["id"]
    assert phase_a["faculty_results"]["team_average"] == 80
    assert phase_b["faculty_results"]["team_average"] == 60
    assert client.post(submission_url(board_id, team_id, "F1", phase="D"), json=team_payload(60)).status_code == 422


def test_concurrent_submission_is_retried_not_overwritten(client, seed, database, notifier, monkeypatch) -> None:
    board_id, team_id = seed(["F1", "F2", "F3"], ["S1"])
    original_cas = session_store.compare_and_swap
    calls = {"count": 0}

    def racing_cas(session, session_id, expected_version, **values):
        calls["count"] += 1
        if calls["count"] == 1:
            # Another rater lands a write between our read and our swap.
            with Session(database) as other:
                submit_module.submit_evaluation(
                    other, board_id, team_id, Phase.A, "F2", TeamEvaluationIn(evaluation_type="team", team_mark=70), notifier
                )
        return original_cas(session, session_id, expected_version, **values)

    monkeypatch.setattr(session_store, "compare_and_swap", racing_cas)

    with Session(database) as session:
        record = submit_module.submit_evaluation(
            session, board_id, team_id, Phase.A, "F1", TeamEvaluationIn(evaluation_type="team", team_mark=90), notifier
        )
        evaluations = session_store.load_evaluations(record)

    assert sorted(evaluations) == ["F1", "F2"]
    assert record.submitted_evaluations == 2
    assert calls["count"] == 3
