"""Scorecard submission and quorum detection."""

from __future__ import annotations

import logging

from sqlmodel import Session

from panelgrade import directory, session_store
from panelgrade.errors import (
    ConcurrentModificationError,
    EvaluationValidationError,
    NotPanelMemberError,
    SessionFinalizedError,
    SubmissionClosedError,
)
from panelgrade.grading.aggregation import aggregate_evaluations
from panelgrade.models import EvaluationSession, Phase, SessionStatus, utcnow
from panelgrade.notifiers.base import EVALUATION_READY, Notifier
from panelgrade.schemas import (
    IndividualEvaluation,
    IndividualEvaluationIn,
    PanelMemberIn,
    RosterEntry,
    TeamEvaluation,
    TeamEvaluationIn,
)
from panelgrade.settings import settings

logger = logging.getLogger(__name__)


def _check_roster(payload: TeamEvaluationIn | IndividualEvaluationIn, roster: list[RosterEntry]) -> None:
    if not isinstance(payload, IndividualEvaluationIn):
        return
    roster_ids = {entry.student_id for entry in roster}
    for position, entry in enumerate(payload.individual_marks):
        if entry.student_id not in roster_ids:
            raise EvaluationValidationError(
                message=f"Student '{entry.student_id}' is not a member of this team",
                field=f"individual_marks[{position}].student_id",
            )


def build_evaluation(
    payload: TeamEvaluationIn | IndividualEvaluationIn,
    rater: PanelMemberIn,
    is_supervisor: bool,
    previous: TeamEvaluation | IndividualEvaluation | None,
) -> TeamEvaluation | IndividualEvaluation:
    now = utcnow()
    submitted_at = previous.submitted_at if previous else now
    common = {
        "rater_id": rater.faculty_id,
        "rater_name": rater.faculty_name,
        "is_supervisor": is_supervisor,
        "submitted_at": submitted_at,
        "last_modified": now,
    }
    if isinstance(payload, TeamEvaluationIn):
        return TeamEvaluation(team_mark=payload.team_mark, feedback=payload.feedback, **common)
    return IndividualEvaluation(individual_marks=list(payload.individual_marks), **common)


def _check_open(record: EvaluationSession) -> None:
    if record.status == SessionStatus.FINALIZED:
        raise SessionFinalizedError(message=f"Evaluation session {record.id} is finalized")
    if record.status != SessionStatus.IN_PROGRESS:
        raise SubmissionClosedError(
            message=f"Evaluation session {record.id} already reached quorum and no longer accepts submissions"
        )


def submit_evaluation(
    session: Session,
    board_id: int,
    team_id: int,
    phase: Phase,
    rater_id: str,
    payload: TeamEvaluationIn | IndividualEvaluationIn,
    notifier: Notifier,
) -> EvaluationSession:
    """Upsert ``rater_id``'s scorecard and aggregate once every assigned rater has submitted."""
    panel = directory.get_panel(session, board_id)
    rater = next((member for member in panel if member.faculty_id == rater_id), None)
    if rater is None:
        raise NotPanelMemberError(message=f"Rater '{rater_id}' is not on the panel of board {board_id}")

    team = directory.get_team(session, team_id)
    roster = directory.get_roster(session, team_id)
    _check_roster(payload, roster)
    # Snapshotted once; later supervisor changes do not re-flag this scorecard.
    is_supervisor = team.supervisor_id is not None and team.supervisor_id == rater_id

    log_extra = {"board_id": board_id, "team_id": team_id, "phase": phase.value, "rater_id": rater_id}
    reached_quorum = False
    for attempt in range(1, settings.cas_max_retries + 1):
        record = session_store.get_or_create_session(
            session, board_id, team_id, phase, panel_ids=[member.faculty_id for member in panel]
        )
        _check_open(record)
        if rater_id not in session_store.load_panel(record):
            raise NotPanelMemberError(
                message=f"Rater '{rater_id}' joined board {board_id} after this session was assigned"
            )

        evaluations = session_store.load_evaluations(record)
        evaluations[rater_id] = build_evaluation(payload, rater, is_supervisor, evaluations.get(rater_id))
        values: dict[str, object] = {
            "evaluations_json": session_store.dump_evaluations(evaluations),
            "submitted_evaluations": len(evaluations),
        }
        reached_quorum = len(evaluations) == record.total_evaluators
        if reached_quorum:
            faculty_results = aggregate_evaluations(evaluations, roster)
            values.update(
                status=SessionStatus.PENDING_ADMIN_REVIEW,
                faculty_results_json=faculty_results.model_dump_json(),
                is_completed=True,
                completed_at=utcnow(),
            )

        session_id, version = record.id, record.version
        if session_store.compare_and_swap(session, session_id, version, **values):
            break
        logger.info("submission conflicted with a concurrent write, retrying", extra={**log_extra, "attempt": attempt})
    else:
        raise ConcurrentModificationError(
            message=f"Could not record the submission after {settings.cas_max_retries} attempts; retry later"
        )

    logger.info(
        "evaluation submitted",
        extra={**log_extra, "session_id": session_id, "submitted": len(evaluations), "quorum": reached_quorum},
    )
    if reached_quorum:
        _signal_ready_for_review(notifier, session_id, board_id, team.name, team_id, phase)
    return session_store.get_session_by_id(session, session_id)


def _signal_ready_for_review(
    notifier: Notifier, session_id: int, board_id: int, team_name: str, team_id: int, phase: Phase
) -> None:
    try:
        notifier.notify(
            settings.review_recipient_id,
            EVALUATION_READY,
            "Evaluation ready for review",
            f"All evaluators have submitted phase {phase.value} scorecards for team {team_name}.",
            {"session_id": session_id, "board_id": board_id, "team_id": team_id, "phase": phase.value},
        )
    except Exception:
        logger.exception("ready-for-review notification failed", extra={"session_id": session_id})
