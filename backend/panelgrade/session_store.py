"""Persistence for evaluation sessions.

Every mutation of an existing session goes through :func:`compare_and_swap`, which
only writes when the row still carries the version the caller read. A writer that
loses the race sees ``False`` and must re-read before trying again.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from panelgrade.errors import NotFoundError
from panelgrade.models import EvaluationSession, Phase, SessionStatus, utcnow
from panelgrade.schemas import (
    AdminReview,
    EvaluationSessionRead,
    FacultyResults,
    FinalResults,
    IndividualEvaluation,
    SessionSummary,
    StatusCounts,
    TeamEvaluation,
    evaluation_map_adapter,
)

logger = logging.getLogger(__name__)


def _by_key(board_id: int, team_id: int, phase: Phase):
    return (
        select(EvaluationSession)
        .where(
            EvaluationSession.board_id == board_id,
            EvaluationSession.team_id == team_id,
            EvaluationSession.phase == phase,
        )
        .execution_options(populate_existing=True)
    )


def find_session(session: Session, board_id: int, team_id: int, phase: Phase) -> EvaluationSession | None:
    return session.exec(_by_key(board_id, team_id, phase)).first()


def get_session_by_key(session: Session, board_id: int, team_id: int, phase: Phase) -> EvaluationSession:
    record = find_session(session, board_id, team_id, phase)
    if not record:
        raise NotFoundError(message=f"No evaluation session for board {board_id}, team {team_id}, phase {phase.value}")
    return record


def get_session_by_id(session: Session, session_id: int) -> EvaluationSession:
    record = session.get(EvaluationSession, session_id, populate_existing=True)
    if not record:
        raise NotFoundError(message=f"Evaluation session {session_id} not found")
    return record


def get_or_create_session(
    session: Session,
    board_id: int,
    team_id: int,
    phase: Phase,
    panel_ids: list[str],
) -> EvaluationSession:
    """Return the session for the key, creating it with a frozen panel snapshot if absent."""
    existing = find_session(session, board_id, team_id, phase)
    if existing:
        return existing

    record = EvaluationSession(
        board_id=board_id,
        team_id=team_id,
        phase=phase,
        total_evaluators=len(panel_ids),
        panel_json=json.dumps(sorted(panel_ids)),
    )
    session.add(record)
    try:
        session.commit()
    except IntegrityError:
        # Another request created the same session first.
        session.rollback()
        return get_session_by_key(session, board_id, team_id, phase)
    session.refresh(record)
    logger.info(
        "evaluation session created",
        extra={
            "session_id": record.id,
            "board_id": board_id,
            "team_id": team_id,
            "phase": phase.value,
            "total_evaluators": record.total_evaluators,
        },
    )
    return record


def compare_and_swap(session: Session, session_id: int, expected_version: int, **values: Any) -> bool:
    statement = (
        update(EvaluationSession)
        .where(EvaluationSession.id == session_id, EvaluationSession.version == expected_version)
        .values(version=expected_version + 1, updated_at=utcnow(), **values)
    )
    result = session.exec(statement)
    session.commit()
    swapped = result.rowcount == 1
    if not swapped:
        logger.info("evaluation session version conflict", extra={"session_id": session_id, "expected_version": expected_version})
    return swapped


def load_panel(record: EvaluationSession) -> list[str]:
    return json.loads(record.panel_json)


def load_evaluations(record: EvaluationSession) -> dict[str, TeamEvaluation | IndividualEvaluation]:
    return evaluation_map_adapter.validate_json(record.evaluations_json)


def dump_evaluations(evaluations: dict[str, TeamEvaluation | IndividualEvaluation]) -> str:
    ordered = {rater_id: evaluations[rater_id] for rater_id in sorted(evaluations)}
    return evaluation_map_adapter.dump_json(ordered).decode()


def load_faculty_results(record: EvaluationSession) -> FacultyResults | None:
    if record.faculty_results_json is None:
        return None
    return FacultyResults.model_validate_json(record.faculty_results_json)


def load_admin_review(record: EvaluationSession) -> AdminReview | None:
    if record.admin_review_json is None:
        return None
    return AdminReview.model_validate_json(record.admin_review_json)


def load_final_results(record: EvaluationSession) -> FinalResults | None:
    if record.final_results_json is None:
        return None
    return FinalResults.model_validate_json(record.final_results_json)


def to_read(record: EvaluationSession) -> EvaluationSessionRead:
    evaluations = load_evaluations(record)
    return EvaluationSessionRead(
        id=record.id,
        board_id=record.board_id,
        team_id=record.team_id,
        phase=record.phase,
        status=record.status,
        total_evaluators=record.total_evaluators,
        submitted_evaluations=record.submitted_evaluations,
        evaluations=[evaluations[rater_id] for rater_id in sorted(evaluations)],
        faculty_results=load_faculty_results(record),
        admin_review=load_admin_review(record),
        final_results=load_final_results(record),
        is_completed=record.is_completed,
        completed_at=record.completed_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_summary(record: EvaluationSession) -> SessionSummary:
    return SessionSummary(
        id=record.id,
        board_id=record.board_id,
        team_id=record.team_id,
        phase=record.phase,
        status=record.status,
        total_evaluators=record.total_evaluators,
        submitted_evaluations=record.submitted_evaluations,
        completed_at=record.completed_at,
    )


def list_sessions(
    session: Session,
    statuses: tuple[SessionStatus, ...],
    board_id: int | None = None,
    phase: Phase | None = None,
) -> list[EvaluationSession]:
    statement = select(EvaluationSession).where(col(EvaluationSession.status).in_(statuses))
    if board_id is not None:
        statement = statement.where(EvaluationSession.board_id == board_id)
    if phase is not None:
        statement = statement.where(EvaluationSession.phase == phase)
    statement = statement.order_by(EvaluationSession.completed_at, EvaluationSession.id)
    return list(session.exec(statement).all())


def count_by_status(session: Session, board_id: int | None = None, phase: Phase | None = None) -> StatusCounts:
    statement = select(EvaluationSession.status, func.count(EvaluationSession.id)).group_by(EvaluationSession.status)
    if board_id is not None:
        statement = statement.where(EvaluationSession.board_id == board_id)
    if phase is not None:
        statement = statement.where(EvaluationSession.phase == phase)
    counts = StatusCounts()
    for status, count in session.exec(statement).all():
        setattr(counts, SessionStatus(status).value, count)
        counts.total += count
    return counts
