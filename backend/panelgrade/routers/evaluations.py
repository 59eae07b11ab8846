"""Evaluation session endpoints: submission, lookup, review and finalization."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlmodel import Session

from panelgrade import directory, session_store
from panelgrade.auth_api_key import require_admin_key
from panelgrade.db import get_session
from panelgrade.errors import EvaluationError
from panelgrade.models import REVIEWABLE_STATUSES, Phase, SessionStatus
from panelgrade.notifiers.base import Notifier
from panelgrade.pipeline.notify import get_configured_notifier
from panelgrade.pipeline.review import review_evaluation
from panelgrade.pipeline.submit import submit_evaluation
from panelgrade.schemas import (
    EvaluationIn,
    EvaluationSessionRead,
    ReviewRequest,
    SessionCreate,
    SessionSummary,
    StatusCounts,
)

router = APIRouter(prefix="/evaluations", tags=["evaluations"])
logger = logging.getLogger(__name__)


def _http_error(exc: EvaluationError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.post(
    "/boards/{board_id}/teams/{team_id}/phases/{phase}/raters/{rater_id}",
    response_model=EvaluationSessionRead,
)
def submit(
    board_id: int,
    team_id: int,
    phase: Phase,
    rater_id: str,
    payload: EvaluationIn = Body(...),
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_configured_notifier),
) -> EvaluationSessionRead:
    try:
        record = submit_evaluation(session, board_id, team_id, phase, rater_id, payload, notifier)
    except EvaluationError as exc:
        logger.info("submission rejected", extra={"code": exc.code, "board_id": board_id, "team_id": team_id, "rater_id": rater_id})
        raise _http_error(exc) from exc
    return session_store.to_read(record)


@router.get("/boards/{board_id}/teams/{team_id}/phases/{phase}", response_model=EvaluationSessionRead)
def get_session_by_key(board_id: int, team_id: int, phase: Phase, session: Session = Depends(get_session)) -> EvaluationSessionRead:
    try:
        record = session_store.get_session_by_key(session, board_id, team_id, phase)
    except EvaluationError as exc:
        raise _http_error(exc) from exc
    return session_store.to_read(record)


@router.post(
    "/sessions",
    response_model=EvaluationSessionRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_key)],
)
def assign_session(payload: SessionCreate, session: Session = Depends(get_session)) -> EvaluationSessionRead:
    try:
        directory.get_team(session, payload.team_id)
        panel = directory.get_panel(session, payload.board_id)
    except EvaluationError as exc:
        raise _http_error(exc) from exc
    record = session_store.get_or_create_session(
        session, payload.board_id, payload.team_id, payload.phase, panel_ids=[m.faculty_id for m in panel]
    )
    return session_store.to_read(record)


@router.get("/sessions/{session_id}", response_model=EvaluationSessionRead)
def get_session_by_id(session_id: int, session: Session = Depends(get_session)) -> EvaluationSessionRead:
    try:
        record = session_store.get_session_by_id(session, session_id)
    except EvaluationError as exc:
        raise _http_error(exc) from exc
    return session_store.to_read(record)


@router.get("/pending", response_model=list[SessionSummary])
def list_pending(
    board_id: int | None = Query(default=None),
    phase: Phase | None = Query(default=None),
    session: Session = Depends(get_session),
) -> list[SessionSummary]:
    records = session_store.list_sessions(session, REVIEWABLE_STATUSES, board_id=board_id, phase=phase)
    return [session_store.to_summary(record) for record in records]


@router.get("/status-counts", response_model=StatusCounts)
def status_counts(
    board_id: int | None = Query(default=None),
    phase: Phase | None = Query(default=None),
    session: Session = Depends(get_session),
) -> StatusCounts:
    return session_store.count_by_status(session, board_id=board_id, phase=phase)


@router.post(
    "/sessions/{session_id}/review",
    response_model=EvaluationSessionRead,
    dependencies=[Depends(require_admin_key)],
)
def review(
    session_id: int,
    payload: ReviewRequest,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_configured_notifier),
) -> EvaluationSessionRead:
    try:
        record = review_evaluation(session, session_id, payload, notifier)
    except EvaluationError as exc:
        logger.info("review rejected", extra={"code": exc.code, "session_id": session_id})
        raise _http_error(exc) from exc
    return session_store.to_read(record)


@router.get("/finalized", response_model=list[SessionSummary])
def list_finalized(
    board_id: int | None = Query(default=None),
    phase: Phase | None = Query(default=None),
    session: Session = Depends(get_session),
) -> list[SessionSummary]:
    records = session_store.list_sessions(session, (SessionStatus.FINALIZED,), board_id=board_id, phase=phase)
    return [session_store.to_summary(record) for record in records]
