"""Student-facing views of released grades."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from panelgrade import session_store
from panelgrade.db import get_session
from panelgrade.models import SessionStatus
from panelgrade.schemas import StudentResultRead

router = APIRouter(prefix="/students", tags=["students"])


@router.get("/{student_id}/results", response_model=list[StudentResultRead])
def released_results(student_id: str, session: Session = Depends(get_session)) -> list[StudentResultRead]:
    released: list[StudentResultRead] = []
    for record in session_store.list_sessions(session, (SessionStatus.FINALIZED,)):
        final_results = session_store.load_final_results(record)
        result = final_results.result_for(student_id) if final_results else None
        if result is None:
            continue
        released.append(
            StudentResultRead(
                session_id=record.id,
                board_id=record.board_id,
                team_id=record.team_id,
                phase=record.phase,
                result=result,
            )
        )
    return released
