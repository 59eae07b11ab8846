"""Board and team provisioning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, delete

from panelgrade import directory
from panelgrade.auth_api_key import require_admin_key
from panelgrade.db import get_session
from panelgrade.errors import NotFoundError
from panelgrade.models import Board, BoardMember, Team, TeamMember
from panelgrade.schemas import BoardCreate, BoardRead, PanelMemberIn, SupervisorUpdate, TeamCreate, TeamRead

router = APIRouter(tags=["directory"])
logger = logging.getLogger(__name__)


def _duplicate_ids(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: set[str] = set()
    for value in ids:
        if value in seen:
            duplicates.add(value)
        seen.add(value)
    return sorted(duplicates)


def _board_read(session: Session, board_id: int) -> BoardRead:
    try:
        board = directory.get_board(session, board_id)
        members = directory.get_panel(session, board_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return BoardRead(id=board.id, name=board.name, members=members)


def _team_read(session: Session, team_id: int) -> TeamRead:
    try:
        team = directory.get_team(session, team_id)
        members = directory.get_roster(session, team_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TeamRead(id=team.id, name=team.name, supervisor_id=team.supervisor_id, members=members)


@router.post("/boards", response_model=BoardRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin_key)])
def create_board(payload: BoardCreate, session: Session = Depends(get_session)) -> BoardRead:
    duplicates = _duplicate_ids([m.faculty_id for m in payload.members])
    if duplicates:
        raise HTTPException(status_code=400, detail=f"Duplicate panel members: {duplicates}")

    board = Board(name=payload.name)
    session.add(board)
    session.flush()
    for member in payload.members:
        session.add(BoardMember(board_id=board.id, faculty_id=member.faculty_id, faculty_name=member.faculty_name))
    session.commit()
    logger.info("board created", extra={"board_id": board.id, "panel_size": len(payload.members)})
    return _board_read(session, board.id)


@router.get("/boards/{board_id}", response_model=BoardRead)
def get_board(board_id: int, session: Session = Depends(get_session)) -> BoardRead:
    return _board_read(session, board_id)


@router.put("/boards/{board_id}/members", response_model=BoardRead, dependencies=[Depends(require_admin_key)])
def replace_board_members(board_id: int, members: list[PanelMemberIn], session: Session = Depends(get_session)) -> BoardRead:
    if not session.get(Board, board_id):
        raise HTTPException(status_code=404, detail=f"Board {board_id} not found")
    duplicates = _duplicate_ids([m.faculty_id for m in members])
    if duplicates:
        raise HTTPException(status_code=400, detail=f"Duplicate panel members: {duplicates}")

    session.exec(delete(BoardMember).where(BoardMember.board_id == board_id))
    for member in members:
        session.add(BoardMember(board_id=board_id, faculty_id=member.faculty_id, faculty_name=member.faculty_name))
    session.commit()
    logger.info("board panel replaced", extra={"board_id": board_id, "panel_size": len(members)})
    return _board_read(session, board_id)


@router.post("/teams", response_model=TeamRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin_key)])
def create_team(payload: TeamCreate, session: Session = Depends(get_session)) -> TeamRead:
    duplicates = _duplicate_ids([m.student_id for m in payload.members])
    if duplicates:
        raise HTTPException(status_code=400, detail=f"Duplicate team members: {duplicates}")

    team = Team(name=payload.name, supervisor_id=payload.supervisor_id)
    session.add(team)
    session.flush()
    for member in payload.members:
        session.add(TeamMember(team_id=team.id, student_id=member.student_id, student_name=member.student_name))
    session.commit()
    return _team_read(session, team.id)


@router.get("/teams/{team_id}", response_model=TeamRead)
def get_team(team_id: int, session: Session = Depends(get_session)) -> TeamRead:
    return _team_read(session, team_id)


@router.put("/teams/{team_id}/supervisor", response_model=TeamRead, dependencies=[Depends(require_admin_key)])
def set_team_supervisor(team_id: int, payload: SupervisorUpdate, session: Session = Depends(get_session)) -> TeamRead:
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail=f"Team {team_id} not found")
    team.supervisor_id = payload.supervisor_id
    session.add(team)
    session.commit()
    return _team_read(session, team_id)
