"""Read access to the board and team records the evaluation core depends on."""

from __future__ import annotations

from sqlmodel import Session, select

from panelgrade.errors import NotFoundError
from panelgrade.models import Board, BoardMember, Team, TeamMember
from panelgrade.schemas import PanelMemberIn, RosterEntry


def get_board(session: Session, board_id: int) -> Board:
    board = session.get(Board, board_id)
    if not board:
        raise NotFoundError(message=f"Board {board_id} not found")
    return board


def get_panel(session: Session, board_id: int) -> list[PanelMemberIn]:
    get_board(session, board_id)
    members = session.exec(select(BoardMember).where(BoardMember.board_id == board_id).order_by(BoardMember.faculty_id)).all()
    return [PanelMemberIn(faculty_id=m.faculty_id, faculty_name=m.faculty_name) for m in members]


def get_team(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if not team:
        raise NotFoundError(message=f"Team {team_id} not found")
    return team


def get_roster(session: Session, team_id: int) -> list[RosterEntry]:
    get_team(session, team_id)
    members = session.exec(select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.student_id)).all()
    return [RosterEntry(student_id=m.student_id, student_name=m.student_name) for m in members]
