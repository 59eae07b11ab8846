"""SQLModel ORM models for PanelGrade."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Return timezone-aware UTC now timestamp."""
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    PENDING_ADMIN_REVIEW = "pending_admin_review"
    ADMIN_REVIEWED = "admin_reviewed"
    FINALIZED = "finalized"


REVIEWABLE_STATUSES = (SessionStatus.PENDING_ADMIN_REVIEW, SessionStatus.ADMIN_REVIEWED)


class Board(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow)


class BoardMember(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(foreign_key="board.id", index=True)
    faculty_id: str = Field(index=True)
    faculty_name: str


class Team(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    supervisor_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class TeamMember(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    student_id: str = Field(index=True)
    student_name: str


class EvaluationSession(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("board_id", "team_id", "phase", name="uq_session_board_team_phase"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    board_id: int = Field(foreign_key="board.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    phase: Phase
    status: SessionStatus = Field(default=SessionStatus.IN_PROGRESS, index=True)
    total_evaluators: int
    panel_json: str = "[]"
    submitted_evaluations: int = 0
    evaluations_json: str = "{}"
    faculty_results_json: Optional[str] = None
    admin_review_json: Optional[str] = None
    final_results_json: Optional[str] = None
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recipient_id: str = Field(index=True)
    kind: str
    title: str
    message: str
    data_json: str = "{}"
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
