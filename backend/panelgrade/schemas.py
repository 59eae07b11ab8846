"""Request and response schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from panelgrade.models import Phase, SessionStatus


# Directory records


class PanelMemberIn(BaseModel):
    faculty_id: str = Field(min_length=1)
    faculty_name: str = ""


class BoardCreate(BaseModel):
    name: str
    members: list[PanelMemberIn] = Field(default_factory=list)


class BoardRead(BaseModel):
    id: int
    name: str
    members: list[PanelMemberIn]


class RosterEntry(BaseModel):
    student_id: str = Field(min_length=1)
    student_name: str = ""


class TeamCreate(BaseModel):
    name: str
    supervisor_id: str | None = None
    members: list[RosterEntry] = Field(default_factory=list)


class SupervisorUpdate(BaseModel):
    supervisor_id: str | None = None


class TeamRead(BaseModel):
    id: int
    name: str
    supervisor_id: str | None
    members: list[RosterEntry]


# Scorecard submission


def _reject_duplicate_students(marks: list[Any]) -> list[Any]:
    seen: set[str] = set()
    for entry in marks:
        if entry.student_id in seen:
            raise ValueError(f"duplicate mark for student '{entry.student_id}'")
        seen.add(entry.student_id)
    return marks


class IndividualMark(BaseModel):
    model_config = ConfigDict(extra="forbid")

    student_id: str = Field(min_length=1)
    student_name: str = ""
    mark: float = Field(strict=True, ge=0, le=100)
    feedback: str = ""


class TeamEvaluationIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    evaluation_type: Literal["team"]
    team_mark: float = Field(strict=True, ge=0, le=100)
    feedback: str = ""


class IndividualEvaluationIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    evaluation_type: Literal["individual"]
    individual_marks: list[IndividualMark] = Field(min_length=1)

    @field_validator("individual_marks")
    @classmethod
    def _check_unique_students(cls, value: list[IndividualMark]) -> list[IndividualMark]:
        return _reject_duplicate_students(value)


EvaluationIn = Annotated[Union[TeamEvaluationIn, IndividualEvaluationIn], Field(discriminator="evaluation_type")]


class TeamEvaluation(BaseModel):
    """A stored team-wide scorecard; the mark applies to every team member."""

    evaluation_type: Literal["team"] = "team"
    rater_id: str
    rater_name: str = ""
    is_supervisor: bool = False
    team_mark: float
    feedback: str = ""
    submitted_at: datetime
    last_modified: datetime

    def mark_for(self, student_id: str) -> float | None:
        del student_id
        return self.team_mark


class IndividualEvaluation(BaseModel):
    """A stored per-student scorecard; students without an entry were not scored."""

    evaluation_type: Literal["individual"] = "individual"
    rater_id: str
    rater_name: str = ""
    is_supervisor: bool = False
    individual_marks: list[IndividualMark]
    submitted_at: datetime
    last_modified: datetime

    def mark_for(self, student_id: str) -> float | None:
        for entry in self.individual_marks:
            if entry.student_id == student_id:
                return entry.mark
        return None


Evaluation = Annotated[Union[TeamEvaluation, IndividualEvaluation], Field(discriminator="evaluation_type")]

evaluation_map_adapter: TypeAdapter[dict[str, Evaluation]] = TypeAdapter(dict[str, Evaluation])


# Result snapshots


class ResultBreakdown(BaseModel):
    board_average: float
    supervisor_mark: float
    admin_adjustment: float = 0.0
    final_calculation: str
    no_contributing_marks: bool = False


class IndividualResult(BaseModel):
    student_id: str
    student_name: str
    final_mark: float
    grade: str
    gpa: float
    is_modified: bool = False
    modification_reason: str | None = None
    breakdown: ResultBreakdown


class _ResultSnapshot(BaseModel):
    team_average: float
    team_grade: str
    team_gpa: float
    individual_results: list[IndividualResult]

    def result_for(self, student_id: str) -> IndividualResult | None:
        for result in self.individual_results:
            if result.student_id == student_id:
                return result
        return None


class FacultyResults(_ResultSnapshot):
    """Raw aggregation of the submitted scorecards, before any admin review."""


class FinalResults(_ResultSnapshot):
    """Admin-reviewed results; the only snapshot that is released to students."""


# Admin review


class ReviewAction(str, Enum):
    SAVE_DRAFT = "save_draft"
    FINALIZE = "finalize"


class GradeOverrideIn(BaseModel):
    student_id: str = Field(min_length=1)
    original_mark: float = Field(strict=True, ge=0, le=100)
    modified_mark: float = Field(strict=True, ge=0, le=100)
    modification_reason: str = Field(min_length=1)


class ReviewRequest(BaseModel):
    action: ReviewAction
    modified_grades: list[GradeOverrideIn] = Field(default_factory=list)
    admin_comments: str = ""
    reviewed_by: str = "admin"

    @field_validator("modified_grades")
    @classmethod
    def _check_unique_students(cls, value: list[GradeOverrideIn]) -> list[GradeOverrideIn]:
        return _reject_duplicate_students(value)


class ModifiedGrade(BaseModel):
    student_id: str
    original_mark: float
    modified_mark: float
    modification_reason: str
    modified_at: datetime


class AdminReview(BaseModel):
    is_reviewed: bool = False
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    admin_comments: str = ""
    modified_grades: list[ModifiedGrade] = Field(default_factory=list)
    is_finalized: bool = False
    finalized_at: datetime | None = None


# Session views


class SessionCreate(BaseModel):
    board_id: int
    team_id: int
    phase: Phase


class EvaluationSessionRead(BaseModel):
    id: int
    board_id: int
    team_id: int
    phase: Phase
    status: SessionStatus
    total_evaluators: int
    submitted_evaluations: int
    evaluations: list[Evaluation] = Field(default_factory=list)
    faculty_results: FacultyResults | None = None
    admin_review: AdminReview | None = None
    final_results: FinalResults | None = None
    is_completed: bool
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class SessionSummary(BaseModel):
    id: int
    board_id: int
    team_id: int
    phase: Phase
    status: SessionStatus
    total_evaluators: int
    submitted_evaluations: int
    completed_at: datetime | None


class StatusCounts(BaseModel):
    in_progress: int = 0
    pending_admin_review: int = 0
    admin_reviewed: int = 0
    finalized: int = 0
    total: int = 0


class StudentResultRead(BaseModel):
    session_id: int
    board_id: int
    team_id: int
    phase: Phase
    result: IndividualResult


# Grade table


class GradeConversionRead(BaseModel):
    percentage: str
    grade: str
    gpa: float
    valid: bool


class GradeBandRead(BaseModel):
    min_percentage: float
    max_percentage: float
    grade: str
    gpa: float


# Notifications


class NotificationRead(BaseModel):
    id: int
    recipient_id: str
    kind: str
    title: str
    message: str
    data: dict[str, Any]
    read: bool
    created_at: datetime


class UnreadCount(BaseModel):
    count: int
