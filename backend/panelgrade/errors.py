"""Domain errors raised by the evaluation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass
class EvaluationError(Exception):
    message: str

    status_code: ClassVar[int] = 400
    code: ClassVar[str] = "evaluation_error"

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass
class NotFoundError(EvaluationError):
    status_code: ClassVar[int] = 404
    code: ClassVar[str] = "not_found"


@dataclass
class NotPanelMemberError(EvaluationError):
    status_code: ClassVar[int] = 403
    code: ClassVar[str] = "not_panel_member"


@dataclass
class EvaluationValidationError(EvaluationError):
    field: str = ""

    status_code: ClassVar[int] = 422
    code: ClassVar[str] = "validation_error"

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "field": self.field}


@dataclass
class StaleOverrideError(EvaluationValidationError):
    status_code: ClassVar[int] = 409
    code: ClassVar[str] = "stale_override"


@dataclass
class SessionFinalizedError(EvaluationError):
    status_code: ClassVar[int] = 409
    code: ClassVar[str] = "session_finalized"


@dataclass
class SubmissionClosedError(EvaluationError):
    status_code: ClassVar[int] = 409
    code: ClassVar[str] = "submission_closed"


@dataclass
class InvalidSessionStateError(EvaluationError):
    status_code: ClassVar[int] = 409
    code: ClassVar[str] = "invalid_session_state"


@dataclass
class ConcurrentModificationError(EvaluationError):
    status_code: ClassVar[int] = 409
    code: ClassVar[str] = "concurrent_modification"
