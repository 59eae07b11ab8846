"""Admin review, override and finalization of an evaluation session."""

from __future__ import annotations

import logging

from sqlmodel import Session

from panelgrade import session_store
from panelgrade.errors import ConcurrentModificationError, InvalidSessionStateError, SessionFinalizedError
from panelgrade.grading.overrides import apply_overrides, check_overrides
from panelgrade.models import REVIEWABLE_STATUSES, EvaluationSession, SessionStatus, utcnow
from panelgrade.notifiers.base import Notifier
from panelgrade.pipeline.distribute import distribute_grades
from panelgrade.schemas import AdminReview, GradeOverrideIn, ModifiedGrade, ReviewAction, ReviewRequest
from panelgrade.settings import settings

logger = logging.getLogger(__name__)


def _modified_grades(
    overrides: dict[str, GradeOverrideIn], previous: AdminReview | None
) -> list[ModifiedGrade]:
    earlier = {grade.student_id: grade for grade in previous.modified_grades} if previous else {}
    now = utcnow()
    modified: list[ModifiedGrade] = []
    for student_id in sorted(overrides):
        override = overrides[student_id]
        prior = earlier.get(student_id)
        unchanged = (
            prior is not None
            and prior.modified_mark == override.modified_mark
            and prior.modification_reason == override.modification_reason
        )
        modified.append(
            ModifiedGrade(
                student_id=student_id,
                original_mark=override.original_mark,
                modified_mark=override.modified_mark,
                modification_reason=override.modification_reason,
                modified_at=prior.modified_at if unchanged else now,
            )
        )
    return modified


def review_evaluation(
    session: Session,
    session_id: int,
    request: ReviewRequest,
    notifier: Notifier,
) -> EvaluationSession:
    """Save a draft review or finalize the session.

    ``request.modified_grades`` is the complete override set for this review; it
    replaces whatever an earlier draft recorded.
    """
    record = session_store.get_session_by_id(session, session_id)
    if record.status == SessionStatus.FINALIZED:
        raise SessionFinalizedError(message=f"Evaluation session {session_id} is finalized")
    if record.status not in REVIEWABLE_STATUSES:
        raise InvalidSessionStateError(
            message=f"Evaluation session {session_id} is {record.status.value}; it cannot be reviewed before every evaluator has submitted"
        )

    faculty_results = session_store.load_faculty_results(record)
    if faculty_results is None:
        raise InvalidSessionStateError(message=f"Evaluation session {session_id} has no faculty results")

    overrides = check_overrides(
        faculty_results,
        request.modified_grades,
        strict=settings.strict_override_check,
        tolerance=settings.override_tolerance,
    )
    final_results = apply_overrides(faculty_results, overrides)

    finalize = request.action == ReviewAction.FINALIZE
    now = utcnow()
    admin_review = AdminReview(
        is_reviewed=True,
        reviewed_by=request.reviewed_by,
        reviewed_at=now,
        admin_comments=request.admin_comments,
        modified_grades=_modified_grades(overrides, session_store.load_admin_review(record)),
        is_finalized=finalize,
        finalized_at=now if finalize else None,
    )
    status = SessionStatus.FINALIZED if finalize else SessionStatus.ADMIN_REVIEWED

    team_id, phase = record.team_id, record.phase
    swapped = session_store.compare_and_swap(
        session,
        session_id,
        record.version,
        status=status,
        admin_review_json=admin_review.model_dump_json(),
        final_results_json=final_results.model_dump_json(),
    )
    if not swapped:
        current = session_store.get_session_by_id(session, session_id)
        if current.status == SessionStatus.FINALIZED:
            raise SessionFinalizedError(message=f"Evaluation session {session_id} is finalized")
        raise ConcurrentModificationError(message=f"Evaluation session {session_id} changed during review; reload and retry")

    logger.info(
        "evaluation reviewed",
        extra={
            "session_id": session_id,
            "status": status.value,
            "reviewed_by": request.reviewed_by,
            "overrides": len(overrides),
        },
    )
    # Only the request whose write flipped the session to finalized sends grades.
    if finalize:
        distribute_grades(notifier, session_id, team_id, phase, final_results)
    return session_store.get_session_by_id(session, session_id)
