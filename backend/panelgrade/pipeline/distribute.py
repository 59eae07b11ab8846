"""Release finalized grades to students."""

from __future__ import annotations

import logging

from panelgrade.models import Phase
from panelgrade.notifiers.base import GRADE_RELEASED, Notifier
from panelgrade.schemas import FinalResults

logger = logging.getLogger(__name__)


def distribute_grades(notifier: Notifier, session_id: int, team_id: int, phase: Phase, final_results: FinalResults) -> int:
    """Send one grade-released notification per student and return how many were delivered.

    Delivery is best effort: a failure for one student is logged and the rest still go out.
    """
    delivered = 0
    for result in final_results.individual_results:
        data = {
            "session_id": session_id,
            "phase": phase.value,
            "team_id": team_id,
            "final_mark": result.final_mark,
            "grade": result.grade,
            "gpa": result.gpa,
            "is_modified": result.is_modified,
            "modification_reason": result.modification_reason,
        }
        try:
            notifier.notify(
                result.student_id,
                GRADE_RELEASED,
                f"Phase {phase.value} grade released",
                f"Your phase {phase.value} grade is {result.grade} ({result.final_mark:.2f}%).",
                data,
            )
        except Exception:
            logger.exception(
                "grade notification failed",
                extra={"session_id": session_id, "student_id": result.student_id, "notifier": notifier.name},
            )
            continue
        delivered += 1

    logger.info(
        "grades released",
        extra={"session_id": session_id, "delivered": delivered, "students": len(final_results.individual_results)},
    )
    return delivered
