"""Notification sink interfaces."""

from __future__ import annotations

from typing import Any, Protocol

EVALUATION_READY = "evaluation_ready"
GRADE_RELEASED = "grade_released"


class Notifier(Protocol):
    """Fire-and-forget delivery of a message to one recipient."""

    name: str

    def notify(self, recipient_id: str, kind: str, title: str, message: str, data: dict[str, Any]) -> None:
        """Deliver a notification or raise if delivery failed."""
