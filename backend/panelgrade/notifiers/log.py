"""Notifier that only writes to the application log."""

from __future__ import annotations

import logging
from typing import Any

from panelgrade.notifiers.base import Notifier

logger = logging.getLogger(__name__)


class LogNotifier(Notifier):
    name = "log"

    def notify(self, recipient_id: str, kind: str, title: str, message: str, data: dict[str, Any]) -> None:
        logger.info(
            "notification %s: %s",
            kind,
            title,
            extra={"recipient_id": recipient_id, "kind": kind, "notification_message": message, "data": data},
        )
