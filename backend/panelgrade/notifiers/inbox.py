"""In-app inbox notifier backed by the Notification table."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlmodel import Session

from panelgrade import db
from panelgrade.models import Notification
from panelgrade.notifiers.base import Notifier

logger = logging.getLogger(__name__)


class InboxNotifier(Notifier):
    name = "inbox"

    def notify(self, recipient_id: str, kind: str, title: str, message: str, data: dict[str, Any]) -> None:
        # Own session: the evaluation session is already committed when this runs.
        with Session(db.engine) as session:
            session.add(
                Notification(
                    recipient_id=recipient_id,
                    kind=kind,
                    title=title,
                    message=message,
                    data_json=json.dumps(data, default=str),
                )
            )
            session.commit()
        logger.info("notification stored", extra={"recipient_id": recipient_id, "kind": kind})
