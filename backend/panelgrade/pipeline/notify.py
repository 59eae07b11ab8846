"""Notifier factory/dispatcher."""

from panelgrade.notifiers.base import Notifier
from panelgrade.notifiers.inbox import InboxNotifier
from panelgrade.notifiers.log import LogNotifier
from panelgrade.settings import settings


def get_notifier(name: str) -> Notifier:
    notifier = name.lower()
    if notifier == "inbox":
        return InboxNotifier()
    if notifier == "log":
        return LogNotifier()
    raise ValueError(f"Unknown notifier '{name}'. Use one of: inbox, log")


def get_configured_notifier() -> Notifier:
    """Request dependency returning the notifier selected in settings."""
    return get_notifier(settings.notifier_backend)
