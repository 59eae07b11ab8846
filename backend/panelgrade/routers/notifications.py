"""In-app notification inbox endpoints."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, func, select

from panelgrade.db import get_session
from panelgrade.models import Notification
from panelgrade.schemas import NotificationRead, UnreadCount

router = APIRouter(prefix="/notifications", tags=["notifications"])

_INBOX_LIMIT = 50


def _to_read(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        recipient_id=notification.recipient_id,
        kind=notification.kind,
        title=notification.title,
        message=notification.message,
        data=json.loads(notification.data_json),
        read=notification.read,
        created_at=notification.created_at,
    )


@router.get("", response_model=list[NotificationRead])
def list_notifications(recipient_id: str = Query(...), session: Session = Depends(get_session)) -> list[NotificationRead]:
    rows = session.exec(
        select(Notification)
        .where(Notification.recipient_id == recipient_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(_INBOX_LIMIT)
    ).all()
    return [_to_read(row) for row in rows]


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(recipient_id: str = Query(...), session: Session = Depends(get_session)) -> UnreadCount:
    count = session.exec(
        select(func.count(Notification.id)).where(Notification.recipient_id == recipient_id, Notification.read == False)  # noqa: E712
    ).one()
    return UnreadCount(count=count)


@router.put("/{notification_id}/read", response_model=NotificationRead)
def mark_read(notification_id: int, recipient_id: str = Query(...), session: Session = Depends(get_session)) -> NotificationRead:
    notification = session.get(Notification, notification_id)
    if not notification or notification.recipient_id != recipient_id:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return _to_read(notification)
