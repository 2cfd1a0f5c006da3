"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from marketplace_messaging.application.use_cases.notifications import (
    delete_notification as delete_notification_uc,
    get_notification_counts,
    get_user_notifications,
    mark_all_notifications_read,
    mark_notification_read as mark_notification_read_uc,
)
from marketplace_messaging.domain.entities import Identity, Notification
from marketplace_messaging.domain.errors import MessagingError
from marketplace_messaging.infrastructure.database import SessionLocal, get_db
from marketplace_messaging.infrastructure.realtime import (
    connection_manager,
    serialize_notification,
    user_channel,
)
from marketplace_messaging.infrastructure.repositories import NotificationRepository
from marketplace_messaging.infrastructure.security import identity_from_token
from marketplace_messaging.interfaces.api.dependencies import get_current_identity
from marketplace_messaging.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationCountsRead,
    NotificationPageRead,
    NotificationRead,
    SuccessResponse,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        user_id=notification.user_id,
        type=notification.type.value,
        title=notification.title,
        message=notification.message,
        data=notification.data or {},
        is_read=notification.is_read,
        action_url=notification.action_url,
        created_at=notification.created_at,
        read_at=notification.read_at,
        expires_at=notification.expires_at,
    )


@router.get("", response_model=NotificationPageRead)
def list_notifications(
    limit: int | None = Query(None, description="Page size; defaults to NOTIFICATION_PAGE_SIZE"),
    offset: int = 0,
    include_read: bool = False,
    type: str | None = Query(None, description="Notification type or one of its aliases"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> NotificationPageRead:
    """Return the caller's notifications, newest first."""

    page = get_user_notifications(
        db,
        user_id=identity.user_id,
        limit=limit,
        offset=offset,
        include_read=include_read,
        type=type,
    )
    return NotificationPageRead(
        items=[_notification_to_schema(item) for item in page.items],
        count=page.count,
        has_more=page.has_more,
    )


@router.get("/counts", response_model=NotificationCountsRead)
def read_counts(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> NotificationCountsRead:
    counts = get_notification_counts(db, user_id=identity.user_id)
    return NotificationCountsRead(total=counts.total, unread=counts.unread)


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> MarkAllReadResponse:
    updated = mark_all_notifications_read(db, user_id=identity.user_id)
    return MarkAllReadResponse(success=True, updated=updated)


@router.post("/{notification_id}/read", response_model=SuccessResponse)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SuccessResponse:
    mark_notification_read_uc(db, notification_id=notification_id, user_id=identity.user_id)
    return SuccessResponse()


@router.delete("/{notification_id}", response_model=SuccessResponse)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> SuccessResponse:
    delete_notification_uc(db, notification_id=notification_id, user_id=identity.user_id)
    return SuccessResponse()


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    session = SessionLocal()
    try:
        identity = identity_from_token(websocket.query_params.get("token"))
        pending_notifications = NotificationRepository(session).list_unread_for_user(
            identity.user_id
        )
    except MessagingError as exc:
        logger.info("Rejected notifications websocket: %s", exc.message)
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    subscription = await connection_manager.connect(user_channel(identity.user_id), websocket)
    try:
        await websocket.send_json(
            {"type": "init", "data": [serialize_notification(n) for n in pending_notifications]}
        )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    ack_session = SessionLocal()
                    try:
                        repository = NotificationRepository(ack_session)
                        for notification_id in ids:
                            if isinstance(notification_id, int):
                                repository.mark_as_read(
                                    notification_id, user_id=identity.user_id
                                )
                    finally:
                        ack_session.close()
                continue
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()
