"""Endpoints and websocket handler for chat threads and messages."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from marketplace_messaging.application.use_cases.messages import (
    append_message,
    list_messages as list_messages_uc,
    mark_thread_read as mark_thread_read_uc,
)
from marketplace_messaging.application.use_cases.threads import (
    create_or_get_thread,
    get_thread,
    list_user_threads,
)
from marketplace_messaging.application.use_cases.unread import unread_count_for_user
from marketplace_messaging.domain.entities import Identity, Message, ThreadSummary
from marketplace_messaging.domain.errors import MessagingError
from marketplace_messaging.infrastructure.database import SessionLocal, get_db
from marketplace_messaging.infrastructure.realtime import (
    RealtimeFanout,
    connection_manager,
    thread_channel,
)
from marketplace_messaging.infrastructure.security import identity_from_token
from marketplace_messaging.interfaces.api.dependencies import (
    get_current_identity,
    get_realtime_fanout,
)
from marketplace_messaging.interfaces.api.schemas import (
    MarkReadResponse,
    MessageCreate,
    MessageCreateResponse,
    MessageRead,
    ThreadCreate,
    ThreadCreateResponse,
    ThreadRead,
    ThreadSummaryRead,
    UnreadCountRead,
)

router = APIRouter(prefix="/threads", tags=["threads"])
logger = logging.getLogger(__name__)


def _message_to_schema(message: Message) -> MessageRead:
    return MessageRead.model_validate(message)


def _summary_to_schema(summary: ThreadSummary) -> ThreadSummaryRead:
    return ThreadSummaryRead(
        thread=ThreadRead.model_validate(summary.thread),
        listing_id=summary.thread.listing_id,
        other_party_id=summary.other_party_id,
        unread_count=summary.unread_count,
        has_unread=summary.has_unread,
        last_message_preview=summary.last_message_preview,
        last_message_sender_id=summary.last_message_sender_id,
    )


@router.post("", response_model=ThreadCreateResponse)
def open_thread(
    payload: ThreadCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    fanout: RealtimeFanout = Depends(get_realtime_fanout),
) -> ThreadCreateResponse:
    """Open (or reuse) the conversation about a listing."""

    thread, is_new = create_or_get_thread(
        db,
        listing_id=payload.listing_id,
        requester_id=identity.user_id,
        other_party_id=payload.other_party_id,
        fanout=fanout,
    )
    return ThreadCreateResponse(
        thread_id=thread.id, is_new=is_new, thread=ThreadRead.model_validate(thread)
    )


@router.get("", response_model=list[ThreadSummaryRead])
def list_threads(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> list[ThreadSummaryRead]:
    summaries = list_user_threads(db, user_id=identity.user_id)
    return [_summary_to_schema(summary) for summary in summaries]


@router.get("/unread-count", response_model=UnreadCountRead)
def read_unread_count(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> UnreadCountRead:
    return UnreadCountRead(count=unread_count_for_user(db, user_id=identity.user_id))


@router.post(
    "/{thread_id}/messages",
    response_model=MessageCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    thread_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    fanout: RealtimeFanout = Depends(get_realtime_fanout),
) -> MessageCreateResponse:
    """Append a message to the thread on behalf of the caller."""

    message = append_message(
        db,
        thread_id=thread_id,
        sender_id=identity.user_id,
        content=payload.content,
        client_token=payload.client_token,
        sender_name=identity.display_name,
        fanout=fanout,
    )
    return MessageCreateResponse(
        message_id=message.id,
        created_at=message.created_at,
        message=_message_to_schema(message),
    )


@router.get("/{thread_id}/messages", response_model=list[MessageRead])
def list_messages(
    thread_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    fanout: RealtimeFanout = Depends(get_realtime_fanout),
) -> list[MessageRead]:
    """Return the conversation in order and mark it read for the caller."""

    messages = list_messages_uc(
        db, thread_id=thread_id, user_id=identity.user_id, fanout=fanout
    )
    return [_message_to_schema(message) for message in messages]


@router.post("/{thread_id}/read", response_model=MarkReadResponse)
def mark_thread_read(
    thread_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    fanout: RealtimeFanout = Depends(get_realtime_fanout),
) -> MarkReadResponse:
    updated = mark_thread_read_uc(
        db, thread_id=thread_id, user_id=identity.user_id, fanout=fanout
    )
    return MarkReadResponse(success=True, updated=updated)


@router.websocket("/{thread_id}/ws")
async def thread_websocket(websocket: WebSocket, thread_id: int) -> None:
    """Stream the events of one thread to a participant."""

    session = SessionLocal()
    try:
        identity = identity_from_token(websocket.query_params.get("token"))
        get_thread(session, thread_id=thread_id, user_id=identity.user_id)
    except MessagingError as exc:
        logger.info("Rejected websocket for thread %s: %s", thread_id, exc.message)
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    subscription = await connection_manager.connect(thread_channel(thread_id), websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()
