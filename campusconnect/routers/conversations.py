"""Conversation and message API routes, plus live WebSocket feeds."""
import asyncio
import logging
from typing import Any, Callable, Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from campusconnect.database import get_db
from campusconnect.dependencies import get_current_user
from campusconnect.errors import CampusConnectError
from campusconnect.models.user import User
from campusconnect.schemas.conversation import (
    ConversationOut,
    DirectConversationCreate,
    GroupConversationCreate,
    MessageCreate,
    MessageOut,
)
from campusconnect.services import auth_service, messaging_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _dump(schema, items) -> list[dict[str, Any]]:
    return [schema.model_validate(item).model_dump(mode="json", by_alias=True) for item in items]


@router.get("/", response_model=list[ConversationOut])
def list_conversations(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """The signed-in user's conversations, most recently active first."""
    return messaging_service.list_user_conversations(db, user.user_id)


@router.post("/direct", response_model=ConversationOut)
def open_direct_conversation(
    payload: DirectConversationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Find or create the 1:1 conversation with another user."""
    return messaging_service.find_or_create_direct_conversation(db, user, payload.target_user_id)


@router.post("/group", response_model=ConversationOut, status_code=status.HTTP_201_CREATED)
def create_group_conversation(
    payload: GroupConversationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return messaging_service.create_group_conversation(db, user, payload.participant_ids, payload.group_name)


@router.get("/{conversation_id}/messages", response_model=list[MessageOut])
def list_messages(conversation_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Messages oldest first."""
    messaging_service.get_conversation_for_participant(db, conversation_id, user)
    return messaging_service.list_messages(db, conversation_id)


@router.post("/{conversation_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(
    conversation_id: str,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return messaging_service.send_message(db, conversation_id, user, payload.text)


# ── Live feeds ─────────────────────────────────────────────────────

# Snapshots are full replacements, so a slow client only needs the newest few
FEED_QUEUE_SIZE = 8


def offer_latest(queue: asyncio.Queue, payload: Any) -> None:
    """Enqueue ``payload``, dropping the oldest queued snapshot when full."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(payload)


async def _stream(
    websocket: WebSocket,
    db: Session,
    subscribe: Callable[[Callable[[Any], None]], Callable[[], None]],
) -> None:
    """Forward every snapshot pushed by ``subscribe`` until the client disconnects.

    ``db`` serves only the initial snapshot and is closed before streaming;
    later snapshots are loaded on the writer's session.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=FEED_QUEUE_SIZE)

    def push(payload: Any) -> None:
        # Writers publish from worker threads
        loop.call_soon_threadsafe(offer_latest, queue, payload)

    try:
        unsubscribe = await run_in_threadpool(subscribe, push)
    finally:
        await run_in_threadpool(db.close)

    async def pump() -> None:
        while True:
            await websocket.send_json(await queue.get())

    pump_task = asyncio.create_task(pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        pump_task.cancel()
        try:
            await pump_task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.warning("Live feed stopped sending: %s", exc)


async def _authenticate(websocket: WebSocket, db: Session, token: Optional[str]) -> Optional[User]:
    try:
        return await run_in_threadpool(auth_service.current_user, db, token)
    except CampusConnectError as exc:
        logger.info("Rejected WebSocket connection: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None


@router.websocket("/ws")
async def conversations_feed(websocket: WebSocket, token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Push the signed-in user's full conversation list on every change."""
    await websocket.accept()
    user = await _authenticate(websocket, db, token)
    if user is None:
        return
    user_id = user.user_id

    def subscribe(push):
        return messaging_service.listen_for_user_conversations(
            db, user_id, lambda items: push(_dump(ConversationOut, items))
        )

    await _stream(websocket, db, subscribe)


@router.websocket("/{conversation_id}/ws")
async def messages_feed(
    websocket: WebSocket,
    conversation_id: str,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Push a conversation's full message list on every new message."""
    await websocket.accept()
    user = await _authenticate(websocket, db, token)
    if user is None:
        return
    try:
        await run_in_threadpool(messaging_service.get_conversation_for_participant, db, conversation_id, user)
    except CampusConnectError as exc:
        logger.info("Rejected feed for conversation %s: %s", conversation_id, exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    def subscribe(push):
        return messaging_service.listen_for_messages(
            db, conversation_id, lambda items: push(_dump(MessageOut, items))
        )

    await _stream(websocket, db, subscribe)
