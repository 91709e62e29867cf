"""Messaging service: conversations, messages, and their live listeners.

Direct conversations are keyed by a hash of the sorted participant pair, so
find-or-create is idempotent even when two users open the same chat at once.
Sending is two separate writes (message, then the conversation's
last-message cache); readers may briefly see a stale cache.
"""
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from campusconnect.database import commit_or_raise
from campusconnect.errors import InputValidationError, NotFoundError, PermissionDeniedError, StorageError
from campusconnect.models.conversation import Conversation, ConversationParticipant, ConversationType
from campusconnect.models.message import Message
from campusconnect.models.user import User
from campusconnect.realtime import (
    ChangeFeed,
    change_feed,
    conversation_messages_topic,
    user_conversations_topic,
)
from campusconnect.services import directory

logger = logging.getLogger(__name__)


def direct_conversation_id(user_a: str, user_b: str) -> str:
    """Order-independent key for the direct conversation between two users."""
    first, second = sorted([user_a, user_b])
    digest = hashlib.sha256(f"{first}|{second}".encode("utf-8")).hexdigest()
    return f"direct_{digest[:40]}"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _next_message_timestamp(db: Session, conversation_id: str) -> datetime:
    """Current time, nudged past the newest message so timestamps strictly increase."""
    now = datetime.now(timezone.utc)
    latest = db.query(func.max(Message.timestamp)).filter(Message.conversation_id == conversation_id).scalar()
    if latest is not None:
        latest = _as_utc(latest)
        if now <= latest:
            now = latest + timedelta(microseconds=1)
    return now


# ── Queries ────────────────────────────────────────────────────────


def list_user_conversations(db: Session, user_id: str) -> list[Conversation]:
    """Conversations the user takes part in, most recently active first."""
    return (
        db.query(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .filter(ConversationParticipant.user_id == user_id)
        .order_by(Conversation.last_message_timestamp.desc(), Conversation.created_at.desc())
        .all()
    )


def list_messages(db: Session, conversation_id: str) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.timestamp.asc(), Message.id.asc())
        .all()
    )


def get_conversation(db: Session, conversation_id: str) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise NotFoundError("Conversation", conversation_id)
    return conversation


def get_conversation_for_participant(db: Session, conversation_id: str, user: User) -> Conversation:
    conversation = get_conversation(db, conversation_id)
    if user.user_id not in conversation.participant_uids:
        raise PermissionDeniedError("You are not a participant in this conversation")
    return conversation


# ── Listeners ──────────────────────────────────────────────────────


def listen_for_user_conversations(
    db: Session,
    user_id: str,
    callback: Callable[[list[Conversation]], None],
    feed: ChangeFeed = change_feed,
) -> Callable[[], None]:
    """Push the user's full conversation list now and after every change."""
    return feed.subscribe(
        db,
        user_conversations_topic(user_id),
        lambda session: list_user_conversations(session, user_id),
        callback,
    )


def listen_for_messages(
    db: Session,
    conversation_id: Optional[str],
    callback: Callable[[list[Message]], None],
    feed: ChangeFeed = change_feed,
) -> Callable[[], None]:
    """Push a conversation's messages (oldest first) now and after every new message.

    With no conversation selected the callback gets an empty list and the
    returned handle does nothing.
    """
    if conversation_id is None:
        callback([])
        return lambda: None
    return feed.subscribe(
        db,
        conversation_messages_topic(conversation_id),
        lambda session: list_messages(session, conversation_id),
        callback,
    )


# ── Writes ─────────────────────────────────────────────────────────


def send_message(
    db: Session,
    conversation_id: str,
    sender: User,
    text: str,
    feed: ChangeFeed = change_feed,
) -> Message:
    if text is None or not text.strip():
        raise InputValidationError("Message text cannot be empty")
    conversation = get_conversation_for_participant(db, conversation_id, sender)
    participant_ids = conversation.participant_uids

    message = Message(
        conversation_id=conversation_id,
        sender_id=sender.user_id,
        sender_name=sender.full_name,
        text=text.strip(),
        timestamp=_next_message_timestamp(db, conversation_id),
    )
    db.add(message)
    commit_or_raise(db, "send the message")

    conversation.last_message_text = message.text
    conversation.last_message_timestamp = message.timestamp
    conversation.last_message_sender_id = sender.user_id
    commit_or_raise(db, "update the conversation")
    db.refresh(message)

    logger.info("Message %s sent to conversation %s by %s", message.id, conversation_id, sender.user_id)
    feed.publish(
        db,
        conversation_messages_topic(conversation_id),
        *(user_conversations_topic(uid) for uid in participant_ids),
    )
    return message


def _find_direct_by_participants(db: Session, user_a: str, user_b: str) -> Optional[Conversation]:
    """Direct conversation stored under a non-derived ID for this pair, if any."""
    first = aliased(ConversationParticipant)
    second = aliased(ConversationParticipant)
    return (
        db.query(Conversation)
        .join(first, first.conversation_id == Conversation.id)
        .join(second, second.conversation_id == Conversation.id)
        .filter(
            Conversation.type == ConversationType.direct,
            first.user_id == user_a,
            second.user_id == user_b,
        )
        .first()
    )


def find_or_create_direct_conversation(
    db: Session,
    current_user: User,
    target_user_id: str,
    feed: ChangeFeed = change_feed,
) -> Conversation:
    if current_user.user_id == target_user_id:
        raise InputValidationError("Cannot start a conversation with yourself")
    target = directory.get_user(db, target_user_id)

    conversation_id = direct_conversation_id(current_user.user_id, target.user_id)
    existing = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if existing is None:
        existing = _find_direct_by_participants(db, current_user.user_id, target.user_id)
    if existing is not None:
        return existing

    now = datetime.now(timezone.utc)
    names = {current_user.user_id: current_user.full_name, target.user_id: target.full_name}
    conversation = Conversation(
        id=conversation_id,
        type=ConversationType.direct,
        created_at=now,
        last_message_timestamp=now,
        participants=[
            ConversationParticipant(user_id=uid, full_name=names[uid])
            for uid in sorted(names)
        ],
    )
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        # Same pair created concurrently: the derived key already exists
        db.rollback()
        existing = db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if existing is None:
            raise StorageError("Could not start the conversation. Temporary failure, please try again.")
        logger.info("Direct conversation %s was created concurrently, reusing it", conversation_id)
        return existing
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store write failed while creating conversation %s: %s", conversation_id, exc)
        raise StorageError("Could not start the conversation. Temporary failure, please try again.") from exc

    db.refresh(conversation)
    logger.info(
        "Direct conversation %s created between %s and %s",
        conversation_id,
        current_user.user_id,
        target.user_id,
    )
    feed.publish(db, *(user_conversations_topic(uid) for uid in conversation.participant_uids))
    return conversation


def create_group_conversation(
    db: Session,
    creator: User,
    participant_ids: list[str],
    group_name: str,
    feed: ChangeFeed = change_feed,
) -> Conversation:
    if not group_name or not group_name.strip():
        raise InputValidationError("Group conversations need a name")
    member_ids = sorted(set(participant_ids) | {creator.user_id})
    if len(member_ids) < 2:
        raise InputValidationError("A group conversation needs at least one other participant")
    members = directory.get_users(db, member_ids)

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        type=ConversationType.group,
        group_name=group_name.strip(),
        created_at=now,
        last_message_timestamp=now,
        participants=[ConversationParticipant(user_id=m.user_id, full_name=m.full_name) for m in members],
    )
    db.add(conversation)
    commit_or_raise(db, "create the group conversation")
    db.refresh(conversation)
    logger.info(
        "Group conversation %s ('%s') created by %s with %d participants",
        conversation.id,
        conversation.group_name,
        creator.user_id,
        len(member_ids),
    )
    feed.publish(db, *(user_conversations_topic(uid) for uid in member_ids))
    return conversation
