"""Conversation and ConversationParticipant ORM models."""
import enum
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from campusconnect.database import Base
from campusconnect.models import enum_type


class ConversationType(str, enum.Enum):
    direct = "direct"
    group = "group"


class Conversation(Base):
    __tablename__ = "conversations"

    # Direct conversations use a key derived from the participant pair
    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(enum_type(ConversationType, "conversation_type"), nullable=False)
    group_name = Column("groupName", String(150), nullable=True)
    last_message_text = Column("lastMessageText", Text, nullable=True)
    last_message_timestamp = Column("lastMessageTimestamp", DateTime(timezone=True), nullable=True, index=True)
    last_message_sender_id = Column("lastMessageSenderId", String(36), nullable=True)
    created_at = Column("createdAt", DateTime(timezone=True), server_default=func.now())

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")

    @property
    def participant_uids(self) -> list[str]:
        return sorted(p.user_id for p in self.participants)

    @property
    def participant_info(self) -> dict[str, dict[str, str]]:
        return {p.user_id: {"fullName": p.full_name} for p in self.participants}


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    conversation_id = Column(String(64), ForeignKey("conversations.id"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.userID"), primary_key=True, index=True)
    full_name = Column("fullName", String(150), nullable=False)  # display snapshot

    conversation = relationship("Conversation", back_populates="participants")
