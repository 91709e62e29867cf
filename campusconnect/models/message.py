"""Message ORM model: immutable, owned by exactly one conversation."""
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from campusconnect.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column("conversationId", String(64), ForeignKey("conversations.id"), nullable=False)
    sender_id = Column("senderId", String(36), ForeignKey("users.userID"), nullable=False)
    sender_name = Column("senderName", String(150), nullable=False)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (Index("ix_messages_conversation_timestamp", "conversationId", "timestamp"),)
