"""Pydantic schemas for Conversations and Messages."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from campusconnect.models.conversation import ConversationType


class DirectConversationCreate(BaseModel):
    target_user_id: str


class GroupConversationCreate(BaseModel):
    group_name: str
    participant_ids: list[str]


class MessageCreate(BaseModel):
    text: str


class ParticipantInfo(BaseModel):
    full_name: str = Field(validation_alias="fullName", serialization_alias="fullName")


class ConversationOut(BaseModel):
    id: str
    type: ConversationType
    participant_uids: list[str] = Field(serialization_alias="participantUIDs")
    participant_info: dict[str, ParticipantInfo] = Field(serialization_alias="participantInfo")
    group_name: Optional[str] = Field(default=None, serialization_alias="groupName")
    last_message_text: Optional[str] = Field(default=None, serialization_alias="lastMessageText")
    last_message_timestamp: Optional[datetime] = Field(default=None, serialization_alias="lastMessageTimestamp")
    last_message_sender_id: Optional[str] = Field(default=None, serialization_alias="lastMessageSenderId")
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")

    model_config = {"from_attributes": True}


class MessageOut(BaseModel):
    id: str
    conversation_id: str = Field(serialization_alias="conversationId")
    sender_id: str = Field(serialization_alias="senderId")
    sender_name: str = Field(serialization_alias="senderName")
    text: str
    timestamp: datetime

    model_config = {"from_attributes": True}
