"""Pydantic schemas for the notification composer."""
from pydantic import BaseModel, Field


class ComposeNotificationRequest(BaseModel):
    recipient_group: str
    notification_type: str
    topic: str


class ComposeNotificationOut(BaseModel):
    message: str
    urgency_level: str = Field(validation_alias="urgencyLevel", serialization_alias="urgencyLevel")
    generated: bool
