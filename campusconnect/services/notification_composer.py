"""AI notification composer: drafts targeted announcements for admins.

The text-generation model is an opaque collaborator: we send the recipient
group, notification type, and topic, and expect back a JSON object with
``message`` and ``urgencyLevel``.
"""
import json
import logging
from typing import Any

from openai import OpenAI, OpenAIError

from campusconnect.config import settings
from campusconnect.errors import AIServiceError, InputValidationError

logger = logging.getLogger(__name__)

URGENCY_LEVELS = ("high", "medium", "low")

SYSTEM_PROMPT = """You are an AI assistant helping a campus student-government admin compose targeted notifications to students.

You will receive the recipient group, notification type, and topic of the notification.
Compose a concise and engaging notification message and determine its urgency level.

Respond with a JSON object: {"message": "<notification text>", "urgencyLevel": "high" | "medium" | "low"}
"""

USER_PROMPT = """Recipient Group: {recipient_group}
Notification Type: {notification_type}
Topic: {topic}
"""


def _placeholder(recipient_group: str, notification_type: str, topic: str) -> dict[str, Any]:
    return {
        "message": f"[{notification_type.title()}] {recipient_group}: {topic}",
        "urgencyLevel": "medium",
        "generated": False,
    }


def compose_notification(recipient_group: str, notification_type: str, topic: str) -> dict[str, Any]:
    """Return ``{"message", "urgencyLevel", "generated"}`` for the given brief."""
    for label, value in (("Recipient group", recipient_group), ("Notification type", notification_type), ("Topic", topic)):
        if not value or not value.strip():
            raise InputValidationError(f"{label} is required")

    if not settings.OPENAI_API_KEY:
        logger.warning("OpenAI API key not configured, returning placeholder notification draft")
        return _placeholder(recipient_group, notification_type, topic)

    client = OpenAI(api_key=settings.OPENAI_API_KEY)
    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": USER_PROMPT.format(
                        recipient_group=recipient_group,
                        notification_type=notification_type,
                        topic=topic,
                    ),
                },
            ],
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        logger.error("LLM API error while composing notification: %s", e)
        raise AIServiceError("The notification assistant is unavailable. Temporary failure, try again.") from e

    content = response.choices[0].message.content or ""
    try:
        draft = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error("Composer returned non-JSON output: %r", content[:200])
        raise AIServiceError("The notification assistant returned an unreadable draft. Try again.") from e

    message = str(draft.get("message", "")).strip()
    if not message:
        raise AIServiceError("The notification assistant returned an empty draft. Try again.")
    urgency = str(draft.get("urgencyLevel", "medium")).strip().lower()
    if urgency not in URGENCY_LEVELS:
        urgency = "medium"

    if response.usage:
        logger.info("Composed %s notification for %s (%d tokens)", notification_type, recipient_group, response.usage.total_tokens)
    return {"message": message, "urgencyLevel": urgency, "generated": True}
