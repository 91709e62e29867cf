"""AI notification composer API route."""
import logging
from fastapi import APIRouter, Depends

from campusconnect.dependencies import require_roles
from campusconnect.models.user import User, UserRole
from campusconnect.schemas.notification import ComposeNotificationOut, ComposeNotificationRequest
from campusconnect.services import notification_composer

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/compose", response_model=ComposeNotificationOut)
def compose_notification(
    payload: ComposeNotificationRequest,
    user: User = Depends(require_roles(UserRole.ssg_admin, UserRole.department_admin, UserRole.club_admin)),
):
    """Draft a notification for a recipient group; the admin reviews before sending."""
    logger.info("Notification draft requested by %s for %s", user.user_id, payload.recipient_group)
    draft = notification_composer.compose_notification(
        payload.recipient_group, payload.notification_type, payload.topic
    )
    return ComposeNotificationOut.model_validate(draft)
