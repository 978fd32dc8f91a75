from typing import Any, Dict, Optional, Union
import uuid
import logging

from sqlalchemy.orm import Session

from penpal.core.errors import NotFound, NotAuthorized
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.modules.notifications.models.notification import Notification
from penpal.modules.notifications.schemas.notification import (
    Notification as NotificationSchema,
    NotificationSender,
    NotificationType,
)
from penpal.modules.user_management.services.summaries import get_users_by_ids

logger = logging.getLogger(__name__)

_TEMPLATES = {
    NotificationType.friend_request_sent: "{sender_name} sent you a friend request",
    NotificationType.friend_request_accepted: "{sender_name} accepted your friend request",
    NotificationType.friend_request_rejected: "{sender_name} declined your friend request",
    NotificationType.friend_removed: "{sender_name} removed you from friends",
    NotificationType.conversation_deleted: "{sender_name} deleted your conversation",
    NotificationType.user_blocked: "{sender_name} has blocked you",
    NotificationType.post_reaction: "{sender_name} reacted {emoji} to your post",
    NotificationType.post_commented: "{sender_name} commented on your post",
    NotificationType.comment_replied: "{sender_name} replied to your comment",
    NotificationType.letter_scheduled: "{sender_name} sent you a letter arriving in {days} {day_word}",
}

class _Params(dict):
    def __missing__(self, key):
        return ""

def create_notification(
    db: Session,
    recipient_id: str,
    sender_id: str,
    type: Union[NotificationType, str],
    params: Optional[Dict[str, Any]] = None,
) -> Optional[Notification]:
    """Queue a notification in the caller's unit of work. No-op when recipient == sender."""
    if recipient_id == sender_id:
        return None

    notification = Notification(
        id=str(uuid.uuid4()),
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=NotificationType(type).value,
        params=params or {},
        has_unread=True,
    )
    db.add(notification)
    return notification

def render_notification_content(type: Union[NotificationType, str], params: Optional[Dict[str, Any]], sender_name: str) -> str:
    values = _Params(params or {})
    values["sender_name"] = sender_name
    if "days" in values:
        values["day_word"] = "day" if values["days"] == 1 else "days"
    return _TEMPLATES[NotificationType(type)].format_map(values)

def get_notification(db: Session, notification_id: str) -> Optional[Notification]:
    """Get notification by ID"""
    return db.query(Notification).filter(Notification.id == notification_id).first()

def get_user_notifications(db: Session, user_id: str, opts: PaginationOpts) -> Page[NotificationSchema]:
    """Newest first. Notifications whose sender no longer exists are skipped."""
    query = db.query(Notification).filter(Notification.recipient_id == user_id)
    result = paginate(query, Notification, opts)

    senders = get_users_by_ids(db, [n.sender_id for n in result.page])
    page = []
    for notification in result.page:
        sender = senders.get(notification.sender_id)
        if not sender:
            continue
        page.append(NotificationSchema(
            id=notification.id,
            type=notification.type,
            params=notification.params or {},
            content=render_notification_content(notification.type, notification.params, sender.name),
            has_unread=notification.has_unread,
            created_at=notification.created_at,
            sender=NotificationSender(user_id=sender.id, name=sender.name),
        ))

    return Page[NotificationSchema](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def _unread_query(db: Session, user_id: str):
    return db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.has_unread.is_(True),
    )

def count_unread_notifications(db: Session, user_id: str) -> int:
    return _unread_query(db, user_id).count()

def mark_all_as_read(db: Session, user_id: str) -> int:
    """Mark every unread notification of the user as read"""
    updated = _unread_query(db, user_id).update({Notification.has_unread: False}, synchronize_session=False)
    db.commit()
    return updated

def mark_as_read(db: Session, notification_id: str, user_id: str) -> Notification:
    notification = _get_owned_notification(db, notification_id, user_id)
    notification.has_unread = False
    db.commit()
    db.refresh(notification)
    return notification

def delete_notification(db: Session, notification_id: str, user_id: str) -> None:
    notification = _get_owned_notification(db, notification_id, user_id)
    db.delete(notification)
    db.commit()

def delete_all_notifications(db: Session, user_id: str) -> int:
    deleted = db.query(Notification).filter(Notification.recipient_id == user_id).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Deleted {deleted} notifications for user {user_id}")
    return deleted

def _get_owned_notification(db: Session, notification_id: str, user_id: str) -> Notification:
    notification = get_notification(db, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    if notification.recipient_id != user_id:
        raise NotAuthorized("Not enough permissions")
    return notification
