from typing import Any, Dict, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel

class NotificationType(str, Enum):
    friend_request_sent = "friend_request_sent"
    friend_request_accepted = "friend_request_accepted"
    friend_request_rejected = "friend_request_rejected"
    friend_removed = "friend_removed"
    conversation_deleted = "conversation_deleted"
    user_blocked = "user_blocked"
    post_reaction = "post_reaction"
    post_commented = "post_commented"
    comment_replied = "comment_replied"
    letter_scheduled = "letter_scheduled"

class NotificationSender(BaseModel):
    user_id: str
    name: str

class Notification(BaseModel):
    """Notification returned to client, text rendered from type and params"""
    id: str
    type: NotificationType
    params: Dict[str, Any] = {}
    content: str
    has_unread: bool
    created_at: datetime
    sender: Optional[NotificationSender] = None

class UnreadStatus(BaseModel):
    has_unread: bool
    unread_count: int
