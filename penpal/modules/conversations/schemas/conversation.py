from typing import Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel

from penpal.modules.user_management.schemas.user import UserSummary

class MessageType(str, Enum):
    text = "text"
    image = "image"

class ConversationCreate(BaseModel):
    other_user_id: str

class ConversationCreated(BaseModel):
    conversation_group_id: str

class MessageCreate(BaseModel):
    type: MessageType
    content: Optional[str] = None
    image_id: Optional[str] = None
    reply_parent_id: Optional[str] = None

class MessageCreated(BaseModel):
    message_id: str

class LastMessage(BaseModel):
    message_id: str
    content: Optional[str] = None
    type: MessageType
    sender_id: str
    created_at: datetime

class ConversationSummary(BaseModel):
    conversation_group_id: str
    created_at: datetime
    last_message_id: Optional[str] = None
    last_message_time: datetime
    has_unread_messages: bool
    other_user: UserSummary
    last_message: Optional[LastMessage] = None

class ReplyParentSender(BaseModel):
    name: str

class ReplyParent(BaseModel):
    message_id: str
    content: Optional[str] = None
    type: MessageType
    sender: ReplyParentSender

class MessageSender(BaseModel):
    user_id: str
    name: str
    profile_picture: Optional[str] = None

class Message(BaseModel):
    """Message returned to client"""
    message_id: str
    created_at: datetime
    conversation_group_id: str
    sender_id: str
    content: Optional[str] = None
    type: MessageType
    image_id: Optional[str] = None
    image_url: Optional[str] = None
    reply_parent_id: Optional[str] = None
    reply_parent: Optional[ReplyParent] = None
    is_owner: bool
    sender: MessageSender

class ConversationInfo(BaseModel):
    conversation_group_id: str
    other_user: UserSummary
