from typing import Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict

from penpal.modules.user_management.schemas.user import ProfileSummary

class FriendRequestCreate(BaseModel):
    receiver_id: str
    request_message: str

class FriendRequestInDBBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    receiver_id: str
    request_message: str
    created_at: datetime

class FriendRequest(FriendRequestInDBBase):
    """Friend request returned to its sender"""
    pass

class ReceivedFriendRequest(ProfileSummary):
    """Pending request with the sender's card, as shown to the receiver"""
    request_id: str
    sender_id: str
    request_message: str
    created_at: datetime

class Friend(ProfileSummary):
    friends_since: datetime

class FriendshipStatusKind(str, Enum):
    self = "self"
    friends = "friends"
    request_sent = "request_sent"
    request_received = "request_received"
    not_friends = "not_friends"

class FriendshipStatus(BaseModel):
    status: FriendshipStatusKind
    request_id: Optional[str] = None
