from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from penpal.modules.user_management.schemas.user import UserSummary

class LetterCreate(BaseModel):
    recipient_id: str
    title: str
    content: str
    days_until_delivery: int

class LetterScheduled(BaseModel):
    letter_id: str
    deliver_at: datetime

class LetterPreview(BaseModel):
    """Letter in a list, without its content"""
    letter_id: str
    title: str
    created_at: datetime
    deliver_at: datetime
    days_until_delivery: int = 0
    other_user: Optional[UserSummary] = None

class Letter(LetterPreview):
    content: str
    sender_id: str
    recipient_id: str
    is_sender: bool = False
