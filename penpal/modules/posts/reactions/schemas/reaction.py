from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

class ReactionBase(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=16)

class ReactionCreate(ReactionBase):
    pass

class Reaction(ReactionBase):
    """Reaction returned to client"""
    id: str
    user_id: str
    post_id: str
    created_at: datetime
    name: Optional[str] = None
    profile_picture: Optional[str] = None
