from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel

from penpal.modules.user_management.schemas.user import UserSummary

class CommentBase(BaseModel):
    content: str
    reply_parent_id: Optional[str] = None

class CommentCreate(CommentBase):
    pass

class Comment(CommentBase):
    """Comment returned to client"""
    id: str
    post_id: str
    user_id: str
    created_at: datetime
    is_owner: bool = False
    author: Optional[UserSummary] = None

class CommentWithReplies(Comment):
    """Top-level comment with its replies, oldest reply first"""
    replies: List[Comment] = []
